"""
services.testcase_service - CRUD operations on TestCase records.

All session management is the caller's responsibility (open before,
close/commit after).  This keeps the service testable and allows
the caller to batch multiple operations in one transaction.
"""

from __future__ import annotations

from sqlalchemy.orm import Session

from db.models import (
    TestCase, System, Module, Scenario,
    PRIORITIES, STATUSES, DEFAULT_PRIORITY, DEFAULT_STATUS,
)

# JSON body key → TestCase attribute
TEXT_FIELDS: dict[str, str] = {
    "title":          "title",
    "preconditions":  "preconditions",
    "steps":          "steps",
    "expectedResult": "expected_result",
    "actualResult":   "actual_result",
}

LINK_FIELDS: dict[str, str] = {
    "systemId":   "system_id",
    "moduleId":   "module_id",
    "scenarioId": "scenario_id",
}


def _optional_id(value) -> int | None:
    if value is None or value == "":
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ValueError(f"invalid id: {value!r}") from None


def check_hierarchy(
    session: Session,
    system_id: int | None,
    module_id: int | None,
    scenario_id: int | None,
) -> tuple[int | None, int | None, int | None]:
    """
    Return (system_id, module_id, scenario_id) with missing parents filled
    in from the child: a scenario implies its module, a module its system.
    Raise ValueError unless every supplied id exists and the links agree.
    """
    with session.no_autoflush:
        if scenario_id is not None:
            scenario = session.get(Scenario, scenario_id)
            if scenario is None:
                raise ValueError(f"scenario {scenario_id} does not exist")
            if module_id is None:
                module_id = scenario.module_id
            elif scenario.module_id != module_id:
                raise ValueError(f"scenario {scenario_id} is not in module {module_id}")
        if module_id is not None:
            module = session.get(Module, module_id)
            if module is None:
                raise ValueError(f"module {module_id} does not exist")
            if system_id is None:
                system_id = module.system_id
            elif module.system_id != system_id:
                raise ValueError(f"module {module_id} is not in system {system_id}")
        if system_id is not None and session.get(System, system_id) is None:
            raise ValueError(f"system {system_id} does not exist")
    return system_id, module_id, scenario_id


def _normalise_enum(value, allowed: tuple[str, ...], label: str) -> str:
    text = str(value).strip().upper()
    if text not in allowed:
        raise ValueError(f"{label} must be one of {', '.join(allowed)}")
    return text


class TestCaseService:
    __test__ = False

    # ── Read ───────────────────────────────────────────────────────────

    @staticmethod
    def get(session: Session, case_id: int) -> TestCase | None:
        return session.get(TestCase, case_id)

    @staticmethod
    def find_by_title(session: Session, title: str) -> list[TestCase]:
        return (
            session.query(TestCase)
            .filter(TestCase.title == title)
            .order_by(TestCase.id)
            .all()
        )

    @staticmethod
    def list_cases(
        session: Session,
        system_id: int | None = None,
        module_id: int | None = None,
        scenario_id: int | None = None,
    ) -> list[TestCase]:
        query = session.query(TestCase)
        if system_id:
            query = query.filter(TestCase.system_id == system_id)
        if module_id:
            query = query.filter(TestCase.module_id == module_id)
        if scenario_id:
            query = query.filter(TestCase.scenario_id == scenario_id)
        return query.order_by(TestCase.created_at.desc(), TestCase.id.desc()).all()

    @staticmethod
    def by_hierarchy(
        session: Session,
        system_id: int | None = None,
        module_id: int | None = None,
        scenario_id: int | None = None,
        page: int = 1,
        limit: int = 20,
    ) -> dict:
        """
        Paginated listing filtered by the most specific level given
        (scenario beats module beats system).
        """
        page = max(page, 1)
        limit = max(limit, 1)

        query = session.query(TestCase)
        if scenario_id:
            query = query.filter(TestCase.scenario_id == scenario_id)
        elif module_id:
            query = query.filter(TestCase.module_id == module_id)
        elif system_id:
            query = query.filter(TestCase.system_id == system_id)

        total = query.count()
        cases = (
            query.order_by(TestCase.created_at.desc(), TestCase.id.desc())
            .offset((page - 1) * limit)
            .limit(limit)
            .all()
        )
        return {
            "testCases": [c.to_dict() for c in cases],
            "total": total,
            "page": page,
            "limit": limit,
        }

    # ── Create ─────────────────────────────────────────────────────────

    @staticmethod
    def create(session: Session, data: dict) -> TestCase:
        """
        Create a TestCase from a JSON-style dict.
        Required key: title.  Priority / status default to MEDIUM / PENDING.
        """
        title = str(data.get("title") or "").strip()
        if not title:
            raise ValueError("title is required")

        tc = TestCase(source=str(data.get("source") or "manual"))
        for key, attr in TEXT_FIELDS.items():
            setattr(tc, attr, str(data.get(key) or "").strip())
        tc.title = title

        tc.priority = _normalise_enum(data.get("priority") or DEFAULT_PRIORITY,
                                      PRIORITIES, "priority")
        tc.status = _normalise_enum(data.get("status") or DEFAULT_STATUS,
                                    STATUSES, "status")
        tc.tags = [str(t).strip() for t in data.get("tags") or [] if str(t).strip()]

        links = {attr: _optional_id(data.get(key)) for key, attr in LINK_FIELDS.items()}
        tc.system_id, tc.module_id, tc.scenario_id = check_hierarchy(
            session, links["system_id"], links["module_id"], links["scenario_id"],
        )

        session.add(tc)
        session.flush()
        return tc

    # ── Update ─────────────────────────────────────────────────────────

    @staticmethod
    def update(session: Session, tc: TestCase, data: dict) -> TestCase:
        """Update only the keys present in *data*."""
        for key, attr in TEXT_FIELDS.items():
            if key in data:
                setattr(tc, attr, str(data[key] or "").strip())
        if not (tc.title or "").strip():
            raise ValueError("title is required")

        if "priority" in data:
            tc.priority = _normalise_enum(data["priority"], PRIORITIES, "priority")
        if "status" in data:
            tc.status = _normalise_enum(data["status"], STATUSES, "status")
        if "tags" in data:
            tc.tags = [str(t).strip() for t in data["tags"] or [] if str(t).strip()]

        if any(key in data for key in LINK_FIELDS):
            for key, attr in LINK_FIELDS.items():
                if key in data:
                    setattr(tc, attr, _optional_id(data[key]))
            tc.system_id, tc.module_id, tc.scenario_id = check_hierarchy(
                session, tc.system_id, tc.module_id, tc.scenario_id,
            )

        session.flush()
        return tc

    # ── Delete ─────────────────────────────────────────────────────────

    @staticmethod
    def delete(session: Session, tc: TestCase) -> None:
        session.delete(tc)
        session.flush()
