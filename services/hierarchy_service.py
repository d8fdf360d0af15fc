"""
services.hierarchy_service - Systems, modules and scenarios.

A parent cannot be deleted while it still has children (system → modules,
module → scenarios).  Test cases pointing at a deleted node are detached,
not deleted.
"""

from __future__ import annotations

import logging

from sqlalchemy.orm import Session

from db.models import System, Module, Scenario, TestCase

logger = logging.getLogger(__name__)

NAME_MAX = 100


class DeletionBlocked(Exception):
    """Raised when a node still owns child nodes."""

    def __init__(self, message: str, child_count: int, child_type: str):
        super().__init__(message)
        self.child_count = child_count
        self.child_type = child_type

    def to_dict(self) -> dict:
        return {
            "error": str(self),
            "childCount": self.child_count,
            "childType": self.child_type,
        }


def _clean_name(data: dict, label: str) -> str:
    name = data.get("name")
    if not isinstance(name, str) or not name.strip():
        raise ValueError(f"{label} name is required")
    name = name.strip()
    if len(name) > NAME_MAX:
        raise ValueError(f"{label} name exceeds {NAME_MAX} characters")
    return name


def _clean_text(value) -> str | None:
    text = str(value).strip() if value is not None else ""
    return text or None


def _detach_cases(session: Session, column, node_id: int) -> None:
    session.query(TestCase).filter(column == node_id).update(
        {column: None}, synchronize_session=False,
    )


class HierarchyService:

    # ── Read ───────────────────────────────────────────────────────────

    @staticmethod
    def tree(session: Session) -> list[dict]:
        """Full system → module → scenario tree, ready for a tree widget."""
        systems = session.query(System).order_by(System.created_at, System.id).all()
        return [
            {
                "key": f"system-{s.id}",
                "type": "system",
                "id": s.id,
                "title": s.name,
                "description": s.description,
                "children": [
                    {
                        "key": f"module-{m.id}",
                        "type": "module",
                        "id": m.id,
                        "systemId": s.id,
                        "title": m.name,
                        "description": m.description,
                        "children": [
                            {
                                "key": f"scenario-{sc.id}",
                                "type": "scenario",
                                "id": sc.id,
                                "moduleId": m.id,
                                "title": sc.name,
                                "description": sc.description,
                                "content": sc.content,
                            }
                            for sc in m.scenarios
                        ],
                    }
                    for m in s.modules
                ],
            }
            for s in systems
        ]

    @staticmethod
    def list_systems(session: Session) -> list[System]:
        return session.query(System).order_by(System.created_at, System.id).all()

    @staticmethod
    def get_system(session: Session, system_id: int) -> System | None:
        return session.get(System, system_id)

    @staticmethod
    def get_module(session: Session, module_id: int) -> Module | None:
        return session.get(Module, module_id)

    @staticmethod
    def get_scenario(session: Session, scenario_id: int) -> Scenario | None:
        return session.get(Scenario, scenario_id)

    # ── Systems ────────────────────────────────────────────────────────

    @staticmethod
    def create_system(session: Session, data: dict) -> System:
        name = _clean_name(data, "system")
        if session.query(System).filter_by(name=name).first():
            raise ValueError(f"system {name!r} already exists")
        system = System(name=name, description=_clean_text(data.get("description")))
        session.add(system)
        session.flush()
        logger.info("Created system %s (id=%s)", system.name, system.id)
        return system

    @staticmethod
    def update_system(session: Session, system: System, data: dict) -> System:
        if "name" in data:
            name = _clean_name(data, "system")
            clash = session.query(System).filter(
                System.name == name, System.id != system.id).first()
            if clash:
                raise ValueError(f"system {name!r} already exists")
            system.name = name
        if "description" in data:
            system.description = _clean_text(data["description"])
        session.flush()
        return system

    @staticmethod
    def delete_system(session: Session, system: System) -> None:
        count = session.query(Module).filter_by(system_id=system.id).count()
        if count:
            raise DeletionBlocked(
                f"system {system.name!r} still has {count} module(s); "
                "delete them first", count, "modules",
            )
        _detach_cases(session, TestCase.system_id, system.id)
        session.delete(system)
        session.flush()

    # ── Modules ────────────────────────────────────────────────────────

    @staticmethod
    def create_module(session: Session, system: System, data: dict) -> Module:
        name = _clean_name(data, "module")
        if session.query(Module).filter_by(system_id=system.id, name=name).first():
            raise ValueError(f"module {name!r} already exists in system {system.name!r}")
        module = Module(
            system_id=system.id,
            name=name,
            description=_clean_text(data.get("description")),
            sort_order=int(data.get("sortOrder") or 0),
        )
        session.add(module)
        session.flush()
        return module

    @staticmethod
    def update_module(session: Session, module: Module, data: dict) -> Module:
        if "name" in data:
            name = _clean_name(data, "module")
            clash = session.query(Module).filter(
                Module.system_id == module.system_id,
                Module.name == name, Module.id != module.id).first()
            if clash:
                raise ValueError(f"module {name!r} already exists")
            module.name = name
        if "description" in data:
            module.description = _clean_text(data["description"])
        if "sortOrder" in data:
            module.sort_order = int(data["sortOrder"] or 0)
        session.flush()
        return module

    @staticmethod
    def delete_module(session: Session, module: Module) -> None:
        count = session.query(Scenario).filter_by(module_id=module.id).count()
        if count:
            raise DeletionBlocked(
                f"module {module.name!r} still has {count} scenario(s); "
                "delete them first", count, "scenarios",
            )
        _detach_cases(session, TestCase.module_id, module.id)
        session.delete(module)
        session.flush()

    # ── Scenarios ──────────────────────────────────────────────────────

    @staticmethod
    def create_scenario(session: Session, module: Module, data: dict) -> Scenario:
        name = _clean_name(data, "scenario")
        if session.query(Scenario).filter_by(module_id=module.id, name=name).first():
            raise ValueError(f"scenario {name!r} already exists in module {module.name!r}")
        scenario = Scenario(
            module_id=module.id,
            name=name,
            description=_clean_text(data.get("description")),
            content=_clean_text(data.get("content")),
            sort_order=int(data.get("sortOrder") or 0),
        )
        session.add(scenario)
        session.flush()
        return scenario

    @staticmethod
    def update_scenario(session: Session, scenario: Scenario, data: dict) -> Scenario:
        if "name" in data:
            name = _clean_name(data, "scenario")
            clash = session.query(Scenario).filter(
                Scenario.module_id == scenario.module_id,
                Scenario.name == name, Scenario.id != scenario.id).first()
            if clash:
                raise ValueError(f"scenario {name!r} already exists")
            scenario.name = name
        for key in ("description", "content"):
            if key in data:
                setattr(scenario, key, _clean_text(data[key]))
        if "sortOrder" in data:
            scenario.sort_order = int(data["sortOrder"] or 0)
        session.flush()
        return scenario

    @staticmethod
    def delete_scenario(session: Session, scenario: Scenario) -> None:
        _detach_cases(session, TestCase.scenario_id, scenario.id)
        session.delete(scenario)
        session.flush()
