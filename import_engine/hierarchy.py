"""
import_engine.hierarchy - Find-or-create for system → module → scenario.

Each level is only resolved when its parent resolved, and child lookups
are scoped by the parent id just obtained, so the ids handed back are
always mutually consistent.

Creation runs inside a SAVEPOINT.  If the INSERT loses a race against
another writer (IntegrityError from the unique constraint), the savepoint
is rolled back and the row committed by the winner is used instead.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from db.models import System, Module, Scenario

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ResolvedHierarchy:
    system_id: Optional[int] = None
    module_id: Optional[int] = None
    scenario_id: Optional[int] = None


def _clean(name: str | None) -> str:
    return (name or "").strip()


class HierarchyResolver:

    def resolve(
        self,
        session: Session,
        system_name: str | None,
        module_name: str | None = None,
        scenario_name: str | None = None,
    ) -> ResolvedHierarchy:
        """Resolve (creating as needed) every named level under its parent."""
        system_name = _clean(system_name)
        if not system_name:
            return ResolvedHierarchy()
        system = self.get_or_create(session, System, name=system_name)

        module_name = _clean(module_name)
        if not module_name:
            return ResolvedHierarchy(system.id)
        module = self.get_or_create(session, Module,
                                    name=module_name, system_id=system.id)

        scenario_name = _clean(scenario_name)
        if not scenario_name:
            return ResolvedHierarchy(system.id, module.id)
        scenario = self.get_or_create(session, Scenario,
                                      name=scenario_name, module_id=module.id)

        return ResolvedHierarchy(system.id, module.id, scenario.id)

    # ── Primitives ─────────────────────────────────────────────────────

    def find(self, session: Session, model, **criteria):
        return session.query(model).filter_by(**criteria).one_or_none()

    def get_or_create(self, session: Session, model, **criteria):
        existing = self.find(session, model, **criteria)
        if existing is not None:
            return existing

        obj = model(**criteria)
        try:
            with session.begin_nested():
                session.add(obj)
                session.flush()
        except IntegrityError:
            winner = self.find(session, model, **criteria)
            if winner is None:
                raise
            logger.info("Lost create race for %s %s, using id=%s",
                        model.__tablename__, criteria, winner.id)
            return winner

        logger.info("Created %s %s (id=%s)", model.__tablename__, criteria, obj.id)
        return obj
