"""
db.models - SQLAlchemy ORM declarations.

Tables
------
systems     - top of the hierarchy, name unique.
modules     - belong to one system, name unique per system.
scenarios   - belong to one module, name unique per module.
test_cases  - optionally linked to any level of the hierarchy.  Title is
              indexed but not unique; the importer treats it as the
              conflict key.
"""

from __future__ import annotations

import json
from datetime import datetime, timezone

from sqlalchemy import (
    Column, String, Integer, DateTime, Text, ForeignKey, UniqueConstraint,
)
from sqlalchemy.orm import DeclarativeBase, relationship


PRIORITIES = ("LOW", "MEDIUM", "HIGH")
STATUSES   = ("PENDING", "PASSED", "FAILED", "SKIPPED")

DEFAULT_PRIORITY = "MEDIUM"
DEFAULT_STATUS   = "PENDING"


def _now():
    return datetime.now(timezone.utc)


def _iso(ts) -> str:
    return ts.isoformat() if ts else ""


class Base(DeclarativeBase):
    pass


class System(Base):
    __tablename__ = "systems"

    id          = Column(Integer, primary_key=True, autoincrement=True)
    name        = Column(String(100), nullable=False, unique=True, index=True)
    description = Column(Text, nullable=True)

    created_at = Column(DateTime, default=_now)
    updated_at = Column(DateTime, default=_now, onupdate=_now)

    modules = relationship(
        "Module", back_populates="system",
        order_by="Module.sort_order", lazy="selectin",
    )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "createdAt": _iso(self.created_at),
        }


class Module(Base):
    __tablename__ = "modules"

    id          = Column(Integer, primary_key=True, autoincrement=True)
    system_id   = Column(Integer, ForeignKey("systems.id"), nullable=False, index=True)
    name        = Column(String(100), nullable=False)
    description = Column(Text, nullable=True)
    sort_order  = Column(Integer, default=0)

    created_at = Column(DateTime, default=_now)
    updated_at = Column(DateTime, default=_now, onupdate=_now)

    system    = relationship("System", back_populates="modules")
    scenarios = relationship(
        "Scenario", back_populates="module",
        order_by="Scenario.sort_order", lazy="selectin",
    )

    __table_args__ = (
        UniqueConstraint("system_id", "name", name="uq_module_system_name"),
    )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "systemId": self.system_id,
            "name": self.name,
            "description": self.description,
            "sortOrder": self.sort_order or 0,
        }


class Scenario(Base):
    __tablename__ = "scenarios"

    id          = Column(Integer, primary_key=True, autoincrement=True)
    module_id   = Column(Integer, ForeignKey("modules.id"), nullable=False, index=True)
    name        = Column(String(100), nullable=False)
    description = Column(Text, nullable=True)
    content     = Column(Text, nullable=True)
    sort_order  = Column(Integer, default=0)

    created_at = Column(DateTime, default=_now)
    updated_at = Column(DateTime, default=_now, onupdate=_now)

    module = relationship("Module", back_populates="scenarios")

    __table_args__ = (
        UniqueConstraint("module_id", "name", name="uq_scenario_module_name"),
    )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "moduleId": self.module_id,
            "name": self.name,
            "description": self.description,
            "content": self.content,
            "sortOrder": self.sort_order or 0,
        }


class TestCase(Base):
    __tablename__ = "test_cases"
    __test__ = False    # keep pytest from collecting the model

    id              = Column(Integer, primary_key=True, autoincrement=True)
    title           = Column(String(300), nullable=False, index=True)
    preconditions   = Column(Text, default="")
    steps           = Column(Text, default="")
    expected_result = Column(Text, default="")
    actual_result   = Column(Text, default="")
    priority        = Column(String(10), nullable=False, default=DEFAULT_PRIORITY)
    status          = Column(String(10), nullable=False, default=DEFAULT_STATUS)
    tags_json       = Column(Text, default="[]")
    source          = Column(String(20), nullable=False, default="manual")

    # ── Hierarchy links ────────────────────────────────────────────────
    system_id   = Column(Integer, ForeignKey("systems.id"), nullable=True, index=True)
    module_id   = Column(Integer, ForeignKey("modules.id"), nullable=True, index=True)
    scenario_id = Column(Integer, ForeignKey("scenarios.id"), nullable=True, index=True)

    created_at = Column(DateTime, default=_now)
    updated_at = Column(DateTime, default=_now, onupdate=_now)

    system   = relationship("System", lazy="joined")
    module   = relationship("Module", lazy="joined")
    scenario = relationship("Scenario", lazy="joined")

    @property
    def tags(self) -> list[str]:
        if not self.tags_json:
            return []
        try:
            data = json.loads(self.tags_json)
        except (json.JSONDecodeError, TypeError):
            return []
        return data if isinstance(data, list) else []

    @tags.setter
    def tags(self, value) -> None:
        self.tags_json = json.dumps(list(value or []), ensure_ascii=False)

    # ── Serialisation ──────────────────────────────────────────────────
    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "title": self.title,
            "preconditions": self.preconditions or "",
            "steps": self.steps or "",
            "expectedResult": self.expected_result or "",
            "actualResult": self.actual_result or "",
            "priority": self.priority or DEFAULT_PRIORITY,
            "status": self.status or DEFAULT_STATUS,
            "tags": self.tags,
            "source": self.source,
            "systemId": self.system_id,
            "moduleId": self.module_id,
            "scenarioId": self.scenario_id,
            "system": self.system.to_dict() if self.system else None,
            "module": self.module.to_dict() if self.module else None,
            "scenario": self.scenario.to_dict() if self.scenario else None,
            "createdAt": _iso(self.created_at),
            "updatedAt": _iso(self.updated_at),
        }
