"""
import_engine.row_processor - Persist one parsed row as a TestCase.

Single-responsibility: given a RawRow, a session and a conflict
strategy, resolve the row's hierarchy and create / update the matching
TestCase, or raise RowError.  Transaction boundaries belong to the caller.
"""

from __future__ import annotations

import enum

from sqlalchemy.orm import Session

import config
from db.models import TestCase, DEFAULT_PRIORITY, DEFAULT_STATUS
from import_engine.file_parser import RawRow
from import_engine.hierarchy import HierarchyResolver, ResolvedHierarchy


class RowError(Exception):
    """Raised when a row cannot be imported."""
    pass


class TitleConflict(RowError):
    """A test case with the same title exists and the strategy is skip."""
    pass


class ConflictStrategy(str, enum.Enum):
    SKIP        = "skip"
    OVERWRITE   = "overwrite"
    NEW_VERSION = "new_version"

    @classmethod
    def parse(cls, value: str | None) -> "ConflictStrategy":
        """'' / None → SKIP; unknown values raise ValueError."""
        if not value:
            return cls.SKIP
        try:
            return cls(value.strip().lower())
        except ValueError:
            allowed = ", ".join(s.value for s in cls)
            raise ValueError(f"conflictStrategy must be one of {allowed}") from None


class RowOutcome(str, enum.Enum):
    CREATED   = "created"
    UPDATED   = "updated"
    VERSIONED = "versioned"


class RowProcessor:
    """
    Applies the conflict strategy against the existing TestCase with the
    same title.  Title matching is global, not scoped to the hierarchy.
    """

    def __init__(
        self,
        resolver: HierarchyResolver | None = None,
        copy_suffix: str = config.COPY_SUFFIX,
    ):
        self.resolver = resolver or HierarchyResolver()
        self.copy_suffix = copy_suffix

    def process(
        self,
        session: Session,
        row: RawRow,
        strategy: ConflictStrategy,
    ) -> RowOutcome:
        if row.is_blank:
            raise RowError("Title is empty")
        title = row.title.strip()

        hierarchy = self.resolver.resolve(
            session, row.system_name, row.module_name, row.scenario_name,
        )

        existing = (
            session.query(TestCase)
            .filter(TestCase.title == title)
            .order_by(TestCase.id)
            .first()
        )

        if existing is None:
            session.add(self._build(row, title, hierarchy))
            session.flush()
            return RowOutcome.CREATED

        if strategy is ConflictStrategy.SKIP:
            raise TitleConflict(f'Test case "{title}" already exists, skipped')

        if strategy is ConflictStrategy.OVERWRITE:
            self._apply(existing, row, title, hierarchy)
            session.flush()
            return RowOutcome.UPDATED

        session.add(self._build(row, title + self.copy_suffix, hierarchy))
        session.flush()
        return RowOutcome.VERSIONED

    # ── Private helpers ────────────────────────────────────────────────

    def _build(self, row: RawRow, title: str, hierarchy: ResolvedHierarchy) -> TestCase:
        tc = TestCase(source="manual")
        self._apply(tc, row, title, hierarchy)
        return tc

    @staticmethod
    def _apply(tc: TestCase, row: RawRow, title: str, hierarchy: ResolvedHierarchy):
        tc.title           = title
        tc.preconditions   = row.preconditions or ""
        tc.steps           = row.steps or ""
        tc.expected_result = row.expected_result or ""
        tc.priority        = row.priority or DEFAULT_PRIORITY
        tc.status          = row.status or DEFAULT_STATUS
        tc.tags            = row.tags or []
        tc.system_id       = hierarchy.system_id
        tc.module_id       = hierarchy.module_id
        tc.scenario_id     = hierarchy.scenario_id
