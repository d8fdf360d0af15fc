"""
import_engine.validator - Per-row validation.

Both functions are pure: no I/O, same input → same output.  Callers
must drop blank-title rows before relying on the result; a blank row
is structural, not a data error, and validates clean.
"""

from __future__ import annotations

from db.models import PRIORITIES, STATUSES
from import_engine.field_map import COLUMN_LABELS
from import_engine.file_parser import RawRow

# Optional fields worth a log line when missing
_SOFT_FIELDS = ("steps", "expected_result", "system_name", "module_name")


def validate_row(row: RawRow, row_number: int) -> list[dict]:
    """Return error entries for *row*; an empty list means importable."""
    if row.is_blank:
        return []

    errors: list[dict] = []

    if row.priority is not None and row.priority not in PRIORITIES:
        errors.append({
            "row": row_number,
            "column": COLUMN_LABELS["priority"],
            "message": "Priority must be one of " + ", ".join(PRIORITIES),
            "value": row.priority,
        })

    if row.status is not None and row.status not in STATUSES:
        errors.append({
            "row": row_number,
            "column": COLUMN_LABELS["status"],
            "message": "Status must be one of " + ", ".join(STATUSES),
            "value": row.status,
        })

    return errors


def soft_diagnostics(row: RawRow) -> list[str]:
    """Names of optional columns left empty on a non-blank row."""
    if row.is_blank:
        return []
    return [COLUMN_LABELS[f] for f in _SOFT_FIELDS
            if not (getattr(row, f) or "").strip()]
