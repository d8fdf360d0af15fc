"""
services.batch_delete_service - Best-effort multi-id TestCase deletion.

Ids that do not exist are reported one by one; the rest are deleted
together in the caller's transaction.
"""

from __future__ import annotations

from sqlalchemy.orm import Session

from db.models import TestCase


def parse_ids(raw) -> list[int]:
    """
    Validate a JSON id list.  Raises ValueError for an empty list or any
    non-numeric entry; returns the positive ids, de-duplicated, in order.
    """
    if not isinstance(raw, list) or not raw:
        raise ValueError("ids must be a non-empty list")
    ids: list[int] = []
    for item in raw:
        if isinstance(item, bool):
            raise ValueError(f"invalid id: {item!r}")
        try:
            val = int(item)
        except (TypeError, ValueError):
            raise ValueError(f"invalid id: {item!r}") from None
        if val > 0 and val not in ids:
            ids.append(val)
    if not ids:
        raise ValueError("no valid ids given")
    return ids


def delete_test_cases(session: Session, ids: list[int]) -> dict:
    """Returns {deleted, failed, errors: [{id, message}]}."""
    result = {"deleted": 0, "failed": 0, "errors": []}

    existing = {
        row.id for row in
        session.query(TestCase.id).filter(TestCase.id.in_(ids)).all()
    }
    for missing in (i for i in ids if i not in existing):
        result["errors"].append({"id": missing, "message": "test case not found"})
        result["failed"] += 1

    if existing:
        result["deleted"] = (
            session.query(TestCase)
            .filter(TestCase.id.in_(existing))
            .delete(synchronize_session=False)
        )
        session.flush()

    return result
