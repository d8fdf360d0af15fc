import pytest

from db.models import System, TestCase
from import_engine.file_parser import RawRow
from import_engine.row_processor import (
    ConflictStrategy, RowError, RowOutcome, RowProcessor, TitleConflict,
)
from tests.factories import CaseFactory


def _raw(title="Login works", **kwargs):
    return RawRow(row_number=3, title=title, **kwargs)


def test_parse_strategy():
    assert ConflictStrategy.parse(None) is ConflictStrategy.SKIP
    assert ConflictStrategy.parse("") is ConflictStrategy.SKIP
    assert ConflictStrategy.parse("Overwrite") is ConflictStrategy.OVERWRITE
    assert ConflictStrategy.parse(" new_version ") is ConflictStrategy.NEW_VERSION
    with pytest.raises(ValueError):
        ConflictStrategy.parse("merge")


def test_new_title_is_created(session):
    row = _raw(system_name="Acme", module_name="Login", steps="1. open",
               priority="HIGH", tags=["smoke"])

    outcome = RowProcessor().process(session, row, ConflictStrategy.SKIP)
    session.commit()

    assert outcome is RowOutcome.CREATED
    tc = session.query(TestCase).one()
    assert tc.title == "Login works"
    assert tc.source == "manual"
    assert tc.priority == "HIGH"
    assert tc.status == "PENDING"
    assert tc.tags == ["smoke"]
    assert tc.system.name == "Acme"
    assert tc.module.name == "Login"
    assert tc.scenario_id is None


def test_skip_raises_title_conflict(session):
    original = CaseFactory(title="Login works", steps="old steps")

    with pytest.raises(TitleConflict):
        RowProcessor().process(session, _raw(steps="new"), ConflictStrategy.SKIP)
    session.rollback()

    assert session.query(TestCase).count() == 1
    assert session.get(TestCase, original.id).steps == "old steps"


def test_title_conflict_is_a_row_error():
    assert issubclass(TitleConflict, RowError)


def test_overwrite_replaces_fields_in_place(session):
    original = CaseFactory(title="Login works", steps="old", preconditions="old pre",
                           priority="LOW")

    row = _raw(steps="new", priority="HIGH", status="PASSED", system_name="Acme")
    outcome = RowProcessor().process(session, row, ConflictStrategy.OVERWRITE)
    session.commit()

    assert outcome is RowOutcome.UPDATED
    tc = session.query(TestCase).one()
    assert tc.id == original.id
    assert tc.steps == "new"
    assert tc.preconditions == ""
    assert tc.priority == "HIGH"
    assert tc.status == "PASSED"
    assert tc.system_id == session.query(System).one().id


def test_new_version_adds_suffixed_copy(session):
    CaseFactory(title="Login works")

    outcome = RowProcessor().process(session, _raw(), ConflictStrategy.NEW_VERSION)
    session.commit()

    assert outcome is RowOutcome.VERSIONED
    titles = sorted(t for (t,) in session.query(TestCase.title))
    assert titles == ["Login works", "Login works (副本)"]


def test_custom_copy_suffix(session):
    CaseFactory(title="Login works")

    RowProcessor(copy_suffix=" v2").process(session, _raw(), ConflictStrategy.NEW_VERSION)
    session.commit()

    assert session.query(TestCase).filter_by(title="Login works v2").count() == 1


def test_blank_title_is_rejected(session):
    with pytest.raises(RowError):
        RowProcessor().process(session, _raw(title="  "), ConflictStrategy.SKIP)
