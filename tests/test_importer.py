import asyncio
import time

import pytest

from db import get_session
from db.models import System, TestCase
from import_engine import importer as importer_module
from import_engine.file_parser import FORMAT_CSV, FORMAT_XLSX
from import_engine.importer import ImportOrchestrator, run_import
from import_engine.progress import JobStore
from import_engine.row_processor import ConflictStrategy, RowProcessor
from tests.conftest import make_csv, make_xlsx
from tests.factories import CaseFactory


def _row(title, system="Acme", module="Login", priority="高", status="待测试"):
    return [title, system, module, "", "", "1. open", "ok", status, priority, ""]


def _run(orch, content, fmt=FORMAT_CSV, strategy=ConflictStrategy.SKIP):
    job = orch.store.create()
    return asyncio.run(orch.run(job, content, fmt, strategy))


@pytest.fixture
def orch(db_url):
    return ImportOrchestrator(JobStore(), pacing_delay=0)


class _ExplodingProcessor(RowProcessor):
    def process(self, session, row, strategy):
        if row.title == "boom":
            raise RuntimeError("disk on fire")
        return super().process(session, row, strategy)


# ── End to end ─────────────────────────────────────────────────────────

def test_csv_import_end_to_end(orch, session):
    """Test that header and example rows are skipped and one row is imported."""
    content = make_csv([_row("Login works", priority="urgent")] + [None] * 5)

    job = _run(orch, content)

    assert job.status == "completed"
    assert job.total == 1
    assert job.processed == 1
    assert job.success == 1
    assert job.failed == 0
    tc = session.query(TestCase).one()
    assert tc.title == "Login works"
    assert tc.priority == "MEDIUM"
    assert tc.system.name == "Acme"


def test_xlsx_import(orch, session):
    content = make_xlsx([
        ["Case A", "Acme", "Login", "Password", "", "1. open", "ok", "通过", "低", "a,b"],
        ["Case B", "Acme", "Login", "", "", "", "", "", "", ""],
    ])

    job = _run(orch, content, FORMAT_XLSX)

    assert job.status == "completed"
    assert (job.total, job.success, job.failed) == (2, 2, 0)
    a = session.query(TestCase).filter_by(title="Case A").one()
    assert a.status == "PASSED"
    assert a.priority == "LOW"
    assert a.tags == ["a", "b"]
    assert a.scenario.name == "Password"
    b = session.query(TestCase).filter_by(title="Case B").one()
    assert b.module_id == a.module_id
    assert b.scenario_id is None


def test_shared_system_created_once(orch, session):
    content = make_csv([_row("first"), _row("second")])

    job = _run(orch, content)

    assert job.success == 2
    assert session.query(System).filter_by(name="Acme").count() == 1


def test_counters_add_up(orch):
    content = make_csv([_row("a"), _row("b"), _row("a")])

    job = _run(orch, content)

    assert job.processed == job.total == 3
    assert job.success + job.failed == job.total


# ── Conflict strategies ────────────────────────────────────────────────

def test_skip_counts_conflict_as_failed_and_skipped(orch, session):
    original = CaseFactory(title="Login works", steps="keep me")

    job = _run(orch, make_csv([_row("Login works")]))

    assert job.status == "completed"
    assert (job.success, job.failed, job.skipped) == (0, 1, 1)
    assert job.errors[0]["row"] == 3
    assert job.errors[0]["value"] == "Login works"
    session.expire_all()
    assert session.get(TestCase, original.id).steps == "keep me"


def test_overwrite_updates_existing(orch, session):
    original = CaseFactory(title="Login works", priority="LOW")

    job = _run(orch, make_csv([_row("Login works", priority="高")]),
               strategy=ConflictStrategy.OVERWRITE)

    assert (job.success, job.failed) == (1, 0)
    session.expire_all()
    assert session.query(TestCase).count() == 1
    assert session.get(TestCase, original.id).priority == "HIGH"


def test_new_version_creates_copy(orch, session):
    CaseFactory(title="Login works")

    job = _run(orch, make_csv([_row("Login works")]),
               strategy=ConflictStrategy.NEW_VERSION)

    assert job.success == 1
    assert session.query(TestCase).filter_by(title="Login works (副本)").count() == 1


def test_duplicate_titles_within_one_file(orch, session):
    job = _run(orch, make_csv([_row("twin"), _row("twin")]))

    assert (job.success, job.failed, job.skipped) == (1, 1, 1)
    assert job.errors[0]["row"] == 4


# ── Failures ───────────────────────────────────────────────────────────

def test_corrupt_spreadsheet_fails_job(orch):
    job = _run(orch, b"not a spreadsheet", FORMAT_XLSX)

    assert job.status == "failed"
    assert job.total == 0
    assert job.errors[0]["row"] == 0
    assert job.errors[0]["column"] == "文件"


def test_csv_without_title_column_fails_job(orch):
    job = _run(orch, b"name,steps\n\n", FORMAT_CSV)

    assert job.status == "failed"
    assert job.errors[0]["row"] == 0


def test_unexpected_row_error_does_not_stop_job(db_url, session):
    """Test that an exception from one row is recorded and the job goes on."""
    orch = ImportOrchestrator(JobStore(), processor=_ExplodingProcessor(),
                              pacing_delay=0)

    job = _run(orch, make_csv([_row("ok 1"), _row("boom"), _row("ok 2")]))

    assert job.status == "completed"
    assert (job.success, job.failed) == (2, 1)
    assert job.errors[0]["row"] == 4
    assert "disk on fire" in job.errors[0]["message"]
    assert session.query(TestCase).count() == 2


def test_session_failure_fails_job(db_url):
    def broken_session():
        raise RuntimeError("database unavailable")

    orch = ImportOrchestrator(JobStore(), session_factory=broken_session,
                              pacing_delay=0)

    job = _run(orch, make_csv([_row("a")]))

    assert job.status == "failed"
    assert "database unavailable" in job.errors[-1]["message"]
    assert job.finished_at is not None


# ── Pacing ─────────────────────────────────────────────────────────────

def test_yields_every_ten_rows(orch, monkeypatch):
    sleeps = []

    async def fake_sleep(delay):
        sleeps.append(delay)

    monkeypatch.setattr(importer_module.asyncio, "sleep", fake_sleep)

    job = _run(orch, make_csv([_row(f"case {i}") for i in range(25)]))

    assert job.success == 25
    assert sleeps == [0, 0]


# ── Preview ────────────────────────────────────────────────────────────

def test_preview_writes_nothing(orch, session):
    rows = [_row(f"case {i}") for i in range(12)]

    result = orch.preview(make_csv(rows), FORMAT_CSV)

    assert result["valid"] is True
    assert result["totalRows"] == 12
    assert len(result["preview"]) == 10
    assert result["preview"][0]["row"] == 3
    assert session.query(TestCase).count() == 0
    assert session.query(System).count() == 0


# ── Background execution ───────────────────────────────────────────────

def test_start_runs_on_background_loop(db_url, runner):
    orch = ImportOrchestrator(JobStore(), runner=runner, pacing_delay=0)

    accepted = orch.start(make_csv([_row("async case")]), FORMAT_CSV)

    assert accepted["status"] == "pending"
    deadline = time.monotonic() + 10
    job = orch.progress(accepted["jobId"])
    while not job.finished and time.monotonic() < deadline:
        time.sleep(0.02)
    assert job.status == "completed"
    assert job.success == 1

    s = get_session()
    try:
        assert s.query(TestCase).filter_by(title="async case").count() == 1
    finally:
        s.close()


def test_run_import_blocks_until_done(db_url, session):
    job = run_import(make_csv([_row("seeded")]), FORMAT_CSV)

    assert job.status == "completed"
    assert session.query(TestCase).count() == 1


def test_report_url_only_when_errors(orch):
    clean = _run(orch, make_csv([_row("clean")]))
    dirty = _run(orch, make_csv([_row("clean")]))

    assert clean.report_url is None
    assert dirty.report_url == f"/api/v1/test-cases/batch/import/{dirty.job_id}/report"


def test_oversized_cell_does_not_fail_job(orch, session):
    """Test that a very long steps cell between normal rows is imported."""
    big = _row("long steps")
    big[5] = "x" * 200_000
    content = make_csv([_row("before"), big, _row("after")])

    job = _run(orch, content)

    assert job.status == "completed"
    assert (job.total, job.success, job.failed) == (3, 3, 0)
    assert len(session.query(TestCase).filter_by(title="long steps").one().steps) == 200_000
