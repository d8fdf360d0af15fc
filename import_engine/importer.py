"""
import_engine.importer - Top-level orchestrator.

Coordinates file_parser → validator → row_processor → DB commit for
one job and keeps its ImportJob current for polling.

State machine: pending → processing → completed | failed.  Only a
failure to parse the file (or an error escaping the per-row boundary)
fails the job; bad rows are counted and listed, and the job still
completes.
"""

from __future__ import annotations

import asyncio
import csv
import itertools
import logging
from typing import Callable

from sqlalchemy.orm import Session

import config
from db.engine import get_session
from import_engine.file_parser import parse_rows, ImportFormatError
from import_engine.progress import (
    ImportJob, JobStore, PROCESSING, COMPLETED, FAILED,
)
from import_engine.row_processor import (
    RowProcessor, RowError, TitleConflict, ConflictStrategy,
)
from import_engine.runner import BackgroundRunner
from import_engine.validator import validate_row, soft_diagnostics

logger = logging.getLogger(__name__)

# Column labels for errors that are not tied to a data column
IMPORT_COLUMN = "导入"
FILE_COLUMN   = "文件"


class ImportOrchestrator:

    def __init__(
        self,
        store: JobStore | None = None,
        session_factory: Callable[[], Session] = get_session,
        runner: BackgroundRunner | None = None,
        processor: RowProcessor | None = None,
        *,
        pacing_every: int = config.IMPORT_PACING_EVERY,
        pacing_delay: float = config.IMPORT_PACING_DELAY,
    ):
        self.store = store if store is not None else JobStore()
        self.session_factory = session_factory
        self.runner = runner or BackgroundRunner()
        self.processor = processor or RowProcessor()
        self.pacing_every = pacing_every
        self.pacing_delay = pacing_delay

    # ── Public API ─────────────────────────────────────────────────────

    def start(
        self,
        content: bytes | str,
        fmt: str,
        strategy: ConflictStrategy = ConflictStrategy.SKIP,
    ) -> dict:
        """
        Register a pending job and schedule it.  Returns the job record
        as it stood when queued; poll progress() for later states.
        """
        job = self.store.create()
        accepted = job.to_dict()
        logger.info("Import job %s queued (%s, strategy=%s)",
                    job.job_id, fmt, strategy.value)
        self.runner.submit(self.run(job, content, fmt, strategy))
        return accepted

    def progress(self, job_id: str) -> ImportJob | None:
        return self.store.get(job_id)

    def preview(self, content: bytes | str, fmt: str) -> dict:
        """
        Validate the first IMPORT_PREVIEW_ROWS rows without touching the
        database.  Returns {valid, errors, preview, totalRows}.
        """
        rows = parse_rows(content, fmt)
        head = list(itertools.islice(rows, config.IMPORT_PREVIEW_ROWS))
        total = len(head) + sum(1 for _ in rows)

        errors: list[dict] = []
        preview: list[dict] = []
        for row in head:
            if row.is_blank:
                continue
            row_errors = validate_row(row, row.row_number)
            errors.extend(row_errors)
            if not row_errors:
                preview.append(row.to_dict())

        return {
            "valid": not errors,
            "errors": errors,
            "preview": preview,
            "totalRows": total,
        }

    async def run(
        self,
        job: ImportJob,
        content: bytes | str,
        fmt: str,
        strategy: ConflictStrategy,
    ) -> ImportJob:
        """Drive *job* to a terminal state.  Never raises."""
        try:
            await self._run(job, content, fmt, strategy)
        except Exception as exc:
            logger.exception("Import job %s aborted", job.job_id)
            job.add_error(0, IMPORT_COLUMN, f"Import aborted: {exc}")
            self._finish(job, FAILED)
        return job

    # ── Private helpers ────────────────────────────────────────────────

    async def _run(self, job, content, fmt, strategy) -> None:
        job.status = PROCESSING

        try:
            rows = list(parse_rows(content, fmt))
        except (ImportFormatError, csv.Error) as exc:
            logger.warning("Import job %s: cannot parse file: %s", job.job_id, exc)
            job.add_error(0, FILE_COLUMN, str(exc))
            self._finish(job, FAILED)
            return

        job.total = len(rows)
        logger.info("Import job %s: %d rows", job.job_id, job.total)

        session = self.session_factory()
        try:
            for index, row in enumerate(rows, start=1):
                self._import_row(session, job, row, strategy)
                job.processed += 1
                if index % self.pacing_every == 0:
                    await asyncio.sleep(self.pacing_delay)
        finally:
            session.close()

        self._finish(job, COMPLETED)
        logger.info("Import job %s completed: %d ok, %d failed (%d skipped)",
                    job.job_id, job.success, job.failed, job.skipped)

    def _finish(self, job: ImportJob, status: str) -> None:
        if job.errors:
            job.report_url = config.IMPORT_REPORT_URL.format(job_id=job.job_id)
        self.store.finish(job, status)

    def _import_row(self, session: Session, job: ImportJob, row, strategy) -> None:
        if row.is_blank:
            return

        errors = validate_row(row, row.row_number)
        if errors:
            job.failed += 1
            job.errors.extend(errors)
            return

        missing = soft_diagnostics(row)
        if missing:
            logger.debug("Row %d: empty optional columns %s",
                         row.row_number, ", ".join(missing))

        try:
            self.processor.process(session, row, strategy)
            session.commit()
            job.success += 1
        except TitleConflict as exc:
            session.rollback()
            job.failed += 1
            job.skipped += 1
            job.add_error(row.row_number, IMPORT_COLUMN, str(exc), row.title)
        except RowError as exc:
            session.rollback()
            job.failed += 1
            job.add_error(row.row_number, IMPORT_COLUMN, str(exc))
        except Exception as exc:
            session.rollback()
            logger.warning("Row %d failed: %s", row.row_number, exc)
            job.failed += 1
            job.add_error(row.row_number, IMPORT_COLUMN, f"Unexpected: {exc}")


def run_import(
    content: bytes | str,
    fmt: str,
    strategy: ConflictStrategy = ConflictStrategy.SKIP,
    *,
    session_factory: Callable[[], Session] = get_session,
) -> ImportJob:
    """Blocking import on the caller's thread; returns the finished job."""
    store = JobStore()
    orchestrator = ImportOrchestrator(store, session_factory, pacing_delay=0)
    job = store.create()
    return asyncio.run(orchestrator.run(job, content, fmt, strategy))
