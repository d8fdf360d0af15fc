"""
import_engine.progress - Live state of batch import jobs.

ImportJob is mutated only by the orchestrator running it and read by
the progress endpoint.  JobStore keeps finished jobs queryable for a
bounded window (TTL from finish time, plus a cap on the number kept);
jobs still pending or processing are never evicted.
"""

from __future__ import annotations

import threading
import time
import uuid
from collections import OrderedDict
from dataclasses import dataclass, field
from typing import Callable, Optional

import config

PENDING    = "pending"
PROCESSING = "processing"
COMPLETED  = "completed"
FAILED     = "failed"

FINISHED_STATES = frozenset({COMPLETED, FAILED})


@dataclass
class ImportJob:
    job_id: str = field(default_factory=lambda: uuid.uuid4().hex)
    status: str = PENDING
    total: int = 0
    processed: int = 0
    success: int = 0
    failed: int = 0
    skipped: int = 0
    errors: list[dict] = field(default_factory=list)   # [{row, column, message, value?}]
    report_url: Optional[str] = None
    finished_at: Optional[float] = None

    @property
    def finished(self) -> bool:
        return self.status in FINISHED_STATES

    def add_error(self, row: int, column: str, message: str, value=None):
        entry = {"row": row, "column": column, "message": message}
        if value is not None:
            entry["value"] = value
        self.errors.append(entry)

    def to_dict(self) -> dict:
        return {
            "jobId": self.job_id,
            "status": self.status,
            "total": self.total,
            "processed": self.processed,
            "success": self.success,
            "failed": self.failed,
            "skipped": self.skipped,
            "errors": list(self.errors),
            "reportUrl": self.report_url,
        }


class JobStore:
    """In-memory job registry with retention, owned by the orchestrator."""

    def __init__(
        self,
        ttl: float = config.IMPORT_JOB_TTL,
        max_jobs: int = config.IMPORT_JOB_MAX,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.ttl = ttl
        self.max_jobs = max_jobs
        self._clock = clock
        self._jobs: OrderedDict[str, ImportJob] = OrderedDict()
        self._lock = threading.Lock()

    def create(self) -> ImportJob:
        job = ImportJob()
        with self._lock:
            self._jobs[job.job_id] = job
            self._sweep_locked()
        return job

    def get(self, job_id: str) -> Optional[ImportJob]:
        with self._lock:
            self._sweep_locked()
            return self._jobs.get(job_id)

    def finish(self, job: ImportJob, status: str) -> None:
        """Move *job* to a terminal state and start its retention clock."""
        if status not in FINISHED_STATES:
            raise ValueError(f"not a terminal status: {status!r}")
        job.status = status
        job.finished_at = self._clock()

    def sweep(self) -> int:
        with self._lock:
            return self._sweep_locked()

    def __len__(self) -> int:
        return len(self._jobs)

    def __contains__(self, job_id) -> bool:
        return job_id in self._jobs

    # ── Private helpers ────────────────────────────────────────────────

    def _sweep_locked(self) -> int:
        now = self._clock()
        expired = [
            jid for jid, job in self._jobs.items()
            if job.finished and job.finished_at is not None
            and now - job.finished_at > self.ttl
        ]
        for jid in expired:
            del self._jobs[jid]

        evicted = len(expired)
        # Over capacity: drop the oldest finished jobs first
        if len(self._jobs) > self.max_jobs:
            for jid in [j for j, job in self._jobs.items() if job.finished]:
                if len(self._jobs) <= self.max_jobs:
                    break
                del self._jobs[jid]
                evicted += 1
        return evicted
