import pytest

from import_engine.progress import (
    COMPLETED, FAILED, PENDING, PROCESSING, ImportJob, JobStore,
)


class FakeClock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self):
        return self.now


def test_new_job_is_pending():
    job = JobStore().create()

    assert job.status == PENDING
    assert job.to_dict() == {
        "jobId": job.job_id,
        "status": "pending",
        "total": 0,
        "processed": 0,
        "success": 0,
        "failed": 0,
        "skipped": 0,
        "errors": [],
        "reportUrl": None,
    }


def test_job_ids_are_unique():
    store = JobStore()
    ids = {store.create().job_id for _ in range(50)}

    assert len(ids) == 50


def test_add_error_omits_missing_value():
    job = ImportJob()
    job.add_error(3, "状态", "bad status", "X")
    job.add_error(0, "文件", "cannot read")

    assert job.errors == [
        {"row": 3, "column": "状态", "message": "bad status", "value": "X"},
        {"row": 0, "column": "文件", "message": "cannot read"},
    ]


def test_finished_job_expires_after_ttl():
    """Test that retention is measured from the finish time."""
    clock = FakeClock()
    store = JobStore(ttl=60, clock=clock)
    job = store.create()

    clock.now += 500
    store.finish(job, COMPLETED)
    clock.now += 59
    assert store.get(job.job_id) is job

    clock.now += 2
    assert store.get(job.job_id) is None


def test_running_jobs_never_expire():
    clock = FakeClock()
    store = JobStore(ttl=1, clock=clock)
    job = store.create()
    job.status = PROCESSING

    clock.now += 10_000

    assert store.get(job.job_id) is job


def test_cap_evicts_oldest_finished_first():
    store = JobStore(ttl=3600, max_jobs=2, clock=FakeClock())
    old = store.create()
    running = store.create()
    running.status = PROCESSING
    store.finish(old, FAILED)

    newest = store.create()

    assert old.job_id not in store
    assert running.job_id in store
    assert newest.job_id in store
    assert len(store) == 2


def test_cap_never_evicts_running_jobs():
    store = JobStore(max_jobs=1, clock=FakeClock())
    jobs = [store.create() for _ in range(3)]

    assert all(j.job_id in store for j in jobs)


def test_sweep_reports_evictions():
    clock = FakeClock()
    store = JobStore(ttl=5, clock=clock)
    for _ in range(3):
        store.finish(store.create(), COMPLETED)
    clock.now += 6

    assert store.sweep() == 3
    assert len(store) == 0


def test_finish_rejects_non_terminal_status():
    store = JobStore()
    job = store.create()

    with pytest.raises(ValueError):
        store.finish(job, PROCESSING)
    assert job.finished_at is None
