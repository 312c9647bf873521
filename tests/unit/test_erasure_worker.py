"""Tests for ErasureWorker and LifecycleService."""

import pytest

from lifecycle.application.use_cases.erasure import ErasureWorker
from lifecycle.domain.enums import JobStatus
from lifecycle.domain.exceptions import (
    JobAlreadyRunning,
    ResourceNotFoundException,
    StoreError,
    ValidationException,
)
from tests.fakes import seed_scout


@pytest.fixture
async def worker(orchestrator, subject_lock) -> ErasureWorker:
    worker = ErasureWorker(orchestrator, subject_lock, max_concurrent_jobs=2)
    yield worker
    await worker.shutdown()


async def test_submit_runs_job_in_background(worker, store, blob_store, subject_lock, jobs) -> None:
    seed_scout(store, blob_store)

    job = await worker.submit("s1", "scout")

    assert worker.is_running(job.job_id)
    assert subject_lock.is_held("s1")
    stored = await jobs.get_by_job_id(job.job_id)
    assert stored.status == JobStatus.PENDING

    finished = await worker.wait(job.job_id)

    assert finished.status == JobStatus.COMPLETE
    assert not worker.is_running(job.job_id)
    assert not subject_lock.is_held("s1")


async def test_second_submit_for_same_subject_is_rejected(worker, jobs) -> None:
    job = await worker.submit("s1", "scout")

    with pytest.raises(JobAlreadyRunning):
        await worker.submit("s1", "scout")

    await worker.wait(job.job_id)
    assert len(jobs.jobs) == 1


async def test_different_subjects_run_concurrently(worker) -> None:
    first = await worker.submit("s1", "scout")
    second = await worker.submit("s2", "parent")

    assert worker.is_running(first.job_id)
    assert worker.is_running(second.job_id)
    assert (await worker.wait(first.job_id)).status == JobStatus.COMPLETE
    assert (await worker.wait(second.job_id)).status == JobStatus.COMPLETE


async def test_wait_returns_jobs_that_already_finished(worker, store, blob_store) -> None:
    seed_scout(store, blob_store)
    job = await worker.submit("s1", "scout")
    await worker.wait(job.job_id)

    assert not worker.is_running(job.job_id)
    finished = await worker.wait(job.job_id)

    assert finished is not None
    assert finished.job_id == job.job_id
    assert finished.status == JobStatus.COMPLETE


async def test_wait_in_any_order_after_concurrent_jobs(worker) -> None:
    first = await worker.submit("s1", "scout")
    second = await worker.submit("s2", "parent")

    assert (await worker.wait(second.job_id)).status == JobStatus.COMPLETE
    assert (await worker.wait(first.job_id)).status == JobStatus.COMPLETE


async def test_request_cancel_stops_job_at_step_boundary(worker, store, blob_store) -> None:
    seed_scout(store, blob_store)
    job = await worker.submit("s1", "scout")

    assert worker.request_cancel(job.job_id) is True

    finished = await worker.wait(job.job_id)
    assert finished.status == JobStatus.PARTIAL
    assert finished.last_error == "cancelled"
    assert "s1" in store.docs("users")


async def test_request_cancel_unknown_job(worker) -> None:
    assert worker.request_cancel("nope") is False
    assert await worker.wait("nope") is None


async def test_open_failure_releases_lock(worker, jobs, subject_lock) -> None:
    jobs.fail("save", StoreError("permission denied"))

    with pytest.raises(StoreError):
        await worker.submit("s1", "scout")

    assert not subject_lock.is_held("s1")


async def test_shutdown_cancels_running_jobs(worker, store, blob_store, subject_lock) -> None:
    seed_scout(store, blob_store)
    job = await worker.submit("s1", "scout")

    await worker.shutdown()

    assert not worker.is_running(job.job_id)
    assert not subject_lock.is_held("s1")
    assert job.status == JobStatus.PARTIAL


async def test_service_request_and_status(lifecycle_service, store, blob_store) -> None:
    seed_scout(store, blob_store)

    job_id = await lifecycle_service.request_erasure("s1", "scout")
    await lifecycle_service.worker.wait(job_id)

    job = await lifecycle_service.get_job_status(job_id)
    assert job.status == JobStatus.COMPLETE
    assert job.subject_id == "s1"


async def test_service_unknown_job(lifecycle_service) -> None:
    with pytest.raises(ResourceNotFoundException):
        await lifecycle_service.get_job_status("missing")
    with pytest.raises(ResourceNotFoundException):
        await lifecycle_service.cancel_erasure("missing")


async def test_service_cancel_finished_job_returns_false(lifecycle_service) -> None:
    job_id = await lifecycle_service.request_erasure("s1", "scout")
    await lifecycle_service.worker.wait(job_id)

    assert await lifecycle_service.cancel_erasure(job_id) is False


async def test_service_rejects_unknown_role(lifecycle_service) -> None:
    with pytest.raises(ValidationException):
        await lifecycle_service.request_erasure("s1", "chief")


async def test_service_export(lifecycle_service, store, blob_store) -> None:
    seed_scout(store, blob_store)

    bundle = await lifecycle_service.request_export("s1", "scout")

    assert len(bundle.sections["healthRecords"]) == 1
