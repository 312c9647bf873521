"""Background worker pool for erasure jobs.

submit() takes the subject lock and opens the job in the caller's context so
that JobAlreadyRunning reaches the caller; the cascade itself runs as an
asyncio task. A semaphore bounds concurrent jobs across subjects.
"""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING

from lifecycle.domain.entities.erasure import ErasureJob, Subject
from lifecycle.domain.enums import SubjectRole
from lifecycle.domain.exceptions import JobAlreadyRunning
from lifecycle.shared.telemetry.logging import get_logger
from lifecycle.shared.telemetry.tracing import add_span_attributes

if TYPE_CHECKING:
    from lifecycle.application.interfaces.services import ISubjectLock
    from lifecycle.application.use_cases.erasure.orchestrator import ErasureOrchestrator

logger = get_logger(__name__)

DEFAULT_MAX_CONCURRENT_JOBS = 4


class ErasureWorker:
    """Runs erasure jobs concurrently, one per subject at a time."""

    def __init__(
        self,
        orchestrator: "ErasureOrchestrator",
        lock: "ISubjectLock",
        max_concurrent_jobs: int = DEFAULT_MAX_CONCURRENT_JOBS,
    ) -> None:
        self._orchestrator = orchestrator
        self._lock = lock
        self._semaphore = asyncio.Semaphore(max_concurrent_jobs)
        self._tasks: dict[str, asyncio.Task[ErasureJob]] = {}
        self._cancel_events: dict[str, asyncio.Event] = {}

    async def submit(self, subject_id: str, role: SubjectRole | str) -> ErasureJob:
        """Lock the subject, open its job and schedule the cascade.

        Returns:
            The opened job (PENDING, or the PARTIAL job being resumed).

        Raises:
            ValidationException: Unknown role or empty subject id.
            JobAlreadyRunning: The subject is already locked.
        """
        subject = Subject.parse(subject_id, role)
        if not await self._lock.acquire(subject.subject_id):
            raise JobAlreadyRunning(subject.subject_id)
        try:
            job = await self._orchestrator.open_job(subject)
        except BaseException:
            await self._lock.release(subject.subject_id)
            raise

        cancel_event = asyncio.Event()
        self._cancel_events[job.job_id] = cancel_event
        self._tasks[job.job_id] = asyncio.create_task(
            self._run(job, cancel_event), name=f"erasure-{job.job_id}"
        )
        add_span_attributes(job_id=job.job_id, subject_id=subject.subject_id)
        logger.info("Scheduled erasure job %s for subject %s", job.job_id, subject.subject_id)
        return job

    async def _run(self, job: ErasureJob, cancel_event: asyncio.Event) -> ErasureJob:
        try:
            async with self._semaphore:
                return await self._orchestrator.execute(job, cancel_event)
        except Exception:
            logger.exception(
                "Erasure job %s for subject %s aborted", job.job_id, job.subject_id
            )
            raise
        finally:
            self._tasks.pop(job.job_id, None)
            self._cancel_events.pop(job.job_id, None)
            await self._lock.release(job.subject_id)

    def is_running(self, job_id: str) -> bool:
        return job_id in self._tasks

    def request_cancel(self, job_id: str) -> bool:
        """Ask a running job to stop at the next step boundary.

        Returns:
            True if the job was running in this worker, False otherwise.
        """
        event = self._cancel_events.get(job_id)
        if event is None:
            return False
        event.set()
        logger.info("Cancellation requested for erasure job %s", job_id)
        return True

    async def wait(self, job_id: str) -> ErasureJob | None:
        """Wait for a job and return its final state.

        A job that already finished is read back from the job repository.
        Returns None only for a job id that was never opened.
        """
        task = self._tasks.get(job_id)
        if task is None:
            return await self._orchestrator.find_job(job_id)
        return await task

    async def shutdown(self) -> None:
        """Cancel every running job at its next step boundary and wait for all."""
        for event in self._cancel_events.values():
            event.set()
        tasks = list(self._tasks.values())
        if tasks:
            logger.info("Waiting for %d erasure job(s) to stop", len(tasks))
            await asyncio.gather(*tasks, return_exceptions=True)
