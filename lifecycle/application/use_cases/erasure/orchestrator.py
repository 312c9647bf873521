"""Erasure orchestrator: runs the relation catalog against one subject.

For each applicable catalog entry, in order: check the ledger, query the
store, apply the entry's policy, commit the ledger, record a StepResult.
Identity revocation runs last. A failing step halts the cascade and leaves
the job PARTIAL; re-running resumes from the first incomplete step.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from typing import TYPE_CHECKING, TypeVar

from lifecycle.application.dtos.store import DeleteOp, RawRecord, UpdateOp, WriteOp
from lifecycle.core.constants import CREDENTIAL_STEP
from lifecycle.domain.entities.erasure import ErasureJob, RelationEntry, StepResult, Subject
from lifecycle.domain.enums import ErasurePolicy, JobStatus, StepOutcome, SubjectRole
from lifecycle.domain.exceptions import (
    AuthRevocationError,
    JobAlreadyRunning,
    PartialCascadeError,
    PolicyViolationError,
    StoreError,
)
from lifecycle.shared.telemetry.logging import get_logger
from lifecycle.shared.telemetry.tracing import TracedOperation
from lifecycle.shared.utils.datetime import utc_now
from lifecycle.shared.utils.generators import new_job_id

if TYPE_CHECKING:
    from lifecycle.application.interfaces.repositories import (
        IDocumentStore,
        IJobRepository,
        ILedger,
    )
    from lifecycle.application.interfaces.services import IBlobStore, ISubjectLock
    from lifecycle.application.services.credential_revoker import CredentialRevoker
    from lifecycle.application.services.relation_catalog import RelationCatalog
    from lifecycle.application.services.retry import RetryPolicy

logger = get_logger(__name__)

T = TypeVar("T")

CANCELLED = "cancelled"


class ErasureOrchestrator:
    """Drives erasure jobs through the catalog.

    The caller of execute() must hold the subject lock; run() takes care of
    it. Every store, blob, ledger and job call goes through the retry policy.
    """

    def __init__(
        self,
        catalog: "RelationCatalog",
        store: "IDocumentStore",
        blob_store: "IBlobStore",
        ledger: "ILedger",
        jobs: "IJobRepository",
        revoker: "CredentialRevoker",
        lock: "ISubjectLock",
        retry: "RetryPolicy",
    ) -> None:
        self._catalog = catalog
        self._store = store
        self._blob_store = blob_store
        self._ledger = ledger
        self._jobs = jobs
        self._revoker = revoker
        self._lock = lock
        self._retry = retry

    async def run(
        self,
        subject_id: str,
        role: SubjectRole | str,
        cancel_event: asyncio.Event | None = None,
    ) -> ErasureJob:
        """Lock the subject, open its job and execute it.

        Raises:
            ValidationException: Unknown role or empty subject id.
            JobAlreadyRunning: Another job holds the subject lock (no state change).
        """
        subject = Subject.parse(subject_id, role)
        if not await self._lock.acquire(subject.subject_id):
            raise JobAlreadyRunning(subject.subject_id)
        try:
            job = await self.open_job(subject)
            return await self.execute(job, cancel_event)
        finally:
            await self._lock.release(subject.subject_id)

    async def open_job(self, subject: Subject) -> ErasureJob:
        """Return the subject's resumable job, or create and persist a new one.

        A new job is created when none exists or the current one is terminal;
        after COMPLETE the ledger turns the new cascade into a no-op.
        """
        job = await self._call(
            f"job:get:{subject.subject_id}", lambda: self._jobs.get(subject.subject_id)
        )
        if job is not None and not job.is_terminal:
            if job.role != subject.role:
                logger.warning(
                    "Resuming job %s for subject %s with stored role %s (requested %s)",
                    job.job_id,
                    subject.subject_id,
                    job.role.value,
                    subject.role.value,
                )
            return job
        now = utc_now()
        job = ErasureJob(
            job_id=new_job_id(),
            subject_id=subject.subject_id,
            role=subject.role,
            status=JobStatus.PENDING,
            updated_at=now,
        )
        await self._save(job)
        logger.info("Opened erasure job %s for subject %s", job.job_id, subject.subject_id)
        return job

    async def find_job(self, job_id: str) -> ErasureJob | None:
        """Return the persisted state of ``job_id``, or None if it was never opened."""
        return await self._call(f"job:find:{job_id}", lambda: self._jobs.get_by_job_id(job_id))

    async def execute(
        self, job: ErasureJob, cancel_event: asyncio.Event | None = None
    ) -> ErasureJob:
        """Run (or resume) the job's cascade and revoke the identity last.

        Outcomes are recorded on the job, not raised: call
        job.raise_for_status() to turn a non-COMPLETE outcome into an exception.
        """
        now = utc_now()
        job.status = JobStatus.IN_PROGRESS
        job.attempts += 1
        job.started_at = job.started_at or now
        job.last_error = None
        job.updated_at = now
        await self._save(job)

        try:
            self._check_recorded_steps(job)
            for entry in self._catalog.entries_applicable_to(job.role):
                if cancel_event is not None and cancel_event.is_set():
                    logger.warning(
                        "Erasure job %s for subject %s cancelled before %s",
                        job.job_id,
                        job.subject_id,
                        entry.entity_type,
                    )
                    return await self._finish(job, JobStatus.PARTIAL, CANCELLED)
                existing = job.step_for(entry.entity_type)
                if existing is not None and existing.is_ok:
                    continue
                await self._run_step(job, entry)

            if cancel_event is not None and cancel_event.is_set():
                return await self._finish(job, JobStatus.PARTIAL, CANCELLED)
            await self._revoke_credential(job)
        except PolicyViolationError as e:
            logger.error(
                "Erasure job %s for subject %s failed on policy violation: %s",
                job.job_id,
                job.subject_id,
                e.message,
            )
            return await self._finish(job, JobStatus.FAILED, e.message)
        except PartialCascadeError as e:
            logger.warning(
                "Erasure job %s for subject %s halted at %s (%s)",
                job.job_id,
                job.subject_id,
                e.entity_type,
                e.error_kind,
            )
            return await self._finish(job, JobStatus.PARTIAL, e.message)
        except AuthRevocationError as e:
            logger.error(
                "Data erased but identity still live for subject %s (job %s): %s",
                job.subject_id,
                job.job_id,
                e.details.get("reason", ""),
            )
            return await self._finish(job, JobStatus.PARTIAL, e.message)
        except StoreError as e:
            # Job snapshot could not be persisted mid-cascade.
            logger.warning(
                "Erasure job %s for subject %s interrupted: %s",
                job.job_id,
                job.subject_id,
                e.message,
            )
            return await self._finish(job, JobStatus.PARTIAL, e.message)

        logger.info(
            "Erasure job %s for subject %s complete (%d steps)",
            job.job_id,
            job.subject_id,
            len(job.steps),
        )
        return await self._finish(job, JobStatus.COMPLETE, None)

    def _check_recorded_steps(self, job: ErasureJob) -> None:
        for step in job.steps:
            if step.entity_type != CREDENTIAL_STEP and step.entity_type not in self._catalog:
                raise PolicyViolationError(
                    f"Job {job.job_id} records unknown entity type {step.entity_type!r}",
                    entity_type=step.entity_type,
                )

    async def _run_step(self, job: ErasureJob, entry: RelationEntry) -> None:
        subject_id = job.subject_id
        entity_type = entry.entity_type
        async with TracedOperation(
            "erasure.step",
            {"subject_id": subject_id, "entity_type": entity_type, "job_id": job.job_id},
        ) as op:
            try:
                done = await self._call(
                    f"ledger:get:{entity_type}",
                    lambda: self._ledger.has_completed(subject_id, entity_type),
                )
                if done:
                    result = StepResult(
                        entity_type=entity_type,
                        outcome=StepOutcome.SKIPPED,
                        finished_at=utc_now(),
                    )
                else:
                    affected, blobs = await self._apply(entry, subject_id)
                    await self._call(
                        f"ledger:mark:{entity_type}",
                        lambda: self._ledger.mark_completed(subject_id, entity_type),
                    )
                    result = StepResult(
                        entity_type=entity_type,
                        outcome=StepOutcome.OK,
                        records_affected=affected,
                        blobs_deleted=blobs,
                        finished_at=utc_now(),
                    )
            except StoreError as e:
                error_kind = type(e).__name__
                job.record_step(
                    StepResult(
                        entity_type=entity_type,
                        outcome=StepOutcome.ERROR,
                        error_kind=error_kind,
                        finished_at=utc_now(),
                    )
                )
                raise PartialCascadeError(
                    subject_id, entity_type, error_kind, reason=e.message
                ) from e
            op.set_attribute("outcome", result.outcome.value)
            op.set_attribute("records_affected", result.records_affected)

        job.record_step(result)
        job.updated_at = utc_now()
        await self._save(job)
        logger.info(
            "Erasure step %s for subject %s: %s (records=%d, blobs=%d)",
            entity_type,
            subject_id,
            result.outcome.value,
            result.records_affected,
            result.blobs_deleted,
        )

    async def _apply(self, entry: RelationEntry, subject_id: str) -> tuple[int, int]:
        """Apply the entry's policy; return (records affected, blobs deleted)."""
        try:
            policy = ErasurePolicy(entry.policy)
        except ValueError:
            raise PolicyViolationError(
                f"Unknown erasure policy {entry.policy!r}", entity_type=entry.entity_type
            ) from None
        collection = entry.target_collection

        records = await self._call(
            f"query:{collection}",
            lambda: self._store.query(collection, entry.query_field, subject_id),
        )
        blobs = 0
        ops: list[WriteOp]
        if policy == ErasurePolicy.HARD_DELETE:
            # Blobs first: once the documents are gone nothing locates them.
            for prefix in self._blob_prefixes(entry, subject_id, records):
                blobs += await self._call(
                    f"blobs:delete:{entry.entity_type}",
                    lambda prefix=prefix: self._blob_store.list_and_delete(prefix),
                )
            ops = [DeleteOp(record.id) for record in records]
        elif policy == ErasurePolicy.ANONYMIZE:
            ops = [UpdateOp(record.id, dict(entry.identifying_fields)) for record in records]
        else:
            ops = [UpdateOp(record.id, entry.detached_fields()) for record in records]

        if ops:
            await self._call(
                f"write:{collection}", lambda: self._store.batch_apply(collection, ops)
            )
        return len(ops), blobs

    @staticmethod
    def _blob_prefixes(
        entry: RelationEntry, subject_id: str, records: list[RawRecord]
    ) -> list[str]:
        if not entry.blob_prefix:
            return []
        if not entry.has_record_blobs:
            prefix = entry.blob_prefix_for(subject_id)
            return [prefix] if prefix else []
        prefixes: dict[str, None] = {}
        for record in records:
            prefix = entry.blob_prefix_for(subject_id, record.id, record.data)
            if prefix is None:
                logger.debug(
                    "No blob prefix for %s record %s of subject %s",
                    entry.entity_type,
                    record.id,
                    subject_id,
                )
                continue
            prefixes[prefix] = None
        return list(prefixes)

    async def _revoke_credential(self, job: ErasureJob) -> None:
        existing = job.step_for(CREDENTIAL_STEP)
        if existing is not None and existing.is_ok:
            job.credential_revoked = True
            return
        try:
            await self._revoker.revoke(job.subject_id)
        except AuthRevocationError:
            job.record_step(
                StepResult(
                    entity_type=CREDENTIAL_STEP,
                    outcome=StepOutcome.ERROR,
                    error_kind=AuthRevocationError.__name__,
                    finished_at=utc_now(),
                )
            )
            raise
        job.record_step(
            StepResult(
                entity_type=CREDENTIAL_STEP,
                outcome=StepOutcome.OK,
                records_affected=1,
                finished_at=utc_now(),
            )
        )
        job.credential_revoked = True

    async def _finish(
        self, job: ErasureJob, status: JobStatus, last_error: str | None
    ) -> ErasureJob:
        now = utc_now()
        job.status = status
        job.last_error = last_error
        job.updated_at = now
        job.completed_at = now if status.is_terminal else None
        await self._save(job)
        return job

    async def _save(self, job: ErasureJob) -> None:
        await self._call(f"job:save:{job.subject_id}", lambda: self._jobs.save(job))

    async def _call(self, operation: str, func: Callable[[], Awaitable[T]]) -> T:
        return await self._retry.run(operation, func)
