"""Caller-facing facade over erasure and export."""

from __future__ import annotations

from typing import TYPE_CHECKING

from lifecycle.application.services.credential_revoker import CredentialRevoker
from lifecycle.application.services.relation_catalog import RelationCatalog, default_catalog
from lifecycle.application.services.retry import RetryPolicy
from lifecycle.application.use_cases.erasure.export_assembler import (
    DEFAULT_EXPORT_CONCURRENCY,
    ExportAssembler,
)
from lifecycle.application.use_cases.erasure.orchestrator import ErasureOrchestrator
from lifecycle.application.use_cases.erasure.worker import (
    DEFAULT_MAX_CONCURRENT_JOBS,
    ErasureWorker,
)
from lifecycle.domain.entities.erasure import ErasureJob
from lifecycle.domain.enums import SubjectRole
from lifecycle.domain.exceptions import ResourceNotFoundException

if TYPE_CHECKING:
    from lifecycle.application.dtos.store import ExportBundle
    from lifecycle.application.interfaces.repositories import (
        IDocumentStore,
        IJobRepository,
        ILedger,
    )
    from lifecycle.application.interfaces.services import (
        IBlobStore,
        IIdentityProvider,
        ISubjectLock,
    )


class LifecycleService:
    """Entry point for the HTTP API and scripts.

    Erasure runs in the background (see ErasureWorker); export is synchronous.
    """

    def __init__(
        self,
        worker: "ErasureWorker",
        assembler: "ExportAssembler",
        jobs: "IJobRepository",
    ) -> None:
        self.worker = worker
        self.assembler = assembler
        self.jobs = jobs

    async def request_erasure(self, subject_id: str, role: SubjectRole | str) -> str:
        """Submit an erasure for the subject and return the job id.

        A PARTIAL job is resumed under its existing id; after COMPLETE or
        FAILED a new job is opened.

        Raises:
            ValidationException: Unknown role or empty subject id.
            JobAlreadyRunning: A job for the subject is already running.
        """
        job = await self.worker.submit(subject_id, role)
        return job.job_id

    async def get_job_status(self, job_id: str) -> ErasureJob:
        """Return the persisted job snapshot.

        Raises:
            ResourceNotFoundException: If no job has that id.
        """
        job = await self.jobs.get_by_job_id(job_id)
        if job is None:
            raise ResourceNotFoundException("erasure_job", job_id)
        return job

    async def request_export(self, subject_id: str, role: SubjectRole | str) -> ExportBundle:
        """Return everything stored about the subject."""
        return await self.assembler.assemble(subject_id, role)

    async def cancel_erasure(self, job_id: str) -> bool:
        """Request cancellation of a running job at its next step boundary.

        Returns:
            True if the job was running and will stop, False if it was not running.

        Raises:
            ResourceNotFoundException: If no job has that id.
        """
        await self.get_job_status(job_id)
        return self.worker.request_cancel(job_id)


def build_lifecycle_service(
    *,
    store: "IDocumentStore",
    blob_store: "IBlobStore",
    ledger: "ILedger",
    jobs: "IJobRepository",
    identity_provider: "IIdentityProvider",
    lock: "ISubjectLock",
    retry: RetryPolicy | None = None,
    catalog: RelationCatalog | None = None,
    max_concurrent_jobs: int = DEFAULT_MAX_CONCURRENT_JOBS,
    export_max_concurrency: int = DEFAULT_EXPORT_CONCURRENCY,
) -> LifecycleService:
    """Wire catalog, orchestrator, worker and assembler over the given adapters."""
    retry = retry or RetryPolicy()
    catalog = catalog or default_catalog()
    orchestrator = ErasureOrchestrator(
        catalog=catalog,
        store=store,
        blob_store=blob_store,
        ledger=ledger,
        jobs=jobs,
        revoker=CredentialRevoker(identity_provider, retry),
        lock=lock,
        retry=retry,
    )
    return LifecycleService(
        worker=ErasureWorker(orchestrator, lock, max_concurrent_jobs),
        assembler=ExportAssembler(catalog, store, retry, export_max_concurrency),
        jobs=jobs,
    )
