"""Firestore-backed erasure job repository (implements IJobRepository).

erasureJobs holds one document per subject: the snapshot of its current
(latest) job. Opening a new job after a terminal one replaces the snapshot.
"""

from __future__ import annotations

from typing import Any

from lifecycle.domain.entities.erasure import ErasureJob, StepResult
from lifecycle.domain.enums import JobStatus, StepOutcome, SubjectRole
from lifecycle.infrastructure.firebase._rest_client import FirestoreRESTClient
from lifecycle.infrastructure.firebase._rest_encoding import decode_fields
from lifecycle.infrastructure.firebase.collections import COLLECTION_ERASURE_JOBS
from lifecycle.shared.utils.datetime import ensure_utc


def job_to_document(job: ErasureJob) -> dict[str, Any]:
    """Serialize a job to Firestore fields (enums as values, datetimes native)."""
    return {
        "job_id": job.job_id,
        "subject_id": job.subject_id,
        "role": job.role.value,
        "status": job.status.value,
        "steps": [
            {
                "entity_type": step.entity_type,
                "outcome": step.outcome.value,
                "records_affected": step.records_affected,
                "blobs_deleted": step.blobs_deleted,
                "error_kind": step.error_kind,
                "finished_at": step.finished_at,
            }
            for step in job.steps
        ],
        "started_at": job.started_at,
        "completed_at": job.completed_at,
        "updated_at": job.updated_at,
        "attempts": job.attempts,
        "last_error": job.last_error,
        "credential_revoked": job.credential_revoked,
    }


def job_from_document(data: dict[str, Any]) -> ErasureJob:
    """Rebuild a job from decoded Firestore fields."""
    return ErasureJob(
        job_id=data["job_id"],
        subject_id=data["subject_id"],
        role=SubjectRole(data["role"]),
        status=JobStatus(data.get("status", JobStatus.PENDING.value)),
        steps=[
            StepResult(
                entity_type=step["entity_type"],
                outcome=StepOutcome(step["outcome"]),
                records_affected=int(step.get("records_affected") or 0),
                blobs_deleted=int(step.get("blobs_deleted") or 0),
                error_kind=step.get("error_kind"),
                finished_at=ensure_utc(step.get("finished_at")),
            )
            for step in data.get("steps") or []
        ],
        started_at=ensure_utc(data.get("started_at")),
        completed_at=ensure_utc(data.get("completed_at")),
        updated_at=ensure_utc(data.get("updated_at")),
        attempts=int(data.get("attempts") or 0),
        last_error=data.get("last_error"),
        credential_revoked=bool(data.get("credential_revoked", False)),
    )


class FirestoreJobRepository:
    """Erasure job snapshots keyed by subject id."""

    def __init__(self, client: FirestoreRESTClient) -> None:
        self._client = client

    async def get(self, subject_id: str) -> ErasureJob | None:
        doc = await self._client.get_document(COLLECTION_ERASURE_JOBS, subject_id)
        if doc is None:
            return None
        return job_from_document(decode_fields(doc.get("fields")))

    async def get_by_job_id(self, job_id: str) -> ErasureJob | None:
        async for doc in self._client.run_query(
            COLLECTION_ERASURE_JOBS, "job_id", job_id, page_size=1
        ):
            return job_from_document(decode_fields(doc.get("fields")))
        return None

    async def save(self, job: ErasureJob) -> None:
        await self._client.set_document(
            COLLECTION_ERASURE_JOBS, job.subject_id, job_to_document(job)
        )
