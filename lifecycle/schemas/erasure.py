"""Erasure and export API schemas."""

import base64
from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field

from lifecycle.application.dtos.store import ExportBundle
from lifecycle.domain.entities.erasure import ErasureJob


class ErasureRequest(BaseModel):
    """Request body for POST /erasure-jobs."""

    subject_id: str = Field(..., min_length=1, max_length=128)
    role: str = Field(..., description="scout | parent | animator | wecamp_admin")


class ErasureAcceptedResponse(BaseModel):
    """202 response: the job id to poll."""

    job_id: str


class CancelResponse(BaseModel):
    """Whether a running job was asked to stop."""

    job_id: str
    cancelled: bool


class StepResultResponse(BaseModel):
    entity_type: str
    outcome: str
    records_affected: int
    blobs_deleted: int
    error_kind: str | None = None
    finished_at: datetime | None = None


class ErasureJobResponse(BaseModel):
    """Snapshot of an erasure job."""

    job_id: str
    subject_id: str
    role: str
    status: str
    steps: list[StepResultResponse]
    started_at: datetime | None = None
    completed_at: datetime | None = None
    updated_at: datetime | None = None
    attempts: int
    last_error: str | None = None
    credential_revoked: bool

    @classmethod
    def from_job(cls, job: ErasureJob) -> "ErasureJobResponse":
        return cls(
            job_id=job.job_id,
            subject_id=job.subject_id,
            role=job.role.value,
            status=job.status.value,
            steps=[
                StepResultResponse(
                    entity_type=s.entity_type,
                    outcome=s.outcome.value,
                    records_affected=s.records_affected,
                    blobs_deleted=s.blobs_deleted,
                    error_kind=s.error_kind,
                    finished_at=s.finished_at,
                )
                for s in job.steps
            ],
            started_at=job.started_at,
            completed_at=job.completed_at,
            updated_at=job.updated_at,
            attempts=job.attempts,
            last_error=job.last_error,
            credential_revoked=job.credential_revoked,
        )


class ExportRequest(BaseModel):
    """Request body for POST /subjects/{subject_id}/export."""

    role: str = Field(..., description="scout | parent | animator | wecamp_admin")


class ExportRecord(BaseModel):
    id: str
    data: dict[str, Any]


class ExportResponse(BaseModel):
    """Everything stored about a subject, keyed by entity type."""

    subject_id: str
    generated_at: datetime
    total_records: int
    sections: dict[str, list[ExportRecord]]

    @classmethod
    def from_bundle(cls, bundle: ExportBundle) -> "ExportResponse":
        return cls(
            subject_id=bundle.subject_id,
            generated_at=bundle.generated_at,
            total_records=bundle.total_records,
            sections={
                entity_type: [
                    ExportRecord(id=r.id, data=_jsonable(r.data)) for r in records
                ]
                for entity_type, records in bundle.sections.items()
            },
        )


def _jsonable(value: Any) -> Any:
    """Make stored values JSON-safe (bytes as base64; datetimes left to pydantic)."""
    if isinstance(value, bytes):
        return base64.standard_b64encode(value).decode("ascii")
    if isinstance(value, dict):
        return {k: _jsonable(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_jsonable(v) for v in value]
    return value
