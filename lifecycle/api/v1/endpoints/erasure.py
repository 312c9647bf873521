"""Erasure job API: thin routes delegating to LifecycleService."""

from fastapi import APIRouter, Depends

from lifecycle.api.v1.dependencies import LifecycleServiceDep, require_admin_key
from lifecycle.schemas.erasure import (
    CancelResponse,
    ErasureAcceptedResponse,
    ErasureJobResponse,
    ErasureRequest,
)

router = APIRouter(dependencies=[Depends(require_admin_key)])


@router.post("", response_model=ErasureAcceptedResponse, status_code=202)
async def request_erasure(
    body: ErasureRequest,
    service: LifecycleServiceDep,
) -> ErasureAcceptedResponse:
    """Start (or resume) erasure of a subject. 409 if a job is already running."""
    job_id = await service.request_erasure(body.subject_id, body.role)
    return ErasureAcceptedResponse(job_id=job_id)


@router.get("/{job_id}", response_model=ErasureJobResponse)
async def get_erasure_job(
    job_id: str,
    service: LifecycleServiceDep,
) -> ErasureJobResponse:
    """Return the job snapshot with per-step results."""
    job = await service.get_job_status(job_id)
    return ErasureJobResponse.from_job(job)


@router.post("/{job_id}/cancel", response_model=CancelResponse, status_code=202)
async def cancel_erasure_job(
    job_id: str,
    service: LifecycleServiceDep,
) -> CancelResponse:
    """Ask a running job to stop at its next step boundary (job becomes PARTIAL)."""
    cancelled = await service.cancel_erasure(job_id)
    return CancelResponse(job_id=job_id, cancelled=cancelled)
