"""Subject data export API."""

from fastapi import APIRouter, Depends

from lifecycle.api.v1.dependencies import LifecycleServiceDep, require_admin_key
from lifecycle.schemas.erasure import ExportRequest, ExportResponse

router = APIRouter(dependencies=[Depends(require_admin_key)])


@router.post("/{subject_id}/export", response_model=ExportResponse)
async def export_subject_data(
    subject_id: str,
    body: ExportRequest,
    service: LifecycleServiceDep,
) -> ExportResponse:
    """Return every record referencing the subject, grouped by entity type."""
    bundle = await service.request_export(subject_id, body.role)
    return ExportResponse.from_bundle(bundle)
