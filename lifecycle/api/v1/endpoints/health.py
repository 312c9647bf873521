"""Health check endpoints. No admin key; used for liveness and readiness probes."""

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from lifecycle.core.config import get_settings
from lifecycle.schemas.health import (
    HealthResponse,
    ReadinessErrorResponse,
    ReadinessResponse,
)

router = APIRouter()


@router.get("", response_model=HealthResponse)
def health_check() -> HealthResponse:
    """Return simple ok status for liveness."""
    return HealthResponse(version=get_settings().app_version)


@router.get(
    "/ready",
    response_model=ReadinessResponse,
    responses={503: {"description": "Engine not configured", "model": ReadinessErrorResponse}},
)
def readiness_check(request: Request) -> ReadinessResponse | JSONResponse:
    """Return 200 once the lifecycle engine is wired; 503 without Firebase credentials."""
    settings = get_settings()
    if getattr(request.app.state, "lifecycle_service", None) is None:
        return JSONResponse(
            status_code=503,
            content=ReadinessErrorResponse(
                message="Lifecycle engine not configured (missing Firebase credentials)",
            ).model_dump(),
        )
    return ReadinessResponse(
        lock_backend=settings.lock_backend,
        storage_backend=settings.storage_backend,
    )
