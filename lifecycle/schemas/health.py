"""Health check API schemas."""

from pydantic import BaseModel, Field


class HealthResponse(BaseModel):
    """Response for GET /health (liveness)."""

    status: str = Field(default="ok", description="Service status")
    version: str = Field(..., description="Service version")


class ReadinessResponse(BaseModel):
    """Response for GET /health/ready when the engine is wired."""

    status: str = Field(default="ok", description="Readiness status")
    lock_backend: str
    storage_backend: str


class ReadinessErrorResponse(BaseModel):
    """Response for GET /health/ready when the engine is not configured (503)."""

    status: str = Field(default="not_ready", description="Readiness status")
    message: str = Field(..., description="Reason (e.g. no Firebase credentials)")
