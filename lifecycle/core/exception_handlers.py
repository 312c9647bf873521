"""Centralized exception handlers for the FastAPI app.

Register with register_exception_handlers(app). Maps lifecycle and framework
exceptions to HTTP responses.
"""

import logging
from typing import Any

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from lifecycle.core.config import get_settings
from lifecycle.domain.exceptions import LifecycleException, StoreError

logger = logging.getLogger(__name__)

# Map error_code to HTTP status; other StoreError codes map to 502.
_ERROR_CODE_STATUS: dict[str, int] = {
    "VALIDATION_ERROR": 400,
    "AUTHENTICATION_ERROR": 401,
    "RESOURCE_NOT_FOUND": 404,
    "JOB_ALREADY_RUNNING": 409,
    "POLICY_VIOLATION": 500,
    "PARTIAL_CASCADE": 500,
    "STORE_ERROR": 502,
    "AUTH_REVOCATION_FAILED": 502,
    "TRANSIENT_STORE_ERROR": 503,
    "ENGINE_NOT_CONFIGURED": 503,
}


def status_for(exc: LifecycleException) -> int:
    """Return the HTTP status for a lifecycle exception."""
    status = _ERROR_CODE_STATUS.get(exc.error_code)
    if status is not None:
        return status
    if isinstance(exc, StoreError):
        return 502
    return 400


def _lifecycle_exception_handler(
    request: Request, exc: LifecycleException
) -> JSONResponse:
    """Return JSON from LifecycleException.to_dict() with appropriate status code."""
    status = status_for(exc)
    if status >= 500:
        logger.warning("%s on %s: %s", exc.error_code, request.url.path, exc.message)
    return JSONResponse(status_code=status, content=exc.to_dict())


def _validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Return 422 with validation error details."""
    return JSONResponse(
        status_code=422,
        content={
            "error": "VALIDATION_ERROR",
            "message": "Request validation failed",
            "details": exc.errors(),
        },
    )


def _http_exception_handler(
    request: Request, exc: StarletteHTTPException
) -> JSONResponse:
    """Return JSON for Starlette HTTP exceptions (status + detail)."""
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": "HTTP_ERROR", "message": exc.detail},
    )


def _generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Return 500; include detail only when debug is True."""
    logger.exception("Unhandled exception: %s", exc)
    detail: Any = str(exc) if get_settings().debug else "Internal server error"
    return JSONResponse(
        status_code=500,
        content={"error": "INTERNAL_ERROR", "message": detail},
    )


def register_exception_handlers(app: FastAPI) -> None:
    """Register all exception handlers on the FastAPI app.

    Handlers: LifecycleException (and subclasses), RequestValidationError,
    StarletteHTTPException, generic Exception.
    """
    app.add_exception_handler(LifecycleException, _lifecycle_exception_handler)
    app.add_exception_handler(RequestValidationError, _validation_exception_handler)
    app.add_exception_handler(StarletteHTTPException, _http_exception_handler)
    app.add_exception_handler(Exception, _generic_exception_handler)
