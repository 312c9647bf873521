"""Presentation-layer dependencies.

The lifecycle service is built once by the lifespan (lifecycle.core.lifespan)
and stored on app.state; routes never construct adapters themselves.
"""

import hmac
from typing import Annotated

from fastapi import Depends, Request

from lifecycle.application.use_cases.erasure.lifecycle_service import LifecycleService
from lifecycle.core.config import Settings, get_settings
from lifecycle.domain.exceptions import (
    AuthenticationException,
    EngineNotConfiguredException,
)


def get_app_settings() -> Settings:
    return get_settings()


async def require_admin_key(
    request: Request,
    settings: Annotated[Settings, Depends(get_app_settings)],
) -> None:
    """Reject the request unless the admin key header matches ADMIN_API_KEY.

    Raises:
        AuthenticationException: Missing or wrong key, or no key configured.
    """
    expected = settings.admin_api_key.get_secret_value()
    provided = request.headers.get(settings.admin_api_key_header, "")
    if not expected:
        raise AuthenticationException("Admin API key is not configured")
    if not provided or not hmac.compare_digest(provided.encode(), expected.encode()):
        raise AuthenticationException("Invalid or missing admin API key")


def get_lifecycle_service(request: Request) -> LifecycleService:
    """Return the lifecycle service built at startup.

    Raises:
        EngineNotConfiguredException: Firebase credentials were not configured.
    """
    service = getattr(request.app.state, "lifecycle_service", None)
    if service is None:
        raise EngineNotConfiguredException()
    return service


LifecycleServiceDep = Annotated[LifecycleService, Depends(get_lifecycle_service)]
