"""FastAPI application entry point.

Wiring only: lifespan, exception handlers, CORS, routers. See
lifecycle.core.lifespan and lifecycle.core.exception_handlers.

Settings are loaded inside create_app() so that tests can set env (and clear
the get_settings cache) before calling create_app().

Run locally with ``uv run uvicorn lifecycle.main:app --reload`` or the
``lifecycle-api`` script.
"""

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from lifecycle.api.v1 import api_router
from lifecycle.core.config import get_settings
from lifecycle.core.exception_handlers import register_exception_handlers
from lifecycle.core.lifespan import create_lifespan
from lifecycle.shared.telemetry.logging import setup_logging
from lifecycle.shared.telemetry.telemetry import start_tracing


def create_app() -> FastAPI:
    """Build and return the FastAPI application."""
    settings = get_settings()
    setup_logging(settings)
    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        debug=settings.debug,
        lifespan=create_lifespan,
    )
    app.state.lifecycle_service = None

    register_exception_handlers(app)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=[o.strip() for o in settings.allowed_origins.split(",") if o.strip()],
        allow_credentials=True,
        allow_methods=["GET", "POST"],
        allow_headers=["*"],
    )
    start_tracing(app, settings)

    app.include_router(api_router, prefix="/api/v1")
    return app


app = create_app()


def serve() -> None:
    """Console entry point: run the API under uvicorn on HOST:PORT."""
    settings = get_settings()
    uvicorn.run("lifecycle.main:app", host=settings.host, port=settings.port, reload=settings.debug)
