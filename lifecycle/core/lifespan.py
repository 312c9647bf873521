"""Application lifespan and composition root.

Single place for startup/shutdown logic and adapter wiring. open_engine()
builds the lifecycle service from settings (Firestore, blob storage, subject
lock) and is shared by the HTTP app and the operator scripts.
"""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from lifecycle.application.services.retry import RetryPolicy
from lifecycle.application.services.subject_lock import InProcessSubjectLock
from lifecycle.application.use_cases.erasure.lifecycle_service import (
    LifecycleService,
    build_lifecycle_service,
)
from lifecycle.core.config import Settings, get_settings
from lifecycle.infrastructure.external.storage import create_blob_store
from lifecycle.infrastructure.firebase import (
    FirebaseIdentityProvider,
    FirestoreDocumentStore,
    FirestoreJobRepository,
    FirestoreLedger,
    close_firebase,
    init_firebase,
)
from lifecycle.shared.telemetry.telemetry import current_tracing, stop_tracing

logger = logging.getLogger(__name__)


@asynccontextmanager
async def open_engine(settings: Settings | None = None) -> AsyncIterator[LifecycleService | None]:
    """Build the lifecycle service from settings; yield None if Firebase is not configured.

    On exit: running erasure jobs are asked to stop at their next step
    boundary and awaited, then the subject lock and Firestore client close.
    """
    settings = settings or get_settings()
    client = init_firebase(settings)
    if client is None:
        logger.warning("Firebase credentials not configured; lifecycle engine disabled")
        yield None
        return

    redis_lock = None
    if settings.lock_backend == "redis":
        from lifecycle.infrastructure.cache.redis_lock import RedisSubjectLock

        redis_lock = RedisSubjectLock(ttl_seconds=settings.lock_ttl_seconds, settings=settings)
        await redis_lock.connect()
        lock = redis_lock
    else:
        lock = InProcessSubjectLock()

    service = build_lifecycle_service(
        store=FirestoreDocumentStore(client),
        blob_store=create_blob_store(settings),
        ledger=FirestoreLedger(client),
        jobs=FirestoreJobRepository(client),
        identity_provider=FirebaseIdentityProvider(client),
        lock=lock,
        retry=RetryPolicy.from_settings(settings),
        max_concurrent_jobs=settings.erasure_max_concurrent_jobs,
        export_max_concurrency=settings.export_max_concurrency,
    )
    logger.info(
        "Lifecycle engine ready (lock=%s, storage=%s)",
        settings.lock_backend,
        settings.storage_backend,
    )
    try:
        yield service
    finally:
        await service.worker.shutdown()
        if redis_lock is not None:
            await redis_lock.disconnect()
        await close_firebase(client)


@asynccontextmanager
async def create_lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Run startup then yield; on exit run shutdown.

    Tracing is started by create_app() (instrumentation must precede the
    first request); here the engine is opened and, on shutdown, drained
    before spans are flushed.
    """
    settings = get_settings()

    # ---- Startup ----
    tracing = current_tracing()
    if tracing is not None and settings.lock_backend == "redis":
        tracing.instrument_lock_client()

    async with open_engine(settings) as service:
        app.state.lifecycle_service = service
        yield
        # ---- Shutdown ----
        app.state.lifecycle_service = None

    stop_tracing()
