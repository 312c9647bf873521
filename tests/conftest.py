"""Pytest configuration and fixtures for the lifecycle engine.

Env is set before lifecycle.main is imported so the app is built with a known
admin key and no Firebase credentials. Engine fixtures wire the real
orchestrator and service over the in-memory fakes in tests/fakes.py; HTTP
tests use httpx ASGITransport (no lifespan), with the service put on
app.state by the fixture.
"""

import os
from unittest.mock import AsyncMock

os.environ["ADMIN_API_KEY"] = "test-admin-key"
os.environ.pop("FIREBASE_SERVICE_ACCOUNT_KEY", None)
os.environ.pop("FIREBASE_SERVICE_ACCOUNT_PATH", None)

import pytest  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402

from lifecycle.application.services.credential_revoker import CredentialRevoker  # noqa: E402
from lifecycle.application.services.relation_catalog import default_catalog  # noqa: E402
from lifecycle.application.services.retry import RetryPolicy  # noqa: E402
from lifecycle.application.services.subject_lock import InProcessSubjectLock  # noqa: E402
from lifecycle.application.use_cases.erasure import (  # noqa: E402
    ErasureOrchestrator,
    LifecycleService,
    build_lifecycle_service,
)
from lifecycle.core.config import get_settings  # noqa: E402

get_settings.cache_clear()

from lifecycle.main import app  # noqa: E402
from tests.fakes import (  # noqa: E402
    CallTrace,
    FakeIdentityProvider,
    InMemoryBlobStore,
    InMemoryDocumentStore,
    InMemoryJobRepository,
    InMemoryLedger,
)


@pytest.fixture
def admin_headers() -> dict[str, str]:
    """Headers accepted by require_admin_key."""
    return {"X-Admin-Key": os.environ["ADMIN_API_KEY"]}


@pytest.fixture
def trace() -> CallTrace:
    return CallTrace()


@pytest.fixture
def store(trace: CallTrace) -> InMemoryDocumentStore:
    return InMemoryDocumentStore(trace)


@pytest.fixture
def blob_store(trace: CallTrace) -> InMemoryBlobStore:
    return InMemoryBlobStore(trace)


@pytest.fixture
def ledger(trace: CallTrace) -> InMemoryLedger:
    return InMemoryLedger(trace)


@pytest.fixture
def jobs(trace: CallTrace) -> InMemoryJobRepository:
    return InMemoryJobRepository(trace)


@pytest.fixture
def identity_provider(trace: CallTrace) -> FakeIdentityProvider:
    return FakeIdentityProvider(trace)


@pytest.fixture
def subject_lock() -> InProcessSubjectLock:
    return InProcessSubjectLock()


@pytest.fixture
def retry() -> RetryPolicy:
    """Retry policy with a recording no-op sleep (inspect retry.sleep.await_args_list)."""
    return RetryPolicy(max_attempts=3, base_delay_seconds=0.5, sleep=AsyncMock())


@pytest.fixture
def orchestrator(
    store: InMemoryDocumentStore,
    blob_store: InMemoryBlobStore,
    ledger: InMemoryLedger,
    jobs: InMemoryJobRepository,
    identity_provider: FakeIdentityProvider,
    subject_lock: InProcessSubjectLock,
    retry: RetryPolicy,
) -> ErasureOrchestrator:
    """Orchestrator over the default catalog and in-memory fakes."""
    return ErasureOrchestrator(
        catalog=default_catalog(),
        store=store,
        blob_store=blob_store,
        ledger=ledger,
        jobs=jobs,
        revoker=CredentialRevoker(identity_provider, retry),
        lock=subject_lock,
        retry=retry,
    )


@pytest.fixture
async def lifecycle_service(
    store: InMemoryDocumentStore,
    blob_store: InMemoryBlobStore,
    ledger: InMemoryLedger,
    jobs: InMemoryJobRepository,
    identity_provider: FakeIdentityProvider,
    subject_lock: InProcessSubjectLock,
    retry: RetryPolicy,
) -> LifecycleService:
    """LifecycleService over the fakes; running jobs are stopped on teardown."""
    service = build_lifecycle_service(
        store=store,
        blob_store=blob_store,
        ledger=ledger,
        jobs=jobs,
        identity_provider=identity_provider,
        lock=subject_lock,
        retry=retry,
    )
    yield service
    await service.worker.shutdown()


@pytest.fixture
async def client() -> AsyncClient:
    """Async HTTP client against the FastAPI app with no engine configured."""
    app.state.lifecycle_service = None
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest.fixture
async def engine_client(lifecycle_service: LifecycleService) -> AsyncClient:
    """Async HTTP client with the in-memory lifecycle service on app.state."""
    app.state.lifecycle_service = lifecycle_service
    transport = ASGITransport(app=app)
    try:
        async with AsyncClient(transport=transport, base_url="http://test") as ac:
            yield ac
    finally:
        app.state.lifecycle_service = None
