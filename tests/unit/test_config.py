"""Tests for Settings validation and the engine composition root."""

import json

import pytest
from pydantic import ValidationError

from lifecycle.core.config import Settings
from lifecycle.core.lifespan import open_engine
from lifecycle.infrastructure.firebase.client import init_firebase


def test_defaults_are_single_instance() -> None:
    settings = Settings()
    assert settings.lock_backend == "memory"
    assert settings.storage_backend == "local"
    assert settings.retry_max_attempts == 3
    assert settings.firebase_configured is False


def test_redis_lock_requires_redis_enabled() -> None:
    with pytest.raises(ValidationError, match="REDIS_ENABLED"):
        Settings(lock_backend="redis")
    assert Settings(lock_backend="redis", redis_enabled=True).lock_backend == "redis"


@pytest.mark.parametrize(
    "overrides",
    [
        {"lock_backend": "zookeeper"},
        {"storage_backend": "ftp"},
        {"storage_backend": "s3"},
        {"retry_max_attempts": 0},
        {"erasure_max_concurrent_jobs": 0},
        {"store_timeout_seconds": 0},
        {"retry_base_delay_seconds": -1},
    ],
)
def test_invalid_settings_rejected(overrides: dict) -> None:
    with pytest.raises(ValidationError):
        Settings(**overrides)


def test_firebase_configured_by_key_or_path() -> None:
    assert Settings(firebase_service_account_key='{"project_id": "demo"}').firebase_configured
    assert Settings(firebase_service_account_path="/secrets/sa.json").firebase_configured


async def test_open_engine_without_credentials_yields_none() -> None:
    async with open_engine(Settings()) as service:
        assert service is None


def test_init_firebase_rejects_malformed_key() -> None:
    with pytest.raises(ValueError, match="not valid JSON"):
        init_firebase(Settings(firebase_service_account_key="{not json"))


def test_init_firebase_requires_project_id() -> None:
    key = json.dumps({"client_email": "sa@demo.iam.gserviceaccount.com"})
    with pytest.raises(ValueError, match="project_id"):
        init_firebase(Settings(firebase_service_account_key=key))


def test_serve_runs_app_under_uvicorn(monkeypatch) -> None:
    from lifecycle import main

    calls = []
    monkeypatch.setattr(main.uvicorn, "run", lambda *args, **kwargs: calls.append((args, kwargs)))

    main.serve()

    settings = main.get_settings()
    assert calls == [
        (("lifecycle.main:app",), {"host": settings.host, "port": settings.port, "reload": settings.debug})
    ]
