"""Application configuration (settings and environment).

Single source of truth for all configuration. Uses pydantic-settings
with .env support. Backend credentials are optional: without Firebase
credentials the API starts but the engine reports not ready.
"""

from functools import lru_cache

from pydantic import SecretStr, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment and .env."""

    # App
    app_name: str = "scout-data-lifecycle"
    app_version: str = "1.0.0"
    debug: bool = False
    host: str = "127.0.0.1"
    port: int = 8000

    # CORS
    allowed_origins: str = "http://localhost:3000,http://localhost:8081"

    # Admin API: every route except health requires X-Admin-Key.
    admin_api_key: SecretStr = SecretStr("")
    admin_api_key_header: str = "X-Admin-Key"

    # Firebase / Firestore / Identity Toolkit: use key (env) or path (file).
    firebase_service_account_key: SecretStr | None = None
    firebase_service_account_path: str | None = None

    # Blob storage (avatars, generated images)
    storage_backend: str = "local"
    storage_root: str = "/var/scout-lifecycle/storage"
    s3_bucket: str | None = None
    s3_region: str = "europe-west1"
    s3_endpoint_url: str | None = None
    s3_access_key: str | None = None
    s3_secret_key: SecretStr | None = None

    # Redis (distributed subject lock for multi-instance deployments)
    redis_enabled: bool = False
    redis_host: str = "localhost"
    redis_port: int = 6379
    redis_db: int = 0
    redis_password: SecretStr | None = None

    # Erasure engine
    lock_backend: str = "memory"  # memory (single instance) | redis
    lock_ttl_seconds: int = 900
    store_timeout_seconds: float = 20.0
    retry_max_attempts: int = 3
    retry_base_delay_seconds: float = 0.5
    retry_max_delay_seconds: float = 8.0
    erasure_max_concurrent_jobs: int = 4
    export_max_concurrency: int = 8

    # OpenTelemetry
    telemetry_enabled: bool = False
    telemetry_exporter: str = "console"
    telemetry_otlp_endpoint: str | None = None
    telemetry_sample_rate: float = 1.0
    telemetry_environment: str = "development"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        case_sensitive=False,
    )

    @model_validator(mode="after")
    def validate_backends_and_limits(self) -> "Settings":
        """Validate backend choices and engine limits.

        - lock_backend must be 'memory' or 'redis'; 'redis' requires REDIS_ENABLED.
        - storage_backend must be 'local' or 's3'; 's3' requires S3_BUCKET.
        - Retry attempts, timeouts and pool sizes must be positive.
        """
        if self.lock_backend not in ("memory", "redis"):
            raise ValueError(
                f"lock_backend must be 'memory' or 'redis', got: {self.lock_backend!r}"
            )
        if self.lock_backend == "redis" and not self.redis_enabled:
            raise ValueError(
                "lock_backend 'redis' requires REDIS_ENABLED=true "
                "(distributed lock for multi-instance deployments)."
            )
        if self.storage_backend == "s3":
            if not self.s3_bucket:
                raise ValueError(
                    "s3_bucket is required when storage_backend is 's3'. "
                    "Set S3_BUCKET environment variable or update .env file."
                )
        elif self.storage_backend != "local":
            raise ValueError(
                f"Invalid storage_backend '{self.storage_backend}'. "
                "Must be one of: 'local', 's3'"
            )
        for name in (
            "retry_max_attempts",
            "erasure_max_concurrent_jobs",
            "export_max_concurrency",
            "lock_ttl_seconds",
        ):
            if getattr(self, name) < 1:
                raise ValueError(f"{name} must be >= 1")
        if self.store_timeout_seconds <= 0:
            raise ValueError("store_timeout_seconds must be > 0")
        if self.retry_base_delay_seconds < 0 or self.retry_max_delay_seconds < 0:
            raise ValueError("retry delays must be >= 0")
        return self

    @property
    def firebase_configured(self) -> bool:
        """True when a service account key or path is set."""
        has_key = (
            self.firebase_service_account_key is not None
            and bool(self.firebase_service_account_key.get_secret_value())
        )
        return has_key or bool(self.firebase_service_account_path)


@lru_cache
def get_settings() -> Settings:
    """Return cached application settings (single instance per process).

    Validation runs on first call, not at import time. In tests, call
    get_settings.cache_clear() before overriding env vars so the next
    get_settings() uses the new values.

    Returns:
        Loaded and validated Settings instance.
    """
    return Settings()
