"""Blob store selection from STORAGE_BACKEND."""

from lifecycle.core.config import Settings
from lifecycle.infrastructure.external.storage.protocol import StorageProtocol


def create_blob_store(settings: Settings) -> StorageProtocol:
    """Return the avatar/media store the erasure engine deletes from.

    Raises:
        ValueError: Unknown backend, missing bucket, or boto3 not installed.
    """
    backend = settings.storage_backend.lower()
    if backend == "local":
        from lifecycle.infrastructure.external.storage.local_storage import LocalStorageService

        return LocalStorageService(storage_root=settings.storage_root)

    if backend != "s3":
        raise ValueError(f"Unknown storage backend: {backend}. Supported: 'local', 's3'")
    if not settings.s3_bucket:
        raise ValueError("S3_BUCKET required for s3 backend")
    try:
        from lifecycle.infrastructure.external.storage.s3_storage import S3StorageService
    except ImportError as e:
        raise ValueError("S3 backend requires boto3: pip install '.[storage]'") from e

    secret = settings.s3_secret_key
    return S3StorageService(
        bucket=settings.s3_bucket,
        region=settings.s3_region,
        endpoint_url=settings.s3_endpoint_url,
        access_key=settings.s3_access_key,
        secret_key=secret.get_secret_value() if secret else None,
    )
