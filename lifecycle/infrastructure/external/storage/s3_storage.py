"""S3-compatible blob storage (AWS S3, MinIO, GCS interoperability)."""

from __future__ import annotations

import asyncio
from typing import Any

import boto3
from botocore.exceptions import BotoCoreError, ClientError, EndpointConnectionError

from lifecycle.domain.exceptions import TransientStoreError
from lifecycle.infrastructure.exceptions import (
    StorageDeleteError,
    StorageInvalidPrefixError,
    StoragePermissionError,
)

# delete_objects accepts at most 1000 keys per request
S3_DELETE_BATCH = 1000
_TRANSIENT_ERROR_CODES = frozenset({
    "SlowDown", "Throttling", "ThrottlingException", "RequestTimeout",
    "InternalError", "ServiceUnavailable", "503", "500",
})
_PERMISSION_ERROR_CODES = frozenset({"AccessDenied", "403", "AllAccessDisabled"})


class S3StorageService:
    """S3-compatible storage.

    Uses boto3 (sync) via asyncio.to_thread for async API.
    """

    def __init__(
        self,
        bucket: str,
        region: str = "us-east-1",
        endpoint_url: str | None = None,
        access_key: str | None = None,
        secret_key: str | None = None,
        client: Any = None,
    ) -> None:
        """Initialize S3 client.

        Args:
            bucket: Bucket name.
            region: AWS region.
            endpoint_url: Custom endpoint (MinIO/Spaces/GCS).
            access_key: Optional; uses env/IAM if not set.
            secret_key: Optional.
            client: Pre-built boto3 client (tests).
        """
        self.bucket = bucket
        if client is not None:
            self._client = client
            return
        extra = {} if endpoint_url is None else {"endpoint_url": endpoint_url}
        self._client = boto3.client(
            "s3",
            region_name=region,
            aws_access_key_id=access_key,
            aws_secret_access_key=secret_key,
            **extra,
        )

    def _map_error(self, prefix: str, operation: str, e: Exception) -> Exception:
        if isinstance(e, EndpointConnectionError):
            return TransientStoreError(f"blob:{operation}", "endpoint unreachable")
        if isinstance(e, ClientError):
            code = str(e.response.get("Error", {}).get("Code", ""))
            if code in _TRANSIENT_ERROR_CODES:
                return TransientStoreError(f"blob:{operation}", code)
            if code in _PERMISSION_ERROR_CODES:
                return StoragePermissionError(prefix, operation)
        return StorageDeleteError(prefix, str(e))

    def _list_keys_sync(self, prefix: str) -> list[str]:
        paginator = self._client.get_paginator("list_objects_v2")
        keys: list[str] = []
        for page in paginator.paginate(Bucket=self.bucket, Prefix=prefix):
            keys.extend(obj["Key"] for obj in page.get("Contents", []))
        return sorted(keys)

    def _delete_keys_sync(self, keys: list[str]) -> int:
        deleted = 0
        for start in range(0, len(keys), S3_DELETE_BATCH):
            batch = keys[start : start + S3_DELETE_BATCH]
            resp = self._client.delete_objects(
                Bucket=self.bucket,
                Delete={"Objects": [{"Key": key} for key in batch], "Quiet": True},
            )
            errors = resp.get("Errors") or []
            if errors:
                first = errors[0]
                raise StorageDeleteError(
                    first.get("Key", ""), f"{first.get('Code')}: {first.get('Message')}"
                )
            deleted += len(batch)
        return deleted

    async def list_keys(self, prefix: str) -> list[str]:
        """Return the keys of every object under prefix, sorted."""
        if not prefix:
            raise StorageInvalidPrefixError(prefix)
        try:
            return await asyncio.to_thread(self._list_keys_sync, prefix)
        except (ClientError, BotoCoreError) as e:
            raise self._map_error(prefix, "list", e) from e

    async def list_and_delete(self, prefix: str) -> int:
        """Delete every object under prefix. Returns the count deleted."""
        keys = await self.list_keys(prefix)
        if not keys:
            return 0
        try:
            return await asyncio.to_thread(self._delete_keys_sync, keys)
        except (ClientError, BotoCoreError) as e:
            raise self._map_error(prefix, "delete", e) from e
