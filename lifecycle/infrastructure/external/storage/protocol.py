"""Blob storage protocol (DIP). Implementations: LocalStorageService, S3StorageService."""

from typing import Protocol


class StorageProtocol(Protocol):
    """Protocol for object storage backends (local, S3-compatible)."""

    async def list_keys(self, prefix: str) -> list[str]:
        """Return the keys of every object under prefix, sorted."""
        ...

    async def list_and_delete(self, prefix: str) -> int:
        """Delete every object under prefix. Returns the number deleted (0 if none)."""
        ...
