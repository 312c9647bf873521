"""Local filesystem blob storage with path validation."""

from __future__ import annotations

import asyncio
import os
from pathlib import Path

import aiofiles.os

from lifecycle.infrastructure.exceptions import (
    StorageDeleteError,
    StorageInvalidPrefixError,
    StoragePermissionError,
)

META_SUFFIX = ".meta.json"


class LocalStorageService:
    """Local filesystem storage rooted at storage_root.

    Object keys are POSIX paths relative to the root. Metadata sidecars
    (``<key>.meta.json``) are removed together with their object and are not
    counted. Empty directories left behind are pruned.
    """

    def __init__(self, storage_root: str) -> None:
        self.storage_root = Path(storage_root).resolve()
        self.storage_root.mkdir(parents=True, exist_ok=True, mode=0o750)

    def _get_full_path(self, storage_ref: str) -> Path:
        """Resolve and validate path under storage_root. Raises StoragePermissionError if traversal."""
        full_path = (self.storage_root / storage_ref).resolve()
        try:
            full_path.relative_to(self.storage_root)
        except ValueError as e:
            raise StoragePermissionError(storage_ref, "path_validation") from e
        return full_path

    def _search_dir(self, prefix: str) -> Path:
        if not prefix or prefix.startswith("/"):
            raise StorageInvalidPrefixError(prefix)
        # "avatars/u1/" searches avatars/u1, "avatars/u1" searches avatars.
        if prefix.endswith("/"):
            head = prefix
        elif "/" in prefix:
            head = prefix.rsplit("/", 1)[0]
        else:
            head = ""
        return self._get_full_path(head) if head else self.storage_root

    def _list_keys_sync(self, prefix: str) -> list[str]:
        base = self._search_dir(prefix)
        if not base.is_dir():
            return []
        keys = []
        for dirpath, _dirnames, filenames in os.walk(base):
            for name in filenames:
                if name.endswith(META_SUFFIX):
                    continue
                key = (Path(dirpath) / name).relative_to(self.storage_root).as_posix()
                if key.startswith(prefix):
                    keys.append(key)
        return sorted(keys)

    async def list_keys(self, prefix: str) -> list[str]:
        """Return the keys of every object under prefix, sorted."""
        try:
            return await asyncio.to_thread(self._list_keys_sync, prefix)
        except PermissionError as e:
            raise StoragePermissionError(prefix, "list") from e

    async def list_and_delete(self, prefix: str) -> int:
        """Delete every object (and its sidecar) under prefix. Returns the count deleted."""
        deleted = 0
        for key in await self.list_keys(prefix):
            file_path = self._get_full_path(key)
            try:
                await aiofiles.os.remove(file_path)
            except FileNotFoundError:
                continue
            except PermissionError as e:
                raise StoragePermissionError(key, "delete") from e
            except OSError as e:
                raise StorageDeleteError(key, str(e)) from e
            deleted += 1
            meta_path = file_path.with_name(file_path.name + META_SUFFIX)
            if meta_path.exists():
                await aiofiles.os.remove(meta_path)
            self._prune_empty_parents(file_path.parent)
        return deleted

    def _prune_empty_parents(self, parent: Path) -> None:
        while parent != self.storage_root:
            try:
                if any(parent.iterdir()):
                    return
                parent.rmdir()
            except OSError:
                return
            parent = parent.parent
