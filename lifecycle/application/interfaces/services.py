"""Service interfaces (ports) for the application layer.

Protocols define contracts for external collaborators: blob storage, the
identity provider and the per-subject lock.
"""

from __future__ import annotations

from typing import Protocol


# Blob store interface
class IBlobStore(Protocol):
    """Protocol for the object store holding avatars and generated images."""

    async def list_and_delete(self, prefix: str) -> int:
        """Delete every object under prefix; return the number deleted."""


# Identity provider interface
class IIdentityProvider(Protocol):
    """Protocol for revoking a subject's authentication identity."""

    async def revoke_identity(self, subject_id: str) -> None:
        """Delete the subject's identity. Idempotent: unknown users succeed."""


# Per-subject lock interface
class ISubjectLock(Protocol):
    """Protocol for the mutual-exclusion lock held for the duration of a job."""

    async def acquire(self, subject_id: str) -> bool:
        """Try to take the lock without waiting; return False if already held."""

    async def release(self, subject_id: str) -> None:
        """Release the lock if held by this holder."""
