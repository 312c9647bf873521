"""Repository interfaces (ports) for the application layer.

Protocols define contracts that infrastructure implementations must fulfill (DIP).
All types reference application DTOs or domain entities only; no infrastructure imports.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import TYPE_CHECKING, Any, Protocol

if TYPE_CHECKING:
    from lifecycle.application.dtos.store import RawRecord, WriteOp
    from lifecycle.domain.entities.erasure import ErasureJob, LedgerEntry


# Document store interface
class IDocumentStore(Protocol):
    """Protocol for the schemaless document store (Firestore in production)."""

    async def query(self, collection: str, field: str, value: Any) -> list[RawRecord]:
        """Return every document whose field equals value.

        The pseudo-field ``__name__`` matches the document id.
        """

    async def batch_apply(self, collection: str, ops: Sequence[WriteOp]) -> None:
        """Apply delete/update ops. Missing documents are skipped (idempotent)."""


# Consistency ledger interface
class ILedger(Protocol):
    """Protocol for the durable record of completed erasure steps."""

    async def has_completed(self, subject_id: str, entity_type: str) -> bool:
        """Return True if the step was durably recorded for the subject."""

    async def mark_completed(self, subject_id: str, entity_type: str) -> None:
        """Record the step as completed (upsert)."""

    async def steps_for(self, subject_id: str) -> list[LedgerEntry]:
        """Return all ledger entries for the subject."""


# Erasure job repository interface
class IJobRepository(Protocol):
    """Protocol for erasure job persistence (one current job per subject)."""

    async def get(self, subject_id: str) -> ErasureJob | None:
        """Return the current job for the subject, or None."""

    async def get_by_job_id(self, job_id: str) -> ErasureJob | None:
        """Return the job with job_id, or None."""

    async def save(self, job: ErasureJob) -> None:
        """Persist the job snapshot (replaces the subject's current job)."""
