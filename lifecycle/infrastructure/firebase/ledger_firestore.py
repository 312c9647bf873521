"""Firestore-backed consistency ledger (implements ILedger).

One document per (subject_id, entity_type) in erasureLedger; marking a step
is a single-document upsert, so repeating it is harmless.
"""

from __future__ import annotations

from lifecycle.domain.entities.erasure import LedgerEntry
from lifecycle.infrastructure.firebase._rest_client import FirestoreRESTClient
from lifecycle.infrastructure.firebase._rest_encoding import decode_fields
from lifecycle.infrastructure.firebase.collections import (
    COLLECTION_ERASURE_LEDGER,
    ledger_document_id,
)
from lifecycle.shared.utils.datetime import ensure_utc, utc_now


class FirestoreLedger:
    """Durable record of completed erasure steps."""

    def __init__(self, client: FirestoreRESTClient) -> None:
        self._client = client

    async def has_completed(self, subject_id: str, entity_type: str) -> bool:
        doc = await self._client.get_document(
            COLLECTION_ERASURE_LEDGER, ledger_document_id(subject_id, entity_type)
        )
        return doc is not None

    async def mark_completed(self, subject_id: str, entity_type: str) -> None:
        await self._client.set_document(
            COLLECTION_ERASURE_LEDGER,
            ledger_document_id(subject_id, entity_type),
            {
                "subject_id": subject_id,
                "entity_type": entity_type,
                "completed_at": utc_now(),
            },
        )

    async def steps_for(self, subject_id: str) -> list[LedgerEntry]:
        """Return the subject's ledger entries, oldest first."""
        entries = []
        async for doc in self._client.run_query(
            COLLECTION_ERASURE_LEDGER, "subject_id", subject_id
        ):
            data = decode_fields(doc.get("fields"))
            entries.append(
                LedgerEntry(
                    subject_id=data.get("subject_id", subject_id),
                    entity_type=data.get("entity_type", ""),
                    completed_at=ensure_utc(data.get("completed_at")) or utc_now(),
                )
            )
        return sorted(entries, key=lambda e: e.completed_at)
