"""Firestore-backed document store (implements IDocumentStore)."""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any

from lifecycle.application.dtos.store import DeleteOp, RawRecord, UpdateOp, WriteOp
from lifecycle.core.constants import DOCUMENT_ID_FIELD, FIRESTORE_MAX_BATCH_WRITES
from lifecycle.domain.exceptions import TransientStoreError
from lifecycle.infrastructure.exceptions import FirestoreWriteError
from lifecycle.infrastructure.firebase._rest_client import FirestoreRESTClient
from lifecycle.infrastructure.firebase._rest_encoding import decode_fields, document_id

# google.rpc.Code values returned per write by documents:batchWrite
RPC_OK = 0
RPC_NOT_FOUND = 5
RPC_FAILED_PRECONDITION = 9
# Write already applied or target gone: idempotent success.
ALREADY_APPLIED_CODES = frozenset({RPC_OK, RPC_NOT_FOUND, RPC_FAILED_PRECONDITION})
# DEADLINE_EXCEEDED, RESOURCE_EXHAUSTED, ABORTED, INTERNAL, UNAVAILABLE
TRANSIENT_RPC_CODES = frozenset({4, 8, 10, 13, 14})


class FirestoreDocumentStore:
    """Equality queries and idempotent batched writes over Firestore REST."""

    def __init__(
        self,
        client: FirestoreRESTClient,
        batch_size: int = FIRESTORE_MAX_BATCH_WRITES,
    ) -> None:
        self._client = client
        self._batch_size = min(batch_size, FIRESTORE_MAX_BATCH_WRITES)

    @staticmethod
    def _to_record(doc: dict[str, Any], fallback_id: str = "") -> RawRecord:
        return RawRecord(
            id=document_id(doc.get("name", "")) or fallback_id,
            data=decode_fields(doc.get("fields")),
        )

    async def query(self, collection: str, field: str, value: Any) -> list[RawRecord]:
        """Return every document where field == value (``__name__`` = document id)."""
        if field == DOCUMENT_ID_FIELD:
            doc = await self._client.get_document(collection, str(value))
            if doc is None:
                return []
            return [self._to_record(doc, fallback_id=str(value))]
        return [
            self._to_record(doc)
            async for doc in self._client.run_query(collection, field, value)
        ]

    async def batch_apply(self, collection: str, ops: Sequence[WriteOp]) -> None:
        """Apply deletes and masked updates in chunks of at most 500 writes.

        Updates carry an ``exists`` precondition so a vanished document is
        never recreated; NOT_FOUND / FAILED_PRECONDITION count as applied.
        """
        for start in range(0, len(ops), self._batch_size):
            chunk = ops[start : start + self._batch_size]
            writes = [self._to_write(collection, op) for op in chunk]
            statuses = await self._client.batch_write(collection, writes)
            for op, status in zip(chunk, statuses, strict=False):
                code = int(status.get("code", RPC_OK))
                if code in ALREADY_APPLIED_CODES:
                    continue
                if code in TRANSIENT_RPC_CODES:
                    raise TransientStoreError(f"write:{collection}", f"rpc code {code}")
                raise FirestoreWriteError(
                    collection, op.id, code, str(status.get("message", ""))
                )

    def _to_write(self, collection: str, op: WriteOp) -> dict[str, Any]:
        if isinstance(op, DeleteOp):
            return self._client.delete_write(collection, op.id)
        if isinstance(op, UpdateOp):
            return self._client.update_write(collection, op.id, op.fields)
        raise TypeError(f"Unsupported write op: {type(op).__name__}")
