"""In-memory adapters for engine tests.

Every fake appends to a shared CallTrace so tests can assert cross-adapter
ordering (e.g. blobs deleted before the owning document). Failures are
injected per operation key with ``fail(key, *errors)``: each call on that key
pops and raises the next error.
"""

import copy
from collections.abc import Sequence
from typing import Any

from lifecycle.application.dtos.store import DeleteOp, RawRecord, UpdateOp, WriteOp
from lifecycle.core.constants import DOCUMENT_ID_FIELD
from lifecycle.domain.entities.erasure import ErasureJob, LedgerEntry
from lifecycle.shared.utils.datetime import utc_now


class CallTrace(list):
    """Ordered (adapter, operation, target) tuples recorded by all fakes."""

    def calls(self, adapter: str, operation: str, target: str | None = None) -> int:
        return sum(
            1
            for a, op, t in self
            if a == adapter and op == operation and (target is None or t == target)
        )

    def index_of(self, adapter: str, operation: str, target: str) -> int:
        return self.index((adapter, operation, target))


class _FailureInjection:
    def __init__(self) -> None:
        self._failures: dict[str, list[Exception]] = {}

    def fail(self, key: str, *errors: Exception) -> None:
        """Queue errors raised by the next calls on key (one per call)."""
        self._failures.setdefault(key, []).extend(errors)

    def _maybe_fail(self, key: str) -> None:
        queued = self._failures.get(key)
        if queued:
            raise queued.pop(0)


class InMemoryDocumentStore(_FailureInjection):
    """Collections of documents keyed by id. Keys: 'query:<coll>', 'write:<coll>'."""

    def __init__(self, trace: CallTrace | None = None) -> None:
        super().__init__()
        self.trace = trace if trace is not None else CallTrace()
        self.collections: dict[str, dict[str, dict[str, Any]]] = {}

    def seed(self, collection: str, doc_id: str, data: dict[str, Any]) -> None:
        self.collections.setdefault(collection, {})[doc_id] = copy.deepcopy(data)

    def docs(self, collection: str) -> dict[str, dict[str, Any]]:
        return self.collections.get(collection, {})

    async def query(self, collection: str, field: str, value: Any) -> list[RawRecord]:
        self.trace.append(("store", "query", collection))
        self._maybe_fail(f"query:{collection}")
        found = []
        for doc_id, data in self.docs(collection).items():
            matches = doc_id == value if field == DOCUMENT_ID_FIELD else data.get(field) == value
            if matches:
                found.append(RawRecord(id=doc_id, data=copy.deepcopy(data)))
        return found

    async def batch_apply(self, collection: str, ops: Sequence[WriteOp]) -> None:
        self.trace.append(("store", "batch_apply", collection))
        self._maybe_fail(f"write:{collection}")
        docs = self.collections.setdefault(collection, {})
        for op in ops:
            if isinstance(op, DeleteOp):
                docs.pop(op.id, None)
            elif isinstance(op, UpdateOp) and op.id in docs:
                docs[op.id].update(copy.deepcopy(op.fields))


class InMemoryBlobStore(_FailureInjection):
    """Flat key space. Key: 'delete:<prefix>'."""

    def __init__(self, trace: CallTrace | None = None) -> None:
        super().__init__()
        self.trace = trace if trace is not None else CallTrace()
        self.keys: set[str] = set()

    def put(self, key: str) -> None:
        self.keys.add(key)

    def count(self, prefix: str) -> int:
        return sum(1 for k in self.keys if k.startswith(prefix))

    async def list_and_delete(self, prefix: str) -> int:
        self.trace.append(("blob", "list_and_delete", prefix))
        self._maybe_fail(f"delete:{prefix}")
        matched = {k for k in self.keys if k.startswith(prefix)}
        self.keys -= matched
        return len(matched)


class InMemoryLedger(_FailureInjection):
    """Keys: 'has:<entity_type>', 'mark:<entity_type>'."""

    def __init__(self, trace: CallTrace | None = None) -> None:
        super().__init__()
        self.trace = trace if trace is not None else CallTrace()
        self.entries: dict[tuple[str, str], LedgerEntry] = {}

    async def has_completed(self, subject_id: str, entity_type: str) -> bool:
        self.trace.append(("ledger", "has_completed", entity_type))
        self._maybe_fail(f"has:{entity_type}")
        return (subject_id, entity_type) in self.entries

    async def mark_completed(self, subject_id: str, entity_type: str) -> None:
        self.trace.append(("ledger", "mark_completed", entity_type))
        self._maybe_fail(f"mark:{entity_type}")
        self.entries[(subject_id, entity_type)] = LedgerEntry(
            subject_id=subject_id, entity_type=entity_type, completed_at=utc_now()
        )

    async def steps_for(self, subject_id: str) -> list[LedgerEntry]:
        return [e for (s, _), e in self.entries.items() if s == subject_id]


class InMemoryJobRepository(_FailureInjection):
    """Stores deep copies so tests observe persisted state only. Key: 'save'."""

    def __init__(self, trace: CallTrace | None = None) -> None:
        super().__init__()
        self.trace = trace if trace is not None else CallTrace()
        self.jobs: dict[str, ErasureJob] = {}

    async def get(self, subject_id: str) -> ErasureJob | None:
        job = self.jobs.get(subject_id)
        return copy.deepcopy(job) if job is not None else None

    async def get_by_job_id(self, job_id: str) -> ErasureJob | None:
        for job in self.jobs.values():
            if job.job_id == job_id:
                return copy.deepcopy(job)
        return None

    async def save(self, job: ErasureJob) -> None:
        self.trace.append(("jobs", "save", job.status.value))
        self._maybe_fail("save")
        self.jobs[job.subject_id] = copy.deepcopy(job)


class FakeIdentityProvider(_FailureInjection):
    """Key: 'revoke'."""

    def __init__(self, trace: CallTrace | None = None) -> None:
        super().__init__()
        self.trace = trace if trace is not None else CallTrace()
        self.revoked: list[str] = []

    async def revoke_identity(self, subject_id: str) -> None:
        self.trace.append(("identity", "revoke_identity", subject_id))
        self._maybe_fail("revoke")
        self.revoked.append(subject_id)


def seed_scout(
    store: InMemoryDocumentStore, blob_store: InMemoryBlobStore, subject_id: str = "s1"
) -> None:
    """Seed the scout from the reference scenario.

    1 avatar blob, 2 channel messages, 1 health record, 3 challenge
    submissions, 2 parent relations, plus the user document and unrelated
    records belonging to someone else.
    """
    store.seed("users", subject_id, {"firstName": "Lina", "role": "scout"})
    blob_store.put(f"avatars/{subject_id}/avatar.jpg")
    store.seed(
        "channelMessages",
        "m1",
        {"authorId": subject_id, "authorName": "Lina", "content": "Tente montée!", "channelId": "c1"},
    )
    store.seed(
        "channelMessages",
        "m2",
        {"authorId": subject_id, "authorName": "Lina", "content": "On part à 9h", "channelId": "c1"},
    )
    store.seed(
        "healthRecords",
        "h1",
        {"scoutId": subject_id, "allergies": ["pollen"], "bloodType": "A+"},
    )
    for i in range(3):
        store.seed("challengeSubmissions", f"cs{i}", {"scoutId": subject_id, "challengeId": f"ch{i}"})
    store.seed("parentScoutRelations", "r1", {"scoutId": subject_id, "parentId": "p1"})
    store.seed("parentScoutRelations", "r2", {"scoutId": subject_id, "parentId": "p2"})

    # Someone else's data must survive.
    store.seed("users", "other", {"firstName": "Tom", "role": "scout"})
    store.seed("channelMessages", "m3", {"authorId": "other", "authorName": "Tom", "content": "Salut"})
    store.seed("healthRecords", "h2", {"scoutId": "other", "allergies": []})
    blob_store.put("avatars/other/avatar.jpg")
