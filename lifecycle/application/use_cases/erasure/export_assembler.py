"""Export assembler: everything stored about a subject, grouped by entity type."""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING

from lifecycle.application.dtos.store import ExportBundle, RawRecord
from lifecycle.domain.entities.erasure import RelationEntry, Subject
from lifecycle.domain.enums import SubjectRole
from lifecycle.shared.telemetry.logging import get_logger
from lifecycle.shared.telemetry.tracing import traced
from lifecycle.shared.utils.datetime import utc_now

if TYPE_CHECKING:
    from lifecycle.application.interfaces.repositories import IDocumentStore
    from lifecycle.application.services.relation_catalog import RelationCatalog
    from lifecycle.application.services.retry import RetryPolicy

logger = get_logger(__name__)

DEFAULT_EXPORT_CONCURRENCY = 8


class ExportAssembler:
    """Builds an ExportBundle from the same catalog erasure uses.

    Records are copied verbatim whatever the entry's erasure policy. Queries
    run concurrently, bounded by max_concurrency. Read-only: the ledger is
    never touched, and any failure propagates to the caller.
    """

    def __init__(
        self,
        catalog: "RelationCatalog",
        store: "IDocumentStore",
        retry: "RetryPolicy",
        max_concurrency: int = DEFAULT_EXPORT_CONCURRENCY,
    ) -> None:
        self._catalog = catalog
        self._store = store
        self._retry = retry
        self._max_concurrency = max_concurrency

    @traced("export.assemble")
    async def assemble(self, subject_id: str, role: SubjectRole | str) -> ExportBundle:
        """Return every record referencing the subject, keyed by entity type.

        Raises:
            ValidationException: Unknown role or empty subject id.
            StoreError: A query failed (after retries for transient errors).
        """
        subject = Subject.parse(subject_id, role)
        entries = self._catalog.entries_applicable_to(subject.role)
        semaphore = asyncio.Semaphore(self._max_concurrency)

        async def fetch(entry: RelationEntry) -> list[RawRecord]:
            async with semaphore:
                collection = entry.target_collection
                return await self._retry.run(
                    f"export:query:{collection}",
                    lambda: self._store.query(
                        collection, entry.query_field, subject.subject_id
                    ),
                )

        try:
            async with asyncio.TaskGroup() as group:
                tasks = [group.create_task(fetch(entry)) for entry in entries]
        except ExceptionGroup as failures:
            # The first failure cancelled the remaining queries.
            raise failures.exceptions[0] from None
        bundle = ExportBundle(
            subject_id=subject.subject_id,
            generated_at=utc_now(),
            sections={
                entry.entity_type: list(task.result())
                for entry, task in zip(entries, tasks, strict=True)
            },
        )
        logger.info(
            "Export for subject %s: %d records across %d sections",
            subject.subject_id,
            bundle.total_records,
            len(bundle.sections),
        )
        return bundle
