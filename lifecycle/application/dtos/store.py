"""DTOs exchanged with the document store and returned by export."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any


@dataclass(frozen=True)
class RawRecord:
    """One stored document: its id and field map, copied verbatim."""

    id: str
    data: dict[str, Any]


@dataclass(frozen=True)
class DeleteOp:
    """Delete a document by id. Deleting a missing document is a no-op."""

    id: str


@dataclass(frozen=True)
class UpdateOp:
    """Overwrite the given fields of an existing document; never creates one."""

    id: str
    fields: dict[str, Any]


WriteOp = DeleteOp | UpdateOp


@dataclass(kw_only=True)
class ExportBundle:
    """Everything stored about a subject, grouped by entity type. Never persisted."""

    subject_id: str
    generated_at: datetime
    sections: dict[str, list[RawRecord]] = field(default_factory=dict)

    @property
    def total_records(self) -> int:
        """Total number of records across all sections."""
        return sum(len(records) for records in self.sections.values())
