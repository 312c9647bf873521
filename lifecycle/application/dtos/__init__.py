"""Application DTOs (store records, write operations, export bundles)."""

from lifecycle.application.dtos.store import (
    DeleteOp,
    ExportBundle,
    RawRecord,
    UpdateOp,
    WriteOp,
)

__all__ = [
    "DeleteOp",
    "ExportBundle",
    "RawRecord",
    "UpdateOp",
    "WriteOp",
]
