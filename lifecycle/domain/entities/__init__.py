"""Domain entities.

Pure domain models; no persistence concerns.
"""

from lifecycle.domain.entities.erasure import (
    ErasureJob,
    LedgerEntry,
    RelationEntry,
    StepResult,
    Subject,
)

__all__ = [
    "ErasureJob",
    "LedgerEntry",
    "RelationEntry",
    "StepResult",
    "Subject",
]
