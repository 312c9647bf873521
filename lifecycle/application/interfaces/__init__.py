"""Application ports (repository and service protocols)."""

from lifecycle.application.interfaces.repositories import (
    IDocumentStore,
    IJobRepository,
    ILedger,
)
from lifecycle.application.interfaces.services import (
    IBlobStore,
    IIdentityProvider,
    ISubjectLock,
)

__all__ = [
    "IBlobStore",
    "IDocumentStore",
    "IIdentityProvider",
    "IJobRepository",
    "ILedger",
    "ISubjectLock",
]
