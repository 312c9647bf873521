"""Application services (catalog, retry policy, credential revocation, locking)."""

from lifecycle.application.services.credential_revoker import CredentialRevoker
from lifecycle.application.services.relation_catalog import (
    RelationCatalog,
    default_catalog,
)
from lifecycle.application.services.retry import RetryPolicy
from lifecycle.application.services.subject_lock import InProcessSubjectLock

__all__ = [
    "CredentialRevoker",
    "InProcessSubjectLock",
    "RelationCatalog",
    "RetryPolicy",
    "default_catalog",
]
