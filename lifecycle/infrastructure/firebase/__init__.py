"""Firestore and Firebase Authentication adapters (REST, no firebase-admin)."""

from lifecycle.infrastructure.firebase.client import (
    close_firebase,
    init_firebase,
)
from lifecycle.infrastructure.firebase.document_store import FirestoreDocumentStore
from lifecycle.infrastructure.firebase.identity_toolkit import FirebaseIdentityProvider
from lifecycle.infrastructure.firebase.job_repo_firestore import FirestoreJobRepository
from lifecycle.infrastructure.firebase.ledger_firestore import FirestoreLedger

__all__ = [
    "FirebaseIdentityProvider",
    "FirestoreDocumentStore",
    "FirestoreJobRepository",
    "FirestoreLedger",
    "close_firebase",
    "init_firebase",
]
