"""Infrastructure exceptions for store, blob storage and identity calls.

All extend StoreError so the orchestrator treats them as non-retriable step
failures and presentation maps them to HTTP responses consistently.
Transient failures are raised as TransientStoreError directly.
"""

from lifecycle.domain.exceptions import StoreError


class FirestoreRequestError(StoreError):
    """Firestore REST call failed with a non-retriable status."""

    def __init__(self, operation: str, status_code: int, reason: str) -> None:
        super().__init__(
            f"Firestore {operation} failed with HTTP {status_code}",
            "FIRESTORE_ERROR",
            {"operation": operation, "status_code": status_code, "reason": reason},
        )
        self.status_code = status_code


class FirestoreWriteError(StoreError):
    """A single write inside documents:batchWrite was rejected."""

    def __init__(self, collection: str, doc_id: str, rpc_code: int, reason: str) -> None:
        super().__init__(
            f"Firestore rejected write to {collection}/{doc_id} (rpc code {rpc_code})",
            "FIRESTORE_WRITE_ERROR",
            {
                "collection": collection,
                "doc_id": doc_id,
                "rpc_code": rpc_code,
                "reason": reason,
            },
        )
        self.rpc_code = rpc_code


class IdentityProviderError(StoreError):
    """Identity Toolkit rejected an account deletion."""

    def __init__(self, subject_id: str, reason: str) -> None:
        super().__init__(
            f"Identity provider rejected deletion of {subject_id}",
            "IDENTITY_PROVIDER_ERROR",
            {"subject_id": subject_id, "reason": reason},
        )


class StorageException(StoreError):
    """Base exception for blob storage operations."""


class StorageDeleteError(StorageException):
    """Blob deletion failed."""

    def __init__(self, file_path: str, reason: str) -> None:
        super().__init__(
            f"Failed to delete file: {file_path}",
            "STORAGE_DELETE_ERROR",
            {"file_path": file_path, "reason": reason},
        )


class StoragePermissionError(StorageException):
    """Insufficient permissions for storage operation."""

    def __init__(self, file_path: str, operation: str) -> None:
        super().__init__(
            f"Permission denied for {operation} on {file_path}",
            "STORAGE_PERMISSION_ERROR",
            {"file_path": file_path, "operation": operation},
        )


class StorageInvalidPrefixError(StorageException):
    """Prefix would escape the storage root or is empty."""

    def __init__(self, prefix: str) -> None:
        super().__init__(
            f"Invalid storage prefix: {prefix!r}",
            "STORAGE_INVALID_PREFIX",
            {"prefix": prefix},
        )
