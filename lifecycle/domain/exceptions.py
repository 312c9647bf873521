"""Domain exceptions for the data lifecycle engine.

Defines the error taxonomy of erasure and export. These exceptions are
independent of infrastructure concerns; the presentation layer maps them
to HTTP responses in exception handlers.
"""

from typing import Any


class LifecycleException(Exception):
    """Base exception for all lifecycle engine errors.

    Attributes:
        message: Human-readable error description.
        error_code: Machine-readable error code.
        details: Additional error context (e.g. subject_id, entity_type).
    """

    def __init__(
        self,
        message: str,
        error_code: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize the exception.

        Args:
            message: Human-readable error description.
            error_code: Optional machine-readable code; defaults to class name.
            details: Optional dict of extra context.
        """
        self.message = message
        self.error_code = error_code or self.__class__.__name__
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> dict[str, Any]:
        """Return JSON-serializable error payload (error, message, details)."""
        return {
            "error": self.error_code,
            "message": self.message,
            "details": self.details,
        }


class ValidationException(LifecycleException):
    """Raised when input validation fails (e.g. unknown role or empty subject id)."""

    def __init__(self, message: str, field: str | None = None) -> None:
        details = {"field": field} if field else {}
        super().__init__(message, "VALIDATION_ERROR", details)


class AuthenticationException(LifecycleException):
    """Raised when the admin API key is missing or invalid."""

    def __init__(self, message: str = "Authentication failed") -> None:
        super().__init__(message, "AUTHENTICATION_ERROR")


class ResourceNotFoundException(LifecycleException):
    """Raised when a requested resource (e.g. erasure job) does not exist."""

    def __init__(self, resource_type: str, resource_id: str) -> None:
        """Initialize with resource type and id.

        Args:
            resource_type: Kind of resource (e.g. 'erasure_job').
            resource_id: The identifier that was not found.
        """
        super().__init__(
            f"{resource_type} not found: {resource_id}",
            "RESOURCE_NOT_FOUND",
            {"resource_type": resource_type, "resource_id": resource_id},
        )


class EngineNotConfiguredException(LifecycleException):
    """Raised when the engine is called but no store backend was configured."""

    def __init__(self, reason: str = "Document store is not configured") -> None:
        super().__init__(reason, "ENGINE_NOT_CONFIGURED")


class StoreError(LifecycleException):
    """Non-retriable failure of a document, blob, or identity store call.

    Raised for permission errors, malformed requests and any other failure
    that a retry will not fix. A step failing with StoreError leaves the job
    PARTIAL without further attempts.
    """

    def __init__(
        self,
        message: str,
        error_code: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, error_code or "STORE_ERROR", details)


class TransientStoreError(StoreError):
    """Network, timeout, or rate-limit failure; retried with backoff."""

    def __init__(self, operation: str, reason: str) -> None:
        """Initialize with the failed operation and reason.

        Args:
            operation: Store operation (e.g. 'query:channelMessages').
            reason: Short cause (e.g. 'timeout', 'HTTP 503').
        """
        super().__init__(
            f"Transient store failure during {operation}: {reason}",
            "TRANSIENT_STORE_ERROR",
            {"operation": operation, "reason": reason},
        )


class PolicyViolationError(LifecycleException):
    """A relation entry is invalid or an entity type is missing from the catalog.

    This is a code or configuration bug, not a runtime condition: the job
    becomes FAILED and is never retried automatically.
    """

    def __init__(self, message: str, entity_type: str | None = None) -> None:
        details = {"entity_type": entity_type} if entity_type else {}
        super().__init__(message, "POLICY_VIOLATION", details)


class PartialCascadeError(LifecycleException):
    """One cascade step exhausted its retries; the job is PARTIAL and resumable."""

    def __init__(
        self,
        subject_id: str,
        entity_type: str,
        error_kind: str,
        reason: str = "",
    ) -> None:
        """Initialize with the failed step.

        Args:
            subject_id: Subject whose cascade halted.
            entity_type: Catalog entry that failed.
            error_kind: Class name of the underlying error.
            reason: Optional short description of the cause.
        """
        super().__init__(
            f"Erasure halted at {entity_type} for subject {subject_id}",
            "PARTIAL_CASCADE",
            {
                "subject_id": subject_id,
                "entity_type": entity_type,
                "error_kind": error_kind,
                "reason": reason,
            },
        )
        self.subject_id = subject_id
        self.entity_type = entity_type
        self.error_kind = error_kind


class AuthRevocationError(LifecycleException):
    """Cascade succeeded but the subject's identity could not be revoked.

    Data is erased while the credential is still live; requires operator
    escalation rather than silent retry.
    """

    def __init__(self, subject_id: str, reason: str = "") -> None:
        super().__init__(
            f"Identity revocation failed for subject {subject_id}",
            "AUTH_REVOCATION_FAILED",
            {"subject_id": subject_id, "reason": reason},
        )
        self.subject_id = subject_id


class JobAlreadyRunning(LifecycleException):
    """Raised when an erasure job for the subject is already in flight."""

    def __init__(self, subject_id: str) -> None:
        super().__init__(
            f"An erasure job is already running for subject {subject_id}",
            "JOB_ALREADY_RUNNING",
            {"subject_id": subject_id},
        )
        self.subject_id = subject_id
