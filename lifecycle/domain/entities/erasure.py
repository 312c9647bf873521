"""Erasure domain entities.

Subject, relation catalog entries, erasure jobs with their step results, and
ledger entries. Pure domain models; persistence mapping lives in the
Firestore repositories.
"""

from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime
from string import Formatter
from types import MappingProxyType
from typing import Any

from lifecycle.core.constants import (
    BLOB_RECORD_KEY,
    BLOB_SUBJECT_KEY,
    CREDENTIAL_STEP,
)
from lifecycle.domain.enums import ErasurePolicy, JobStatus, StepOutcome, SubjectRole
from lifecycle.domain.exceptions import (
    AuthRevocationError,
    PartialCascadeError,
    PolicyViolationError,
    ValidationException,
)


@dataclass(frozen=True, kw_only=True)
class Subject:
    """The person whose data is erased or exported. Validation runs on construction."""

    subject_id: str
    role: SubjectRole

    def __post_init__(self) -> None:
        if not self.subject_id or not self.subject_id.strip():
            raise ValidationException("Subject ID is required", field="subject_id")
        if "/" in self.subject_id:
            raise ValidationException(
                "Subject ID must not contain '/'", field="subject_id"
            )

    @classmethod
    def parse(cls, subject_id: str, role: SubjectRole | str) -> "Subject":
        """Build a Subject from raw caller input.

        Args:
            subject_id: Store user id.
            role: SubjectRole or its string value.

        Raises:
            ValidationException: If the role is unknown or the id is empty.
        """
        if not isinstance(role, SubjectRole):
            try:
                role = SubjectRole(role)
            except ValueError:
                raise ValidationException(
                    f"Unknown role {role!r}; expected one of {SubjectRole.values()}",
                    field="role",
                ) from None
        return cls(subject_id=subject_id, role=role)


@dataclass(frozen=True, kw_only=True)
class RelationEntry:
    """How one entity type referencing a subject is handled during erasure.

    entity_type is the unique logical name and the ledger key; several entries
    may target the same collection through different query fields.

    blob_prefix is a template. {subject_id} expands to the subject and {id} to
    the record's document id; any other placeholder is read from the record,
    so per-record assets (e.g. a submission's proof photo) can be addressed.
    """

    entity_type: str
    query_field: str
    policy: ErasurePolicy
    order: int
    collection: str = ""
    roles: frozenset[SubjectRole] = frozenset()
    identifying_fields: Mapping[str, Any] = field(
        default_factory=lambda: MappingProxyType({}), hash=False
    )
    detach_fields: tuple[str, ...] = ()
    blob_prefix: str | None = None

    def __post_init__(self) -> None:
        object.__setattr__(
            self, "identifying_fields", MappingProxyType(dict(self.identifying_fields))
        )

    @property
    def target_collection(self) -> str:
        return self.collection or self.entity_type

    @property
    def blob_prefix_fields(self) -> frozenset[str]:
        """Placeholder names used by the blob prefix template.

        Raises:
            ValueError: If the template has unbalanced braces.
        """
        if not self.blob_prefix:
            return frozenset()
        return frozenset(
            name for _, name, _, _ in Formatter().parse(self.blob_prefix) if name is not None
        )

    @property
    def has_record_blobs(self) -> bool:
        """True when the blob prefix depends on each record, not only on the subject."""
        return bool(self.blob_prefix_fields - {BLOB_SUBJECT_KEY})

    def applies_to(self, role: SubjectRole) -> bool:
        """Return True if the entry applies to the role (empty roles = all)."""
        return not self.roles or role in self.roles

    def blob_prefix_for(
        self,
        subject_id: str,
        record_id: str | None = None,
        data: Mapping[str, Any] | None = None,
    ) -> str | None:
        """Expand the blob prefix template, or None when it cannot be resolved.

        A placeholder whose value is missing, empty, not a string or contains
        "/" leaves the template unresolved, so a prefix never widens to a
        parent directory.
        """
        if not self.blob_prefix:
            return None
        values: dict[str, Any] = dict(data or {})
        values[BLOB_RECORD_KEY] = record_id
        values[BLOB_SUBJECT_KEY] = subject_id
        parts: list[str] = []
        for literal, name, _, _ in Formatter().parse(self.blob_prefix):
            parts.append(literal)
            if name is None:
                continue
            value = values.get(name)
            if not isinstance(value, str) or not value or "/" in value:
                return None
            parts.append(value)
        return "".join(parts)

    def detached_fields(self) -> dict[str, None]:
        """Field map cleared by DETACH: the query field plus detach_fields."""
        cleared: dict[str, None] = {self.query_field: None}
        for name in self.detach_fields:
            cleared[name] = None
        return cleared


@dataclass(kw_only=True)
class StepResult:
    """Outcome of one cascade step (or of the final credential revocation)."""

    entity_type: str
    outcome: StepOutcome
    records_affected: int = 0
    blobs_deleted: int = 0
    error_kind: str | None = None
    finished_at: datetime | None = None

    @property
    def is_ok(self) -> bool:
        return self.outcome in (StepOutcome.OK, StepOutcome.SKIPPED)


@dataclass(kw_only=True)
class ErasureJob:
    """One erasure request for a subject and its per-step progress.

    Mutated only by the orchestrator. An OK (or SKIPPED) step result is never
    overwritten; an ERROR result is replaced when the step is retried.
    """

    job_id: str
    subject_id: str
    role: SubjectRole
    status: JobStatus = JobStatus.PENDING
    steps: list[StepResult] = field(default_factory=list)
    started_at: datetime | None = None
    completed_at: datetime | None = None
    updated_at: datetime | None = None
    attempts: int = 0
    last_error: str | None = None
    credential_revoked: bool = False

    @property
    def is_terminal(self) -> bool:
        return self.status.is_terminal

    def step_for(self, entity_type: str) -> StepResult | None:
        """Return the recorded result for entity_type, if any."""
        for step in self.steps:
            if step.entity_type == entity_type:
                return step
        return None

    def record_step(self, result: StepResult) -> None:
        """Record a step result, replacing a previous ERROR result for the same type.

        Raises:
            PolicyViolationError: If an OK result for the type already exists.
        """
        for index, existing in enumerate(self.steps):
            if existing.entity_type != result.entity_type:
                continue
            if existing.is_ok:
                raise PolicyViolationError(
                    f"Step {result.entity_type} already completed for job {self.job_id}",
                    entity_type=result.entity_type,
                )
            self.steps[index] = result
            return
        self.steps.append(result)

    def failed_step(self) -> StepResult | None:
        """Return the first ERROR step result, if any."""
        for step in self.steps:
            if step.outcome == StepOutcome.ERROR:
                return step
        return None

    def raise_for_status(self) -> None:
        """Raise the exception matching a non-COMPLETE outcome.

        COMPLETE, PENDING and IN_PROGRESS jobs return silently.

        Raises:
            PolicyViolationError: Job is FAILED.
            AuthRevocationError: Cascade finished but the credential is live.
            PartialCascadeError: A step failed or the job was cancelled.
        """
        if self.status == JobStatus.FAILED:
            raise PolicyViolationError(self.last_error or "Erasure job failed")
        if self.status != JobStatus.PARTIAL:
            return
        failed = self.failed_step()
        if failed is None:
            raise PartialCascadeError(
                self.subject_id,
                "",
                "Cancelled",
                reason=self.last_error or "cancelled",
            )
        if failed.entity_type == CREDENTIAL_STEP:
            raise AuthRevocationError(self.subject_id, reason=self.last_error or "")
        raise PartialCascadeError(
            self.subject_id,
            failed.entity_type,
            failed.error_kind or "StoreError",
            reason=self.last_error or "",
        )


@dataclass(frozen=True, kw_only=True)
class LedgerEntry:
    """Durable proof that one entity type was fully processed for a subject."""

    subject_id: str
    entity_type: str
    completed_at: datetime
