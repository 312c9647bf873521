"""Domain enumerations for the data lifecycle engine.

Enums represent fixed sets of domain values (roles, policies, job and step
states). Values are persisted in the job collection; keep them stable.
"""

from enum import Enum


class SubjectRole(str, Enum):
    """Role of the subject in the scouting unit; selects applicable relations."""

    SCOUT = "scout"
    PARENT = "parent"
    ANIMATOR = "animator"
    WECAMP_ADMIN = "wecamp_admin"

    @classmethod
    def values(cls) -> list[str]:
        """Return all valid role values as strings."""
        return [role.value for role in cls]


class ErasurePolicy(str, Enum):
    """What the cascade does with records referencing the subject."""

    HARD_DELETE = "hard_delete"
    ANONYMIZE = "anonymize"
    DETACH = "detach"


class JobStatus(str, Enum):
    """Erasure job state.

    PENDING → IN_PROGRESS → {COMPLETE | PARTIAL | FAILED}; PARTIAL → IN_PROGRESS
    on resume. COMPLETE and FAILED are terminal.
    """

    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    PARTIAL = "partial"
    COMPLETE = "complete"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (JobStatus.COMPLETE, JobStatus.FAILED)


class StepOutcome(str, Enum):
    """Outcome of one cascade step.

    SKIPPED means the ledger already held the step, so nothing was executed.
    """

    OK = "ok"
    SKIPPED = "skipped"
    ERROR = "error"
