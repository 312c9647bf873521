"""Erasure job identifiers."""

from cuid2 import Cuid

_JOB_ID_LENGTH = 24
_job_ids = Cuid(length=_JOB_ID_LENGTH)


def new_job_id() -> str:
    """Return a fresh, collision-resistant CUID2 job id."""
    return _job_ids.generate()
