"""Redis key builders. Single place for key format (DRY)."""

from lifecycle.core.constants import LOCK_KEY_SEP, LOCK_PREFIX_ERASURE


def erasure_lock_key(subject_id: str) -> str:
    """Return the lock key for a subject's erasure job.

    The subject id is the only variable component and always the last one,
    so ids containing the separator cannot collide.
    """
    return f"{LOCK_PREFIX_ERASURE}{LOCK_KEY_SEP}{subject_id}"
