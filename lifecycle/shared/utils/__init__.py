"""Small shared helpers (UTC datetimes, id generation)."""

from lifecycle.shared.utils.datetime import ensure_utc, utc_now
from lifecycle.shared.utils.generators import new_job_id

__all__ = [
    "ensure_utc",
    "new_job_id",
    "utc_now",
]
