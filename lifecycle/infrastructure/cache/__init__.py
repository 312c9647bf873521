"""Redis-backed distributed subject lock."""

from lifecycle.infrastructure.cache.keys import erasure_lock_key
from lifecycle.infrastructure.cache.redis_lock import RedisSubjectLock

__all__ = [
    "RedisSubjectLock",
    "erasure_lock_key",
]
