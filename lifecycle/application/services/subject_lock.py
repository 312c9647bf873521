"""In-process per-subject lock for single-instance deployments.

Multi-instance deployments use RedisSubjectLock instead (same protocol).
"""

import asyncio


class InProcessSubjectLock:
    """Non-blocking mutual exclusion per subject id within one event loop."""

    def __init__(self) -> None:
        self._held: set[str] = set()
        self._guard = asyncio.Lock()

    async def acquire(self, subject_id: str) -> bool:
        """Take the lock for subject_id; return False if it is already held."""
        async with self._guard:
            if subject_id in self._held:
                return False
            self._held.add(subject_id)
            return True

    async def release(self, subject_id: str) -> None:
        async with self._guard:
            self._held.discard(subject_id)

    def is_held(self, subject_id: str) -> bool:
        return subject_id in self._held
