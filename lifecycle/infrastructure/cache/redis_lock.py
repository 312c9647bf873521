"""Redis-based per-subject lock for multi-instance deployments.

SET NX PX with a random token; release deletes the key only if it still
holds our token (Lua compare-and-delete), so an expired lock taken over by
another instance is never released by the previous holder. While held, a
heartbeat task extends the TTL with a compare-and-PEXPIRE on the same token.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
import secrets

import redis.asyncio as redis

from lifecycle.core.config import Settings
from lifecycle.domain.exceptions import TransientStoreError
from lifecycle.infrastructure.cache.keys import erasure_lock_key

logger = logging.getLogger(__name__)

_RELEASE_SCRIPT = """
if redis.call("get", KEYS[1]) == ARGV[1] then
    return redis.call("del", KEYS[1])
else
    return 0
end
"""

_RENEW_SCRIPT = """
if redis.call("get", KEYS[1]) == ARGV[1] then
    return redis.call("pexpire", KEYS[1], ARGV[2])
else
    return 0
end
"""


class RedisSubjectLock:
    """Distributed, non-blocking lock keyed by subject id.

    The TTL bounds how long a crashed holder blocks the subject; a live
    holder renews it every ``renew_interval_seconds`` (a third of the TTL by
    default). Call connect() at startup and disconnect() at shutdown.
    """

    def __init__(
        self,
        redis_client: redis.Redis | None = None,
        ttl_seconds: int = 900,
        settings: Settings | None = None,
        renew_interval_seconds: float | None = None,
    ) -> None:
        """Initialize the lock.

        Args:
            redis_client: Optional Redis client for testing or DI.
            ttl_seconds: Lock expiry in seconds.
            settings: Connection settings used by connect() when no client is given.
            renew_interval_seconds: Heartbeat period; defaults to ttl_seconds / 3.
        """
        self.redis = redis_client
        self.ttl_ms = ttl_seconds * 1000
        self.renew_interval = renew_interval_seconds or ttl_seconds / 3
        self.settings = settings
        self._tokens: dict[str, str] = {}
        self._heartbeats: dict[str, asyncio.Task[None]] = {}

    async def connect(self) -> None:
        """Open the Redis connection. Call on app startup.

        Unlike a cache, the lock cannot degrade silently: connection errors propagate.
        """
        if self.redis is not None or self.settings is None:
            return
        s = self.settings
        self.redis = redis.Redis(
            host=s.redis_host,
            port=s.redis_port,
            db=s.redis_db,
            password=s.redis_password.get_secret_value() if s.redis_password else None,
            decode_responses=True,
            socket_connect_timeout=5,
            socket_keepalive=True,
        )
        await self.redis.ping()
        logger.info("Redis lock connected: %s:%s", s.redis_host, s.redis_port)

    async def disconnect(self) -> None:
        """Stop every heartbeat and close the Redis connection. Call on app shutdown."""
        for subject_id in list(self._heartbeats):
            await self._stop_heartbeat(subject_id)
        if self.redis is not None:
            await self.redis.aclose()
            self.redis = None
            logger.info("Redis lock disconnected")

    def _client(self) -> redis.Redis:
        if self.redis is None:
            raise TransientStoreError("lock", "redis not connected")
        return self.redis

    def is_renewing(self, subject_id: str) -> bool:
        task = self._heartbeats.get(subject_id)
        return task is not None and not task.done()

    async def acquire(self, subject_id: str) -> bool:
        """Take the lock for subject_id; return False if another holder has it."""
        token = secrets.token_hex(16)
        try:
            acquired = await self._client().set(
                erasure_lock_key(subject_id), token, nx=True, px=self.ttl_ms
            )
        except (redis.ConnectionError, redis.TimeoutError) as e:
            raise TransientStoreError("lock:acquire", type(e).__name__) from e
        if not acquired:
            return False
        self._tokens[subject_id] = token
        self._heartbeats[subject_id] = asyncio.create_task(
            self._heartbeat(subject_id, token), name=f"lock-heartbeat-{subject_id}"
        )
        return True

    async def _heartbeat(self, subject_id: str, token: str) -> None:
        key = erasure_lock_key(subject_id)
        while True:
            await asyncio.sleep(self.renew_interval)
            try:
                renewed = await self._client().eval(_RENEW_SCRIPT, 1, key, token, self.ttl_ms)
            except (redis.ConnectionError, redis.TimeoutError, TransientStoreError) as e:
                # Retried next beat; the key stays valid until its current TTL runs out.
                logger.warning("Lock renewal for subject %s failed: %s", subject_id, e)
                continue
            if not renewed:
                logger.error(
                    "Lock for subject %s was lost before renewal (ttl=%dms)",
                    subject_id,
                    self.ttl_ms,
                )
                return

    async def _stop_heartbeat(self, subject_id: str) -> None:
        task = self._heartbeats.pop(subject_id, None)
        if task is None:
            return
        task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await task

    async def release(self, subject_id: str) -> None:
        """Stop renewing and release the lock if this instance still holds it."""
        await self._stop_heartbeat(subject_id)
        token = self._tokens.pop(subject_id, None)
        if token is None:
            return
        try:
            released = await self._client().eval(
                _RELEASE_SCRIPT, 1, erasure_lock_key(subject_id), token
            )
        except (redis.ConnectionError, redis.TimeoutError) as e:
            raise TransientStoreError("lock:release", type(e).__name__) from e
        if not released:
            logger.warning(
                "Lock for subject %s expired before release (ttl=%dms)",
                subject_id,
                self.ttl_ms,
            )
