"""Retry with exponential backoff and per-call timeout for store calls.

Only TransientStoreError (network, timeout, rate limit) is retried; any other
StoreError propagates on the first failure.
"""

import asyncio
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import TypeVar

from lifecycle.core.config import Settings
from lifecycle.domain.exceptions import TransientStoreError
from lifecycle.shared.telemetry.logging import get_logger

logger = get_logger(__name__)

T = TypeVar("T")


@dataclass
class RetryPolicy:
    """Retry configuration for store, blob and identity calls.

    Args:
        max_attempts: Maximum number of attempts (including the first one)
        base_delay_seconds: Delay before the second attempt
        max_delay_seconds: Upper bound for any single delay
        timeout_seconds: Per-attempt timeout (None = no timeout)
        sleep: Awaitable sleep; tests inject a recorder
    """

    max_attempts: int = 3
    base_delay_seconds: float = 0.5
    max_delay_seconds: float = 8.0
    timeout_seconds: float | None = None
    sleep: Callable[[float], Awaitable[None]] = field(default=asyncio.sleep, repr=False)

    @classmethod
    def from_settings(cls, settings: Settings) -> "RetryPolicy":
        return cls(
            max_attempts=settings.retry_max_attempts,
            base_delay_seconds=settings.retry_base_delay_seconds,
            max_delay_seconds=settings.retry_max_delay_seconds,
            timeout_seconds=settings.store_timeout_seconds,
        )

    def delay_for(self, attempt: int) -> float:
        """Backoff before retrying after the given (1-based) failed attempt."""
        return min(self.max_delay_seconds, self.base_delay_seconds * 2 ** (attempt - 1))

    async def run(self, operation: str, func: Callable[[], Awaitable[T]]) -> T:
        """Call func until it succeeds or attempts are exhausted.

        Args:
            operation: Label used in logs and errors (e.g. 'query:posts').
            func: Zero-argument coroutine factory; called once per attempt.

        Returns:
            The result of the first successful attempt.

        Raises:
            TransientStoreError: Last transient failure once attempts are exhausted.
            StoreError: Any non-transient store failure, immediately.
        """
        attempt = 0
        while True:
            attempt += 1
            try:
                if self.timeout_seconds is None:
                    return await func()
                try:
                    return await asyncio.wait_for(func(), timeout=self.timeout_seconds)
                except TimeoutError:
                    raise TransientStoreError(
                        operation, f"timeout after {self.timeout_seconds}s"
                    ) from None
            except TransientStoreError as e:
                if attempt >= self.max_attempts:
                    logger.warning(
                        "Giving up on %s after %d attempts: %s",
                        operation,
                        attempt,
                        e.message,
                    )
                    raise
                delay = self.delay_for(attempt)
                logger.warning(
                    "Transient failure on %s (attempt %d/%d), retrying in %.2fs: %s",
                    operation,
                    attempt,
                    self.max_attempts,
                    delay,
                    e.message,
                )
                await self.sleep(delay)
