"""Bounded retry with exponential backoff for transient store failures."""
import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, TypeVar

from eats_notify.domain.common.errors import TransientStoreError
from eats_notify.settings import settings

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class RetryPolicy:
    """How many times to try a store call and how long to wait in between."""

    attempts: int = 3
    base_delay: float = 0.2
    max_delay: float = 2.0

    @classmethod
    def from_settings(cls) -> "RetryPolicy":
        return cls(
            attempts=max(1, settings.store_retry_attempts),
            base_delay=settings.store_retry_base_delay,
            max_delay=settings.store_retry_max_delay,
        )

    def delay_for(self, attempt: int) -> float:
        """Delay after the given failed attempt (1-based): base * 2^(attempt-1), capped."""
        return min(self.base_delay * (2 ** (attempt - 1)), self.max_delay)


NO_RETRY = RetryPolicy(attempts=1, base_delay=0.0, max_delay=0.0)


async def retry_async(
    operation: Callable[[], Awaitable[T]],
    policy: RetryPolicy,
    op_name: str,
    **log_context: Any,
) -> T:
    """Run operation, retrying TransientStoreError up to policy.attempts times.

    Permanent errors propagate immediately. The last transient error propagates
    once attempts are exhausted.
    """
    attempt = 1
    while True:
        try:
            return await operation()
        except TransientStoreError as e:
            if attempt >= policy.attempts:
                logger.warning(
                    "%s failed after %d attempt(s): %s context=%s",
                    op_name, attempt, e, log_context,
                )
                raise
            delay = policy.delay_for(attempt)
            logger.info(
                "%s transient failure (attempt %d/%d), retrying in %.2fs: %s context=%s",
                op_name, attempt, policy.attempts, delay, e, log_context,
            )
            await asyncio.sleep(delay)
            attempt += 1
