"""Exponential backoff for operations that fail transiently."""

import logging
import time
from collections.abc import Callable, Iterator
from dataclasses import dataclass
from typing import TypeVar

from .exceptions import TransientError

T = TypeVar("T")
logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RetryConfig:
    """Backoff policy. ``max_attempts`` includes the first try."""

    max_attempts: int = 3
    base_delay: float = 0.05
    multiplier: float = 2.0
    max_delay: float = 2.0
    retryable_exceptions: tuple[type[Exception], ...] = (TransientError,)

    def delay_for(self, retry: int) -> float:
        """Seconds to wait before retry number ``retry`` (0-based)."""
        return min(self.base_delay * self.multiplier**retry, self.max_delay)

    def delays(self) -> Iterator[float]:
        return (self.delay_for(retry) for retry in range(self.max_attempts - 1))


def with_retry_sync(
    operation: Callable[[], T],
    config: RetryConfig | None = None,
    operation_name: str = "operation",
    sleep: Callable[[float], None] = time.sleep,
) -> T:
    """Call ``operation`` until it returns, backing off between retryable failures.

    Once attempts run out the last retryable exception propagates. Any other
    exception propagates at once.
    """
    config = config or RetryConfig()

    for attempt, delay in enumerate(config.delays(), start=1):
        try:
            return operation()
        except config.retryable_exceptions as e:
            logger.warning(
                "%s failed (attempt %d/%d), retrying in %.2fs: %s",
                operation_name,
                attempt,
                config.max_attempts,
                delay,
                e,
            )
            sleep(delay)

    try:
        return operation()
    except config.retryable_exceptions as e:
        logger.error("%s failed after %d attempts: %s", operation_name, config.max_attempts, e)
        raise
