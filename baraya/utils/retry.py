"""
Bounded retry policy with exponential backoff.

Used for multipart uploads and notification sends. Only the exception
types listed in `retry_on` are retried; anything else propagates on the
first attempt.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Awaitable, Callable, Tuple, Type, TypeVar

from baraya.core.exceptions import TransportError

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class RetryPolicy:
    """
    max_attempts counts the first try. Delay before attempt n+1 is
    base_delay * backoff_factor ** (n - 1), capped at max_delay.
    """
    max_attempts: int = 3
    base_delay: float = 1.0
    backoff_factor: float = 2.0
    max_delay: float = 30.0
    retry_on: Tuple[Type[BaseException], ...] = field(default=(TransportError,))

    def __post_init__(self):
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be >= 1")
        if self.base_delay < 0 or self.backoff_factor < 1:
            raise ValueError("base_delay must be >= 0 and backoff_factor >= 1")

    def delay_for(self, attempt: int) -> float:
        """Seconds to wait after the given (1-based) failed attempt."""
        return min(self.base_delay * (self.backoff_factor ** (attempt - 1)), self.max_delay)

    async def run(self, operation: Callable[[], Awaitable[T]], label: str = "operation") -> T:
        """
        Run an async operation under this policy.

        Args:
            operation: Zero-arg callable returning a fresh awaitable per attempt
            label: Name used in log lines

        Returns:
            The operation's result

        Raises:
            The last retryable exception once attempts are exhausted, or any
            non-retryable exception immediately
        """
        for attempt in range(1, self.max_attempts + 1):
            try:
                return await operation()
            except self.retry_on as e:
                if attempt >= self.max_attempts:
                    logger.error(f"[{label}] All {self.max_attempts} attempts failed: {e}")
                    raise
                delay = self.delay_for(attempt)
                logger.warning(f"[{label} retry {attempt}/{self.max_attempts}] {e}; next attempt in {delay:.1f}s")
                await asyncio.sleep(delay)
        raise RuntimeError("unreachable")  # pragma: no cover


NO_RETRY = RetryPolicy(max_attempts=1, base_delay=0.0)
