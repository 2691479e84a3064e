"""Bounded async retry with exponential backoff and jitter."""

import asyncio
import random
from dataclasses import dataclass
from typing import Awaitable, Callable, TypeVar

from catalog.infra.logging import get_logger

logger = get_logger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class RetryConfig:
    """Configuration for retry behavior."""

    max_attempts: int = 3
    base_delay: float = 1.0
    max_delay: float = 30.0
    exponential_base: float = 2.0
    jitter: bool = True

    def calculate_delay(self, attempt: int) -> float:
        """Delay before the retry that follows attempt (0-based)."""
        delay = min(self.base_delay * (self.exponential_base ** attempt), self.max_delay)
        if self.jitter:
            delay *= random.uniform(0.5, 1.5)
        return delay


async def retry_async(
    operation: Callable[[], Awaitable[T]],
    config: RetryConfig,
    should_retry: Callable[[Exception], bool],
    description: str = "operation",
) -> T:
    """Run operation until it succeeds or attempts run out.

    Args:
        operation: Zero-argument coroutine factory
        config: Attempt bound and backoff parameters
        should_retry: Decides whether a raised exception is transient
        description: Label for log lines

    Returns:
        The operation's result

    Raises:
        The last exception once attempts are exhausted, or the first
        exception should_retry rejects
    """
    for attempt in range(config.max_attempts):
        try:
            return await operation()
        except Exception as e:
            last_attempt = attempt >= config.max_attempts - 1
            if last_attempt or not should_retry(e):
                logger.error(
                    "Giving up",
                    operation=description,
                    attempt=attempt + 1,
                    max_attempts=config.max_attempts,
                    error=str(e),
                )
                raise
            delay = config.calculate_delay(attempt)
            logger.warning(
                "Attempt failed, retrying",
                operation=description,
                attempt=attempt + 1,
                max_attempts=config.max_attempts,
                delay_s=round(delay, 2),
                error=str(e),
            )
            await asyncio.sleep(delay)
    raise RuntimeError("retry_async requires max_attempts >= 1")
