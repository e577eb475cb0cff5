"""
Retry utility with exponential backoff, built on tenacity.
"""

import asyncio
import logging
from typing import Any, Awaitable, Callable, Optional, TypeVar

from tenacity import AsyncRetrying, before_sleep_log, stop_after_attempt, wait_exponential

logger = logging.getLogger(__name__)

T = TypeVar("T")


class RetryHelper:
    """Runs an async operation with bounded exponential backoff.

    After failure ``i`` (0-indexed) the helper waits ``2**i`` seconds before
    the next attempt: 1s, 2s, 4s, ... Every exception is retried; the last one
    is re-raised once ``max_retries`` attempts have failed.
    """

    def __init__(
        self,
        max_retries: int = 3,
        base_delay: float = 1.0,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ):
        self.max_retries = max_retries
        self.base_delay = base_delay
        self._sleep = sleep

    async def with_backoff(self, operation: Callable[[], Awaitable[T]], max_retries: Optional[int] = None) -> T:
        attempts = max_retries if max_retries is not None else self.max_retries

        retrying = AsyncRetrying(
            stop=stop_after_attempt(attempts),
            wait=wait_exponential(multiplier=self.base_delay, exp_base=2),
            before_sleep=before_sleep_log(logger, logging.WARNING),
            sleep=self._sleep,
            reraise=True,
        )
        return await retrying(operation)
