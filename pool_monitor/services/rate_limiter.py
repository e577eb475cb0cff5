"""
Rate limiter for outbound API calls.
"""

import asyncio
import logging
import time
from typing import Awaitable, Callable, Optional

logger = logging.getLogger(__name__)


class RateLimiter:
    """Enforces a minimum delay between successive permits.

    The timestamp is taken when ``wait()`` returns, so the spacing between two
    permits is at least ``delay_ms`` no matter how long the caller worked in
    between. Not safe for concurrent callers; the ingestion loop is sequential.
    """

    def __init__(
        self,
        delay_ms: int = 2000,
        name: str = "default",
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.delay_ms = delay_ms
        self.name = name
        self._clock = clock
        self._sleep = sleep
        self._last_call: Optional[float] = None

    @property
    def delay_seconds(self) -> float:
        return self.delay_ms / 1000.0

    async def wait(self):
        if self._last_call is not None:
            elapsed = self._clock() - self._last_call
            if elapsed < self.delay_seconds:
                wait_time = self.delay_seconds - elapsed
                logger.debug(f"Rate limiting {self.name}: waiting {wait_time * 1000:.0f}ms")
                await self._sleep(wait_time)

        self._last_call = self._clock()
