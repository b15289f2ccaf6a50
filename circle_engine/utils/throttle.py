"""
Call Throttle

Keeps a minimum spacing between successive external calls so the batch loops
stay under the data provider's rate limit.
"""

import asyncio
import logging
import time
from typing import Callable, Optional

logger = logging.getLogger(__name__)


class Throttle:
    """
    Async minimum-interval throttle.

    Usage:
        throttle = Throttle(2.0)
        for item in items:
            await throttle.wait()
            await client.fetch(item)

    The first wait() returns immediately; every later wait() sleeps just long
    enough that at least `min_interval` seconds separate consecutive returns.
    """

    def __init__(
        self,
        min_interval: float,
        clock: Optional[Callable[[], float]] = None,
        sleep: Optional[Callable] = None,
    ):
        self.min_interval = max(0.0, float(min_interval))
        self._clock = clock or time.monotonic
        self._sleep = sleep or asyncio.sleep
        self._last: Optional[float] = None

    async def wait(self) -> float:
        """Wait for the next slot. Returns the seconds actually slept."""
        slept = 0.0
        if self._last is not None and self.min_interval > 0:
            elapsed = self._clock() - self._last
            remaining = self.min_interval - elapsed
            if remaining > 0:
                logger.debug(f"Throttling for {remaining:.2f}s")
                await self._sleep(remaining)
                slept = remaining
        self._last = self._clock()
        return slept

    def reset(self):
        """Forget the last call so the next wait() returns immediately."""
        self._last = None
