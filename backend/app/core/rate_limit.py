"""
Rate limiting policies

Two policies guard the upstream pricing service:

- ``TokenBucket`` paces consecutive upstream calls inside one request or
  job. It holds at most ``capacity`` tokens and regains
  ``refill_per_second`` tokens per second; ``acquire()`` waits until a whole
  token is available and consumes it.
- ``DailyCallLimiter`` is a fixed window over the current UTC calendar day.
  The count of calls already made in the window comes from a caller
  supplied async counter (the price cache counts its writes), and a call is
  allowed only while that count is below ``capacity``.

Clocks and sleep are injectable so both policies are deterministic in tests.
"""

import asyncio
import logging
import time
from datetime import datetime, timedelta, timezone
from typing import Awaitable, Callable

from app.core.exceptions import RateLimitExceededError

logger = logging.getLogger(__name__)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class TokenBucket:
    """Token bucket used to space out upstream requests"""

    def __init__(
        self,
        capacity: int,
        refill_per_second: float,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        if capacity < 1:
            raise ValueError("capacity must be at least 1")
        if refill_per_second <= 0:
            raise ValueError("refill_per_second must be positive")

        self.capacity = capacity
        self.refill_per_second = refill_per_second
        self._clock = clock
        self._sleep = sleep
        self._tokens = float(capacity)
        self._updated_at = clock()
        self._lock = asyncio.Lock()

    @property
    def tokens(self) -> float:
        self._refill()
        return self._tokens

    def _refill(self) -> None:
        now = self._clock()
        elapsed = max(0.0, now - self._updated_at)
        self._tokens = min(self.capacity, self._tokens + elapsed * self.refill_per_second)
        self._updated_at = now

    def try_acquire(self) -> bool:
        """Take a token if one is available right now"""
        self._refill()
        if self._tokens >= 1:
            self._tokens -= 1
            return True
        return False

    async def acquire(self) -> float:
        """Wait for a token and take it. Returns the seconds spent waiting."""
        waited = 0.0
        async with self._lock:
            while not self.try_acquire():
                delay = (1 - self._tokens) / self.refill_per_second
                waited += delay
                await self._sleep(delay)
        if waited:
            logger.debug(f"Token bucket waited {waited:.3f}s")
        return waited


class DailyCallLimiter:
    """Fixed-window ceiling on upstream calls per UTC day"""

    def __init__(
        self,
        counter: Callable[[datetime], Awaitable[int]],
        capacity: int,
        clock: Callable[[], datetime] = utcnow,
    ):
        self._counter = counter
        self.capacity = capacity
        self._clock = clock

    def window_start(self) -> datetime:
        now = self._clock()
        return now.replace(hour=0, minute=0, second=0, microsecond=0)

    def window_end(self) -> datetime:
        return self.window_start() + timedelta(days=1)

    async def used(self) -> int:
        return await self._counter(self.window_start())

    async def remaining(self) -> int:
        return max(0, self.capacity - await self.used())

    async def check(self) -> None:
        """Raise RateLimitExceededError when today's ceiling is reached"""
        used = await self.used()
        if used >= self.capacity:
            logger.warning(f"Daily upstream ceiling reached: {used}/{self.capacity}")
            raise RateLimitExceededError()
