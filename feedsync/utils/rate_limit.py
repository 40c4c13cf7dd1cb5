"""Rate limiting for the Shopify Admin API."""

from __future__ import annotations

import asyncio
import time


class RateLimiter:
    """Keeps at least ``1 / rate`` seconds between two calls."""

    def __init__(self, *, rate: float = 2.0) -> None:
        self.rate = rate
        self._lock = asyncio.Lock()
        self._last_request = 0.0

    @property
    def min_interval(self) -> float:
        return 1.0 / self.rate if self.rate > 0 else 0.0

    async def wait(self) -> None:
        async with self._lock:
            elapsed = time.monotonic() - self._last_request
            if elapsed < self.min_interval:
                await asyncio.sleep(self.min_interval - elapsed)
            self._last_request = time.monotonic()


class NoRateLimit(RateLimiter):
    """Used by tests and by callers that already throttle upstream."""

    def __init__(self) -> None:
        super().__init__(rate=0)

    async def wait(self) -> None:
        return None
