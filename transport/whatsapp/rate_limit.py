"""
Per-sender fixed-window rate limiting.

Each sender gets `max_requests` per `window_s`. The window starts on the
first request and resets once it has elapsed. A periodic sweep drops
expired windows so idle senders do not accumulate.
"""

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Callable, Dict

logger = logging.getLogger(__name__)


@dataclass
class _Window:
    count: int
    reset_at: float


class RateLimiter:

    def __init__(
        self,
        window_s: float = 60.0,
        max_requests: int = 20,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.window_s = window_s
        self.max_requests = max_requests
        self.clock = clock
        self._windows: Dict[str, _Window] = {}

    def __len__(self) -> int:
        return len(self._windows)

    def check(self, key: str) -> bool:
        """Count one request for `key`. Returns False when over quota."""
        now = self.clock()
        window = self._windows.get(key)

        if window is None or now > window.reset_at:
            self._windows[key] = _Window(count=1, reset_at=now + self.window_s)
            return True

        if window.count >= self.max_requests:
            logger.warning(f"Rate limit exceeded for {key}")
            return False

        window.count += 1
        return True

    def sweep(self) -> int:
        """Drop expired windows. Returns how many were removed."""
        now = self.clock()
        expired = [key for key, window in self._windows.items() if now > window.reset_at]
        for key in expired:
            del self._windows[key]
        return len(expired)


async def run_sweeper(limiter: RateLimiter, interval_s: float) -> None:
    """Sweep forever; cancelled by the application lifespan."""
    while True:
        await asyncio.sleep(interval_s)
        removed = limiter.sweep()
        if removed:
            logger.debug(f"Rate limiter swept {removed} expired windows")
