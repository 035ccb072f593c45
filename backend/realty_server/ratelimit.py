"""Fixed-window, per-client request counting."""

import math
import time
from dataclasses import dataclass
from typing import Callable, Dict, Tuple


@dataclass(frozen=True)
class RateLimitResult:
    allowed: bool
    limit: int
    remaining: int
    reset_after: int  # seconds until the window resets
    window: int

    def headers(self) -> Dict[str, str]:
        """IETF draft ``RateLimit-*`` headers."""
        return {
            "RateLimit-Policy": f"{self.limit};w={self.window}",
            "RateLimit-Limit": str(self.limit),
            "RateLimit-Remaining": str(self.remaining),
            "RateLimit-Reset": str(self.reset_after),
        }


class FixedWindowRateLimiter:
    def __init__(
        self,
        limit: int,
        window_seconds: int,
        clock: Callable[[], float] = time.monotonic,
    ):
        if limit < 1 or window_seconds < 1:
            raise ValueError("limit and window_seconds must be positive")
        self.limit = limit
        self.window_seconds = window_seconds
        self._clock = clock
        # client key -> (window start, hits)
        self._hits: Dict[str, Tuple[float, int]] = {}
        self._next_sweep = clock() + window_seconds

    def hit(self, key: str) -> RateLimitResult:
        now = self._clock()
        if now >= self._next_sweep:
            self._sweep(now)

        start, count = self._hits.get(key, (now, 0))
        if now - start >= self.window_seconds:
            start, count = now, 0
        count += 1
        self._hits[key] = (start, count)

        reset_after = max(0, math.ceil(start + self.window_seconds - now))
        return RateLimitResult(
            allowed=count <= self.limit,
            limit=self.limit,
            remaining=max(0, self.limit - count),
            reset_after=reset_after,
            window=self.window_seconds,
        )

    def _sweep(self, now: float) -> None:
        expired = [k for k, (start, _) in self._hits.items() if now - start >= self.window_seconds]
        for key in expired:
            del self._hits[key]
        self._next_sweep = now + self.window_seconds

    def __len__(self) -> int:
        return len(self._hits)
