"""Sliding-window rate limiter for agent runs (keyed by caller/session)."""

from __future__ import annotations

import time
from collections import defaultdict
from typing import Callable

from loguru import logger

from toolpilot.core.errors import RateLimitExceededError


class SlidingWindowRateLimiter:
    """In-memory sliding window: at most ``max_calls`` hits per ``window_s``.

    Each key keeps the timestamps of its hits inside the window; older
    timestamps are pruned on every check. Checks never await, so a single
    event loop sees them as atomic.

    Parameters
    ----------
    max_calls : int
        Hits allowed per window.
    window_s : float
        Window length in seconds.
    clock : callable, optional
        Monotonic time source (injectable for tests).
    """

    def __init__(
        self,
        max_calls: int = 10,
        window_s: float = 60.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if max_calls < 1:
            raise ValueError("max_calls must be >= 1")
        if window_s <= 0:
            raise ValueError("window_s must be > 0")
        self.max_calls = max_calls
        self.window_s = window_s
        self._clock = clock
        self._hits: dict[str, list[float]] = defaultdict(list)

    @classmethod
    def from_config(cls, config) -> SlidingWindowRateLimiter | None:
        """Build from ``config.rate_limit``; None when disabled."""
        rl = config.rate_limit
        if not rl.enabled:
            return None
        return cls(max_calls=rl.max_calls, window_s=rl.window_s)

    def _prune(self, key: str, now: float) -> list[float]:
        hits = [t for t in self._hits[key] if now - t < self.window_s]
        self._hits[key] = hits
        return hits

    def check(self, key: str) -> None:
        """Record a hit for ``key`` or raise RateLimitExceededError."""
        now = self._clock()
        hits = self._prune(key, now)
        if len(hits) >= self.max_calls:
            retry_after = max(0.0, self.window_s - (now - hits[0]))
            logger.warning(
                f"Rate limit exceeded: key={key}, "
                f"{len(hits)}/{self.max_calls} in {self.window_s:g}s"
            )
            raise RateLimitExceededError(key, self.max_calls, self.window_s, retry_after)
        hits.append(now)

    def remaining(self, key: str) -> int:
        """Hits still allowed for ``key`` in the current window."""
        return max(0, self.max_calls - len(self._prune(key, self._clock())))

    def reset(self, key: str | None = None) -> None:
        """Forget hits for one key, or for every key."""
        if key is None:
            self._hits.clear()
        else:
            self._hits.pop(key, None)
