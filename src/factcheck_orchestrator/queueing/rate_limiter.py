# Copyright 2026 Seth Bang
# SPDX-License-Identifier: Apache-2.0
"""
Sliding-window dispatch limiter.

RateLimiter keeps the timestamps of recent dispatches and answers whether
one more dispatch fits in the trailing window. It never sleeps; the
request queue decides how to wait.
"""

from __future__ import annotations

import time
from collections import deque
from collections.abc import Callable

from ..exceptions import ConfigurationError


class RateLimiter:
    """
    Trailing-window request counter.

    A limit of None or 0 disables limiting: ``allow()`` is always True and
    ``record()`` keeps no history.

    Example:
        >>> limiter = RateLimiter(limit=5)
        >>> if limiter.allow():
        ...     limiter.record()
        ...     await upstream(payload)
    """

    def __init__(
        self,
        limit: int | None,
        window: float = 60.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if limit is not None and limit < 0:
            raise ConfigurationError("limit must be non-negative", field="limit")
        if window <= 0:
            raise ConfigurationError("window must be positive", field="window")
        self.limit = limit or None
        self.window = window
        self._clock = clock
        self._timestamps: deque[float] = deque()

    @property
    def enabled(self) -> bool:
        return self.limit is not None

    def _prune(self, now: float) -> None:
        cutoff = now - self.window
        while self._timestamps and self._timestamps[0] <= cutoff:
            self._timestamps.popleft()

    def allow(self) -> bool:
        """Return True if a dispatch now would stay within the limit.

        Only prunes expired timestamps; never records.
        """
        if self.limit is None:
            return True
        self._prune(self._clock())
        return len(self._timestamps) < self.limit

    def record(self) -> None:
        """Record a dispatch at the current time."""
        if self.limit is None:
            return
        now = self._clock()
        self._prune(now)
        self._timestamps.append(now)

    def time_until_available(self) -> float:
        """Seconds until ``allow()`` would next return True (0 if it does now)."""
        if self.allow():
            return 0.0
        return max(0.0, self._timestamps[0] + self.window - self._clock())

    @property
    def in_window(self) -> int:
        """Number of dispatches currently counted in the window."""
        if self.limit is None:
            return 0
        self._prune(self._clock())
        return len(self._timestamps)

    def reset(self) -> None:
        self._timestamps.clear()


__all__ = ["RateLimiter"]
