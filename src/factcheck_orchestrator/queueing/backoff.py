# Copyright 2026 Seth Bang
# SPDX-License-Identifier: Apache-2.0
"""
Exponential backoff policy shared by request queues and the retry executor.
"""

from __future__ import annotations

import random
from dataclasses import dataclass

from ..exceptions import ConfigurationError

JITTER_MIN = 0.85
JITTER_MAX = 1.15


@dataclass(frozen=True)
class BackoffPolicy:
    """
    ``delay(n) = min(base * factor**n, max_delay)``.

    ``n`` is the consecutive-failure counter. The jittered variant scales
    the unclamped delay by a factor drawn uniformly from [0.85, 1.15] and
    then clamps, so no delay ever exceeds ``max_delay``.
    """

    base: float = 1.0
    factor: float = 2.0
    max_delay: float = 15.0

    def __post_init__(self) -> None:
        if self.base < 0:
            raise ConfigurationError("base must be non-negative", field="base")
        if self.factor < 1.0:
            raise ConfigurationError("factor must be at least 1.0", field="factor")
        if self.max_delay < self.base:
            raise ConfigurationError("max_delay must be >= base", field="max_delay")

    def _raw(self, n: int) -> float:
        if self.base == 0:
            return 0.0
        try:
            return float(self.base * self.factor ** max(0, n))
        except OverflowError:
            # The clamp in delay() hides the overflow.
            return float("inf")

    def delay(self, n: int) -> float:
        """Return the un-jittered delay after ``n`` consecutive failures."""
        return min(self._raw(n), self.max_delay)

    def jittered_delay(self, n: int, rng: random.Random | None = None) -> float:
        """Return the delay after ``n`` failures with multiplicative jitter."""
        jitter = (rng or random).uniform(JITTER_MIN, JITTER_MAX)
        return min(self._raw(n) * jitter, self.max_delay)


__all__ = ["JITTER_MAX", "JITTER_MIN", "BackoffPolicy"]
