# Copyright 2026 Seth Bang
# SPDX-License-Identifier: Apache-2.0
"""
Request queueing for rate-limited upstreams.

Available components:
- RateLimiter: Trailing-window dispatch counter
- BackoffPolicy: Exponential backoff with optional jitter
- RequestQueue: Per-upstream FIFO queue with 429 re-delivery
"""

from .backoff import JITTER_MAX, JITTER_MIN, BackoffPolicy
from .queue import RequestQueue, is_rate_limit_response
from .rate_limiter import RateLimiter

__all__ = [
    "JITTER_MAX",
    "JITTER_MIN",
    "BackoffPolicy",
    "RateLimiter",
    "RequestQueue",
    "is_rate_limit_response",
]
