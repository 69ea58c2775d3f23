# Copyright 2026 Seth Bang
# SPDX-License-Identifier: Apache-2.0
"""
Response caching.

This module provides the content-addressed ResponseCache used by the
model gateway to memoize completions.
"""

from .response_cache import KEY_LENGTH, CacheEntry, ResponseCache

__all__ = ["KEY_LENGTH", "CacheEntry", "ResponseCache"]
