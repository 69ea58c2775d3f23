# Copyright 2026 Seth Bang
# SPDX-License-Identifier: Apache-2.0
"""
Storage backends for response-cache persistence.

Available backends:
- MemoryStorage: In-process dict storage
- RedisStorage: Redis-based storage (requires redis extra)

Note: RedisStorage is lazily imported to avoid requiring the redis package
when only using MemoryStorage.
"""

from typing import TYPE_CHECKING, cast

from factcheck_orchestrator.backends.memory import MemoryStorage

if TYPE_CHECKING:
    from factcheck_orchestrator.backends.redis import RedisStorage

__all__ = [
    "MemoryStorage",
    "RedisStorage",
]


def __getattr__(name: str) -> type:
    """Lazy import for the optional redis backend."""
    if name == "RedisStorage":
        try:
            from factcheck_orchestrator.backends import redis as redis_module

            return cast(type, getattr(redis_module, name))
        except ImportError as e:  # pragma: no cover
            raise ImportError(  # pragma: no cover
                f"'{name}' requires the 'redis' extra. "
                "Install with: pip install factcheck-orchestrator[redis]"
            ) from e
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
