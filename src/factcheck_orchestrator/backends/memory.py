# Copyright 2026 Seth Bang
# SPDX-License-Identifier: Apache-2.0
"""
In-memory storage backend.

Suitable for tests and single-process use; contents are lost when the
process exits.
"""

from __future__ import annotations

import asyncio
import logging

logger = logging.getLogger(__name__)


class MemoryStorage:
    """
    Dict-backed implementation of StorageProtocol.

    Example:
        >>> storage = MemoryStorage()
        >>> cache = ResponseCache(CacheConfig(persist=True), storage=storage)
    """

    def __init__(self) -> None:
        self._data: dict[str, bytes] = {}
        self._lock = asyncio.Lock()
        self.reads = 0
        self.writes = 0

    async def get(self, namespace: str) -> bytes | None:
        async with self._lock:
            self.reads += 1
            return self._data.get(namespace)

    async def set(self, namespace: str, data: bytes) -> None:
        async with self._lock:
            self.writes += 1
            self._data[namespace] = bytes(data)
        logger.debug(f"MemoryStorage: stored {len(data)} bytes in '{namespace}'")

    async def delete(self, namespace: str) -> None:
        async with self._lock:
            self._data.pop(namespace, None)

    def namespaces(self) -> list[str]:
        return sorted(self._data)


__all__ = ["MemoryStorage"]
