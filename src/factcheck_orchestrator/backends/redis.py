# Copyright 2026 Seth Bang
# SPDX-License-Identifier: Apache-2.0
"""
Redis storage backend.

RedisStorage persists each namespace as a single Redis string key under a
configurable prefix. It requires the ``redis`` extra:

    pip install factcheck-orchestrator[redis]
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any

from redis.asyncio import Redis
from redis.exceptions import RedisError

logger = logging.getLogger(__name__)


class RedisStorage:
    """
    Redis-backed implementation of StorageProtocol.

    Args:
        redis_url: Connection URL, used when no client is supplied.
        client: An existing ``redis.asyncio.Redis`` client. The storage does
            not close clients it did not create.
        key_prefix: Prefix prepended to every namespace.
        key_ttl: Optional expiry (seconds) applied on every write.

    Example:
        >>> storage = RedisStorage("redis://localhost:6379/0", key_ttl=86400)
        >>> cache = ResponseCache(CacheConfig(persist=True), storage=storage)
    """

    def __init__(
        self,
        redis_url: str = "redis://localhost:6379/0",
        client: Any | None = None,
        key_prefix: str = "factcheck",
        key_ttl: int | None = None,
    ) -> None:
        self.redis_url = redis_url
        self.key_prefix = key_prefix
        self.key_ttl = key_ttl
        self._redis: Any | None = client
        self._owned_redis = client is None
        self._connection_lock = asyncio.Lock()

    def _key(self, namespace: str) -> str:
        return f"{self.key_prefix}:{namespace}"

    async def _ensure_connected(self) -> Any:
        if self._redis is not None:
            return self._redis
        async with self._connection_lock:
            if self._redis is None:
                logger.info(f"Connecting RedisStorage to {self.redis_url}")
                self._redis = Redis.from_url(
                    self.redis_url,
                    decode_responses=False,
                    socket_connect_timeout=5,
                    socket_timeout=5,
                )
        return self._redis

    async def get(self, namespace: str) -> bytes | None:
        client = await self._ensure_connected()
        value = await client.get(self._key(namespace))
        if value is None:
            return None
        return value if isinstance(value, bytes) else str(value).encode("utf-8")

    async def set(self, namespace: str, data: bytes) -> None:
        client = await self._ensure_connected()
        if self.key_ttl:
            await client.set(self._key(namespace), data, ex=self.key_ttl)
        else:
            await client.set(self._key(namespace), data)

    async def delete(self, namespace: str) -> None:
        client = await self._ensure_connected()
        await client.delete(self._key(namespace))

    async def health_check(self) -> bool:
        """Return True if Redis answers PING."""
        try:
            client = await self._ensure_connected()
            return bool(await client.ping())
        except RedisError as e:
            logger.warning(f"Redis health check failed: {e}")
            return False

    async def close(self) -> None:
        """Close the connection if this storage created it."""
        if self._redis is not None and self._owned_redis:
            try:
                await self._redis.aclose()
            except RedisError as e:
                logger.error(f"Error closing Redis connection: {e}")
            finally:
                self._redis = None


__all__ = ["RedisStorage"]
