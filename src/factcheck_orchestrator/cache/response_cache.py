# Copyright 2026 Seth Bang
# SPDX-License-Identifier: Apache-2.0
"""
Content-addressed response cache.

ResponseCache memoizes model responses keyed by a truncated SHA-256 of the
prompt and model (and, optionally, the token budget). Because the key is
truncated, every entry also stores the original query and model and a
lookup that supplies them must match both exactly.

Eviction is oldest-first by insertion timestamp: after every ``set()``
the cache is trimmed back to ``max_size`` entries. Entries older than the
configured TTL are treated as misses and dropped.

Persistence is optional. When enabled, writes are debounced (each
``set()`` restarts the timer) and the whole cache is serialized as one
JSON document into a storage namespace:

    {"<key>": {"value": ..., "timestamp": ..., "query": ..., "model": ...}}
"""

from __future__ import annotations

import asyncio
import contextlib
import hashlib
import json
import logging
import time
from collections.abc import Callable
from typing import TYPE_CHECKING, Any

from pydantic import BaseModel, ValidationError

from ..config import CacheConfig
from ..observability.constants import (
    CACHE_EVICTIONS_TOTAL,
    CACHE_HITS_TOTAL,
    CACHE_MISSES_TOTAL,
    CACHE_PERSIST_ERRORS_TOTAL,
    CACHE_SIZE,
)

if TYPE_CHECKING:
    from ..observability.protocols import MetricsCollectorProtocol
    from ..protocols.storage import StorageProtocol

logger = logging.getLogger(__name__)

KEY_LENGTH = 50


class CacheEntry(BaseModel):
    """One memoized response."""

    key: str
    value: Any
    timestamp: float
    query: str = ""
    model: str = ""

    def matches(self, query: str | None, model: str | None) -> bool:
        """Exact comparison against the original query/model, when given."""
        if query is not None and self.query != query:
            return False
        if model is not None and self.model != model:
            return False
        return True

    def is_expired(self, now: float, ttl: float | None) -> bool:
        return ttl is not None and now - self.timestamp > ttl

    def to_dict(self) -> dict[str, Any]:
        """Convert to the persisted record shape (key is stored outside)."""
        return {
            "value": self.value,
            "timestamp": self.timestamp,
            "query": self.query,
            "model": self.model,
        }

    @classmethod
    def from_dict(cls, key: str, data: dict[str, Any]) -> CacheEntry:
        """Create a CacheEntry from a persisted record."""
        return cls(
            key=key,
            value=data.get("value"),
            timestamp=float(data["timestamp"]),
            query=data.get("query", ""),
            model=data.get("model", ""),
        )


class ResponseCache:
    """
    Bounded response memo with optional debounced persistence.

    Args:
        config: Size, TTL and persistence settings.
        storage: Storage backend; required when ``config.persist`` is True.
        metrics_collector: Optional metrics sink.
        clock: Wall-clock source (seconds since the epoch).

    Example:
        >>> cache = ResponseCache(CacheConfig(max_size=100))
        >>> key = cache.generate_key(prompt, "gpt-4o-mini")
        >>> if (hit := await cache.get(key, prompt, "gpt-4o-mini")) is None:
        ...     hit = await call_model(prompt)
        ...     await cache.set(key, hit, prompt, "gpt-4o-mini")
    """

    def __init__(
        self,
        config: CacheConfig | None = None,
        storage: StorageProtocol | None = None,
        metrics_collector: MetricsCollectorProtocol | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.config = config or CacheConfig()
        self._storage = storage
        self._metrics = metrics_collector
        self._clock = clock

        self._entries: dict[str, CacheEntry] = {}
        self._hits = 0
        self._misses = 0
        self._evictions = 0

        self._loaded = False
        self._load_lock = asyncio.Lock()
        self._dirty = False
        # Bumped on every mutation; flush() only marks the cache clean if
        # nothing changed while its write was in flight.
        self._generation = 0
        self._write_lock = asyncio.Lock()
        self._persist_task: asyncio.Task[None] | None = None

        if self.config.persist and storage is None:
            logger.warning(
                "Cache persistence enabled without a storage backend; "
                "entries will only be kept in memory"
            )

    @property
    def persistent(self) -> bool:
        return self._backing_storage() is not None

    def _backing_storage(self) -> StorageProtocol | None:
        return self._storage if self.config.persist else None

    @staticmethod
    def generate_key(prompt: str, model: str, max_tokens: int | None = None) -> str:
        """
        Derive the cache key for a prompt/model pair.

        Args:
            prompt: Full prompt text.
            model: Model identifier.
            max_tokens: Optional token budget; different budgets never share
                an entry.

        Returns:
            The first 50 hex characters of SHA-256(prompt + model[:budget]).
        """
        material = prompt + model
        if max_tokens is not None:
            material += f":{max_tokens}"
        return hashlib.sha256(material.encode("utf-8")).hexdigest()[:KEY_LENGTH]

    # === Lookup / insert ===

    async def get(
        self, key: str, query: str | None = None, model: str | None = None
    ) -> Any | None:
        """
        Return the cached value for ``key`` or None on a miss.

        When ``query``/``model`` are given they must equal the values stored
        with the entry; otherwise the lookup is a miss (the key is a
        truncated hash and may collide).
        """
        await self._ensure_loaded()
        entry = self._entries.get(key)
        if entry is not None and entry.is_expired(self._clock(), self.config.ttl):
            del self._entries[key]
            self._update_size()
            entry = None
        if entry is None or not entry.matches(query, model):
            if entry is not None:
                logger.warning(f"Cache key collision on {key}; treating as a miss")
            self._misses += 1
            self._inc(CACHE_MISSES_TOTAL)
            return None
        self._hits += 1
        self._inc(CACHE_HITS_TOTAL)
        logger.debug(f"Cache hit for {key}")
        return entry.value

    async def set(
        self, key: str, value: Any, query: str = "", model: str = ""
    ) -> None:
        """Store ``value`` under ``key`` and trim the cache to ``max_size``."""
        await self._ensure_loaded()
        self._entries.pop(key, None)
        self._entries[key] = CacheEntry(
            key=key, value=value, timestamp=self._clock(), query=query, model=model
        )
        self._evict()
        self._update_size()
        self._mark_dirty()

    async def delete(self, key: str) -> bool:
        """Remove ``key``. Returns True if it was present."""
        await self._ensure_loaded()
        removed = self._entries.pop(key, None) is not None
        if removed:
            self._update_size()
            self._mark_dirty()
        return removed

    async def clear(self) -> None:
        """Empty the cache and its persisted copy."""
        self._cancel_persist_timer()
        self._entries.clear()
        self._dirty = False
        self._generation += 1
        self._loaded = True
        self._update_size()
        storage = self._backing_storage()
        if storage is not None:
            async with self._write_lock:
                await storage.delete(self.config.namespace)
        logger.info("Response cache cleared")

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: object) -> bool:
        return key in self._entries

    def _evict(self) -> None:
        excess = len(self._entries) - self.config.max_size
        if excess <= 0:
            return
        oldest = sorted(self._entries.values(), key=lambda e: e.timestamp)[:excess]
        for entry in oldest:
            del self._entries[entry.key]
        self._evictions += excess
        if self._metrics is not None:
            self._metrics.inc_counter(CACHE_EVICTIONS_TOTAL, excess)
        logger.debug(f"Evicted {excess} cache entries (max_size={self.config.max_size})")

    # === Persistence ===

    async def _ensure_loaded(self) -> None:
        if self._loaded:
            return
        async with self._load_lock:
            if not self._loaded:
                await self.load()

    async def load(self) -> int:
        """
        Merge persisted entries into memory, dropping expired ones.

        Entries already in memory win over persisted entries with the same
        key. Storage or decoding failures are logged and leave the cache
        empty rather than raising.

        Returns:
            Number of entries loaded from storage.
        """
        self._loaded = True
        storage = self._backing_storage()
        if storage is None:
            return 0
        try:
            raw = await storage.get(self.config.namespace)
        except Exception as e:
            logger.error(f"Failed to load response cache: {e}")
            self._inc(CACHE_PERSIST_ERRORS_TOTAL)
            return 0
        if not raw:
            return 0

        try:
            records = json.loads(raw)
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            logger.error(f"Discarding corrupt persisted cache: {e}")
            self._inc(CACHE_PERSIST_ERRORS_TOTAL)
            return 0
        if not isinstance(records, dict):
            logger.error(
                f"Discarding persisted cache with unexpected shape: "
                f"{type(records).__name__}"
            )
            self._inc(CACHE_PERSIST_ERRORS_TOTAL)
            return 0

        now = self._clock()
        loaded = 0
        expired = 0
        for key, record in records.items():
            if not isinstance(record, dict):
                logger.debug(f"Skipping malformed cache record {key}")
                continue
            try:
                entry = CacheEntry.from_dict(key, record)
            except (KeyError, TypeError, ValueError, ValidationError) as e:
                logger.debug(f"Skipping malformed cache record {key}: {e}")
                continue
            if entry.is_expired(now, self.config.ttl):
                expired += 1
                continue
            if key not in self._entries:
                self._entries[key] = entry
                loaded += 1

        self._evict()
        self._update_size()
        logger.info(f"Loaded {loaded} cached responses ({expired} expired)")
        return loaded

    def _mark_dirty(self) -> None:
        self._dirty = True
        self._generation += 1
        self._schedule_persist()

    def _schedule_persist(self) -> None:
        if not self.persistent:
            return
        self._cancel_persist_timer()
        self._persist_task = asyncio.create_task(self._persist_after_delay())

    def _cancel_persist_timer(self) -> None:
        task = self._persist_task
        self._persist_task = None
        if task is not None and not task.done() and task is not asyncio.current_task():
            task.cancel()

    async def _persist_after_delay(self) -> None:
        await asyncio.sleep(self.config.persist_debounce)
        self._persist_task = None
        await self.flush()

    async def flush(self) -> bool:
        """
        Write the cache to storage now, cancelling any pending debounce.

        Returns:
            True if a write happened and succeeded.
        """
        self._cancel_persist_timer()
        storage = self._backing_storage()
        if storage is None:
            return False
        async with self._write_lock:
            if not self._dirty:
                return False
            generation = self._generation
            payload = json.dumps(
                {key: entry.to_dict() for key, entry in self._entries.items()}
            ).encode("utf-8")
            try:
                await storage.set(self.config.namespace, payload)
            except Exception as e:
                logger.error(f"Failed to persist response cache: {e}")
                self._inc(CACHE_PERSIST_ERRORS_TOTAL)
                return False
            if self._generation == generation:
                self._dirty = False
            else:
                logger.debug("Response cache changed during persist; still dirty")
        logger.debug(f"Persisted {len(payload)} bytes of cached responses")
        return True

    async def close(self) -> None:
        """Flush pending writes and stop the debounce timer."""
        task = self._persist_task
        self._cancel_persist_timer()
        if task is not None:
            with contextlib.suppress(asyncio.CancelledError):
                await task
        await self.flush()

    # === Stats ===

    def get_stats(self) -> dict[str, Any]:
        """Return size, hit/miss counters and the hit rate."""
        lookups = self._hits + self._misses
        return {
            "size": len(self._entries),
            "max_size": self.config.max_size,
            "hits": self._hits,
            "misses": self._misses,
            "evictions": self._evictions,
            "hit_rate": self._hits / lookups if lookups else 0.0,
        }

    def _inc(self, name: str) -> None:
        if self._metrics is not None:
            self._metrics.inc_counter(name)

    def _update_size(self) -> None:
        if self._metrics is not None:
            self._metrics.set_gauge(CACHE_SIZE, len(self._entries))


__all__ = ["KEY_LENGTH", "CacheEntry", "ResponseCache"]
