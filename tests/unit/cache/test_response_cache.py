"""
Tests for ResponseCache.

Tests cover:
- Key derivation (truncated SHA-256, token budget separation)
- Hits, misses and the exact-match collision guard
- TTL expiry and size-bounded eviction
- Debounced persistence through a storage backend
"""

import asyncio
import json
from unittest.mock import AsyncMock

import pytest

from factcheck_orchestrator.backends.memory import MemoryStorage
from factcheck_orchestrator.cache.response_cache import KEY_LENGTH, CacheEntry, ResponseCache
from factcheck_orchestrator.config import CacheConfig
from factcheck_orchestrator.observability.collector import UnifiedMetricsCollector
from factcheck_orchestrator.observability.constants import (
    CACHE_HITS_TOTAL,
    CACHE_MISSES_TOTAL,
    CACHE_PERSIST_ERRORS_TOTAL,
)


class FakeClock:
    def __init__(self, now: float = 1_700_000_000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now


class GatedStorage(MemoryStorage):
    """MemoryStorage whose writes block until ``release`` is set."""

    def __init__(self) -> None:
        super().__init__()
        self.entered = asyncio.Event()
        self.release = asyncio.Event()

    async def set(self, namespace: str, data: bytes) -> None:
        self.entered.set()
        await self.release.wait()
        await super().set(namespace, data)


@pytest.fixture
def clock():
    return FakeClock()


class TestGenerateKey:
    """Tests for cache key derivation."""

    def test_length_and_determinism(self):
        key = ResponseCache.generate_key("prompt", "gpt-4o-mini")
        assert len(key) == KEY_LENGTH
        assert key == ResponseCache.generate_key("prompt", "gpt-4o-mini")

    def test_model_changes_key(self):
        assert ResponseCache.generate_key("p", "a") != ResponseCache.generate_key("p", "b")

    def test_token_budget_changes_key(self):
        """Different budgets never share an entry."""
        assert ResponseCache.generate_key("p", "m", 300) != ResponseCache.generate_key(
            "p", "m", 500
        )
        assert ResponseCache.generate_key("p", "m") != ResponseCache.generate_key(
            "p", "m", 500
        )


class TestLookup:
    """Tests for get/set."""

    @pytest.mark.asyncio
    async def test_miss_then_hit(self, clock):
        collector = UnifiedMetricsCollector()
        cache = ResponseCache(metrics_collector=collector, clock=clock)
        key = cache.generate_key("q", "m")

        assert await cache.get(key, "q", "m") is None
        await cache.set(key, "answer", "q", "m")
        assert await cache.get(key, "q", "m") == "answer"

        stats = cache.get_stats()
        assert stats["hits"] == 1
        assert stats["misses"] == 1
        assert stats["hit_rate"] == 0.5
        assert collector.get_counter(CACHE_HITS_TOTAL) == 1
        assert collector.get_counter(CACHE_MISSES_TOTAL) == 1

    @pytest.mark.asyncio
    async def test_collision_guard(self, clock):
        """An entry stored for another query is treated as a miss."""
        cache = ResponseCache(clock=clock)
        await cache.set("shared-key", "answer", "original query", "m")

        assert await cache.get("shared-key", "different query", "m") is None
        assert await cache.get("shared-key", "original query", "other-model") is None
        assert await cache.get("shared-key", "original query", "m") == "answer"

    @pytest.mark.asyncio
    async def test_get_without_guard(self, clock):
        cache = ResponseCache(clock=clock)
        await cache.set("k", {"nested": [1, 2]}, "q", "m")
        assert await cache.get("k") == {"nested": [1, 2]}

    @pytest.mark.asyncio
    async def test_ttl_expiry(self, clock):
        cache = ResponseCache(CacheConfig(ttl=60), clock=clock)
        await cache.set("k", "v", "q", "m")

        clock.now += 59
        assert await cache.get("k", "q", "m") == "v"
        clock.now += 2
        assert await cache.get("k", "q", "m") is None
        assert "k" not in cache

    @pytest.mark.asyncio
    async def test_ttl_none_never_expires(self, clock):
        cache = ResponseCache(CacheConfig(ttl=None), clock=clock)
        await cache.set("k", "v")
        clock.now += 10**9
        assert await cache.get("k") == "v"

    @pytest.mark.asyncio
    async def test_overwrite_refreshes_timestamp(self, clock):
        cache = ResponseCache(CacheConfig(max_size=2), clock=clock)
        await cache.set("a", 1)
        clock.now += 1
        await cache.set("b", 2)
        clock.now += 1
        await cache.set("a", 3)
        clock.now += 1
        await cache.set("c", 4)

        assert "b" not in cache
        assert await cache.get("a") == 3

    @pytest.mark.asyncio
    async def test_delete_and_clear(self, clock):
        cache = ResponseCache(clock=clock)
        await cache.set("a", 1)
        await cache.set("b", 2)
        assert await cache.delete("a") is True
        assert await cache.delete("a") is False
        await cache.clear()
        assert len(cache) == 0


class TestEviction:
    @pytest.mark.asyncio
    async def test_oldest_evicted_at_capacity(self, clock):
        """Inserting max_size + 1 entries evicts exactly the oldest one."""
        cache = ResponseCache(CacheConfig(max_size=3), clock=clock)
        for i in range(4):
            await cache.set(f"k{i}", i)
            clock.now += 1

        assert len(cache) == 3
        assert "k0" not in cache
        assert all(f"k{i}" in cache for i in (1, 2, 3))
        assert cache.get_stats()["evictions"] == 1


class TestPersistence:
    """Tests for persistence through a StorageProtocol backend."""

    @pytest.mark.asyncio
    async def test_flush_and_reload(self, clock):
        storage = MemoryStorage()
        config = CacheConfig(persist=True, persist_debounce=60)
        cache = ResponseCache(config, storage, clock=clock)
        await cache.set("k", "v", "q", "m")

        assert await cache.flush() is True
        assert await cache.flush() is False  # nothing new to write

        raw = await storage.get(config.namespace)
        assert json.loads(raw)["k"]["value"] == "v"

        restored = ResponseCache(config, storage, clock=clock)
        assert await restored.get("k", "q", "m") == "v"

    @pytest.mark.asyncio
    async def test_debounced_write(self, clock):
        """Several writes inside the debounce window produce one storage write."""
        storage = MemoryStorage()
        cache = ResponseCache(
            CacheConfig(persist=True, persist_debounce=0.01), storage, clock=clock
        )
        for i in range(5):
            await cache.set(f"k{i}", i)
        assert storage.writes == 0

        await asyncio.sleep(0.05)
        assert storage.writes == 1
        await cache.close()

    @pytest.mark.asyncio
    async def test_load_drops_expired(self, clock):
        storage = MemoryStorage()
        config = CacheConfig(persist=True, ttl=100)
        records = {
            "fresh": {"value": 1, "timestamp": clock.now - 10, "query": "", "model": ""},
            "stale": {"value": 2, "timestamp": clock.now - 1000, "query": "", "model": ""},
            "broken": {"value": 3},
        }
        await storage.set(config.namespace, json.dumps(records).encode())

        cache = ResponseCache(config, storage, clock=clock)
        assert await cache.load() == 1
        assert "fresh" in cache
        assert "stale" not in cache
        assert "broken" not in cache

    @pytest.mark.asyncio
    async def test_in_memory_entries_win(self, clock):
        storage = MemoryStorage()
        config = CacheConfig(persist=True)
        records = {"k": {"value": "old", "timestamp": clock.now}}
        await storage.set(config.namespace, json.dumps(records).encode())

        cache = ResponseCache(config, storage, clock=clock)
        cache._entries["k"] = CacheEntry(key="k", value="new", timestamp=clock.now)
        await cache.load()
        assert await cache.get("k") == "new"

    @pytest.mark.asyncio
    async def test_corrupt_payload_ignored(self, clock):
        storage = MemoryStorage()
        config = CacheConfig(persist=True)
        await storage.set(config.namespace, b"{not json")
        collector = UnifiedMetricsCollector()

        cache = ResponseCache(config, storage, collector, clock=clock)
        assert await cache.get("anything") is None
        assert collector.get_counter(CACHE_PERSIST_ERRORS_TOTAL) == 1

    @pytest.mark.asyncio
    async def test_non_object_payload_ignored(self, clock):
        storage = MemoryStorage()
        config = CacheConfig(persist=True)
        await storage.set(config.namespace, b'["k", "v"]')
        collector = UnifiedMetricsCollector()

        cache = ResponseCache(config, storage, collector, clock=clock)
        assert await cache.get("k") is None
        assert collector.get_counter(CACHE_PERSIST_ERRORS_TOTAL) == 1

    @pytest.mark.asyncio
    async def test_malformed_records_skipped(self, clock):
        """Records that are not objects are dropped; valid neighbours still load."""
        storage = MemoryStorage()
        config = CacheConfig(persist=True)
        records = {
            "bad": "not-a-record",
            "list": [1, 2],
            "good": {"value": "v", "timestamp": clock.now, "query": "", "model": ""},
        }
        await storage.set(config.namespace, json.dumps(records).encode())

        cache = ResponseCache(config, storage, clock=clock)
        assert await cache.get("bad") is None
        assert await cache.get("list") is None
        assert await cache.get("good") == "v"
        assert len(cache) == 1

    @pytest.mark.asyncio
    async def test_write_during_flush_is_not_lost(self, clock):
        """An entry added while a write is in flight reaches storage later."""
        storage = GatedStorage()
        config = CacheConfig(persist=True, persist_debounce=60)
        cache = ResponseCache(config, storage, clock=clock)
        await cache.set("k1", "v1")

        flush = asyncio.create_task(cache.flush())
        await storage.entered.wait()
        await cache.set("k2", "v2")
        storage.release.set()
        assert await flush is True

        await cache.close()
        persisted = json.loads(await storage.get(config.namespace))
        assert set(persisted) == {"k1", "k2"}

    @pytest.mark.asyncio
    async def test_concurrent_flushes_serialized(self, clock):
        storage = GatedStorage()
        config = CacheConfig(persist=True, persist_debounce=60)
        cache = ResponseCache(config, storage, clock=clock)
        await cache.set("k", "v")

        first = asyncio.create_task(cache.flush())
        await storage.entered.wait()
        second = asyncio.create_task(cache.flush())
        await asyncio.sleep(0)
        storage.release.set()

        assert await first is True
        assert await second is False  # already clean once the lock is free
        assert storage.writes == 1

    @pytest.mark.asyncio
    async def test_storage_failure_does_not_raise(self, clock):
        storage = AsyncMock()
        storage.get.return_value = None
        storage.set.side_effect = OSError("disk full")
        cache = ResponseCache(CacheConfig(persist=True), storage, clock=clock)

        await cache.set("k", "v")
        assert await cache.flush() is False
        assert await cache.get("k") == "v"
        await cache.close()

    @pytest.mark.asyncio
    async def test_clear_deletes_persisted_copy(self, clock):
        storage = MemoryStorage()
        config = CacheConfig(persist=True)
        cache = ResponseCache(config, storage, clock=clock)
        await cache.set("k", "v")
        await cache.flush()
        await cache.clear()
        assert await storage.get(config.namespace) is None

    @pytest.mark.asyncio
    async def test_persist_without_storage_is_memory_only(self, clock):
        cache = ResponseCache(CacheConfig(persist=True), clock=clock)
        assert cache.persistent is False
        await cache.set("k", "v")
        assert await cache.flush() is False
