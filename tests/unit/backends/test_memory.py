import asyncio

import pytest

from factcheck_orchestrator.backends.memory import MemoryStorage


class TestMemoryStorage:
    @pytest.fixture
    def storage(self):
        return MemoryStorage()

    @pytest.mark.asyncio
    async def test_init(self, storage):
        assert storage.namespaces() == []
        assert storage.reads == 0
        assert storage.writes == 0

    @pytest.mark.asyncio
    async def test_get_set(self, storage):
        """Test basic get/set round trip."""
        await storage.set("cache", b"payload")
        assert await storage.get("cache") == b"payload"
        assert storage.writes == 1
        assert storage.reads == 1

    @pytest.mark.asyncio
    async def test_get_missing(self, storage):
        assert await storage.get("nonexistent") is None

    @pytest.mark.asyncio
    async def test_set_copies_bytes(self, storage):
        """Stored data is not affected by later mutation of the input."""
        data = bytearray(b"abc")
        await storage.set("ns", data)
        data[0] = ord("z")
        assert await storage.get("ns") == b"abc"

    @pytest.mark.asyncio
    async def test_delete(self, storage):
        await storage.set("ns", b"x")
        await storage.delete("ns")
        await storage.delete("ns")
        assert await storage.get("ns") is None

    @pytest.mark.asyncio
    async def test_namespaces_are_isolated(self, storage):
        await storage.set("a", b"1")
        await storage.set("b", b"2")
        assert storage.namespaces() == ["a", "b"]
        assert await storage.get("a") == b"1"

    @pytest.mark.asyncio
    async def test_concurrent_writes(self, storage):
        await asyncio.gather(*(storage.set(f"ns{i}", b"x") for i in range(20)))
        assert storage.writes == 20
        assert len(storage.namespaces()) == 20
