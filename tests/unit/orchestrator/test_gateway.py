"""Tests for ModelGateway: caching, queueing and search-query extraction."""

import pytest

from factcheck_orchestrator.cache.response_cache import ResponseCache
from factcheck_orchestrator.cancellation import CancellationToken
from factcheck_orchestrator.config import OrchestratorConfig
from factcheck_orchestrator.exceptions import OperationCancelledError, UpstreamError
from factcheck_orchestrator.orchestrator.gateway import ModelGateway, leading_sentences
from factcheck_orchestrator.types.tiers import ModelTier

LONG_TEXT = (
    "The city council approved a new budget on Monday. "
    "It raises transit spending by twelve percent. "
    "Critics argue the plan ignores road maintenance. "
) * 4


class TestLeadingSentences:
    def test_joins_sentences(self):
        text = "First one. Second one! Third one? Fourth."
        assert leading_sentences(text, 2, 300) == "First one. Second one"

    def test_caps_length(self):
        assert len(leading_sentences("x" * 1000, 3, 300)) == 300

    def test_no_leading_sentence(self):
        assert leading_sentences("...", 2, 300) == "..."


class TestComplete:
    """Tests for ModelGateway.complete()."""

    @pytest.mark.asyncio
    async def test_maps_tier_and_budget(self, fake_adapter, fast_queue_config):
        gateway = ModelGateway(fake_adapter, queue_config=fast_queue_config)
        result = await gateway.complete("prompt", ModelTier.PREMIUM, max_tokens=500)

        assert result == "Rating: 80\nExplanation: ok"
        request = fake_adapter.requests[0]
        assert request.model == "gpt-4o"
        assert request.max_tokens == 500
        assert gateway.provider == "openai"
        await gateway.close()

    @pytest.mark.asyncio
    async def test_cache_hit_skips_provider(self, fake_adapter, fast_queue_config):
        gateway = ModelGateway(
            fake_adapter, cache=ResponseCache(), queue_config=fast_queue_config
        )
        first = await gateway.complete("same", ModelTier.FAST, max_tokens=100)
        second = await gateway.complete("same", ModelTier.FAST, max_tokens=100)

        assert first == second
        assert len(fake_adapter.requests) == 1
        await gateway.close()

    @pytest.mark.asyncio
    async def test_different_budget_misses(self, fake_adapter, fast_queue_config):
        gateway = ModelGateway(
            fake_adapter, cache=ResponseCache(), queue_config=fast_queue_config
        )
        await gateway.complete("same", ModelTier.FAST, max_tokens=100)
        await gateway.complete("same", ModelTier.FAST, max_tokens=200)
        assert len(fake_adapter.requests) == 2
        await gateway.close()

    @pytest.mark.asyncio
    async def test_use_cache_false(self, fake_adapter, fast_queue_config):
        cache = ResponseCache()
        gateway = ModelGateway(fake_adapter, cache=cache, queue_config=fast_queue_config)
        await gateway.complete("p", ModelTier.FAST, use_cache=False)
        await gateway.complete("p", ModelTier.FAST, use_cache=False)
        assert len(fake_adapter.requests) == 2
        assert len(cache) == 0
        await gateway.close()

    @pytest.mark.asyncio
    async def test_failure_not_cached(self, adapter_factory, fast_queue_config):
        responses = iter([UpstreamError("bad", status=400), "good"])
        adapter = adapter_factory(lambda request: next(responses))
        cache = ResponseCache()
        gateway = ModelGateway(adapter, cache=cache, queue_config=fast_queue_config)

        with pytest.raises(UpstreamError):
            await gateway.complete("p", ModelTier.FAST)
        assert len(cache) == 0
        assert await gateway.complete("p", ModelTier.FAST) == "good"
        await gateway.close()


class TestExtractSearchQuery:
    """Tests for ModelGateway.extract_search_query()."""

    @pytest.mark.asyncio
    async def test_short_text_verbatim(self, fake_adapter, fast_queue_config):
        gateway = ModelGateway(fake_adapter, queue_config=fast_queue_config)
        assert await gateway.extract_search_query("Short claim.") == "Short claim."
        assert fake_adapter.requests == []
        await gateway.close()

    @pytest.mark.asyncio
    async def test_long_text_uses_extraction_tier(self, adapter_factory, fast_queue_config):
        adapter = adapter_factory("budget approved Monday; transit spending up 12%")
        gateway = ModelGateway(adapter, queue_config=fast_queue_config)

        query = await gateway.extract_search_query(LONG_TEXT)

        assert query == "budget approved Monday; transit spending up 12%"
        request = adapter.requests[0]
        assert request.model == "gpt-4o-mini"
        assert request.max_tokens == OrchestratorConfig().extraction_max_tokens
        assert "separated by semicolons" in request.prompt
        await gateway.close()

    @pytest.mark.asyncio
    async def test_short_answer_falls_back_to_three_sentences(
        self, adapter_factory, fast_queue_config
    ):
        gateway = ModelGateway(adapter_factory("none"), queue_config=fast_queue_config)
        query = await gateway.extract_search_query(LONG_TEXT)
        assert query == leading_sentences(LONG_TEXT, 3, 300)
        await gateway.close()

    @pytest.mark.asyncio
    async def test_error_falls_back_to_two_sentences(
        self, adapter_factory, fast_queue_config
    ):
        adapter = adapter_factory(lambda request: UpstreamError("down", status=500))
        gateway = ModelGateway(adapter, queue_config=fast_queue_config)
        query = await gateway.extract_search_query(LONG_TEXT)
        assert query == leading_sentences(LONG_TEXT, 2, 300)
        await gateway.close()

    @pytest.mark.asyncio
    async def test_cancellation_propagates(self, fake_adapter, fast_queue_config):
        token = CancellationToken()
        token.cancel()
        gateway = ModelGateway(fake_adapter, queue_config=fast_queue_config)
        with pytest.raises(OperationCancelledError):
            await gateway.extract_search_query(LONG_TEXT, token)
        await gateway.close()
