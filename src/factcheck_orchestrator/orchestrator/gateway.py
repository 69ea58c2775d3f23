# Copyright 2026 Seth Bang
# SPDX-License-Identifier: Apache-2.0
"""
Model gateway: cache check, queued provider call, cache store.

ModelGateway is the single path from the orchestrator to a provider. It
maps tiers to provider models, memoizes responses in the ResponseCache and
pushes every real call through the provider's RequestQueue.
"""

from __future__ import annotations

import logging
import re
from typing import TYPE_CHECKING

from ..config import OrchestratorConfig, QueueConfig
from ..queueing.queue import RequestQueue
from ..types.request import ModelRequest
from ..types.tiers import ModelTier
from .prompts import build_claim_extraction_prompt

if TYPE_CHECKING:
    from ..cache.response_cache import ResponseCache
    from ..cancellation import CancellationToken
    from ..observability.protocols import MetricsCollectorProtocol
    from ..providers.base import ProviderAdapter

logger = logging.getLogger(__name__)

MIN_EXTRACTED_QUERY_LENGTH = 10
_SENTENCE_SPLIT = re.compile(r"[.!?]+")


def leading_sentences(text: str, count: int, max_chars: int) -> str:
    """
    Join the first ``count`` sentences of ``text`` and cap the result.

    Falls back to the raw prefix when the text does not start with a
    sentence.
    """
    sentences = _SENTENCE_SPLIT.split(text)
    if sentences and sentences[0].strip():
        query = ". ".join(s.strip() for s in sentences[:count]).strip()
    else:
        query = text.strip()
    return query[:max_chars]


class ModelGateway:
    """
    Cached, queued access to one provider's models.

    Args:
        adapter: Provider adapter performing the HTTP call.
        cache: Optional response cache; calls are not memoized without one.
        queue: RequestQueue in front of ``adapter.call``. Built from
            ``queue_config`` when omitted.
        queue_config: Queue settings used when ``queue`` is omitted.
        config: Orchestrator settings (extraction limits).
        metrics_collector: Optional metrics sink for the built queue.

    Example:
        >>> gateway = ModelGateway(adapter, cache=ResponseCache())
        >>> text = await gateway.complete(prompt, ModelTier.STANDARD, max_tokens=500)
    """

    def __init__(
        self,
        adapter: ProviderAdapter,
        cache: ResponseCache | None = None,
        queue: RequestQueue[ModelRequest, str] | None = None,
        queue_config: QueueConfig | None = None,
        config: OrchestratorConfig | None = None,
        metrics_collector: MetricsCollectorProtocol | None = None,
    ) -> None:
        self.adapter = adapter
        self.cache = cache
        self.config = config or OrchestratorConfig()
        self.queue: RequestQueue[ModelRequest, str] = queue or RequestQueue(
            adapter.call,
            queue_config or QueueConfig(),
            name=adapter.name,
            metrics_collector=metrics_collector,
        )

    @property
    def provider(self) -> str:
        return self.adapter.name

    def model_for(self, tier: ModelTier) -> str:
        """Provider model identifier for ``tier``."""
        return self.adapter.map_model(tier)

    async def complete(
        self,
        prompt: str,
        tier: ModelTier,
        max_tokens: int | None = None,
        use_cache: bool = True,
        token: CancellationToken | None = None,
    ) -> str:
        """
        Return the completion for ``prompt`` on ``tier``.

        A cached response for the same prompt, model and token budget is
        returned without contacting the provider. Otherwise the request is
        queued and the response cached on success.

        Raises:
            UpstreamError: If the provider call fails.
            OperationCancelledError: If ``token`` fires before dispatch.
        """
        model = self.model_for(tier)
        key: str | None = None
        if use_cache and self.cache is not None:
            key = self.cache.generate_key(prompt, model, max_tokens)
            cached = await self.cache.get(key, prompt, model)
            if cached is not None:
                logger.debug(f"Cache hit for {self.provider}/{model}")
                return str(cached)

        request = ModelRequest(prompt=prompt, model=model, max_tokens=max_tokens)
        response = await self.queue.submit(request, token)

        if key is not None and self.cache is not None:
            await self.cache.set(key, response, prompt, model)
        return response

    async def extract_search_query(
        self, text: str, token: CancellationToken | None = None
    ) -> str:
        """
        Derive a search query from ``text``.

        Texts up to ``extraction_threshold`` characters are used verbatim.
        Longer texts get a claim-extraction prompt on the EXTRACTION tier;
        a short answer falls back to the first three sentences and an
        error to the first two, capped at ``search_query_max_chars``.

        Raises:
            OperationCancelledError: If ``token`` fires.
        """
        cfg = self.config
        if len(text) <= cfg.extraction_threshold:
            return text

        prompt = build_claim_extraction_prompt(text[: cfg.extraction_input_chars])
        try:
            claims = await self.complete(
                prompt,
                ModelTier.EXTRACTION,
                max_tokens=cfg.extraction_max_tokens,
                token=token,
            )
        except Exception as e:
            if token is not None:
                token.raise_if_cancelled()
            logger.warning(f"Claim extraction failed, using leading sentences: {e}")
            return leading_sentences(text, 2, cfg.search_query_max_chars)

        claims = claims.strip()
        if len(claims) > MIN_EXTRACTED_QUERY_LENGTH:
            return claims
        logger.debug("Claim extraction returned too little text, using leading sentences")
        return leading_sentences(text, 3, cfg.search_query_max_chars)

    async def close(self) -> None:
        await self.queue.close()


__all__ = ["ModelGateway", "leading_sentences"]
