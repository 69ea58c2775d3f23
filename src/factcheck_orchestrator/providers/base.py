# Copyright 2026 Seth Bang
# SPDX-License-Identifier: Apache-2.0
"""Provider adapter interface for AI model calls."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass

from ..exceptions import ConfigurationError
from ..types.request import ModelRequest
from ..types.tiers import ModelTier


@dataclass(frozen=True)
class TierModelMap:
    """Provider model identifiers for each ModelTier.

    Attributes:
        extraction: Model used for claim extraction.
        fast: Cheapest general-purpose model.
        standard: Default evaluation model.
        premium: Highest-quality model.
    """

    extraction: str
    fast: str
    standard: str
    premium: str

    def __post_init__(self) -> None:
        for tier in ModelTier:
            if not getattr(self, tier.value):
                raise ConfigurationError(
                    f"model for tier '{tier.value}' must not be empty",
                    field=tier.value,
                )

    def model_for(self, tier: ModelTier) -> str:
        """Return the model identifier for ``tier``."""
        return str(getattr(self, tier.value))


OPENAI_MODELS = TierModelMap(
    extraction="gpt-4o-mini",
    fast="gpt-4o-mini",
    standard="gpt-4o-mini",
    premium="gpt-4o",
)

ANTHROPIC_MODELS = TierModelMap(
    extraction="claude-3-5-haiku-latest",
    fast="claude-3-5-haiku-latest",
    standard="claude-3-7-sonnet-latest",
    premium="claude-3-opus-latest",
)


class ProviderAdapter(ABC):
    """
    Abstract adapter for one AI provider.

    Adapters are responsible for:
    1. Translating a ModelRequest into the provider's HTTP call
    2. Returning the completion text
    3. Raising UpstreamError (with status and Retry-After where available)
       on any failure, so queues and the classifier can react to it

    Subclasses that use the default ``map_model`` pass a TierModelMap to
    ``__init__``.
    """

    def __init__(self, models: TierModelMap | None = None) -> None:
        self._models = models

    @property
    @abstractmethod
    def name(self) -> str:
        """Unique provider name (e.g., 'openai', 'anthropic')."""
        pass

    @abstractmethod
    async def call(self, request: ModelRequest) -> str:
        """Send one prompt and return the completion text.

        Args:
            request: Prompt, model identifier and token budget.

        Returns:
            The model's text response.

        Raises:
            UpstreamError: If the provider returns an error or cannot be
                reached.
        """
        pass

    def map_model(self, tier: ModelTier) -> str:
        """Return the provider model identifier for ``tier``.

        Raises:
            ConfigurationError: If the adapter was built without a
                TierModelMap and does not override this method.
        """
        if self._models is None:
            raise ConfigurationError(
                f"provider '{self.name}' has no model map configured"
            )
        return self._models.model_for(tier)


__all__ = ["ANTHROPIC_MODELS", "OPENAI_MODELS", "ProviderAdapter", "TierModelMap"]
