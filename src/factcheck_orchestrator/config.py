# Copyright 2026 Seth Bang
# SPDX-License-Identifier: Apache-2.0
"""
Configuration dataclasses for queues, cache, retries and the orchestrator.

All configuration objects validate themselves in ``__post_init__`` and
raise ConfigurationError on invalid values. Durations are in seconds.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from typing_extensions import Self

from .exceptions import ConfigurationError
from .types.tiers import ModelTier, Urgency


@dataclass
class QueueConfig:
    """
    Configuration for a RequestQueue.

    The provider presets mirror the limits each upstream tolerates in
    practice: AI providers get a per-minute cap and a steep backoff, the
    search provider is unlimited per minute but backs off gently.
    """

    rate_limit_per_minute: int | None = None
    """Maximum dispatches in any trailing window. None or 0 disables limiting."""

    window: float = 60.0
    """Length of the rate-limit window in seconds."""

    base_backoff: float = 1.0
    """Backoff delay after the first consecutive failure."""

    max_backoff: float = 15.0
    """Upper bound on any backoff delay."""

    backoff_factor: float = 2.0
    """Multiplier applied per consecutive failure."""

    rate_check_interval: float = 1.0
    """Sleep between rate-limit rechecks while the window is full."""

    def __post_init__(self) -> None:
        """Validate configuration after initialization."""
        if self.rate_limit_per_minute is not None and self.rate_limit_per_minute < 0:
            raise ConfigurationError(
                "rate_limit_per_minute must be non-negative",
                field="rate_limit_per_minute",
            )
        if self.window <= 0:
            raise ConfigurationError("window must be positive", field="window")
        if self.base_backoff < 0:
            raise ConfigurationError(
                "base_backoff must be non-negative", field="base_backoff"
            )
        if self.max_backoff < self.base_backoff:
            raise ConfigurationError(
                "max_backoff must be >= base_backoff", field="max_backoff"
            )
        if self.backoff_factor < 1.0:
            raise ConfigurationError(
                "backoff_factor must be at least 1.0", field="backoff_factor"
            )
        if self.rate_check_interval <= 0:
            raise ConfigurationError(
                "rate_check_interval must be positive", field="rate_check_interval"
            )

    @property
    def rate_limited(self) -> bool:
        return bool(self.rate_limit_per_minute)

    @classmethod
    def openai(cls) -> Self:
        """Preset for the OpenAI chat completions API."""
        return cls(
            rate_limit_per_minute=5,
            base_backoff=1.0,
            max_backoff=15.0,
            backoff_factor=2.0,
        )

    @classmethod
    def anthropic(cls) -> Self:
        """Preset for the Anthropic messages API."""
        return cls(
            rate_limit_per_minute=5,
            base_backoff=1.0,
            max_backoff=15.0,
            backoff_factor=2.0,
        )

    @classmethod
    def search(cls) -> Self:
        """Preset for the web search provider."""
        return cls(
            rate_limit_per_minute=None,
            base_backoff=0.5,
            max_backoff=5.0,
            backoff_factor=1.5,
        )


@dataclass
class CacheConfig:
    """Configuration for the ResponseCache."""

    max_size: int = 100
    """Maximum number of entries kept after any insertion."""

    ttl: float | None = 24 * 60 * 60.0
    """Entry lifetime in seconds. None keeps entries until evicted."""

    persist: bool = False
    """Persist entries through the configured storage backend."""

    persist_debounce: float = 5.0
    """Quiet period after the last write before persisting."""

    namespace: str = "factcheck_response_cache"
    """Storage namespace holding the serialized cache."""

    def __post_init__(self) -> None:
        """Validate configuration after initialization."""
        if self.max_size < 1:
            raise ConfigurationError("max_size must be at least 1", field="max_size")
        if self.ttl is not None and self.ttl <= 0:
            raise ConfigurationError("ttl must be positive", field="ttl")
        if self.persist_debounce < 0:
            raise ConfigurationError(
                "persist_debounce must be non-negative", field="persist_debounce"
            )
        if not self.namespace:
            raise ConfigurationError("namespace must not be empty", field="namespace")


@dataclass
class RetryConfig:
    """Options for a RetryExecutor."""

    max_retries: int = 3
    """Retries after the first attempt (3 means up to 4 calls)."""

    initial_delay: float = 1.0
    """Delay before the first retry, before jitter."""

    max_delay: float = 30.0
    """Upper bound on any retry delay."""

    factor: float = 2.0
    """Exponential growth factor per retry."""

    def __post_init__(self) -> None:
        """Validate configuration after initialization."""
        if self.max_retries < 0:
            raise ConfigurationError(
                "max_retries must be non-negative", field="max_retries"
            )
        if self.initial_delay < 0:
            raise ConfigurationError(
                "initial_delay must be non-negative", field="initial_delay"
            )
        if self.max_delay < self.initial_delay:
            raise ConfigurationError(
                "max_delay must be >= initial_delay", field="max_delay"
            )
        if self.factor < 1.0:
            raise ConfigurationError("factor must be at least 1.0", field="factor")


@dataclass
class OrchestratorConfig:
    """
    Configuration for Orchestrator.check().

    The retry settings follow the layering of the pipeline: the whole
    check is retried on temporary errors (``check_retry``), each evaluation
    prompt is retried independently (``prompt_retry``), and the emergency
    fallback gets a single extra attempt (``fallback_retry``), as does the
    progressive quick assessment (``quick_retry``).
    """

    multi_model: bool = False
    """Evaluate with several prompts/tiers and aggregate the ratings."""

    auto_select_model: bool = True
    """Pick the primary tier from text complexity; otherwise use default_tier."""

    default_tier: ModelTier = ModelTier.STANDARD
    """Primary tier when auto-selection is disabled."""

    urgency: Urgency = Urgency.MEDIUM
    """Urgency passed to model selection."""

    cost_sensitive: bool = False
    """Prefer cheaper tiers during model selection."""

    max_tokens: int = 500
    """Token budget for each evaluation prompt."""

    fingerprint_chars: int = 1000
    """Prefix length hashed for in-flight deduplication."""

    extraction_threshold: int = 300
    """Texts longer than this get an AI claim-extraction prompt."""

    extraction_input_chars: int = 2000
    """Prefix of the text sent to the claim-extraction prompt."""

    search_query_max_chars: int = 300
    """Cap on the sentence-based fallback search query."""

    extraction_max_tokens: int = 300
    """Token budget for claim extraction and the emergency fallback."""

    fallback_input_chars: int = 1000
    """Prefix of the text sent to the emergency fallback prompt."""

    query_preview_chars: int = 100
    """Length of CheckResult.query_text."""

    progressive: bool = False
    """Try a short quick assessment first for low-complexity texts and skip
    search for them; escalate to the full check unless it is confident."""

    quick_confidence_threshold: float = 0.8
    """Self-reported confidence (0-1) at which a quick assessment is returned."""

    recovery_retries: bool = True
    """Re-run the pipeline for categories whose recovery strategy asks for
    retries before falling back (unknown and phrase-detected rate limits)."""

    check_retry: RetryConfig = field(
        default_factory=lambda: RetryConfig(max_retries=2, initial_delay=2.0)
    )
    prompt_retry: RetryConfig = field(
        default_factory=lambda: RetryConfig(max_retries=2, initial_delay=1.0)
    )
    fallback_retry: RetryConfig = field(
        default_factory=lambda: RetryConfig(max_retries=1, initial_delay=1.0)
    )
    quick_retry: RetryConfig = field(
        default_factory=lambda: RetryConfig(max_retries=1, initial_delay=1.0)
    )

    def __post_init__(self) -> None:
        """Validate configuration after initialization."""
        for name in (
            "max_tokens",
            "fingerprint_chars",
            "extraction_input_chars",
            "search_query_max_chars",
            "extraction_max_tokens",
            "fallback_input_chars",
            "query_preview_chars",
        ):
            if getattr(self, name) < 1:
                raise ConfigurationError(f"{name} must be at least 1", field=name)
        if self.extraction_threshold < 0:
            raise ConfigurationError(
                "extraction_threshold must be non-negative",
                field="extraction_threshold",
            )
        if not 0.0 <= self.quick_confidence_threshold <= 1.0:
            raise ConfigurationError(
                "quick_confidence_threshold must be between 0 and 1",
                field="quick_confidence_threshold",
            )
        if self.default_tier is ModelTier.EXTRACTION:
            raise ConfigurationError(
                "default_tier cannot be the extraction tier", field="default_tier"
            )


__all__ = ["CacheConfig", "OrchestratorConfig", "QueueConfig", "RetryConfig"]
