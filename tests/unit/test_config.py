"""Tests for configuration dataclasses and their validation."""

import pytest

from factcheck_orchestrator.config import (
    CacheConfig,
    OrchestratorConfig,
    QueueConfig,
    RetryConfig,
)
from factcheck_orchestrator.exceptions import ConfigurationError
from factcheck_orchestrator.types.tiers import ModelTier


class TestQueueConfig:
    """Tests for QueueConfig."""

    def test_defaults_disable_rate_limit(self):
        config = QueueConfig()
        assert config.rate_limit_per_minute is None
        assert config.rate_limited is False

    def test_openai_preset(self):
        config = QueueConfig.openai()
        assert config.rate_limit_per_minute == 5
        assert config.base_backoff == 1.0
        assert config.max_backoff == 15.0
        assert config.backoff_factor == 2.0
        assert config.rate_limited is True

    def test_anthropic_preset_matches_openai(self):
        assert QueueConfig.anthropic() == QueueConfig.openai()

    def test_search_preset(self):
        """The search provider has no per-minute cap and backs off gently."""
        config = QueueConfig.search()
        assert config.rate_limit_per_minute is None
        assert config.base_backoff == 0.5
        assert config.max_backoff == 5.0
        assert config.backoff_factor == 1.5

    def test_zero_limit_is_unlimited(self):
        assert QueueConfig(rate_limit_per_minute=0).rate_limited is False

    @pytest.mark.parametrize(
        ("kwargs", "field"),
        [
            ({"rate_limit_per_minute": -1}, "rate_limit_per_minute"),
            ({"window": 0}, "window"),
            ({"base_backoff": -0.1}, "base_backoff"),
            ({"base_backoff": 10.0, "max_backoff": 5.0}, "max_backoff"),
            ({"backoff_factor": 0.5}, "backoff_factor"),
            ({"rate_check_interval": 0}, "rate_check_interval"),
        ],
    )
    def test_invalid_values(self, kwargs, field):
        with pytest.raises(ConfigurationError) as exc_info:
            QueueConfig(**kwargs)
        assert exc_info.value.field == field


class TestCacheConfig:
    def test_defaults(self):
        config = CacheConfig()
        assert config.max_size == 100
        assert config.ttl == 86400
        assert config.persist is False

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"max_size": 0},
            {"ttl": 0},
            {"persist_debounce": -1},
            {"namespace": ""},
        ],
    )
    def test_invalid_values(self, kwargs):
        with pytest.raises(ConfigurationError):
            CacheConfig(**kwargs)

    def test_ttl_none_allowed(self):
        assert CacheConfig(ttl=None).ttl is None


class TestRetryConfig:
    def test_defaults(self):
        config = RetryConfig()
        assert config.max_retries == 3
        assert config.initial_delay == 1.0
        assert config.max_delay == 30.0

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"max_retries": -1},
            {"initial_delay": -1.0},
            {"initial_delay": 5.0, "max_delay": 1.0},
            {"factor": 0.9},
        ],
    )
    def test_invalid_values(self, kwargs):
        with pytest.raises(ConfigurationError):
            RetryConfig(**kwargs)


class TestOrchestratorConfig:
    """Tests for OrchestratorConfig."""

    def test_layered_retry_defaults(self):
        """Check, prompt and fallback retries have their own budgets."""
        config = OrchestratorConfig()
        assert config.check_retry.max_retries == 2
        assert config.check_retry.initial_delay == 2.0
        assert config.prompt_retry.max_retries == 2
        assert config.prompt_retry.initial_delay == 1.0
        assert config.fallback_retry.max_retries == 1

    def test_limits(self):
        config = OrchestratorConfig()
        assert config.extraction_threshold == 300
        assert config.search_query_max_chars == 300
        assert config.fallback_input_chars == 1000
        assert config.fingerprint_chars == 1000
        assert config.max_tokens == 500

    def test_extraction_tier_rejected_as_default(self):
        with pytest.raises(ConfigurationError) as exc_info:
            OrchestratorConfig(default_tier=ModelTier.EXTRACTION)
        assert exc_info.value.field == "default_tier"

    @pytest.mark.parametrize(
        "field", ["fingerprint_chars", "max_tokens", "fallback_input_chars"]
    )
    def test_positive_sizes(self, field):
        with pytest.raises(ConfigurationError):
            OrchestratorConfig(**{field: 0})
