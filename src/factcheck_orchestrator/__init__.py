# Copyright 2026 Seth Bang
# SPDX-License-Identifier: Apache-2.0
"""Factcheck Orchestrator - Resilient fact-checking over rate-limited AI APIs.

This library runs statements through search, model evaluation and rating
aggregation while keeping every upstream call inside its rate limits.

Key Features:
    - Per-provider FIFO request queues with rate windows and 429 re-delivery
    - Content-addressed response cache with optional persistence
    - Jittered exponential retry and error classification with fixed
      recovery strategies
    - Complexity-based model tier selection
    - Deduplication of concurrent identical checks
    - Graceful degradation to an emergency prompt or a structured failure

Quick Start:
    >>> from factcheck_orchestrator import ModelRequest, Orchestrator, ProviderAdapter
    >>>
    >>> class MyAdapter(ProviderAdapter):
    ...     @property
    ...     def name(self) -> str:
    ...         return "openai"
    ...     async def call(self, request: ModelRequest) -> str:
    ...         ...
    >>>
    >>> orchestrator = Orchestrator.create(MyAdapter(), search=my_search)
    >>> result = await orchestrator.check("Water boils at 100 C at sea level.")
    >>> print(result.rating, result.confidence.value)

Main Exports:
    - Orchestrator: Top-level check() entry point
    - RequestQueue, RateLimiter, BackoffPolicy: Upstream pacing
    - ResponseCache: Response memoization
    - RetryExecutor, ErrorClassifier, RecoveryPolicy: Resilience
    - MemoryStorage, RedisStorage: Cache persistence backends

Note: RedisStorage requires the 'redis' extra. Install with:
    pip install factcheck-orchestrator[redis]

Version: 1.0.0
"""

__version__ = "1.0.0"

from typing import TYPE_CHECKING

from .backends import MemoryStorage
from .cache import CacheEntry, ResponseCache
from .cancellation import CancellationToken
from .config import CacheConfig, OrchestratorConfig, QueueConfig, RetryConfig
from .exceptions import (
    ConfigurationError,
    EmergencyFallbackError,
    OperationCancelledError,
    OrchestratorError,
    QueueClosedError,
    UpstreamError,
)
from .observability import UnifiedMetricsCollector
from .orchestrator import EvidenceCollector, ModelGateway, Orchestrator
from .policy import estimate_complexity, select_optimal_model
from .protocols import SearchProtocol, StorageProtocol
from .providers import ANTHROPIC_MODELS, OPENAI_MODELS, ProviderAdapter, TierModelMap
from .queueing import BackoffPolicy, RateLimiter, RequestQueue
from .resilience import ErrorClassifier, RecoveryPolicy, RetryExecutor
from .types import (
    CheckResult,
    Complexity,
    Confidence,
    ErrorCategory,
    ErrorKind,
    ModelRequest,
    ModelTier,
    RecoveryStrategy,
    SearchResult,
    Task,
    Urgency,
)

# Lazy import for optional redis backend
if TYPE_CHECKING:
    from .backends import RedisStorage

__all__ = [
    "ANTHROPIC_MODELS",
    "OPENAI_MODELS",
    "BackoffPolicy",
    # Cache
    "CacheConfig",
    "CacheEntry",
    "CancellationToken",
    # Types
    "CheckResult",
    "Complexity",
    "Confidence",
    "ConfigurationError",
    "EmergencyFallbackError",
    "ErrorCategory",
    # Resilience
    "ErrorClassifier",
    "ErrorKind",
    "EvidenceCollector",
    # Backends
    "MemoryStorage",
    "ModelGateway",
    "ModelRequest",
    "ModelTier",
    "OperationCancelledError",
    # Orchestration
    "Orchestrator",
    "OrchestratorConfig",
    # Exceptions
    "OrchestratorError",
    # Providers
    "ProviderAdapter",
    "QueueClosedError",
    "QueueConfig",
    # Queueing
    "RateLimiter",
    "RecoveryPolicy",
    "RecoveryStrategy",
    "RedisStorage",  # Lazy loaded - requires redis extra
    "RequestQueue",
    "ResponseCache",
    "RetryConfig",
    "RetryExecutor",
    # Protocols
    "SearchProtocol",
    "SearchResult",
    "StorageProtocol",
    "Task",
    "TierModelMap",
    "UnifiedMetricsCollector",
    "UpstreamError",
    "Urgency",
    "estimate_complexity",
    "select_optimal_model",
]


def __getattr__(name: str) -> type:
    """Lazy import for optional redis backend."""
    if name == "RedisStorage":
        from .backends import RedisStorage

        return RedisStorage
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
