"""
Shared fixtures for the factcheck_orchestrator test suite.

Provides scripted provider/search fakes and fast configurations so tests
never wait on real backoff delays.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

import pytest

from factcheck_orchestrator.config import OrchestratorConfig, QueueConfig, RetryConfig
from factcheck_orchestrator.providers.base import OPENAI_MODELS, ProviderAdapter
from factcheck_orchestrator.types.request import ModelRequest
from factcheck_orchestrator.types.results import SearchResult

Responder = Callable[[ModelRequest], Any]


class FakeAdapter(ProviderAdapter):
    """
    Provider adapter answering from a responder function.

    The responder may return a string or an exception instance; exceptions
    are raised. Every request is recorded in ``requests``.
    """

    def __init__(self, responder: Responder | str = "Rating: 80\nExplanation: ok"):
        super().__init__(OPENAI_MODELS)
        self.responder = responder
        self.requests: list[ModelRequest] = []

    @property
    def name(self) -> str:
        return "openai"

    async def call(self, request: ModelRequest) -> str:
        self.requests.append(request)
        if isinstance(self.responder, str):
            return self.responder
        outcome = self.responder(request)
        if isinstance(outcome, BaseException):
            raise outcome
        return str(outcome)


class FakeSearch:
    """Search collaborator returning canned results per call."""

    def __init__(self, results: list[SearchResult] | None = None, error=None):
        self.results = results or []
        self.error = error
        self.queries: list[str] = []

    async def search(self, query: str) -> list[SearchResult]:
        self.queries.append(query)
        if self.error is not None:
            raise self.error
        return list(self.results)


FAST_QUEUE = QueueConfig(
    rate_limit_per_minute=None,
    base_backoff=0.001,
    max_backoff=0.01,
    backoff_factor=2.0,
    rate_check_interval=0.01,
)

FAST_RETRY = RetryConfig(max_retries=2, initial_delay=0.001, max_delay=0.01)


@pytest.fixture
def fast_queue_config() -> QueueConfig:
    return FAST_QUEUE


@pytest.fixture
def fast_orchestrator_config() -> OrchestratorConfig:
    """Orchestrator settings with millisecond retry delays."""
    return OrchestratorConfig(
        check_retry=FAST_RETRY,
        prompt_retry=FAST_RETRY,
        fallback_retry=RetryConfig(max_retries=1, initial_delay=0.001, max_delay=0.01),
        quick_retry=RetryConfig(max_retries=1, initial_delay=0.001, max_delay=0.01),
        recovery_retries=False,
    )


@pytest.fixture
def fake_adapter() -> FakeAdapter:
    return FakeAdapter()


@pytest.fixture
def sample_results() -> list[SearchResult]:
    return [
        SearchResult(
            title="Blog post",
            description="Someone's opinion",
            url="https://blog.example.com/post",
            domain="blog.example.com",
            date="2024-01-05",
        ),
        SearchResult(
            title="Fact check",
            description="Rated mostly true",
            url="https://www.snopes.com/fact-check/x",
            domain="snopes.com",
            date="2023-06-01",
        ),
    ]


@pytest.fixture
def adapter_factory() -> type[FakeAdapter]:
    """The FakeAdapter class, for tests that script their own responses."""
    return FakeAdapter


@pytest.fixture
def search_factory() -> type[FakeSearch]:
    return FakeSearch
