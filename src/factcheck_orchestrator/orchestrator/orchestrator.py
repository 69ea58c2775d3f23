# Copyright 2026 Seth Bang
# SPDX-License-Identifier: Apache-2.0
"""
Top-level fact-check orchestration.

Orchestrator.check() runs one statement through the pipeline:

    search query -> evidence -> tier selection -> prompt(s) -> aggregation

In progressive mode a low-complexity text skips search and is first given
a short quick assessment, which is returned only when the model reports
enough confidence.

Concurrent checks of the same text (same fingerprint) share one task.
Every failure is classified; recoverable categories are retried or sent to
an emergency prompt on a fallback tier, and anything left over becomes a
structured, degraded CheckResult. check() only raises when the caller
cancels.
"""

from __future__ import annotations

import asyncio
import hashlib
import logging
import time
from collections.abc import Callable
from dataclasses import dataclass
from datetime import date
from functools import partial
from typing import TYPE_CHECKING

from typing_extensions import Self

from ..cache.response_cache import ResponseCache
from ..cancellation import CancellationToken, cancellable_sleep
from ..config import CacheConfig, OrchestratorConfig, QueueConfig, RetryConfig
from ..exceptions import (
    EmergencyFallbackError,
    OperationCancelledError,
    OrchestratorError,
)
from ..observability.constants import (
    CHECK_DURATION_SECONDS,
    CHECKS_DEDUPLICATED_TOTAL,
    CHECKS_IN_FLIGHT,
    CHECKS_TOTAL,
    MODEL_SELECTIONS_TOTAL,
)
from ..policy.complexity import estimate_complexity
from ..policy.selection import (
    ModelSelectionOptions,
    select_optimal_model,
    select_secondary_tiers,
)
from ..resilience.classifier import ErrorClassifier
from ..resilience.recovery import RecoveryPolicy
from ..resilience.retry import RetryExecutor
from ..types.errors import ErrorCategory, RecoveryStrategy
from ..types.results import CheckResult, Confidence, PromptOutcome
from ..types.tiers import Complexity, ModelTier
from .aggregation import (
    aggregate_ratings,
    combine_outcomes,
    extract_confidence,
    extract_quick_explanation,
    extract_rating,
    round_half_up,
)
from .evidence import Evidence, EvidenceCollector
from .gateway import ModelGateway
from .prompts import (
    EvaluationPrompt,
    build_consistency_prompt,
    build_emergency_prompt,
    build_evidence_prompt,
    build_fact_check_prompt,
    build_quick_check_prompt,
)

if TYPE_CHECKING:
    from ..observability.protocols import MetricsCollectorProtocol
    from ..protocols.search import SearchProtocol
    from ..protocols.storage import StorageProtocol
    from ..providers.base import ProviderAdapter

logger = logging.getLogger(__name__)

SEARCH_UNAVAILABLE_NOTE = (
    "Note: Search results were unavailable; this assessment relies on "
    "model knowledge only."
)


@dataclass
class _CheckState:
    """Mutable progress of one check, read by the failure path."""

    query_text: str
    tier: ModelTier | None = None
    model: str | None = None


@dataclass
class _SharedCheck:
    """
    One running check and the callers awaiting it.

    The task runs under its own token, which fires only once every caller
    still waiting has left through its own token.
    """

    task: asyncio.Task[CheckResult]
    token: CancellationToken
    callers: int = 0


class Orchestrator:
    """
    Fact-check statements with deduplication and graceful degradation.

    Args:
        gateway: Cached, queued access to the model provider.
        evidence: Optional evidence collector; without one every check
            relies on model knowledge.
        config: Pipeline settings.
        classifier: Error classifier (shared with the retry predicates).
        recovery: Recovery policy resolving strategies per category.
        metrics_collector: Optional metrics sink.
        today: Returns the date quoted in single-model prompts.

    Example:
        >>> orchestrator = Orchestrator.create(OpenAIAdapter(key), search=search)
        >>> result = await orchestrator.check("The Eiffel Tower is in Paris.")
        >>> result.rating, result.confidence
        (96, <Confidence.LOW: 'Low'>)
    """

    def __init__(
        self,
        gateway: ModelGateway,
        evidence: EvidenceCollector | None = None,
        config: OrchestratorConfig | None = None,
        classifier: ErrorClassifier | None = None,
        recovery: RecoveryPolicy | None = None,
        metrics_collector: MetricsCollectorProtocol | None = None,
        today: Callable[[], date] = date.today,
    ) -> None:
        self.gateway = gateway
        self.evidence = evidence
        self.config = config or OrchestratorConfig()
        self.classifier = classifier or ErrorClassifier(metrics_collector)
        self.recovery = recovery or RecoveryPolicy(self.classifier)
        self._metrics = metrics_collector
        self._today = today

        self._in_flight: dict[str, _SharedCheck] = {}

        self._check_retry = RetryExecutor(
            self.config.check_retry,
            should_retry=self.classifier.is_retryable_temporary,
            name="check",
            metrics_collector=metrics_collector,
        )
        self._prompt_retry = RetryExecutor(
            self.config.prompt_retry,
            should_retry=self.classifier.is_temporary_error,
            name="prompt",
            metrics_collector=metrics_collector,
        )
        self._fallback_retry = RetryExecutor(
            self.config.fallback_retry,
            name="emergency_fallback",
            metrics_collector=metrics_collector,
        )
        self._quick_retry = RetryExecutor(
            self.config.quick_retry,
            should_retry=self.classifier.is_temporary_error,
            name="quick_check",
            metrics_collector=metrics_collector,
        )

    @classmethod
    def create(
        cls,
        adapter: ProviderAdapter,
        search: SearchProtocol | None = None,
        config: OrchestratorConfig | None = None,
        cache_config: CacheConfig | None = None,
        storage: StorageProtocol | None = None,
        queue_config: QueueConfig | None = None,
        search_queue_config: QueueConfig | None = None,
        metrics_collector: MetricsCollectorProtocol | None = None,
    ) -> Self:
        """
        Wire an orchestrator with its own cache, queues and collectors.

        Each call builds fresh instances, so two orchestrators never share
        a rate window, backoff counter or cache.
        """
        config = config or OrchestratorConfig()
        cache = ResponseCache(cache_config, storage, metrics_collector)
        gateway = ModelGateway(
            adapter,
            cache=cache,
            queue_config=queue_config,
            config=config,
            metrics_collector=metrics_collector,
        )
        evidence = (
            EvidenceCollector(
                search,
                queue_config=search_queue_config,
                metrics_collector=metrics_collector,
            )
            if search is not None
            else None
        )
        return cls(
            gateway,
            evidence=evidence,
            config=config,
            metrics_collector=metrics_collector,
        )

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    @staticmethod
    def fingerprint(text: str, chars: int = 1000) -> str:
        """Hash of the first ``chars`` characters of ``text``."""
        return hashlib.sha256(text[:chars].encode("utf-8")).hexdigest()

    @property
    def in_flight(self) -> int:
        """Number of distinct checks currently running."""
        return len(self._in_flight)

    async def check(
        self, text: str, token: CancellationToken | None = None
    ) -> CheckResult:
        """
        Fact-check ``text``.

        A call whose fingerprint matches a running check awaits that check
        instead of starting another. Firing ``token`` releases only this
        caller; the shared work is cancelled once every caller still
        waiting on it has fired its token. Cancelling the awaiting
        coroutine never cancels the shared work.

        Returns:
            The verdict, an emergency-fallback result (``degraded=True``)
            or a structured failure (``rating=None``).

        Raises:
            OperationCancelledError: If ``token`` fires before the result
                is ready.
            asyncio.CancelledError: If the awaiting coroutine is cancelled.
        """
        if token is not None:
            token.raise_if_cancelled()
        key = self.fingerprint(text, self.config.fingerprint_chars)
        shared = self._in_flight.get(key)
        if shared is None or shared.token.cancelled:
            internal = CancellationToken()
            task = asyncio.create_task(
                self._run_check(text, internal), name=f"check-{key[:12]}"
            )
            shared = _SharedCheck(task=task, token=internal)
            self._in_flight[key] = shared
            task.add_done_callback(partial(self._forget, key))
        else:
            logger.debug(f"Joining in-flight check {key[:12]}")
            if self._metrics is not None:
                self._metrics.inc_counter(CHECKS_DEDUPLICATED_TOTAL)

        shared.callers += 1
        try:
            return await self._await_shared(shared, token)
        finally:
            shared.callers -= 1
            if (
                shared.callers == 0
                and token is not None
                and token.cancelled
                and not shared.task.done()
            ):
                logger.info(f"Every caller left check {key[:12]}; cancelling it")
                shared.token.cancel(token.reason or "Every caller cancelled")

    async def _await_shared(
        self, shared: _SharedCheck, token: CancellationToken | None
    ) -> CheckResult:
        if token is None:
            return await asyncio.shield(shared.task)
        waiter = asyncio.ensure_future(token.wait())
        try:
            await asyncio.wait(
                {shared.task, waiter}, return_when=asyncio.FIRST_COMPLETED
            )
        finally:
            waiter.cancel()
        if shared.task.done():
            return shared.task.result()
        raise OperationCancelledError(token.reason or "Operation cancelled")

    async def close(self) -> None:
        """Cancel running checks, close the queues and flush the cache."""
        tasks = [shared.task for shared in self._in_flight.values()]
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        await self.gateway.close()
        if self.evidence is not None:
            await self.evidence.close()
        if self.gateway.cache is not None:
            await self.gateway.cache.close()

    # ------------------------------------------------------------------
    # Pipeline
    # ------------------------------------------------------------------

    def _forget(self, key: str, task: asyncio.Task[CheckResult]) -> None:
        shared = self._in_flight.get(key)
        if shared is not None and shared.task is task:
            del self._in_flight[key]
        # Retrieves the outcome even when every caller has already left.
        error = None if task.cancelled() else task.exception()
        if error is not None:
            logger.debug(f"Check {key[:12]} ended with {type(error).__name__}")

    async def _run_check(
        self, text: str, token: CancellationToken | None
    ) -> CheckResult:
        state = _CheckState(query_text=text[: self.config.query_preview_chars])
        start = time.monotonic()
        outcome = "failed"
        if self._metrics is not None:
            self._metrics.inc_gauge(CHECKS_IN_FLIGHT)
        try:
            try:
                result = await self._check_retry.execute(
                    lambda: self._pipeline(text, state, token), token
                )
            except (OperationCancelledError, asyncio.CancelledError):
                outcome = "cancelled"
                raise
            except Exception as e:
                result = await self._recover(text, e, state, token)
                if result.failed:
                    outcome = "failed"
                elif result.degraded:
                    outcome = "fallback"
                else:
                    outcome = "recovered"
            else:
                outcome = "ok"
            return result
        finally:
            duration = time.monotonic() - start
            logger.debug(f"Check finished ({outcome}) in {duration:.2f}s")
            if self._metrics is not None:
                self._metrics.dec_gauge(CHECKS_IN_FLIGHT)
                self._metrics.inc_counter(CHECKS_TOTAL, labels={"outcome": outcome})
                self._metrics.observe_histogram(CHECK_DURATION_SECONDS, duration)

    def _select_tier(self, text: str, complexity: Complexity) -> ModelTier:
        if not self.config.auto_select_model:
            return self.config.default_tier
        return select_optimal_model(
            ModelSelectionOptions(
                provider=self.gateway.provider,
                text_length=len(text),
                complexity=complexity,
                urgency=self.config.urgency,
                cost_sensitive=self.config.cost_sensitive,
            )
        )

    async def _gather_evidence(
        self, query: str, token: CancellationToken | None
    ) -> tuple[Evidence, bool]:
        """Collect evidence; returns it with a flag set when search failed."""
        if self.evidence is None:
            return Evidence(), False
        try:
            evidence = await self.evidence.collect(query, token)
        except (OperationCancelledError, asyncio.CancelledError):
            raise
        except Exception as e:
            logger.warning(f"Evidence collection failed, continuing without: {e}")
            return Evidence(), True
        unavailable = bool(evidence.queries) and (
            evidence.failed_queries == len(evidence.queries)
        )
        return evidence, unavailable

    async def _pipeline(
        self, text: str, state: _CheckState, token: CancellationToken | None
    ) -> CheckResult:
        complexity = estimate_complexity(text)
        quick = self.config.progressive and complexity is Complexity.LOW
        if quick:
            # Progressive checks of simple texts go without search.
            state.query_text = text[: self.config.query_preview_chars]
            evidence, search_failed = Evidence(), False
        else:
            query = await self.gateway.extract_search_query(text, token)
            state.query_text = query[: self.config.query_preview_chars]
            evidence, search_failed = await self._gather_evidence(query, token)

        tier = self._select_tier(text, complexity)
        state.tier = tier
        state.model = self.gateway.model_for(tier)
        logger.info(f"Checking with {self.gateway.provider}/{state.model} ({tier.value})")
        if self._metrics is not None:
            self._metrics.inc_counter(MODEL_SELECTIONS_TOTAL, labels={"tier": tier.value})

        if quick:
            quick_result = await self._quick_check(text, tier, token)
            if quick_result is not None:
                return quick_result.model_copy(update={"query_text": state.query_text})

        if self.config.multi_model:
            result = await self._multi_model(text, evidence, tier, token)
        else:
            result = await self._single_model(text, evidence, tier, token)

        text_out = result.result
        if search_failed:
            text_out += f"\n\n{SEARCH_UNAVAILABLE_NOTE}"
        return result.model_copy(
            update={
                "result": text_out,
                "query_text": state.query_text,
                "references": evidence.references,
            }
        )

    async def _single_model(
        self,
        text: str,
        evidence: Evidence,
        tier: ModelTier,
        token: CancellationToken | None,
    ) -> CheckResult:
        prompt = build_fact_check_prompt(
            text, evidence.context, self._today().isoformat()
        )
        model = self.gateway.model_for(tier)
        response = await self._prompt_retry.execute(
            lambda: self.gateway.complete(
                prompt, tier, max_tokens=self.config.max_tokens, token=token
            ),
            token,
        )
        return CheckResult(
            result=f"{response}\n\nModel: {model}",
            query_text="",
            rating=extract_rating(response),
            confidence=Confidence.LOW,
            model=model,
        )

    async def _quick_check(
        self, text: str, tier: ModelTier, token: CancellationToken | None
    ) -> CheckResult | None:
        """
        Ask for a short self-rated assessment.

        Returns:
            The quick result when it carries a rating and its confidence
            reaches ``quick_confidence_threshold``; None to escalate to
            the full check.
        """
        prompt = build_quick_check_prompt(text)
        model = self.gateway.model_for(tier)
        try:
            response = await self._quick_retry.execute(
                lambda: self.gateway.complete(
                    prompt,
                    tier,
                    max_tokens=max(1, self.config.max_tokens // 2),
                    token=token,
                ),
                token,
            )
        except (OperationCancelledError, asyncio.CancelledError):
            raise
        except Exception as e:
            logger.warning(f"Quick assessment failed, escalating to the full check: {e}")
            return None

        rating = extract_rating(response)
        confidence = extract_confidence(response)
        if rating is None or confidence < self.config.quick_confidence_threshold:
            logger.info(
                f"Quick assessment not confident enough ({confidence:.2f}), "
                "escalating to the full check"
            )
            return None

        logger.info(f"Quick assessment accepted with confidence {confidence:.2f}")
        return CheckResult(
            result=(
                f"Rating: {rating}\n\nExplanation: {extract_quick_explanation(response)}"
                f"\n\nNote: This was a quick assessment with "
                f"{round_half_up(confidence * 100)}% confidence.\n\nModel: {model}"
            ),
            query_text="",
            rating=rating,
            confidence=Confidence.HIGH,
            model=model,
            quick_check=True,
        )

    async def _run_prompt(
        self,
        prompt: EvaluationPrompt,
        tier: ModelTier,
        token: CancellationToken | None,
    ) -> PromptOutcome:
        model = self.gateway.model_for(tier)
        try:
            response = await self._prompt_retry.execute(
                lambda: self.gateway.complete(
                    prompt.prompt, tier, max_tokens=self.config.max_tokens, token=token
                ),
                token,
            )
        except (OperationCancelledError, asyncio.CancelledError):
            raise
        except Exception as e:
            self.classifier.log_error(
                e,
                operation=prompt.name,
                provider=self.gateway.provider,
                model=model,
            )
            return PromptOutcome(name=prompt.name, model=model, error=e)
        return PromptOutcome(
            name=prompt.name,
            model=model,
            response=response,
            rating=extract_rating(response),
        )

    async def _multi_model(
        self,
        text: str,
        evidence: Evidence,
        tier: ModelTier,
        token: CancellationToken | None,
    ) -> CheckResult:
        secondary = select_secondary_tiers(tier)
        plan: list[tuple[EvaluationPrompt, ModelTier]] = [
            (build_evidence_prompt(text, evidence.context), tier)
        ]
        plan.extend((build_consistency_prompt(text), t) for t in secondary)

        outcomes = await asyncio.gather(
            *(self._run_prompt(prompt, t, token) for prompt, t in plan)
        )
        succeeded = [o for o in outcomes if o.succeeded]
        if not succeeded:
            errors = [o.error for o in outcomes if o.error is not None]
            if errors:
                raise errors[0]
            raise OrchestratorError("Every evaluation prompt failed")
        if len(succeeded) < len(outcomes):
            logger.warning(
                f"{len(outcomes) - len(succeeded)} of {len(outcomes)} "
                "evaluation prompts failed"
            )

        verdict = aggregate_ratings(o.rating for o in succeeded)
        primary_model = self.gateway.model_for(tier)
        secondary_models = [self.gateway.model_for(t) for t in secondary]
        return CheckResult(
            result=combine_outcomes(outcomes, verdict, primary_model, secondary_models),
            query_text="",
            rating=verdict.rating,
            confidence=verdict.confidence,
            model=primary_model,
        )

    # ------------------------------------------------------------------
    # Failure path
    # ------------------------------------------------------------------

    def _retries_before_fallback(
        self, category: ErrorCategory, strategy: RecoveryStrategy
    ) -> bool:
        # Temporary errors were already retried by the check executor and
        # size-related errors are retried as the shrunk emergency prompt.
        return (
            self.config.recovery_retries
            and strategy.retry
            and strategy.max_retries > 0
            and not strategy.reduce_prompt_size
            and category is not ErrorCategory.TEMPORARY
        )

    async def _recover(
        self,
        text: str,
        error: Exception,
        state: _CheckState,
        token: CancellationToken | None,
    ) -> CheckResult:
        category = self.classifier.log_error(
            error,
            operation="fact_check",
            provider=self.gateway.provider,
            model=state.model or "unknown",
        )
        strategy = self.recovery.recovery_for(category, state.tier)
        logger.warning(strategy.user_message)

        if self._retries_before_fallback(category, strategy):
            recovery_retry = RetryExecutor(
                RetryConfig(
                    max_retries=strategy.max_retries - 1,
                    initial_delay=strategy.wait,
                    max_delay=max(strategy.wait, RetryConfig().max_delay),
                ),
                should_retry=lambda e: self.classifier.categorize(e) is category,
                name=f"recovery_{category.value}",
                metrics_collector=self._metrics,
            )
            try:
                # The failed check counts as the first attempt of the budget.
                await cancellable_sleep(strategy.wait, token)
                return await recovery_retry.execute(
                    lambda: self._pipeline(text, state, token), token
                )
            except (OperationCancelledError, asyncio.CancelledError):
                raise
            except Exception as e:
                error = e
                category = self.classifier.log_error(
                    e,
                    operation="fact_check_recovery",
                    provider=self.gateway.provider,
                    model=state.model or "unknown",
                )
                strategy = self.recovery.recovery_for(category, state.tier)

        if strategy.fallback_tier is not None:
            try:
                return await self._emergency_check(
                    text, strategy, category, state, token
                )
            except (OperationCancelledError, asyncio.CancelledError):
                raise
            except EmergencyFallbackError as e:
                logger.error(f"Emergency fallback failed: {e}")

        return CheckResult(
            result=f"Error: {strategy.user_message}",
            query_text=text[: self.config.query_preview_chars],
            rating=None,
            confidence=Confidence.LOW,
            model=state.model,
            degraded=True,
            error_category=category,
        )

    async def _emergency_check(
        self,
        text: str,
        strategy: RecoveryStrategy,
        category: ErrorCategory,
        state: _CheckState,
        token: CancellationToken | None,
    ) -> CheckResult:
        """
        Run the simplified single prompt on the fallback tier.

        Raises:
            EmergencyFallbackError: If the fallback prompt fails.
        """
        tier = strategy.fallback_tier
        if tier is None:
            raise EmergencyFallbackError(
                f"No fallback tier for {category.value} errors"
            )
        limit = self.config.fallback_input_chars
        if strategy.reduce_prompt_size:
            limit //= 2
        prompt = build_emergency_prompt(text[:limit])
        model = self.gateway.model_for(tier)
        logger.info(f"Emergency fallback on {self.gateway.provider}/{model} ({tier.value})")

        try:
            response = await self._fallback_retry.execute(
                lambda: self.gateway.complete(
                    prompt,
                    tier,
                    max_tokens=self.config.extraction_max_tokens,
                    token=token,
                ),
                token,
            )
        except (OperationCancelledError, asyncio.CancelledError):
            raise
        except Exception as e:
            self.classifier.log_error(
                e,
                operation="emergency_fallback",
                provider=self.gateway.provider,
                model=model,
            )
            raise EmergencyFallbackError(str(e), original=e) from e

        return CheckResult(
            result=(
                f"{response}\n\nNote: This is a simplified analysis due to "
                f"technical limitations.\n\nModel: {model}"
            ),
            query_text=text[: self.config.query_preview_chars],
            rating=extract_rating(response),
            confidence=Confidence.LOW,
            model=model,
            degraded=True,
            error_category=category,
        )


__all__ = ["SEARCH_UNAVAILABLE_NOTE", "Orchestrator"]
