# Copyright 2026 Seth Bang
# SPDX-License-Identifier: Apache-2.0
"""
Upstream-agnostic retry with jittered exponential backoff.

RetryExecutor wraps any async operation. It is composed around calls that
also go through a RequestQueue, giving two independent layers: the queue
handles HTTP 429 re-delivery, the executor handles general transient
failures.
"""

from __future__ import annotations

import asyncio
import logging
import random
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING, TypeVar

from ..cancellation import cancellable_sleep
from ..config import RetryConfig
from ..observability.constants import RETRIES_TOTAL
from ..queueing.backoff import BackoffPolicy

if TYPE_CHECKING:
    from ..cancellation import CancellationToken
    from ..observability.protocols import MetricsCollectorProtocol

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class RetryInfo:
    """Details passed to ``on_retry`` before each retry sleep."""

    retry_count: int
    """1-based number of the retry about to happen."""

    delay: float
    """Seconds the executor will sleep before retrying."""

    max_retries: int


def _always(error: BaseException) -> bool:
    return True


class RetryExecutor:
    """
    Run an async operation, retrying retryable failures with backoff.

    The delay before retry ``n`` (0-based) is
    ``min(initial_delay * factor**n * jitter, max_delay)`` with jitter
    drawn from [0.85, 1.15]. ``max_retries=3`` allows up to four calls.

    Args:
        config: Retry limits and delays.
        should_retry: Predicate deciding whether an error is retryable.
            Defaults to retrying every Exception.
        on_retry: Callback invoked with the error and a RetryInfo before
            each retry sleep.
        name: Operation name for logs and metric labels.
        metrics_collector: Optional metrics sink.
        rng: Random source for jitter (injectable for tests).

    Example:
        >>> executor = RetryExecutor(
        ...     RetryConfig(max_retries=2, initial_delay=1.0),
        ...     should_retry=ErrorClassifier().is_temporary_error,
        ... )
        >>> text = await executor.execute(lambda: gateway.complete(prompt, tier))
    """

    def __init__(
        self,
        config: RetryConfig | None = None,
        should_retry: Callable[[BaseException], bool] | None = None,
        on_retry: Callable[[BaseException, RetryInfo], None] | None = None,
        name: str = "operation",
        metrics_collector: MetricsCollectorProtocol | None = None,
        rng: random.Random | None = None,
    ) -> None:
        self.config = config or RetryConfig()
        self.should_retry = should_retry or _always
        self.on_retry = on_retry
        self.name = name
        self._metrics = metrics_collector
        self._rng = rng
        self._backoff = BackoffPolicy(
            base=self.config.initial_delay,
            factor=self.config.factor,
            max_delay=self.config.max_delay,
        )

    async def execute(
        self,
        operation: Callable[[], Awaitable[T]],
        token: CancellationToken | None = None,
    ) -> T:
        """
        Call ``operation`` until it succeeds or retries are exhausted.

        Args:
            operation: Zero-argument callable returning a fresh awaitable.
            token: Optional cancellation token checked before every attempt
                and observed during retry sleeps.

        Returns:
            The operation's result.

        Raises:
            Exception: The last error, once it is not retryable or the
                retry budget is spent.
            OperationCancelledError: If ``token`` fires.
        """
        retries = 0
        while True:
            if token is not None:
                token.raise_if_cancelled()
            try:
                return await operation()
            except asyncio.CancelledError:
                raise
            except Exception as e:
                if retries >= self.config.max_retries or not self.should_retry(e):
                    raise
                delay = self._backoff.jittered_delay(retries, self._rng)
                info = RetryInfo(
                    retry_count=retries + 1,
                    delay=delay,
                    max_retries=self.config.max_retries,
                )
                logger.info(
                    f"Retry {info.retry_count}/{info.max_retries} of {self.name} "
                    f"after {delay:.2f}s: {e}"
                )
                if self._metrics is not None:
                    self._metrics.inc_counter(
                        RETRIES_TOTAL, labels={"operation": self.name}
                    )
                if self.on_retry is not None:
                    self.on_retry(e, info)
                await cancellable_sleep(delay, token)
                retries += 1


async def retry_with_backoff(
    operation: Callable[[], Awaitable[T]],
    max_retries: int = 3,
    initial_delay: float = 1.0,
    max_delay: float = 30.0,
    should_retry: Callable[[BaseException], bool] | None = None,
    on_retry: Callable[[BaseException, RetryInfo], None] | None = None,
    token: CancellationToken | None = None,
) -> T:
    """Convenience wrapper building a one-off RetryExecutor."""
    executor = RetryExecutor(
        RetryConfig(
            max_retries=max_retries,
            initial_delay=initial_delay,
            max_delay=max_delay,
        ),
        should_retry=should_retry,
        on_retry=on_retry,
    )
    return await executor.execute(operation, token)


__all__ = ["RetryExecutor", "RetryInfo", "retry_with_backoff"]
