# Copyright 2026 Seth Bang
# SPDX-License-Identifier: Apache-2.0
"""
Rate-limited FIFO request queue for a single upstream.

RequestQueue serializes calls to one upstream (an AI provider or the
search provider). Callers enqueue a payload and await a future; a single
drain task dispatches requests one at a time, honouring the local rate
window and backing off exponentially after consecutive failures.

Drain loop, per iteration:

1. If the rate window is full, sleep ``rate_check_interval`` and recheck.
   Rate waits do not count as failures.
2. If the previous dispatch failed, sleep ``backoff.delay(errors)``.
3. Pop the head. Skip it if the caller abandoned it or its cancellation
   token fired.
4. Dispatch. On success reset the error counter and resolve the future.
5. On HTTP 429 put the request back at the head, bump the error counter
   and sleep (``retry_after`` if the upstream sent one, otherwise twice
   the current backoff). The caller's future stays pending.
6. On any other error bump the error counter and fail the future.

The error counter is shared by every request in the queue, so one
caller's failures slow down the others. That matches how upstream rate
limits behave (they are per API key, not per request).
"""

from __future__ import annotations

import asyncio
import logging
import math
import time
from collections import deque
from collections.abc import Awaitable, Callable
from typing import TYPE_CHECKING, Any, Generic, TypeVar

from ..config import QueueConfig
from ..exceptions import OperationCancelledError, QueueClosedError
from ..observability.constants import (
    QUEUE_DEPTH,
    QUEUE_RATE_LIMITED_TOTAL,
    QUEUE_REDELIVERIES_TOTAL,
    QUEUE_REQUESTS_DISPATCHED_TOTAL,
    QUEUE_REQUESTS_FAILED_TOTAL,
    QUEUE_REQUESTS_SKIPPED_TOTAL,
    QUEUE_WAIT_SECONDS,
)
from ..types.request import QueuedRequest
from .backoff import BackoffPolicy
from .rate_limiter import RateLimiter

if TYPE_CHECKING:
    from ..cancellation import CancellationToken
    from ..observability.protocols import MetricsCollectorProtocol

logger = logging.getLogger(__name__)

P = TypeVar("P")
R = TypeVar("R")


def is_rate_limit_response(error: BaseException) -> bool:
    """True if ``error`` reports an HTTP 429 from the upstream."""
    status = getattr(error, "status", None)
    if status is None:
        status = getattr(error, "status_code", None)
    return status == 429


class RequestQueue(Generic[P, R]):
    """
    FIFO queue in front of one upstream callable.

    Args:
        upstream: Async callable performing the real request for a payload.
        config: Rate limit and backoff settings.
        name: Queue name, used in logs and metric labels.
        rate_limiter: Override the limiter built from ``config``.
        backoff: Override the backoff policy built from ``config``.
        metrics_collector: Optional metrics sink.

    Example:
        >>> queue = RequestQueue(adapter.call, QueueConfig.openai(), name="openai")
        >>> text = await queue.submit(ModelRequest(prompt, model="gpt-4o-mini"))
    """

    def __init__(
        self,
        upstream: Callable[[P], Awaitable[R]],
        config: QueueConfig | None = None,
        name: str = "default",
        rate_limiter: RateLimiter | None = None,
        backoff: BackoffPolicy | None = None,
        metrics_collector: MetricsCollectorProtocol | None = None,
    ) -> None:
        self.config = config or QueueConfig()
        self.name = name
        self._upstream = upstream
        self._limiter = rate_limiter or RateLimiter(
            self.config.rate_limit_per_minute, window=self.config.window
        )
        self._backoff = backoff or BackoffPolicy(
            base=self.config.base_backoff,
            factor=self.config.backoff_factor,
            max_delay=self.config.max_backoff,
        )
        self._metrics = metrics_collector
        self._labels = {"queue": name}

        self._pending: deque[QueuedRequest[P]] = deque()
        self._consecutive_errors = 0
        self._draining = False
        self._drain_task: asyncio.Task[None] | None = None
        self._closed = False

        self._dispatched = 0
        self._succeeded = 0
        self._failed = 0
        self._redelivered = 0
        self._skipped = 0

    # === Properties ===

    @property
    def consecutive_errors(self) -> int:
        return self._consecutive_errors

    @property
    def pending(self) -> int:
        """Number of requests waiting for dispatch."""
        return len(self._pending)

    @property
    def is_draining(self) -> bool:
        return self._draining

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def rate_limiter(self) -> RateLimiter:
        return self._limiter

    @property
    def backoff(self) -> BackoffPolicy:
        return self._backoff

    # === Public API ===

    def enqueue(
        self, payload: P, token: CancellationToken | None = None
    ) -> asyncio.Future[R]:
        """
        Append a request and start draining if idle.

        Args:
            payload: Value passed to the upstream callable.
            token: Optional cancellation token checked before dispatch.

        Returns:
            A future resolved with the upstream result or failed with its
            error. Cancelling the future abandons the request.

        Raises:
            QueueClosedError: If the queue has been closed.
            OperationCancelledError: If ``token`` has already fired.
        """
        if self._closed:
            raise QueueClosedError(f"Queue '{self.name}' is closed", queue_name=self.name)
        if token is not None:
            token.raise_if_cancelled()

        future: asyncio.Future[R] = asyncio.get_running_loop().create_future()
        request: QueuedRequest[P] = QueuedRequest(
            payload=payload, future=future, token=token
        )
        self._pending.append(request)
        self._update_depth()
        logger.debug(
            f"Queue '{self.name}': enqueued {request.request_id} "
            f"(pending={len(self._pending)})"
        )
        self._ensure_draining()
        return future

    async def submit(self, payload: P, token: CancellationToken | None = None) -> R:
        """Enqueue ``payload`` and wait for its result.

        Cancelling the awaiting coroutine abandons the request; the queue
        skips it if it has not been dispatched yet.
        """
        future = self.enqueue(payload, token)
        try:
            return await future
        except asyncio.CancelledError:
            future.cancel()
            raise

    async def close(self) -> None:
        """
        Stop draining and fail every pending request with QueueClosedError.

        A request already dispatched to the upstream is abandoned; its
        caller receives QueueClosedError as well.
        """
        if self._closed:
            return
        self._closed = True
        task = self._drain_task
        if task is not None and not task.done():
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass
        error_count = 0
        while self._pending:
            request = self._pending.popleft()
            if not request.future.done():
                request.future.set_exception(
                    QueueClosedError(
                        f"Queue '{self.name}' closed before dispatch",
                        queue_name=self.name,
                    )
                )
                error_count += 1
        self._update_depth()
        logger.info(f"Queue '{self.name}' closed ({error_count} pending requests failed)")

    def get_metrics(self) -> dict[str, Any]:
        """Return a snapshot of queue counters and state."""
        return {
            "name": self.name,
            "pending": len(self._pending),
            "draining": self._draining,
            "closed": self._closed,
            "consecutive_errors": self._consecutive_errors,
            "current_backoff": self._backoff.delay(self._consecutive_errors),
            "in_rate_window": self._limiter.in_window,
            "dispatched": self._dispatched,
            "succeeded": self._succeeded,
            "failed": self._failed,
            "redelivered": self._redelivered,
            "skipped": self._skipped,
        }

    # === Drain loop ===

    def _ensure_draining(self) -> None:
        if self._draining or self._closed:
            return
        self._draining = True
        self._drain_task = asyncio.create_task(
            self._drain(), name=f"request-queue-{self.name}"
        )

    async def _drain(self) -> None:
        try:
            while self._pending and not self._closed:
                if not self._limiter.allow():
                    self._inc(QUEUE_RATE_LIMITED_TOTAL)
                    logger.debug(
                        f"Queue '{self.name}': rate window full, "
                        f"waiting {self.config.rate_check_interval}s"
                    )
                    await asyncio.sleep(self.config.rate_check_interval)
                    continue

                current_backoff = self._backoff.delay(self._consecutive_errors)
                if self._consecutive_errors > 0:
                    logger.debug(
                        f"Queue '{self.name}': backing off {current_backoff:.2f}s "
                        f"after {self._consecutive_errors} consecutive errors"
                    )
                    await asyncio.sleep(current_backoff)
                    if not self._pending:
                        break

                request = self._pending.popleft()
                self._update_depth()
                if self._skip_if_dead(request):
                    continue

                self._limiter.record()
                request.attempts += 1
                self._dispatched += 1
                self._inc(QUEUE_REQUESTS_DISPATCHED_TOTAL)
                if self._metrics is not None:
                    self._metrics.observe_histogram(
                        QUEUE_WAIT_SECONDS,
                        time.monotonic() - request.enqueue_time,
                        self._labels,
                    )

                try:
                    result = await self._upstream(request.payload)
                except asyncio.CancelledError:
                    if not request.future.done():
                        request.future.set_exception(
                            QueueClosedError(
                                f"Queue '{self.name}' closed during dispatch",
                                queue_name=self.name,
                            )
                        )
                    raise
                except Exception as e:
                    if is_rate_limit_response(e):
                        retry_after = getattr(e, "retry_after", None)
                        if retry_after is not None and math.isfinite(retry_after):
                            delay = float(retry_after)
                        else:
                            delay = current_backoff * 2
                        self._consecutive_errors += 1
                        self._pending.appendleft(request)
                        self._redelivered += 1
                        self._inc(QUEUE_REDELIVERIES_TOTAL)
                        self._update_depth()
                        logger.warning(
                            f"Queue '{self.name}': upstream returned 429, "
                            f"re-queued {request.request_id} and waiting {delay:.2f}s"
                        )
                        await asyncio.sleep(delay)
                        continue

                    self._consecutive_errors += 1
                    self._failed += 1
                    self._inc(QUEUE_REQUESTS_FAILED_TOTAL)
                    logger.warning(
                        f"Queue '{self.name}': request {request.request_id} failed "
                        f"({type(e).__name__}: {e})"
                    )
                    if not request.future.done():
                        request.future.set_exception(e)
                    continue

                self._consecutive_errors = 0
                self._succeeded += 1
                if not request.future.done():
                    request.future.set_result(result)
        finally:
            self._draining = False
            self._drain_task = None
        if self._pending and not self._closed:
            # Requests arrived while the loop was exiting.
            self._ensure_draining()

    def _skip_if_dead(self, request: QueuedRequest[P]) -> bool:
        if request.abandoned:
            self._skipped += 1
            self._inc(QUEUE_REQUESTS_SKIPPED_TOTAL)
            logger.debug(f"Queue '{self.name}': skipping abandoned {request.request_id}")
            return True
        if request.cancelled:
            self._skipped += 1
            self._inc(QUEUE_REQUESTS_SKIPPED_TOTAL)
            reason = request.token.reason if request.token else None
            request.future.set_exception(
                OperationCancelledError(reason or "Request cancelled before dispatch")
            )
            logger.debug(f"Queue '{self.name}': skipping cancelled {request.request_id}")
            return True
        return False

    def _inc(self, name: str) -> None:
        if self._metrics is not None:
            self._metrics.inc_counter(name, labels=self._labels)

    def _update_depth(self) -> None:
        if self._metrics is not None:
            self._metrics.set_gauge(QUEUE_DEPTH, len(self._pending), self._labels)


__all__ = ["RequestQueue", "is_rate_limit_response"]
