# Copyright 2026 Seth Bang
# SPDX-License-Identifier: Apache-2.0
"""
Request types for queued upstream calls.
"""

from __future__ import annotations

import asyncio
import time
import uuid
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Generic, TypeVar

if TYPE_CHECKING:
    from ..cancellation import CancellationToken

P = TypeVar("P")


@dataclass(frozen=True)
class ModelRequest:
    """
    A single prompt addressed to a provider model.

    Attributes:
        prompt: Full prompt text.
        model: Provider-specific model identifier.
        max_tokens: Optional completion token budget.
        metadata: Free-form values for the adapter (temperature, system prompt).
    """

    prompt: str
    model: str
    max_tokens: int | None = None
    metadata: dict[str, Any] = field(default_factory=dict, compare=False)


@dataclass
class QueuedRequest(Generic[P]):
    """
    A pending unit of work owned by a RequestQueue.

    The queue resolves or fails ``future`` exactly once. A request whose
    future is already done when it reaches the head of the queue has been
    abandoned by its caller and is skipped without dispatch.
    """

    payload: P
    future: asyncio.Future[Any]
    token: CancellationToken | None = None
    request_id: str = field(default_factory=lambda: uuid.uuid4().hex)
    enqueue_time: float = field(default_factory=time.monotonic)
    attempts: int = 0

    @property
    def abandoned(self) -> bool:
        """True if the caller no longer awaits the result."""
        return self.future.done()

    @property
    def cancelled(self) -> bool:
        """True if the request's cancellation token has fired."""
        return self.token is not None and self.token.cancelled

    def wait_time(self, now: float | None = None) -> float:
        """Seconds spent in the queue so far."""
        return (now if now is not None else time.monotonic()) - self.enqueue_time


__all__ = ["ModelRequest", "QueuedRequest"]
