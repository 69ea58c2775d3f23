# Copyright 2026 Seth Bang
# SPDX-License-Identifier: Apache-2.0
"""
Cooperative cancellation for in-flight checks.

A CancellationToken is passed down from Orchestrator.check() to the retry
executor and the request queues. Firing it wakes any token-aware sleep
immediately and makes queued requests fail before dispatch.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging

from .exceptions import OperationCancelledError

logger = logging.getLogger(__name__)


class CancellationToken:
    """
    A one-shot cancellation signal.

    Example:
        >>> token = CancellationToken()
        >>> task = asyncio.create_task(orchestrator.check(text, token=token))
        >>> token.cancel("user navigated away")
    """

    def __init__(self) -> None:
        self._event = asyncio.Event()
        self._reason: str | None = None

    @property
    def cancelled(self) -> bool:
        """Whether cancel() has been called."""
        return self._event.is_set()

    @property
    def reason(self) -> str | None:
        return self._reason

    def cancel(self, reason: str | None = None) -> None:
        """Fire the token. Subsequent calls are no-ops."""
        if self._event.is_set():
            return
        self._reason = reason
        self._event.set()
        logger.debug(f"Cancellation requested: {reason or 'no reason given'}")

    def raise_if_cancelled(self) -> None:
        """
        Raise OperationCancelledError if the token has fired.

        Raises:
            OperationCancelledError: If cancel() was called.
        """
        if self._event.is_set():
            raise OperationCancelledError(self._reason or "Operation cancelled")

    async def wait(self) -> None:
        """Block until the token fires."""
        await self._event.wait()

    async def sleep(self, delay: float) -> None:
        """
        Sleep for ``delay`` seconds, waking early if the token fires.

        Raises:
            OperationCancelledError: If the token fires before or during the sleep.
        """
        self.raise_if_cancelled()
        if delay <= 0:
            return
        with contextlib.suppress(asyncio.TimeoutError):
            await asyncio.wait_for(self._event.wait(), timeout=delay)
        self.raise_if_cancelled()


async def cancellable_sleep(delay: float, token: CancellationToken | None) -> None:
    """Sleep with asyncio.sleep, or through ``token`` when one is given."""
    if token is None:
        await asyncio.sleep(delay)
    else:
        await token.sleep(delay)


__all__ = ["CancellationToken", "cancellable_sleep"]
