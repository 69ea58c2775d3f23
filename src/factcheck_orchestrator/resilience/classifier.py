# Copyright 2026 Seth Bang
# SPDX-License-Identifier: Apache-2.0
"""
Error classification.

ErrorClassifier maps any exception to an ErrorCategory. Tagged
UpstreamErrors are classified from their status and kind; foreign
exceptions fall back to the ``status``/``status_code`` attributes that
HTTP client errors commonly carry and, last, to message phrasing.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from ..exceptions import UpstreamError
from ..observability.constants import ERRORS_CLASSIFIED_TOTAL
from ..types.errors import ErrorCategory, ErrorKind

if TYPE_CHECKING:
    from ..observability.protocols import MetricsCollectorProtocol

logger = logging.getLogger(__name__)

RATE_LIMIT_PHRASES = ("rate limit", "too many requests", "quota exceeded")
AUTH_PHRASES = ("unauthorized", "authentication", "invalid key", "invalid api key")
TEMPORARY_PHRASES = (
    "timeout",
    "connection",
    "network",
    "temporarily",
    "unavailable",
    "overloaded",
)
CONTENT_POLICY_PHRASES = (
    "content policy",
    "content filter",
    "violates",
    "inappropriate",
)
CONTEXT_LENGTH_PHRASES = ("context length", "token limit", "too long")


def _status_of(error: BaseException) -> int | None:
    status = getattr(error, "status", None)
    if status is None:
        status = getattr(error, "status_code", None)
    try:
        return int(status) if status is not None else None
    except (TypeError, ValueError):
        return None


def _message_of(error: BaseException) -> str:
    return str(error).lower()


def _mentions(error: BaseException, phrases: tuple[str, ...]) -> bool:
    message = _message_of(error)
    return any(phrase in message for phrase in phrases)


class ErrorClassifier:
    """
    Map errors to ErrorCategory in a fixed priority order.

    Priority: rate limit, auth, temporary, content policy, context length,
    unknown. An error matching several rules gets the first.

    Example:
        >>> classifier = ErrorClassifier()
        >>> classifier.categorize(UpstreamError("slow down", status=429))
        <ErrorCategory.RATE_LIMIT: 'rate_limit'>
    """

    def __init__(self, metrics_collector: MetricsCollectorProtocol | None = None):
        self._metrics = metrics_collector

    def is_rate_limit_error(self, error: BaseException | None) -> bool:
        if error is None:
            return False
        return _status_of(error) == 429 or _mentions(error, RATE_LIMIT_PHRASES)

    def is_auth_error(self, error: BaseException | None) -> bool:
        if error is None:
            return False
        return _status_of(error) in (401, 403) or _mentions(error, AUTH_PHRASES)

    def is_temporary_error(self, error: BaseException | None) -> bool:
        """True for 5xx responses, network failures and timeouts."""
        if error is None:
            return False
        if isinstance(error, UpstreamError) and error.kind in (
            ErrorKind.NETWORK,
            ErrorKind.TIMEOUT,
        ):
            return True
        if isinstance(error, (TimeoutError, ConnectionError)):
            return True
        status = _status_of(error)
        if status is not None and status >= 500:
            return True
        return _mentions(error, TEMPORARY_PHRASES)

    def is_content_policy_error(self, error: BaseException | None) -> bool:
        if error is None:
            return False
        if isinstance(error, UpstreamError) and error.kind is ErrorKind.CONTENT_POLICY:
            return True
        return _mentions(error, CONTENT_POLICY_PHRASES)

    def is_context_length_error(self, error: BaseException | None) -> bool:
        if error is None:
            return False
        if isinstance(error, UpstreamError) and error.kind is ErrorKind.CONTEXT_LENGTH:
            return True
        return _mentions(error, CONTEXT_LENGTH_PHRASES)

    def is_retryable_temporary(self, error: BaseException | None) -> bool:
        """Temporary and not an auth failure (used by the check-level retry)."""
        return self.is_temporary_error(error) and not self.is_auth_error(error)

    def categorize(self, error: BaseException | None) -> ErrorCategory:
        """Return the ErrorCategory for ``error`` (UNKNOWN for None)."""
        if error is None:
            category = ErrorCategory.UNKNOWN
        elif self.is_rate_limit_error(error):
            category = ErrorCategory.RATE_LIMIT
        elif self.is_auth_error(error):
            category = ErrorCategory.AUTH_ERROR
        elif self.is_temporary_error(error):
            category = ErrorCategory.TEMPORARY
        elif self.is_content_policy_error(error):
            category = ErrorCategory.CONTENT_POLICY
        elif self.is_context_length_error(error):
            category = ErrorCategory.CONTEXT_LENGTH
        else:
            category = ErrorCategory.UNKNOWN
        return category

    def log_error(
        self,
        error: BaseException,
        operation: str = "unknown",
        provider: str = "unknown",
        model: str = "unknown",
    ) -> ErrorCategory:
        """Categorize ``error``, log it with context and count it."""
        category = self.categorize(error)
        logger.error(
            f"[{category.name}] Error in {operation} using {provider}/{model}: {error}"
        )
        if self._metrics is not None:
            self._metrics.inc_counter(
                ERRORS_CLASSIFIED_TOTAL, labels={"category": category.value}
            )
        return category


__all__ = [
    "AUTH_PHRASES",
    "CONTENT_POLICY_PHRASES",
    "CONTEXT_LENGTH_PHRASES",
    "RATE_LIMIT_PHRASES",
    "TEMPORARY_PHRASES",
    "ErrorClassifier",
]
