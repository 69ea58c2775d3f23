# Copyright 2026 Seth Bang
# SPDX-License-Identifier: Apache-2.0
"""Exception classes for the fact-check orchestrator.

This module defines the exception hierarchy used throughout the library.
All exceptions inherit from OrchestratorError, making it easy to catch
all orchestrator-related exceptions with a single except clause.

Upstream failures (AI providers, search providers) are reported with
UpstreamError, a tagged exception carrying an ErrorKind plus the optional
HTTP status and Retry-After hint. The error classifier works from these
fields first and only falls back to message phrasing for foreign
exceptions.
"""

from __future__ import annotations

import math
from collections.abc import Mapping

from .types.errors import ErrorKind


class OrchestratorError(Exception):
    """Base exception for all orchestrator errors.

    Example:
        try:
            result = await queue.submit(request)
        except OrchestratorError as e:
            logger.error(f"Orchestrator error: {e}")
    """

    pass


class UpstreamError(OrchestratorError):
    """Raised by provider adapters when an upstream call fails.

    Attributes:
        kind: The failure category reported at the collaborator boundary.
        status: HTTP status code, if the failure came from an HTTP response.
        retry_after: Server-provided wait hint in seconds, if any.
        provider: Name of the provider that failed, when known.

    Example:
        if response.status != 200:
            raise UpstreamError.from_response(
                response.status, await response.text(), response.headers
            )
    """

    def __init__(
        self,
        message: str,
        kind: ErrorKind = ErrorKind.OTHER,
        status: int | None = None,
        retry_after: float | None = None,
        provider: str | None = None,
    ):
        super().__init__(message)
        self.kind = kind
        self.status = status
        self.retry_after = retry_after
        self.provider = provider

    @property
    def status_code(self) -> int | None:
        """Alias for status, matching the attribute name HTTP clients use."""
        return self.status

    @classmethod
    def from_response(
        cls,
        status: int,
        message: str,
        headers: Mapping[str, str] | None = None,
        provider: str | None = None,
    ) -> UpstreamError:
        """Build an UpstreamError from an HTTP status, body and headers.

        A numeric ``Retry-After`` header (seconds) is parsed into
        ``retry_after``; HTTP-date and non-finite values are ignored.

        Args:
            status: HTTP status code of the failed response.
            message: Error text (typically the response body).
            headers: Response headers, matched case-insensitively.
            provider: Name of the provider that produced the response.

        Returns:
            An UpstreamError tagged with ErrorKind.HTTP_STATUS.
        """
        retry_after: float | None = None
        if headers:
            for name, value in headers.items():
                if name.lower() != "retry-after":
                    continue
                try:
                    seconds = float(value)
                except (TypeError, ValueError):
                    break
                if math.isfinite(seconds):
                    retry_after = max(0.0, seconds)
                break
        return cls(
            f"{provider or 'upstream'} returned {status}: {message}",
            kind=ErrorKind.HTTP_STATUS,
            status=status,
            retry_after=retry_after,
            provider=provider,
        )


class QueueClosedError(OrchestratorError):
    """Raised when a request is submitted to, or pending in, a closed queue.

    Attributes:
        queue_name: The name of the queue that was closed.
    """

    def __init__(self, message: str, queue_name: str | None = None):
        super().__init__(message)
        self.queue_name = queue_name


class OperationCancelledError(OrchestratorError):
    """Raised when a CancellationToken fires before an operation completes."""

    pass


class ConfigurationError(OrchestratorError, ValueError):
    """Raised when configuration values are invalid.

    Inherits from ValueError so callers validating user input can catch
    either type.

    Attributes:
        field: The configuration field that failed validation, if known.
    """

    def __init__(self, message: str, field: str | None = None):
        super().__init__(message)
        self.field = field


class EmergencyFallbackError(OrchestratorError):
    """Raised when the degraded single-prompt check also fails.

    Attributes:
        original: The error that triggered the fallback.
    """

    def __init__(self, message: str, original: BaseException | None = None):
        super().__init__(message)
        self.original = original


__all__ = [
    "ConfigurationError",
    "EmergencyFallbackError",
    "OperationCancelledError",
    "OrchestratorError",
    "QueueClosedError",
    "UpstreamError",
]
