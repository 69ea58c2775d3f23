# Copyright 2026 Seth Bang
# SPDX-License-Identifier: Apache-2.0
"""
Error taxonomy types.

ErrorKind tags failures at the collaborator boundary (what the adapter
saw), ErrorCategory is the classifier's verdict (what the orchestrator
should do about it), and RecoveryStrategy is the fixed response to each
category.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .tiers import ModelTier


class ErrorKind(Enum):
    """Failure tag attached to UpstreamError by provider adapters."""

    HTTP_STATUS = "http_status"
    NETWORK = "network"
    TIMEOUT = "timeout"
    CONTENT_POLICY = "content_policy"
    CONTEXT_LENGTH = "context_length"
    OTHER = "other"


class ErrorCategory(Enum):
    """
    Classifier output driving recovery.

    RATE_LIMIT:
        Upstream throttled the call (HTTP 429 or equivalent phrasing).
    AUTH_ERROR:
        Credentials rejected (HTTP 401/403). Never retried.
    TEMPORARY:
        5xx responses, network failures and timeouts.
    CONTENT_POLICY:
        Upstream refused the content.
    CONTEXT_LENGTH:
        Input exceeded the model's token budget.
    UNKNOWN:
        Anything else.
    """

    RATE_LIMIT = "rate_limit"
    AUTH_ERROR = "auth_error"
    TEMPORARY = "temporary"
    CONTENT_POLICY = "content_policy"
    CONTEXT_LENGTH = "context_length"
    UNKNOWN = "unknown"


@dataclass(frozen=True)
class RecoveryStrategy:
    """How to react to one ErrorCategory."""

    retry: bool
    """Whether the failed operation may be retried."""

    wait: float
    """Seconds to wait before the retry."""

    max_retries: int
    """Retry budget for this category."""

    fallback_tier: ModelTier | None
    """Tier to fall back to, or None when no fallback applies."""

    reduce_prompt_size: bool
    """Whether the fallback should shrink its input."""

    user_message: str
    """Fixed, user-presentable description of the failure."""

    @property
    def wait_ms(self) -> int:
        """Wait expressed in milliseconds."""
        return int(self.wait * 1000)


__all__ = ["ErrorCategory", "ErrorKind", "RecoveryStrategy"]
