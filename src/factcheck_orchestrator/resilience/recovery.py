# Copyright 2026 Seth Bang
# SPDX-License-Identifier: Apache-2.0
"""
Recovery strategies for classified errors.

Every ErrorCategory has one fixed RecoveryStrategy. Strategies that call
for a fallback model resolve it against the tier that failed, using the
downgrade chain PREMIUM -> STANDARD -> FAST (FAST is its own fallback).
"""

from __future__ import annotations

from dataclasses import dataclass

from ..types.errors import ErrorCategory, RecoveryStrategy
from ..types.tiers import ModelTier
from .classifier import ErrorClassifier


@dataclass(frozen=True)
class _StrategyTemplate:
    retry: bool
    wait: float
    max_retries: int
    fallback: bool
    reduce_prompt_size: bool
    user_message: str


RECOVERY_TABLE: dict[ErrorCategory, _StrategyTemplate] = {
    ErrorCategory.RATE_LIMIT: _StrategyTemplate(
        retry=True,
        wait=5.0,
        max_retries=3,
        fallback=False,
        reduce_prompt_size=False,
        user_message="Rate limit exceeded. Retrying after a short delay...",
    ),
    ErrorCategory.TEMPORARY: _StrategyTemplate(
        retry=True,
        wait=2.0,
        max_retries=3,
        fallback=False,
        reduce_prompt_size=False,
        user_message="Temporary error occurred. Retrying...",
    ),
    ErrorCategory.AUTH_ERROR: _StrategyTemplate(
        retry=False,
        wait=0.0,
        max_retries=0,
        fallback=False,
        reduce_prompt_size=False,
        user_message="Authentication error. Please check your API keys.",
    ),
    ErrorCategory.CONTENT_POLICY: _StrategyTemplate(
        retry=False,
        wait=0.0,
        max_retries=0,
        fallback=True,
        reduce_prompt_size=True,
        user_message="Content policy violation. Trying a different approach...",
    ),
    ErrorCategory.CONTEXT_LENGTH: _StrategyTemplate(
        retry=True,
        wait=0.0,
        max_retries=1,
        fallback=True,
        reduce_prompt_size=True,
        user_message="Content too long. Reducing size and retrying...",
    ),
    ErrorCategory.UNKNOWN: _StrategyTemplate(
        retry=True,
        wait=1.0,
        max_retries=2,
        fallback=True,
        reduce_prompt_size=False,
        user_message="An error occurred. Trying again...",
    ),
}


def select_fallback_model(current_tier: ModelTier | None) -> ModelTier:
    """
    Return the tier to fall back to after ``current_tier`` failed.

    FAST maps to itself, PREMIUM to STANDARD and everything else (STANDARD,
    EXTRACTION or unknown) to FAST, so any chain reaches FAST within two
    steps.
    """
    if current_tier is ModelTier.FAST:
        return ModelTier.FAST
    if current_tier is ModelTier.PREMIUM:
        return ModelTier.STANDARD
    return ModelTier.FAST


class RecoveryPolicy:
    """Resolve the RecoveryStrategy for an error or category."""

    def __init__(self, classifier: ErrorClassifier | None = None) -> None:
        self.classifier = classifier or ErrorClassifier()

    def recovery_for(
        self,
        category: ErrorCategory,
        current_tier: ModelTier | None = None,
    ) -> RecoveryStrategy:
        """
        Look up the fixed strategy for ``category``.

        Args:
            category: Classified error category.
            current_tier: Tier that failed; used to resolve the fallback.

        Returns:
            A RecoveryStrategy whose ``fallback_tier`` is None unless the
            category calls for a fallback.
        """
        template = RECOVERY_TABLE.get(category, RECOVERY_TABLE[ErrorCategory.UNKNOWN])
        return RecoveryStrategy(
            retry=template.retry,
            wait=template.wait,
            max_retries=template.max_retries,
            fallback_tier=(
                select_fallback_model(current_tier) if template.fallback else None
            ),
            reduce_prompt_size=template.reduce_prompt_size,
            user_message=template.user_message,
        )

    def recovery_for_error(
        self,
        error: BaseException | None,
        current_tier: ModelTier | None = None,
    ) -> RecoveryStrategy:
        return self.recovery_for(self.classifier.categorize(error), current_tier)

    def user_message_for(self, error: BaseException | None) -> str:
        """Fixed user-facing message for ``error``'s category."""
        return self.recovery_for_error(error).user_message


__all__ = ["RECOVERY_TABLE", "RecoveryPolicy", "select_fallback_model"]
