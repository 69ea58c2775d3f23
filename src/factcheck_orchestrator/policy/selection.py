# Copyright 2026 Seth Bang
# SPDX-License-Identifier: Apache-2.0
"""
Model tier selection.

select_optimal_model() is a pure function of its options: identical
inputs always produce the same tier.
"""

from __future__ import annotations

from dataclasses import dataclass

from ..types.tiers import Complexity, ModelTier, Task, Urgency

PREMIUM_MIN_LENGTH = 3000
STANDARD_MIN_LENGTH = 1000


@dataclass(frozen=True)
class ModelSelectionOptions:
    """Inputs to select_optimal_model()."""

    provider: str = "openai"
    text_length: int = 0
    complexity: Complexity = Complexity.MEDIUM
    urgency: Urgency = Urgency.MEDIUM
    cost_sensitive: bool = True
    task: Task = Task.FACT_CHECK


def select_optimal_model(options: ModelSelectionOptions) -> ModelTier:
    """
    Pick the model tier for a call.

    Rules, first match wins:

    1. Claim extraction uses EXTRACTION; search-query generation uses FAST.
    2. High urgency uses FAST.
    3. High complexity, more than 3000 characters, low urgency and not
       cost-sensitive uses PREMIUM.
    4. Medium complexity or 1000-3000 characters, when not cost-sensitive,
       uses STANDARD.
    5. Everything else uses FAST.

    ``provider`` does not influence the tier; adapters map tiers to
    provider models.
    """
    if options.task is Task.CLAIM_EXTRACTION:
        return ModelTier.EXTRACTION
    if options.task is Task.SEARCH_QUERY:
        return ModelTier.FAST

    if options.urgency is Urgency.HIGH:
        return ModelTier.FAST

    if (
        options.complexity is Complexity.HIGH
        and options.text_length > PREMIUM_MIN_LENGTH
        and options.urgency is Urgency.LOW
        and not options.cost_sensitive
    ):
        return ModelTier.PREMIUM

    medium_length = STANDARD_MIN_LENGTH < options.text_length <= PREMIUM_MIN_LENGTH
    if (
        options.complexity is Complexity.MEDIUM or medium_length
    ) and not options.cost_sensitive:
        return ModelTier.STANDARD

    return ModelTier.FAST


def select_secondary_tiers(primary: ModelTier) -> list[ModelTier]:
    """
    Tiers for the consistency prompts in multi-model mode.

    Returns the tier immediately below ``primary``. FAST (and EXTRACTION)
    return FAST, so the consistency prompt runs on the cheapest
    general-purpose model.
    """
    return [primary.below()]


__all__ = [
    "ModelSelectionOptions",
    "select_optimal_model",
    "select_secondary_tiers",
]
