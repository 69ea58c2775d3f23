# Copyright 2026 Seth Bang
# SPDX-License-Identifier: Apache-2.0
"""
Model selection policy.

Pure functions that estimate text complexity and map it, together with
urgency and cost sensitivity, to a ModelTier.
"""

from .complexity import (
    TECHNICAL_TERMS,
    ComplexityScore,
    estimate_complexity,
    score_complexity,
)
from .selection import (
    ModelSelectionOptions,
    select_optimal_model,
    select_secondary_tiers,
)

__all__ = [
    "TECHNICAL_TERMS",
    "ComplexityScore",
    "ModelSelectionOptions",
    "estimate_complexity",
    "score_complexity",
    "select_optimal_model",
    "select_secondary_tiers",
]
