# Copyright 2026 Seth Bang
# SPDX-License-Identifier: Apache-2.0
"""
Model tier and selection-input enums.

ModelTier is ordered by cost and quality. EXTRACTION is a special-purpose
tier used for claim extraction; it ranks below FAST but fallback never
lands on it.
"""

from __future__ import annotations

from enum import Enum


class ModelTier(Enum):
    """Model quality/cost level, independent of provider."""

    EXTRACTION = "extraction"
    FAST = "fast"
    STANDARD = "standard"
    PREMIUM = "premium"

    @property
    def rank(self) -> int:
        """Position in the cost ordering (EXTRACTION lowest)."""
        return _TIER_ORDER.index(self)

    def below(self) -> ModelTier:
        """Return the next cheaper general-purpose tier, never below FAST."""
        if self.rank <= ModelTier.FAST.rank:
            return ModelTier.FAST
        return _TIER_ORDER[self.rank - 1]

    def __lt__(self, other: object) -> bool:
        if not isinstance(other, ModelTier):
            return NotImplemented
        return self.rank < other.rank

    def __le__(self, other: object) -> bool:
        if not isinstance(other, ModelTier):
            return NotImplemented
        return self.rank <= other.rank


_TIER_ORDER: tuple[ModelTier, ...] = (
    ModelTier.EXTRACTION,
    ModelTier.FAST,
    ModelTier.STANDARD,
    ModelTier.PREMIUM,
)


class Complexity(Enum):
    """Estimated difficulty of the text under evaluation."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class Urgency(Enum):
    """How quickly the caller needs an answer."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class Task(Enum):
    """Kind of model call being made."""

    FACT_CHECK = "fact_check"
    CLAIM_EXTRACTION = "claim_extraction"
    SEARCH_QUERY = "search_query"


__all__ = ["Complexity", "ModelTier", "Task", "Urgency"]
