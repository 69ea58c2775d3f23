# Copyright 2026 Seth Bang
# SPDX-License-Identifier: Apache-2.0
"""
Result models returned to callers.

SearchResult and CheckResult are pydantic models so they validate on
construction and serialize cleanly for transport to the UI layer.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field, field_validator

from .errors import ErrorCategory


class Confidence(Enum):
    """Agreement level across model ratings."""

    HIGH = "High"
    MODERATE = "Moderate"
    LOW = "Low"


class SearchResult(BaseModel):
    """One item returned by the search collaborator."""

    title: str = ""
    description: str = ""
    url: str
    domain: str = ""
    date: str | None = None

    def to_dict(self) -> dict[str, Any]:
        """Convert to dict for transport."""
        return self.model_dump()


class CheckResult(BaseModel):
    """
    Outcome of Orchestrator.check().

    ``rating`` is None when no rating could be produced. ``degraded`` marks
    results produced by the emergency fallback or the structured failure
    path; ``error_category`` is set whenever the primary pipeline failed.
    ``quick_check`` marks a confident answer from the progressive quick
    assessment, returned without evidence or the full prompt.
    """

    result: str
    query_text: str
    rating: int | None = None
    confidence: Confidence = Confidence.LOW
    model: str | None = None
    references: list[SearchResult] = Field(default_factory=list)
    degraded: bool = False
    error_category: ErrorCategory | None = None
    quick_check: bool = False

    @field_validator("rating")
    @classmethod
    def _validate_rating(cls, value: int | None) -> int | None:
        """Ratings are percentages."""
        if value is not None and not 0 <= value <= 100:
            raise ValueError("rating must be between 0 and 100")
        return value

    @property
    def failed(self) -> bool:
        """True for the structured-failure result (no rating, degraded)."""
        return self.degraded and self.rating is None

    def to_dict(self) -> dict[str, Any]:
        """Convert to a JSON-friendly dict with the legacy camelCase keys."""
        return {
            "result": self.result,
            "queryText": self.query_text,
            "rating": self.rating,
            "confidence": self.confidence.value,
            "model": self.model,
            "references": [ref.to_dict() for ref in self.references],
            "degraded": self.degraded,
            "errorCategory": (
                self.error_category.value if self.error_category else None
            ),
            "quickCheck": self.quick_check,
        }


@dataclass
class PromptOutcome:
    """Response (or failure) of one evaluation prompt in multi-model mode."""

    name: str
    model: str
    response: str | None = None
    rating: int | None = None
    error: BaseException | None = field(default=None, repr=False)

    @property
    def succeeded(self) -> bool:
        return self.error is None and self.response is not None


@dataclass
class AggregateVerdict:
    """Combined rating and confidence over several prompt outcomes."""

    rating: int
    confidence: Confidence
    ratings: list[int] = field(default_factory=list)

    @property
    def spread(self) -> int:
        """Difference between the highest and lowest individual rating."""
        return max(self.ratings) - min(self.ratings) if self.ratings else 0


__all__ = [
    "AggregateVerdict",
    "CheckResult",
    "Confidence",
    "PromptOutcome",
    "SearchResult",
]
