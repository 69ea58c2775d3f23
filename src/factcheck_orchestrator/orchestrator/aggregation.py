# Copyright 2026 Seth Bang
# SPDX-License-Identifier: Apache-2.0
"""
Rating extraction and aggregation.

Each model response is expected to contain ``Rating: <n>``. Aggregation
averages the parsed ratings (rounding halves up) and derives a confidence
level from their spread:

    spread <= 15  -> High
    spread <= 30  -> Moderate
    otherwise     -> Low

With fewer than two ratings confidence is always Low. With no ratings the
aggregate defaults to 50.
"""

from __future__ import annotations

import math
import re
from collections.abc import Iterable, Sequence

from ..types.results import AggregateVerdict, Confidence, PromptOutcome

DEFAULT_RATING = 50
HIGH_CONFIDENCE_SPREAD = 15
MODERATE_CONFIDENCE_SPREAD = 30
MIN_EXPLANATION_LENGTH = 20
DEFAULT_SELF_CONFIDENCE = 0.5

_RATING_PATTERN = re.compile(r"Rating:\s*\[?\s*(\d+)", re.IGNORECASE)
_EXPLANATION_PATTERN = re.compile(r"Explanation:(.*?)(?:\Z|\n\n)", re.DOTALL)
_QUICK_EXPLANATION_PATTERN = re.compile(
    r"Explanation:\s*(.+?)(?=\n|Confidence:|\Z)", re.IGNORECASE | re.DOTALL
)
_CONFIDENCE_PATTERN = re.compile(r"Confidence:\s*([0-9]\.[0-9]+|[01])", re.IGNORECASE)


def extract_rating(response: str | None) -> int | None:
    """
    Parse the first ``Rating: <n>`` out of a model response.

    Returns:
        The rating, or None if absent or outside 0-100.
    """
    if not response:
        return None
    match = _RATING_PATTERN.search(response)
    if match is None:
        return None
    value = int(match.group(1))
    return value if 0 <= value <= 100 else None


def extract_explanation(response: str) -> str:
    """Return the ``Explanation:`` paragraph, or the whole response trimmed."""
    match = _EXPLANATION_PATTERN.search(response)
    if match and match.group(1).strip():
        return match.group(1).strip()
    return response.strip()


def extract_quick_explanation(response: str) -> str:
    """Return the one-line explanation of a quick assessment, or ''."""
    match = _QUICK_EXPLANATION_PATTERN.search(response)
    return match.group(1).strip() if match else ""


def extract_confidence(response: str | None) -> float:
    """
    Parse the model's self-reported ``Confidence: <0.0-1.0>``.

    Returns:
        The confidence, or 0.5 when absent.
    """
    if not response:
        return DEFAULT_SELF_CONFIDENCE
    match = _CONFIDENCE_PATTERN.search(response)
    if match is None:
        return DEFAULT_SELF_CONFIDENCE
    return min(1.0, float(match.group(1)))


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def confidence_for(ratings: Sequence[int]) -> Confidence:
    """Confidence level for a set of ratings."""
    if len(ratings) < 2:
        return Confidence.LOW
    spread = max(ratings) - min(ratings)
    if spread <= HIGH_CONFIDENCE_SPREAD:
        return Confidence.HIGH
    if spread <= MODERATE_CONFIDENCE_SPREAD:
        return Confidence.MODERATE
    return Confidence.LOW


def aggregate_ratings(ratings: Iterable[int | None]) -> AggregateVerdict:
    """
    Combine individual ratings into one verdict.

    ``None`` entries (unparseable responses) are ignored.

    Example:
        >>> aggregate_ratings([90, 92, 88])
        AggregateVerdict(rating=90, confidence=<Confidence.HIGH: 'High'>, ratings=[90, 92, 88])
    """
    parsed = [r for r in ratings if r is not None]
    if parsed:
        rating = round_half_up(sum(parsed) / len(parsed))
    else:
        rating = DEFAULT_RATING
    return AggregateVerdict(
        rating=rating, confidence=confidence_for(parsed), ratings=parsed
    )


def combine_outcomes(
    outcomes: Sequence[PromptOutcome],
    verdict: AggregateVerdict,
    primary_model: str,
    secondary_models: Sequence[str] = (),
) -> str:
    """Render the combined multi-model result text."""
    parts = [f"Rating: {verdict.rating}\n\nExplanation: "]
    usable = [
        (o.name, o.response)
        for o in outcomes
        if o.succeeded
        and o.response is not None
        and len(o.response) > MIN_EXPLANATION_LENGTH
    ]
    if not usable:
        parts.append(
            "Could not perform a complete fact-check due to technical issues. "
            "The rating provided is a default value and may not be accurate."
        )
    for name, response in usable:
        parts.append(f"\n\n{name}: {extract_explanation(response)}")

    if len(verdict.ratings) > 1:
        parts.append(
            f"\n\nConfidence Level: {verdict.confidence.value} "
            "(based on agreement between different analysis methods)"
        )
    else:
        parts.append("\n\nConfidence Level: Low (limited analysis methods available)")

    parts.append(f"\n\nPrimary Model: {primary_model}")
    if secondary_models:
        parts.append(f"\nSecondary Model(s): {', '.join(secondary_models)}")
    return "".join(parts)


__all__ = [
    "DEFAULT_RATING",
    "DEFAULT_SELF_CONFIDENCE",
    "aggregate_ratings",
    "combine_outcomes",
    "confidence_for",
    "extract_confidence",
    "extract_explanation",
    "extract_quick_explanation",
    "extract_rating",
    "round_half_up",
]
