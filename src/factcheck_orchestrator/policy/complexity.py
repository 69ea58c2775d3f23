# Copyright 2026 Seth Bang
# SPDX-License-Identifier: Apache-2.0
"""
Text complexity estimation.

The score has three factors worth 0-3 points each: average words per
sentence, raw text length and technical-term density (matches per 100
characters). A total of 6 or more is HIGH, 3 or more is MEDIUM.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

from ..types.tiers import Complexity

TECHNICAL_TERMS: tuple[str, ...] = (
    "quantum",
    "algorithm",
    "methodology",
    "statistical",
    "molecular",
    "hypothesis",
    "correlation",
    "causation",
    "analysis",
    "synthesis",
    "theoretical",
    "empirical",
    "paradigm",
    "mechanism",
    "infrastructure",
)

_SENTENCE_SPLIT = re.compile(r"[.!?]+")
_TERM_PATTERN = re.compile(
    r"\b(?:" + "|".join(TECHNICAL_TERMS) + r")\w*\b", re.IGNORECASE
)

# (threshold, points), checked in order; strictly-greater comparisons.
SENTENCE_LENGTH_POINTS = ((25, 3), (18, 2), (12, 1))
TEXT_LENGTH_POINTS = ((5000, 3), (2000, 2), (800, 1))
TERM_DENSITY_POINTS = ((0.5, 3), (0.2, 2), (0.1, 1))

HIGH_SCORE = 6
MEDIUM_SCORE = 3


@dataclass(frozen=True)
class ComplexityScore:
    """Breakdown of a complexity estimate."""

    avg_words_per_sentence: float
    text_length: int
    term_density: float
    sentence_points: int
    length_points: int
    term_points: int

    @property
    def total(self) -> int:
        return self.sentence_points + self.length_points + self.term_points

    @property
    def level(self) -> Complexity:
        if self.total >= HIGH_SCORE:
            return Complexity.HIGH
        if self.total >= MEDIUM_SCORE:
            return Complexity.MEDIUM
        return Complexity.LOW


def _points(value: float, table: tuple[tuple[float, int], ...]) -> int:
    for threshold, points in table:
        if value > threshold:
            return points
    return 0


def score_complexity(text: str) -> ComplexityScore:
    """Compute the factor-by-factor complexity score of ``text``."""
    sentences = [s for s in _SENTENCE_SPLIT.split(text) if s.strip()]
    word_count = sum(len(s.split()) for s in sentences)
    avg_words = word_count / (len(sentences) or 1)

    term_count = len(_TERM_PATTERN.findall(text))
    density = term_count / (len(text) / 100) if text else 0.0

    return ComplexityScore(
        avg_words_per_sentence=avg_words,
        text_length=len(text),
        term_density=density,
        sentence_points=_points(avg_words, SENTENCE_LENGTH_POINTS),
        length_points=_points(len(text), TEXT_LENGTH_POINTS),
        term_points=_points(density, TERM_DENSITY_POINTS),
    )


def estimate_complexity(text: str | None) -> Complexity:
    """
    Estimate how demanding ``text`` is to evaluate.

    Args:
        text: Text under evaluation. Empty or None is LOW.

    Returns:
        Complexity.LOW, MEDIUM or HIGH.
    """
    if not text:
        return Complexity.LOW
    return score_complexity(text).level


__all__ = [
    "TECHNICAL_TERMS",
    "ComplexityScore",
    "estimate_complexity",
    "score_complexity",
]
