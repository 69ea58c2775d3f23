# Copyright 2026 Seth Bang
# SPDX-License-Identifier: Apache-2.0
"""
Fact-check orchestration.

This package wires the lower layers into the check pipeline:
- ModelGateway: cache check and queued provider calls
- EvidenceCollector: claim searches and evidence ranking
- Prompt builders and rating aggregation
- Orchestrator: deduplicated, self-recovering check()
"""

from .aggregation import (
    DEFAULT_RATING,
    aggregate_ratings,
    combine_outcomes,
    confidence_for,
    extract_explanation,
    extract_rating,
    round_half_up,
)
from .evidence import (
    FACT_CHECK_DOMAINS,
    Evidence,
    EvidenceCollector,
    build_context,
    rank_results,
    split_claims,
)
from .gateway import ModelGateway, leading_sentences
from .orchestrator import SEARCH_UNAVAILABLE_NOTE, Orchestrator
from .prompts import (
    EVIDENCE_ANALYSIS,
    LOGICAL_CONSISTENCY,
    EvaluationPrompt,
    build_claim_extraction_prompt,
    build_consistency_prompt,
    build_emergency_prompt,
    build_evidence_prompt,
    build_fact_check_prompt,
)

__all__ = [
    "DEFAULT_RATING",
    "EVIDENCE_ANALYSIS",
    "FACT_CHECK_DOMAINS",
    "LOGICAL_CONSISTENCY",
    "SEARCH_UNAVAILABLE_NOTE",
    "EvaluationPrompt",
    "Evidence",
    "EvidenceCollector",
    "ModelGateway",
    "Orchestrator",
    "aggregate_ratings",
    "build_claim_extraction_prompt",
    "build_consistency_prompt",
    "build_context",
    "build_emergency_prompt",
    "build_evidence_prompt",
    "build_fact_check_prompt",
    "combine_outcomes",
    "confidence_for",
    "extract_explanation",
    "extract_rating",
    "leading_sentences",
    "rank_results",
    "round_half_up",
    "split_claims",
]
