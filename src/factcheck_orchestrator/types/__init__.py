# Copyright 2026 Seth Bang
# SPDX-License-Identifier: Apache-2.0
"""
Core types for the fact-check orchestrator.

This module provides the enums, dataclasses and pydantic models shared by
the queueing, resilience, policy and orchestration layers.
"""

from .errors import ErrorCategory, ErrorKind, RecoveryStrategy
from .request import ModelRequest, QueuedRequest
from .results import (
    AggregateVerdict,
    CheckResult,
    Confidence,
    PromptOutcome,
    SearchResult,
)
from .tiers import Complexity, ModelTier, Task, Urgency

__all__ = [
    "AggregateVerdict",
    "CheckResult",
    "Complexity",
    "Confidence",
    "ErrorCategory",
    "ErrorKind",
    "ModelRequest",
    "ModelTier",
    "PromptOutcome",
    "QueuedRequest",
    "RecoveryStrategy",
    "SearchResult",
    "Task",
    "Urgency",
]
