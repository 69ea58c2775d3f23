# Copyright 2026 Seth Bang
# SPDX-License-Identifier: Apache-2.0
"""
Retry, error classification and recovery.

Available components:
- RetryExecutor, retry_with_backoff: Jittered exponential retry
- ErrorClassifier: Error -> ErrorCategory
- RecoveryPolicy, select_fallback_model: ErrorCategory -> RecoveryStrategy
"""

from .classifier import ErrorClassifier
from .recovery import RECOVERY_TABLE, RecoveryPolicy, select_fallback_model
from .retry import RetryExecutor, RetryInfo, retry_with_backoff

__all__ = [
    "RECOVERY_TABLE",
    "ErrorClassifier",
    "RecoveryPolicy",
    "RetryExecutor",
    "RetryInfo",
    "retry_with_backoff",
    "select_fallback_model",
]
