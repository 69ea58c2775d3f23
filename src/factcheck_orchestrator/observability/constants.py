# Copyright 2026 Seth Bang
# SPDX-License-Identifier: Apache-2.0
"""
Metric name constants following Prometheus naming conventions.

All metric names use the `factcheck_` prefix.

Naming Conventions:
    - Counter metrics end with `_total`
    - Histogram metrics for time end with `_seconds`
    - Gauges use present-tense descriptive names

Label Best Practices:
    Only categorical labels are used:
    - `queue` - Queue name (openai, anthropic, search)
    - `tier` - Model tier (extraction, fast, standard, premium)
    - `category` - ErrorCategory value
    - `outcome` - Check outcome (ok, recovered, fallback, failed, cancelled)

    Never label by request id, fingerprint or text.
"""

# =============================================================================
# Global Prefix
# =============================================================================

METRIC_PREFIX = "factcheck"

# =============================================================================
# Queue Metrics
# =============================================================================

QUEUE_REQUESTS_DISPATCHED_TOTAL = f"{METRIC_PREFIX}_queue_requests_dispatched_total"
QUEUE_REQUESTS_FAILED_TOTAL = f"{METRIC_PREFIX}_queue_requests_failed_total"
QUEUE_REQUESTS_SKIPPED_TOTAL = f"{METRIC_PREFIX}_queue_requests_skipped_total"
QUEUE_RATE_LIMITED_TOTAL = f"{METRIC_PREFIX}_queue_rate_limited_total"
QUEUE_REDELIVERIES_TOTAL = f"{METRIC_PREFIX}_queue_redeliveries_total"
QUEUE_DEPTH = f"{METRIC_PREFIX}_queue_depth"
QUEUE_WAIT_SECONDS = f"{METRIC_PREFIX}_queue_wait_seconds"

# =============================================================================
# Cache Metrics
# =============================================================================

CACHE_HITS_TOTAL = f"{METRIC_PREFIX}_cache_hits_total"
CACHE_MISSES_TOTAL = f"{METRIC_PREFIX}_cache_misses_total"
CACHE_EVICTIONS_TOTAL = f"{METRIC_PREFIX}_cache_evictions_total"
CACHE_SIZE = f"{METRIC_PREFIX}_cache_size"
CACHE_PERSIST_ERRORS_TOTAL = f"{METRIC_PREFIX}_cache_persist_errors_total"

# =============================================================================
# Resilience Metrics
# =============================================================================

RETRIES_TOTAL = f"{METRIC_PREFIX}_retries_total"
ERRORS_CLASSIFIED_TOTAL = f"{METRIC_PREFIX}_errors_classified_total"

# =============================================================================
# Orchestrator Metrics
# =============================================================================

CHECKS_TOTAL = f"{METRIC_PREFIX}_checks_total"
CHECKS_DEDUPLICATED_TOTAL = f"{METRIC_PREFIX}_checks_deduplicated_total"
CHECKS_IN_FLIGHT = f"{METRIC_PREFIX}_checks_in_flight"
CHECK_DURATION_SECONDS = f"{METRIC_PREFIX}_check_duration_seconds"
MODEL_SELECTIONS_TOTAL = f"{METRIC_PREFIX}_model_selections_total"

# =============================================================================
# Histogram Buckets
# =============================================================================

LATENCY_BUCKETS = [0.01, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0]
CHECK_DURATION_BUCKETS = [0.5, 1.0, 2.5, 5.0, 10.0, 20.0, 30.0, 60.0, 120.0]

__all__ = [
    "CACHE_EVICTIONS_TOTAL",
    "CACHE_HITS_TOTAL",
    "CACHE_MISSES_TOTAL",
    "CACHE_PERSIST_ERRORS_TOTAL",
    "CACHE_SIZE",
    "CHECKS_DEDUPLICATED_TOTAL",
    "CHECKS_IN_FLIGHT",
    "CHECKS_TOTAL",
    "CHECK_DURATION_BUCKETS",
    "CHECK_DURATION_SECONDS",
    "ERRORS_CLASSIFIED_TOTAL",
    "LATENCY_BUCKETS",
    "METRIC_PREFIX",
    "MODEL_SELECTIONS_TOTAL",
    "QUEUE_DEPTH",
    "QUEUE_RATE_LIMITED_TOTAL",
    "QUEUE_REDELIVERIES_TOTAL",
    "QUEUE_REQUESTS_DISPATCHED_TOTAL",
    "QUEUE_REQUESTS_FAILED_TOTAL",
    "QUEUE_REQUESTS_SKIPPED_TOTAL",
    "QUEUE_WAIT_SECONDS",
    "RETRIES_TOTAL",
]
