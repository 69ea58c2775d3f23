# Copyright 2026 Seth Bang
# SPDX-License-Identifier: Apache-2.0
"""
Observability for the fact-check orchestrator.

Queues, the response cache, the retry executor and the orchestrator all
accept an optional ``metrics_collector``. Pass a UnifiedMetricsCollector
(or anything implementing MetricsCollectorProtocol) to record metrics;
omit it to run without metrics.
"""

from .collector import METRIC_DEFINITIONS, MetricDefinition, UnifiedMetricsCollector
from .constants import METRIC_PREFIX
from .protocols import MetricsCollectorProtocol

__all__ = [
    "METRIC_DEFINITIONS",
    "METRIC_PREFIX",
    "MetricDefinition",
    "MetricsCollectorProtocol",
    "UnifiedMetricsCollector",
]
