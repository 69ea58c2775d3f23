# Copyright 2026 Seth Bang
# SPDX-License-Identifier: Apache-2.0
"""
Metrics collector backed by plain dicts and mirrored to Prometheus.

UnifiedMetricsCollector keeps every counter, gauge and histogram in
dicts for JSON export (``get_metrics()``) and mirrors each update into a
prometheus_client metric registered on the collector's own
CollectorRegistry. Using one registry per collector keeps several
orchestrators (and test cases) in the same process from colliding on
metric names.

Usage:
    >>> collector = UnifiedMetricsCollector()
    >>> collector.inc_counter(CHECKS_TOTAL, labels={"outcome": "ok"})
    >>> collector.get_metrics()["counters"][CHECKS_TOTAL]
    {'outcome=ok': 1}

Thread Safety:
    All dict operations are guarded by an RLock. Prometheus metric
    objects are themselves thread-safe.
"""

from __future__ import annotations

import logging
import threading
from collections import defaultdict
from dataclasses import dataclass
from typing import Any, ClassVar

from prometheus_client import (
    CollectorRegistry,
    Counter,
    Gauge,
    Histogram,
    generate_latest,
    start_http_server,
)

from .constants import (
    CACHE_EVICTIONS_TOTAL,
    CACHE_HITS_TOTAL,
    CACHE_MISSES_TOTAL,
    CACHE_PERSIST_ERRORS_TOTAL,
    CACHE_SIZE,
    CHECK_DURATION_BUCKETS,
    CHECK_DURATION_SECONDS,
    CHECKS_DEDUPLICATED_TOTAL,
    CHECKS_IN_FLIGHT,
    CHECKS_TOTAL,
    ERRORS_CLASSIFIED_TOTAL,
    LATENCY_BUCKETS,
    MODEL_SELECTIONS_TOTAL,
    QUEUE_DEPTH,
    QUEUE_RATE_LIMITED_TOTAL,
    QUEUE_REDELIVERIES_TOTAL,
    QUEUE_REQUESTS_DISPATCHED_TOTAL,
    QUEUE_REQUESTS_FAILED_TOTAL,
    QUEUE_REQUESTS_SKIPPED_TOTAL,
    QUEUE_WAIT_SECONDS,
    RETRIES_TOTAL,
)

logger = logging.getLogger(__name__)


@dataclass
class MetricDefinition:
    """Schema for a pre-declared metric."""

    name: str
    metric_type: str  # 'counter', 'gauge', 'histogram'
    description: str
    label_names: tuple[str, ...] = ()
    buckets: list[float] | None = None


def _define(
    name: str,
    metric_type: str,
    description: str,
    label_names: tuple[str, ...] = (),
    buckets: list[float] | None = None,
) -> tuple[str, MetricDefinition]:
    return name, MetricDefinition(name, metric_type, description, label_names, buckets)


METRIC_DEFINITIONS: dict[str, MetricDefinition] = dict(
    [
        # === Queue ===
        _define(
            QUEUE_REQUESTS_DISPATCHED_TOTAL,
            "counter",
            "Requests dispatched to an upstream",
            ("queue",),
        ),
        _define(
            QUEUE_REQUESTS_FAILED_TOTAL,
            "counter",
            "Requests failed by an upstream",
            ("queue",),
        ),
        _define(
            QUEUE_REQUESTS_SKIPPED_TOTAL,
            "counter",
            "Requests skipped because the caller abandoned or cancelled them",
            ("queue",),
        ),
        _define(
            QUEUE_RATE_LIMITED_TOTAL,
            "counter",
            "Drain iterations that waited on the local rate window",
            ("queue",),
        ),
        _define(
            QUEUE_REDELIVERIES_TOTAL,
            "counter",
            "Requests re-queued at the head after an HTTP 429",
            ("queue",),
        ),
        _define(QUEUE_DEPTH, "gauge", "Requests waiting in a queue", ("queue",)),
        _define(
            QUEUE_WAIT_SECONDS,
            "histogram",
            "Time from enqueue to dispatch",
            ("queue",),
            LATENCY_BUCKETS,
        ),
        # === Cache ===
        _define(CACHE_HITS_TOTAL, "counter", "Response cache hits"),
        _define(CACHE_MISSES_TOTAL, "counter", "Response cache misses"),
        _define(CACHE_EVICTIONS_TOTAL, "counter", "Response cache evictions"),
        _define(CACHE_SIZE, "gauge", "Entries held by the response cache"),
        _define(
            CACHE_PERSIST_ERRORS_TOTAL,
            "counter",
            "Failed attempts to persist or load the response cache",
        ),
        # === Resilience ===
        _define(RETRIES_TOTAL, "counter", "Retries scheduled", ("operation",)),
        _define(
            ERRORS_CLASSIFIED_TOTAL,
            "counter",
            "Errors by classified category",
            ("category",),
        ),
        # === Orchestrator ===
        _define(CHECKS_TOTAL, "counter", "Completed checks", ("outcome",)),
        _define(
            CHECKS_DEDUPLICATED_TOTAL,
            "counter",
            "Checks that joined an identical in-flight check",
        ),
        _define(CHECKS_IN_FLIGHT, "gauge", "Checks currently running"),
        _define(
            CHECK_DURATION_SECONDS,
            "histogram",
            "End-to-end duration of a check",
            (),
            CHECK_DURATION_BUCKETS,
        ),
        _define(
            MODEL_SELECTIONS_TOTAL,
            "counter",
            "Primary tier chosen by model selection",
            ("tier",),
        ),
    ]
)


class UnifiedMetricsCollector:
    """
    Dict-backed metrics collector mirrored to Prometheus.

    Cardinality Protection:
        At most MAX_LABEL_COMBINATIONS distinct label sets are tracked per
        metric; further combinations are dropped with a warning.

    Example:
        >>> collector = UnifiedMetricsCollector()
        >>> collector.set_gauge(QUEUE_DEPTH, 3, labels={"queue": "openai"})
        >>> collector.start_http_server(port=9100)
    """

    MAX_LABEL_COMBINATIONS: ClassVar[int] = 1000
    MAX_HISTOGRAM_OBSERVATIONS: ClassVar[int] = 10000

    def __init__(
        self,
        enable_prometheus: bool = True,
        registry: CollectorRegistry | None = None,
    ) -> None:
        """
        Initialize the metrics collector.

        Args:
            enable_prometheus: Whether to mirror updates into Prometheus metrics
            registry: Registry to register metrics on; a private one is
                created when omitted
        """
        self._enable_prometheus = enable_prometheus
        self._registry = registry if registry is not None else CollectorRegistry()

        self._counters: dict[str, dict[str, int]] = defaultdict(
            lambda: defaultdict(int)
        )
        self._gauges: dict[str, dict[str, float]] = defaultdict(
            lambda: defaultdict(float)
        )
        self._histograms: dict[str, dict[str, list[float]]] = defaultdict(
            lambda: defaultdict(list)
        )
        self._label_combinations: dict[str, set[str]] = defaultdict(set)
        self._prom_metrics: dict[str, Any] = {}
        self._prom_label_names: dict[str, tuple[str, ...]] = {}
        self._lock = threading.RLock()
        self._server_running = False

    @property
    def registry(self) -> CollectorRegistry:
        return self._registry

    @property
    def prometheus_enabled(self) -> bool:
        return self._enable_prometheus

    @property
    def server_running(self) -> bool:
        return self._server_running

    def _labels_to_key(self, labels: dict[str, str] | None) -> str:
        """Convert labels dict to a stable string key."""
        if not labels:
            return ""
        return ",".join(f"{k}={v}" for k, v in sorted(labels.items()))

    def _check_cardinality(self, name: str, label_key: str) -> bool:
        """Return False if this label combination would exceed the limit."""
        seen = self._label_combinations[name]
        if label_key in seen:
            return True
        if len(seen) >= self.MAX_LABEL_COMBINATIONS:
            logger.warning(
                f"Cardinality limit ({self.MAX_LABEL_COMBINATIONS}) reached "
                f"for metric {name}. Dropping label combination: {label_key}"
            )
            return False
        seen.add(label_key)
        return True

    def _prom_metric(
        self, name: str, metric_type: str, labels: dict[str, str] | None
    ) -> Any | None:
        """Get or lazily register the Prometheus metric behind ``name``."""
        if not self._enable_prometheus:
            return None

        metric = self._prom_metrics.get(name)
        if metric is None:
            defn = METRIC_DEFINITIONS.get(name)
            if defn is None or defn.metric_type != metric_type:
                # Undeclared metric: label names come from the first update.
                defn = MetricDefinition(
                    name,
                    metric_type,
                    f"Dynamic {metric_type}: {name}",
                    tuple(sorted(labels)) if labels else (),
                )
            try:
                if metric_type == "counter":
                    metric = Counter(
                        name,
                        defn.description,
                        list(defn.label_names),
                        registry=self._registry,
                    )
                elif metric_type == "gauge":
                    metric = Gauge(
                        name,
                        defn.description,
                        list(defn.label_names),
                        registry=self._registry,
                    )
                else:
                    metric = Histogram(
                        name,
                        defn.description,
                        list(defn.label_names),
                        buckets=defn.buckets or LATENCY_BUCKETS,
                        registry=self._registry,
                    )
            except ValueError as e:
                logger.warning(f"Failed to create Prometheus {metric_type} {name}: {e}")
                return None
            self._prom_metrics[name] = metric
            self._prom_label_names[name] = defn.label_names

        if bool(labels) != bool(self._prom_label_names.get(name)):
            logger.debug(f"Prometheus label mismatch for {name}: {labels}")
            return None
        if labels:
            try:
                return metric.labels(**labels)
            except ValueError as e:
                logger.debug(f"Prometheus label mismatch for {name}: {e}")
                return None
        return metric

    # === Counter Operations ===

    def inc_counter(
        self,
        name: str,
        value: int = 1,
        labels: dict[str, str] | None = None,
    ) -> None:
        """
        Increment a counter metric.

        Raises:
            ValueError: If value is negative
        """
        if value < 0:
            raise ValueError("Counter increment must be non-negative")

        label_key = self._labels_to_key(labels)
        with self._lock:
            if not self._check_cardinality(name, label_key):
                return
            self._counters[name][label_key] += value
            prom = self._prom_metric(name, "counter", labels)
        if prom is not None:
            prom.inc(value)

    # === Gauge Operations ===

    def set_gauge(
        self,
        name: str,
        value: float,
        labels: dict[str, str] | None = None,
    ) -> None:
        """Set a gauge metric to a specific value."""
        label_key = self._labels_to_key(labels)
        with self._lock:
            if not self._check_cardinality(name, label_key):
                return
            self._gauges[name][label_key] = value
            prom = self._prom_metric(name, "gauge", labels)
        if prom is not None:
            prom.set(value)

    def inc_gauge(
        self,
        name: str,
        value: float = 1.0,
        labels: dict[str, str] | None = None,
    ) -> None:
        """Increment a gauge metric."""
        label_key = self._labels_to_key(labels)
        with self._lock:
            if not self._check_cardinality(name, label_key):
                return
            self._gauges[name][label_key] += value
            prom = self._prom_metric(name, "gauge", labels)
        if prom is not None:
            prom.inc(value)

    def dec_gauge(
        self,
        name: str,
        value: float = 1.0,
        labels: dict[str, str] | None = None,
    ) -> None:
        """Decrement a gauge metric."""
        self.inc_gauge(name, -value, labels)

    # === Histogram Operations ===

    def observe_histogram(
        self,
        name: str,
        value: float,
        labels: dict[str, str] | None = None,
    ) -> None:
        """Record an observation in a histogram."""
        label_key = self._labels_to_key(labels)
        with self._lock:
            if not self._check_cardinality(name, label_key):
                return
            observations = self._histograms[name][label_key]
            observations.append(value)
            if len(observations) > self.MAX_HISTOGRAM_OBSERVATIONS:
                del observations[: len(observations) // 2]
            prom = self._prom_metric(name, "histogram", labels)
        if prom is not None:
            prom.observe(value)

    # === Snapshots ===

    def get_metrics(self) -> dict[str, Any]:
        """
        Get a snapshot of all metrics.

        Returns:
            {"counters": {...}, "gauges": {...}, "histograms": {...}} where
            each metric maps a label key to its value; histograms map to a
            count/sum/avg/min/max summary.
        """
        with self._lock:
            counters = {name: dict(values) for name, values in self._counters.items()}
            gauges = {name: dict(values) for name, values in self._gauges.items()}
            histograms: dict[str, dict[str, dict[str, Any]]] = {}
            for name, label_values in self._histograms.items():
                histograms[name] = {
                    label_key: {
                        "count": len(obs),
                        "sum": sum(obs),
                        "avg": sum(obs) / len(obs),
                        "min": min(obs),
                        "max": max(obs),
                    }
                    for label_key, obs in label_values.items()
                    if obs
                }

        return {"counters": counters, "gauges": gauges, "histograms": histograms}

    def get_counter(self, name: str, labels: dict[str, str] | None = None) -> int:
        """Current value of one counter series (0 if never incremented)."""
        with self._lock:
            return self._counters.get(name, {}).get(self._labels_to_key(labels), 0)

    def get_gauge(self, name: str, labels: dict[str, str] | None = None) -> float:
        """Current value of one gauge series (0.0 if never set)."""
        with self._lock:
            return self._gauges.get(name, {}).get(self._labels_to_key(labels), 0.0)

    def export_prometheus(self) -> bytes:
        """Render the collector's registry in the Prometheus text format."""
        return generate_latest(self._registry)

    def reset(self) -> None:
        """Reset dict-based metrics. Prometheus series are left untouched."""
        with self._lock:
            self._counters.clear()
            self._gauges.clear()
            self._histograms.clear()
            self._label_combinations.clear()
        logger.debug("Metrics collector reset")

    # === Prometheus HTTP Server ===

    def start_http_server(self, host: str = "127.0.0.1", port: int = 9090) -> bool:
        """
        Start the Prometheus HTTP server for this collector's registry.

        Args:
            host: Address to bind (localhost by default)
            port: Port to bind

        Returns:
            True if the server is running, False if it failed to start
        """
        if self._server_running:
            logger.warning("Prometheus server already running")
            return True
        try:
            start_http_server(port, addr=host, registry=self._registry)
        except OSError as e:
            logger.error(f"Failed to start Prometheus server: {e}")
            return False
        self._server_running = True
        logger.info(f"Prometheus metrics server started on {host}:{port}")
        return True


__all__ = ["METRIC_DEFINITIONS", "MetricDefinition", "UnifiedMetricsCollector"]
