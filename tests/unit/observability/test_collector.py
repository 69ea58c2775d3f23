"""
Unit tests for the observability collector module.

Tests cover:
- MetricDefinition and the pre-declared metric table
- Counter, Gauge, and Histogram operations
- Label cardinality protection
- Prometheus mirroring on a per-collector registry
- Prometheus HTTP server startup
"""

from __future__ import annotations

from unittest.mock import patch

import pytest
from prometheus_client import CollectorRegistry

from factcheck_orchestrator.observability.collector import (
    METRIC_DEFINITIONS,
    MetricDefinition,
    UnifiedMetricsCollector,
)
from factcheck_orchestrator.observability.constants import (
    CHECK_DURATION_SECONDS,
    CHECKS_IN_FLIGHT,
    CHECKS_TOTAL,
    QUEUE_DEPTH,
    QUEUE_REQUESTS_DISPATCHED_TOTAL,
)
from factcheck_orchestrator.observability.protocols import MetricsCollectorProtocol

# =============================================================================
# MetricDefinition Tests
# =============================================================================


class TestMetricDefinition:
    """Test MetricDefinition dataclass."""

    def test_counter_definition(self) -> None:
        defn = MetricDefinition(
            name="test_counter_total",
            metric_type="counter",
            description="A test counter",
            label_names=("queue",),
        )
        assert defn.name == "test_counter_total"
        assert defn.label_names == ("queue",)
        assert defn.buckets is None

    def test_predefined_metrics_exist(self) -> None:
        """Queue and orchestrator metrics are declared up front."""
        assert QUEUE_REQUESTS_DISPATCHED_TOTAL in METRIC_DEFINITIONS
        assert CHECKS_TOTAL in METRIC_DEFINITIONS
        assert METRIC_DEFINITIONS[CHECKS_TOTAL].label_names == ("outcome",)
        assert METRIC_DEFINITIONS[CHECK_DURATION_SECONDS].metric_type == "histogram"

    def test_all_names_prefixed(self) -> None:
        assert all(name.startswith("factcheck_") for name in METRIC_DEFINITIONS)


# =============================================================================
# Dict-backed Operations
# =============================================================================


class TestDictOperations:
    """Counter, gauge and histogram bookkeeping without Prometheus."""

    @pytest.fixture
    def collector(self) -> UnifiedMetricsCollector:
        return UnifiedMetricsCollector(enable_prometheus=False)

    def test_satisfies_protocol(self, collector: UnifiedMetricsCollector) -> None:
        assert isinstance(collector, MetricsCollectorProtocol)

    def test_counter_increments(self, collector: UnifiedMetricsCollector) -> None:
        collector.inc_counter(CHECKS_TOTAL, labels={"outcome": "ok"})
        collector.inc_counter(CHECKS_TOTAL, 2, labels={"outcome": "ok"})
        collector.inc_counter(CHECKS_TOTAL, labels={"outcome": "failed"})

        assert collector.get_counter(CHECKS_TOTAL, {"outcome": "ok"}) == 3
        assert collector.get_counter(CHECKS_TOTAL, {"outcome": "failed"}) == 1
        assert collector.get_counter(CHECKS_TOTAL, {"outcome": "fallback"}) == 0

    def test_negative_counter_rejected(self, collector: UnifiedMetricsCollector) -> None:
        with pytest.raises(ValueError, match="non-negative"):
            collector.inc_counter(CHECKS_TOTAL, -1)

    def test_gauge_operations(self, collector: UnifiedMetricsCollector) -> None:
        labels = {"queue": "openai"}
        collector.set_gauge(QUEUE_DEPTH, 5, labels)
        collector.inc_gauge(QUEUE_DEPTH, 2, labels)
        collector.dec_gauge(QUEUE_DEPTH, 3, labels)
        assert collector.get_gauge(QUEUE_DEPTH, labels) == 4

    def test_histogram_summary(self, collector: UnifiedMetricsCollector) -> None:
        for value in (1.0, 2.0, 3.0):
            collector.observe_histogram(CHECK_DURATION_SECONDS, value)

        summary = collector.get_metrics()["histograms"][CHECK_DURATION_SECONDS][""]
        assert summary == {"count": 3, "sum": 6.0, "avg": 2.0, "min": 1.0, "max": 3.0}

    def test_histogram_observations_bounded(
        self, collector: UnifiedMetricsCollector
    ) -> None:
        collector.MAX_HISTOGRAM_OBSERVATIONS = 10  # type: ignore[misc]
        for value in range(11):
            collector.observe_histogram("latency_seconds", float(value))
        summary = collector.get_metrics()["histograms"]["latency_seconds"][""]
        assert summary["count"] == 6
        assert summary["max"] == 10.0

    def test_label_key_is_order_independent(
        self, collector: UnifiedMetricsCollector
    ) -> None:
        collector.inc_counter("custom_total", labels={"b": "2", "a": "1"})
        collector.inc_counter("custom_total", labels={"a": "1", "b": "2"})
        assert collector.get_metrics()["counters"]["custom_total"] == {"a=1,b=2": 2}

    def test_cardinality_limit(self, collector: UnifiedMetricsCollector) -> None:
        collector.MAX_LABEL_COMBINATIONS = 2  # type: ignore[misc]
        for queue in ("a", "b", "c"):
            collector.inc_counter(QUEUE_REQUESTS_DISPATCHED_TOTAL, labels={"queue": queue})

        counters = collector.get_metrics()["counters"][QUEUE_REQUESTS_DISPATCHED_TOTAL]
        assert set(counters) == {"queue=a", "queue=b"}

    def test_reset(self, collector: UnifiedMetricsCollector) -> None:
        collector.inc_counter(CHECKS_TOTAL, labels={"outcome": "ok"})
        collector.set_gauge(CHECKS_IN_FLIGHT, 1)
        collector.reset()
        assert collector.get_metrics() == {
            "counters": {},
            "gauges": {},
            "histograms": {},
        }


# =============================================================================
# Prometheus Mirroring
# =============================================================================


class TestPrometheusMirroring:
    """Updates are mirrored into the collector's own registry."""

    @pytest.fixture
    def registry(self) -> CollectorRegistry:
        return CollectorRegistry()

    @pytest.fixture
    def collector(self, registry: CollectorRegistry) -> UnifiedMetricsCollector:
        return UnifiedMetricsCollector(registry=registry)

    def test_counter_mirrored(
        self, collector: UnifiedMetricsCollector, registry: CollectorRegistry
    ) -> None:
        collector.inc_counter(CHECKS_TOTAL, labels={"outcome": "ok"})
        collector.inc_counter(CHECKS_TOTAL, labels={"outcome": "ok"})
        assert registry.get_sample_value(CHECKS_TOTAL, {"outcome": "ok"}) == 2.0

    def test_gauge_mirrored(
        self, collector: UnifiedMetricsCollector, registry: CollectorRegistry
    ) -> None:
        collector.inc_gauge(CHECKS_IN_FLIGHT)
        collector.inc_gauge(CHECKS_IN_FLIGHT)
        collector.dec_gauge(CHECKS_IN_FLIGHT)
        assert registry.get_sample_value(CHECKS_IN_FLIGHT) == 1.0

    def test_histogram_mirrored(
        self, collector: UnifiedMetricsCollector, registry: CollectorRegistry
    ) -> None:
        collector.observe_histogram(CHECK_DURATION_SECONDS, 0.7)
        assert registry.get_sample_value(f"{CHECK_DURATION_SECONDS}_count") == 1.0
        assert registry.get_sample_value(
            f"{CHECK_DURATION_SECONDS}_bucket", {"le": "1.0"}
        ) == 1.0

    def test_undeclared_metric_registered_dynamically(
        self, collector: UnifiedMetricsCollector, registry: CollectorRegistry
    ) -> None:
        collector.inc_counter("custom_events_total", labels={"kind": "x"})
        assert registry.get_sample_value("custom_events_total", {"kind": "x"}) == 1.0

    def test_label_mismatch_keeps_dict_value(
        self, collector: UnifiedMetricsCollector, registry: CollectorRegistry
    ) -> None:
        collector.inc_counter(CHECKS_TOTAL)
        assert collector.get_counter(CHECKS_TOTAL) == 1
        assert registry.get_sample_value(CHECKS_TOTAL, {"outcome": ""}) is None

    def test_collectors_do_not_collide(self) -> None:
        first = UnifiedMetricsCollector()
        second = UnifiedMetricsCollector()
        first.inc_counter(CHECKS_TOTAL, labels={"outcome": "ok"})
        second.inc_counter(CHECKS_TOTAL, labels={"outcome": "ok"})

        assert first.registry is not second.registry
        assert first.registry.get_sample_value(CHECKS_TOTAL, {"outcome": "ok"}) == 1.0
        assert second.registry.get_sample_value(CHECKS_TOTAL, {"outcome": "ok"}) == 1.0

    def test_export_prometheus(self, collector: UnifiedMetricsCollector) -> None:
        collector.inc_counter(CHECKS_TOTAL, labels={"outcome": "ok"})
        output = collector.export_prometheus()
        assert b'factcheck_checks_total{outcome="ok"} 1.0' in output

    def test_disabled_prometheus_leaves_registry_empty(
        self, registry: CollectorRegistry
    ) -> None:
        collector = UnifiedMetricsCollector(enable_prometheus=False, registry=registry)
        collector.inc_counter(CHECKS_TOTAL, labels={"outcome": "ok"})
        assert not collector.prometheus_enabled
        assert registry.get_sample_value(CHECKS_TOTAL, {"outcome": "ok"}) is None


# =============================================================================
# HTTP Server
# =============================================================================


class TestHttpServer:
    """Prometheus HTTP server startup."""

    def test_start_once(self) -> None:
        collector = UnifiedMetricsCollector()
        with patch(
            "factcheck_orchestrator.observability.collector.start_http_server"
        ) as start:
            assert collector.start_http_server(port=9100) is True
            assert collector.start_http_server(port=9100) is True

        start.assert_called_once_with(9100, addr="127.0.0.1", registry=collector.registry)
        assert collector.server_running

    def test_start_failure(self) -> None:
        collector = UnifiedMetricsCollector()
        with patch(
            "factcheck_orchestrator.observability.collector.start_http_server",
            side_effect=OSError("address in use"),
        ):
            assert collector.start_http_server(port=9100) is False
        assert not collector.server_running
