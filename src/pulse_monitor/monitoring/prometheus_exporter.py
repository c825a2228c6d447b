"""
Prometheus Metrics Exporter

Exposes the current health snapshot in the Prometheus text format. Values
are read from the health aggregator at scrape time, so the exporter holds
no state of its own.
"""

from typing import Iterator

from prometheus_client import CONTENT_TYPE_LATEST, CollectorRegistry, generate_latest
from prometheus_client.core import CounterMetricFamily, GaugeMetricFamily, Metric
from prometheus_client.registry import Collector
import structlog

from .health import HealthAggregator
from .models import HealthState

logger = structlog.get_logger(__name__)

METRIC_PREFIX = "pulse_monitor"


class HealthCollector(Collector):
    """Custom collector that turns a HealthStatus into metric families."""

    def __init__(self, health: HealthAggregator):
        self.health = health

    def collect(self) -> Iterator[Metric]:
        status = self.health.get_health_status()

        gauges = [
            ("cpu_usage_percent", "Latest CPU usage percentage", status.cpu_percent),
            ("memory_usage_percent", "Latest memory usage percentage", status.memory_percent),
            ("disk_usage_percent", "Latest disk usage percentage", status.disk_percent),
            ("error_rate_percent", "Request error rate over the last hour", status.error_rate_percent),
            ("avg_response_time_ms", "Mean response time over the last hour", status.avg_response_time_ms),
            ("active_alerts", "Unresolved alerts", status.active_alerts),
            ("critical_alerts", "Unresolved high-severity alerts", status.critical_alerts),
            ("uptime_seconds", "Seconds since the monitoring service started", status.uptime_seconds),
        ]
        for name, documentation, value in gauges:
            yield GaugeMetricFamily(f"{METRIC_PREFIX}_{name}", documentation, value=value)

        health_state = GaugeMetricFamily(
            f"{METRIC_PREFIX}_health_status",
            "Overall health state (1 for the current state)",
            labels=["state"],
        )
        for state in HealthState:
            health_state.add_metric([state.value], 1.0 if state is status.status else 0.0)
        yield health_state

        yield CounterMetricFamily(f"{METRIC_PREFIX}_requests",
                                  "Requests recorded since process start",
                                  value=status.total_requests)
        yield CounterMetricFamily(f"{METRIC_PREFIX}_request_errors",
                                  "Requests with status >= 400 since process start",
                                  value=status.total_errors)


class PrometheusExporter:
    """
    Prometheus exposition for the monitoring service.

    Uses a private registry so several service instances (e.g. in tests)
    never collide on metric names.
    """

    content_type = CONTENT_TYPE_LATEST

    def __init__(self, health: HealthAggregator):
        self.registry = CollectorRegistry()
        self.registry.register(HealthCollector(health))

    def render(self) -> bytes:
        """Current metrics in Prometheus text format."""
        return generate_latest(self.registry)

    def get_metrics_text(self) -> str:
        try:
            return self.render().decode("utf-8")
        except Exception as e:
            logger.error("Error generating metrics text", error=str(e))
            return f"# Error generating metrics: {str(e)}\n"
