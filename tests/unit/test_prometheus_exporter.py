"""
Unit tests for the Prometheus exporter.
"""

from conftest import make_request, make_sample
from pulse_monitor.monitoring.evaluator import AlertEvaluator
from pulse_monitor.monitoring.health import HealthAggregator
from pulse_monitor.monitoring.prometheus_exporter import PrometheusExporter


class TestPrometheusExporter:
    """Test scrape-time rendering of the health snapshot."""

    def test_renders_health_snapshot(self, store, notifier, clock) -> None:
        evaluator = AlertEvaluator(store, notifier, clock=clock)
        health = HealthAggregator(store, evaluator, clock=clock)
        store.append_metric_sample(make_sample(clock(), cpu=12.5, memory=60.0, disk=40.0))
        store.append_request_record(make_request(clock(), has_error=True))
        evaluator.create_alert("MANUAL", "m", "high")

        text = PrometheusExporter(health).get_metrics_text()

        assert "pulse_monitor_cpu_usage_percent 12.5" in text
        assert "pulse_monitor_memory_usage_percent 60.0" in text
        assert "pulse_monitor_critical_alerts 1.0" in text
        assert 'pulse_monitor_health_status{state="critical"} 1.0' in text
        assert 'pulse_monitor_health_status{state="healthy"} 0.0' in text
        assert "pulse_monitor_requests_total 1.0" in text
        assert "pulse_monitor_request_errors_total 1.0" in text

    def test_exporters_do_not_share_registries(self, store, notifier, clock) -> None:
        health = HealthAggregator(store, AlertEvaluator(store, notifier, clock=clock), clock=clock)

        first = PrometheusExporter(health)
        second = PrometheusExporter(health)

        assert first.registry is not second.registry
        assert first.render() == second.render()
