"""
Health aggregation and statistics.

The aggregator is the only component callers query synchronously. It reads
snapshots from the sample store and never blocks the background loops for
longer than a copy under the store lock.
"""

import statistics
import time
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional, Sequence, Union

import structlog

from .evaluator import AlertEvaluator, error_rate_percent
from .models import (
    Alert,
    AlertSeverity,
    DetailedStats,
    HealthState,
    HealthStatus,
    MetricSample,
    RequestStats,
    SeriesStats,
    TimeRange,
    to_millis,
)
from .sample_store import SampleStore, Series

logger = structlog.get_logger(__name__)

HEALTH_WINDOW_SECONDS = 3600
DASHBOARD_RECENT_ALERTS = 10
RESPONSE_CHART_STRIDE = 5


def derive_state(active_alerts: Sequence[Alert]) -> HealthState:
    """Critical on any active high alert, warning on any active alert."""
    if any(a.severity is AlertSeverity.HIGH for a in active_alerts):
        return HealthState.CRITICAL
    if active_alerts:
        return HealthState.WARNING
    return HealthState.HEALTHY


def _series_stats(samples: List[MetricSample], attr: str) -> SeriesStats:
    values = [getattr(s, attr) for s in samples]
    if not values:
        return SeriesStats(data=samples, average=0.0, max=0.0)
    return SeriesStats(data=samples, average=statistics.fmean(values), max=max(values))


class HealthAggregator:
    """Computes overall health and time-ranged statistics on demand."""

    def __init__(self,
                 store: SampleStore,
                 evaluator: AlertEvaluator,
                 recent_alerts_preview: int = 5,
                 started_at: Optional[float] = None,
                 clock: Callable[[], float] = time.time):
        self.store = store
        self.evaluator = evaluator
        self.recent_alerts_preview = recent_alerts_preview
        self.clock = clock
        self.started_at = started_at if started_at is not None else clock()

    def get_health_status(self) -> HealthStatus:
        """Current status, latest sample and one-hour request aggregates."""

        now = self.clock()
        latest = self.store.latest_metric_sample()
        recent = self.store.query(Series.REQUESTS, now - HEALTH_WINDOW_SECONDS)
        total_requests, total_errors = self.store.request_totals()

        active = self.store.alerts(active=True)
        critical = [a for a in active if a.severity is AlertSeverity.HIGH]
        preview = active[-self.recent_alerts_preview:] if self.recent_alerts_preview else []

        avg_response = (
            statistics.fmean(r.response_time_ms for r in recent) if recent else 0.0
        )

        return HealthStatus(
            status=derive_state(active),
            timestamp=now,
            uptime_seconds=now - self.started_at,
            cpu_percent=latest.cpu_percent if latest else 0.0,
            memory_percent=latest.memory_percent if latest else 0.0,
            disk_percent=latest.disk_percent if latest else 0.0,
            error_rate_percent=round(error_rate_percent(recent), 2),
            avg_response_time_ms=round(avg_response),
            total_requests=total_requests,
            total_errors=total_errors,
            active_alerts=len(active),
            critical_alerts=len(critical),
            recent_alerts=preview,
        )

    def get_detailed_stats(self, time_range: Union[TimeRange, str, None] = TimeRange.ONE_HOUR) -> DetailedStats:
        """Filtered series plus aggregates; empty series yield zeros."""

        if not isinstance(time_range, TimeRange):
            time_range = TimeRange.parse(time_range)

        now = self.clock()
        start = now - time_range.seconds
        samples = self.store.query(Series.CPU, start)
        requests = self.store.query(Series.REQUESTS, start)

        return DetailedStats(
            time_range=time_range,
            start_time=start,
            end_time=now,
            cpu=_series_stats(samples, "cpu_percent"),
            memory=_series_stats(samples, "memory_percent"),
            disk=_series_stats(samples, "disk_percent"),
            requests=RequestStats(
                data=requests,
                total=len(requests),
                errors=sum(1 for r in requests if r.has_error),
                average_response_time=(
                    statistics.fmean(r.response_time_ms for r in requests)
                    if requests else 0.0
                ),
            ),
        )

    def list_alerts(self) -> Dict[str, Any]:
        alerts = self.store.alerts()
        return {
            "active": [a.to_dict() for a in alerts if a.is_active],
            "resolved": [a.to_dict() for a in alerts if a.resolved],
            "total": len(alerts),
        }

    def resolve_alert(self, alert_id: str) -> bool:
        """Resolve an active alert. False for unknown or already-resolved ids."""

        alert = self.store.resolve_alert(str(alert_id), self.clock())
        if alert is None:
            logger.info("Alert not resolved", alert_id=alert_id)
            return False

        logger.info("Alert resolved",
                    alert_id=alert.id,
                    alert_type=alert.type,
                    message=alert.message)
        return True

    def create_alert(self,
                     alert_type: str,
                     message: str,
                     severity: Union[AlertSeverity, str, None] = AlertSeverity.MEDIUM) -> Alert:
        """Manual alert creation; same store and notify rules as the evaluator."""
        return self.evaluator.create_alert(alert_type, message, severity)

    def get_status_summary(self) -> Dict[str, Any]:
        """Condensed status for lightweight polling."""

        health = self.get_health_status()
        return {
            "status": health.status.value,
            "uptime": int(health.uptime_seconds * 1000),
            "alerts": health.active_alerts,
            "metrics": {
                "cpu": round(health.cpu_percent),
                "memory": round(health.memory_percent),
                "responseTime": health.avg_response_time_ms,
            },
        }

    def get_dashboard(self, time_range: Union[TimeRange, str, None] = TimeRange.ONE_HOUR) -> Dict[str, Any]:
        """Overview, today's request totals, ranged stats and chart series."""

        health = self.get_health_status()
        stats = self.get_detailed_stats(time_range)
        stats_dict = stats.to_dict()

        midnight = datetime.fromtimestamp(health.timestamp).replace(
            hour=0, minute=0, second=0, microsecond=0
        ).timestamp()
        today = self.store.query(Series.REQUESTS, midnight)

        alerts = self.store.alerts()

        return {
            "overview": {
                "status": health.status.value,
                "uptime": int(health.uptime_seconds * 1000),
                "totalRequests": health.total_requests,
                "totalErrors": health.total_errors,
                "errorRate": health.error_rate_percent,
                "avgResponseTime": health.avg_response_time_ms,
            },
            "todayStats": {
                "requests": len(today),
                "errors": sum(1 for r in today if r.has_error),
                "avgResponseTime": (
                    round(statistics.fmean(r.response_time_ms for r in today))
                    if today else 0
                ),
            },
            "systemMetrics": {
                "cpu": stats_dict["cpu"],
                "memory": stats_dict["memory"],
                "requests": stats_dict["requests"],
            },
            "alerts": {
                "active": [a.to_dict() for a in alerts if a.is_active],
                "recent": [a.to_dict() for a in alerts[-DASHBOARD_RECENT_ALERTS:]],
            },
            "charts": {
                "cpuUsage": [
                    {"timestamp": to_millis(s.timestamp), "value": s.cpu_percent}
                    for s in stats.cpu.data
                ],
                "memoryUsage": [
                    {"timestamp": to_millis(s.timestamp), "value": s.memory_percent}
                    for s in stats.memory.data
                ],
                "responseTime": [
                    {"timestamp": to_millis(r.timestamp), "value": r.response_time_ms}
                    for r in stats.requests.data[::RESPONSE_CHART_STRIDE]
                ],
            },
        }
