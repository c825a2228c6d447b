"""
Runtime Health Monitoring Module

This module provides in-process health monitoring capabilities including:
- Host CPU, memory and disk sampling
- Per-request latency and error instrumentation
- Scheduled threshold alert evaluation with external notification
- Bounded retention of in-memory history
- On-demand health status and time-ranged statistics
"""

from .collector import HostMetricsCollector
from .evaluator import AlertEvaluator
from .health import HealthAggregator
from .instrumentation import RequestInstrumentation
from .models import (
    Alert,
    AlertSeverity,
    AlertType,
    DetailedStats,
    HealthState,
    HealthStatus,
    MetricSample,
    RequestRecord,
    Thresholds,
    TimeRange,
)
from .notifier import AlertNotifier, AlertSink, LoggingAlertSink, TelegramAlertSink
from .prometheus_exporter import PrometheusExporter
from .retention import RetentionManager
from .sample_store import SampleStore, Series
from .scheduler import PeriodicTask
from .service import MonitoringService

__all__ = [
    "Alert",
    "AlertEvaluator",
    "AlertNotifier",
    "AlertSeverity",
    "AlertSink",
    "AlertType",
    "DetailedStats",
    "HealthAggregator",
    "HealthState",
    "HealthStatus",
    "HostMetricsCollector",
    "LoggingAlertSink",
    "MetricSample",
    "MonitoringService",
    "PeriodicTask",
    "PrometheusExporter",
    "RequestInstrumentation",
    "RequestRecord",
    "RetentionManager",
    "SampleStore",
    "Series",
    "TelegramAlertSink",
    "Thresholds",
    "TimeRange",
]
