"""
Monitoring service lifecycle.

Wires the sample store, collector, instrumentation hook, evaluator,
notifier, retention manager and health aggregator together and owns the
three background cadences. The process entry point creates one instance
and calls ``start()``/``stop()``; nothing is started at import or
construction time.
"""

import time
from typing import Any, Callable, Dict, List, Optional, Union

import structlog

from pulse_monitor.config.settings import NotifierSettings, Settings, ThresholdSettings, get_settings

from .collector import HostMetricsCollector
from .evaluator import AlertEvaluator
from .health import HealthAggregator
from .instrumentation import RequestInstrumentation
from .models import Alert, AlertSeverity, DetailedStats, HealthStatus, RequestRecord, Thresholds, TimeRange
from .notifier import AlertNotifier, AlertSink, LoggingAlertSink, TelegramAlertSink
from .retention import RetentionManager
from .sample_store import SampleStore
from .scheduler import PeriodicTask

logger = structlog.get_logger(__name__)


def build_thresholds(settings: ThresholdSettings) -> Thresholds:
    """Freeze threshold settings into the value read by the evaluator."""
    return Thresholds(
        cpu_percent=settings.cpu_percent,
        memory_percent=settings.memory_percent,
        disk_percent=settings.disk_percent,
        response_time_ms=settings.response_time_ms,
        error_rate_percent=settings.error_rate_percent,
    )


def build_sink(settings: NotifierSettings) -> AlertSink:
    """Telegram when both credentials are set, log-only otherwise."""
    if settings.telegram_configured:
        return TelegramAlertSink(
            bot_token=settings.telegram_bot_token.get_secret_value(),
            chat_id=settings.telegram_chat_id,
            timeout_seconds=settings.timeout_seconds,
        )
    return LoggingAlertSink()


class MonitoringService:
    """
    Runtime health monitoring and alerting.

    Usage:
        service = MonitoringService(settings)
        await service.start()
        ...
        service.record_request(elapsed_ms=12.5, has_error=False)
        status = service.get_health_status()
        ...
        await service.stop()
    """

    def __init__(self,
                 settings: Optional[Settings] = None,
                 sink: Optional[AlertSink] = None,
                 clock: Callable[[], float] = time.time):
        """Initialize monitoring service components."""

        self.settings = settings or get_settings()
        self.clock = clock
        monitoring = self.settings.monitoring

        self.store = SampleStore(max_request_records=monitoring.max_request_records)
        self.collector = HostMetricsCollector(self.store,
                                              disk_path=monitoring.disk_path,
                                              clock=clock)
        self.instrumentation = RequestInstrumentation(self.store, clock=clock)
        self._sink = sink
        self.notifier = self._build_notifier()
        self.evaluator = AlertEvaluator(self.store,
                                        self.notifier,
                                        thresholds=build_thresholds(self.settings.thresholds),
                                        window_seconds=monitoring.evaluation_window_seconds,
                                        max_alerts=monitoring.max_alerts,
                                        suppress_duplicates=monitoring.suppress_duplicate_alerts,
                                        clock=clock)
        self.retention = RetentionManager(self.store,
                                          retention_hours=monitoring.retention_hours,
                                          max_alerts=monitoring.max_alerts,
                                          clock=clock)
        self.health = HealthAggregator(self.store,
                                       self.evaluator,
                                       recent_alerts_preview=monitoring.recent_alerts_preview,
                                       clock=clock)

        self._tasks: List[PeriodicTask] = [
            PeriodicTask("metrics-collector",
                         monitoring.collection_interval_seconds,
                         self.collector.collect),
            PeriodicTask("alert-evaluator",
                         monitoring.evaluation_interval_seconds,
                         self.evaluator.evaluate),
            PeriodicTask("retention-manager",
                         monitoring.cleanup_interval_seconds,
                         self.retention.cleanup),
        ]
        self._started = False

        logger.info("MonitoringService initialized",
                    sink=self.notifier.sink.name,
                    thresholds=self.evaluator.thresholds.__dict__)

    @property
    def is_running(self) -> bool:
        return self._started

    @property
    def tasks(self) -> List[PeriodicTask]:
        return list(self._tasks)

    async def start(self) -> None:
        """Start the collector, evaluator and retention cadences."""

        if self._started:
            logger.warning("Monitoring service already running")
            return

        if self.notifier.closed:
            # A previous stop() released the sink; restarts deliver through a new one
            self.notifier = self._build_notifier()
            self.evaluator.notifier = self.notifier

        self.health.started_at = self.clock()
        self.collector.prime()
        for task in self._tasks:
            task.start()
        self._started = True

        logger.info("🔍 Monitoring service started")

    async def stop(self) -> None:
        """Stop all cadences, let in-flight ticks finish, flush notifications."""

        if not self._started:
            return

        for task in self._tasks:
            await task.stop()
        self.notifier.close()
        self._started = False

        logger.info("🛑 Monitoring service stopped")

    def _build_notifier(self) -> AlertNotifier:
        """Notifier over the injected sink, or one built from settings."""
        return AlertNotifier(self._sink or build_sink(self.settings.notifier),
                             max_workers=self.settings.notifier.max_workers)

    # Request instrumentation

    def record_request(self, elapsed_ms: float, has_error: bool = False) -> RequestRecord:
        return self.instrumentation.record_request(elapsed_ms, has_error)

    # Health queries and alert commands

    def get_health_status(self) -> HealthStatus:
        return self.health.get_health_status()

    def get_detailed_stats(self, time_range: Union[TimeRange, str, None] = TimeRange.ONE_HOUR) -> DetailedStats:
        return self.health.get_detailed_stats(time_range)

    def list_alerts(self) -> Dict[str, Any]:
        return self.health.list_alerts()

    def resolve_alert(self, alert_id: str) -> bool:
        return self.health.resolve_alert(alert_id)

    def create_alert(self,
                     alert_type: str,
                     message: str,
                     severity: Union[AlertSeverity, str, None] = AlertSeverity.MEDIUM) -> Alert:
        return self.health.create_alert(alert_type, message, severity)
