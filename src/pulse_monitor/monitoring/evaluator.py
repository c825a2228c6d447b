"""
Threshold-based alert evaluation.

On every tick the evaluator aggregates the last evaluation window of samples
and request records and raises an alert for each check whose aggregate is
strictly above its threshold. Checks with an empty window are skipped.
"""

import statistics
import time
from dataclasses import dataclass
from typing import Callable, List, Optional, Sequence, Union

import structlog

from pulse_monitor.core.exceptions import ValidationError

from .models import Alert, AlertSeverity, AlertType, Thresholds
from .notifier import AlertNotifier
from .sample_store import SampleStore, Series

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class CheckResult:
    """Outcome of a single threshold check."""

    alert_type: str
    value: float
    threshold: float
    severity: AlertSeverity
    message: str

    @property
    def breached(self) -> bool:
        return self.value > self.threshold


def parse_severity(value: Union[AlertSeverity, str, None]) -> AlertSeverity:
    """Coerce caller input to a severity, defaulting to medium."""
    if value is None:
        return AlertSeverity.MEDIUM
    if isinstance(value, AlertSeverity):
        return value
    try:
        return AlertSeverity(str(value).lower())
    except ValueError:
        allowed = [s.value for s in AlertSeverity]
        raise ValidationError(f"Severity must be one of: {allowed}") from None


class AlertEvaluator:
    """
    Periodic alert evaluation plus the shared alert creation path.

    Both automatic and manual alerts go through ``create_alert``: the alert
    is appended to the store and, if high severity, handed to the notifier.
    """

    def __init__(self,
                 store: SampleStore,
                 notifier: AlertNotifier,
                 thresholds: Optional[Thresholds] = None,
                 window_seconds: float = 3600.0,
                 max_alerts: int = 50,
                 suppress_duplicates: bool = False,
                 clock: Callable[[], float] = time.time):
        """Initialize alert evaluator."""

        self.store = store
        self.notifier = notifier
        self.thresholds = thresholds or Thresholds()
        self.window_seconds = window_seconds
        self.max_alerts = max_alerts
        self.suppress_duplicates = suppress_duplicates
        self.clock = clock

    def evaluate(self) -> List[Alert]:
        """Evaluation tick. Returns the alerts raised by this tick."""

        raised: List[Alert] = []
        try:
            results = self.run_checks()
        except Exception as e:
            logger.error("Alert evaluation failed", error=str(e))
            return raised

        for result in results:
            # A failing check must not skip the remaining ones
            try:
                if result.breached and self.should_raise(result.alert_type):
                    raised.append(
                        self.create_alert(result.alert_type, result.message, result.severity)
                    )
            except Exception as e:
                logger.error("Alert check failed",
                             alert_type=result.alert_type,
                             error=str(e))

        logger.debug("Alert evaluation completed", raised=len(raised))
        return raised

    def run_checks(self) -> List[CheckResult]:
        """Compute the aggregate for every check with data in the window."""

        since = self.clock() - self.window_seconds
        samples = self.store.query(Series.CPU, since)
        requests = self.store.query(Series.REQUESTS, since)

        results: List[CheckResult] = []

        if samples:
            avg_cpu = statistics.fmean(s.cpu_percent for s in samples)
            results.append(CheckResult(
                alert_type=AlertType.HIGH_CPU_USAGE,
                value=avg_cpu,
                threshold=self.thresholds.cpu_percent,
                severity=AlertSeverity.HIGH,
                message=f"CPU average usage: {avg_cpu:.2f}%",
            ))

            avg_memory = statistics.fmean(s.memory_percent for s in samples)
            results.append(CheckResult(
                alert_type=AlertType.HIGH_MEMORY_USAGE,
                value=avg_memory,
                threshold=self.thresholds.memory_percent,
                severity=AlertSeverity.HIGH,
                message=f"Memory average usage: {avg_memory:.2f}%",
            ))

        if requests:
            avg_response = statistics.fmean(r.response_time_ms for r in requests)
            results.append(CheckResult(
                alert_type=AlertType.SLOW_RESPONSE,
                value=avg_response,
                threshold=self.thresholds.response_time_ms,
                severity=AlertSeverity.MEDIUM,
                message=f"Average response time: {avg_response:.0f}ms",
            ))

            error_rate = error_rate_percent(requests)
            results.append(CheckResult(
                alert_type=AlertType.HIGH_ERROR_RATE,
                value=error_rate,
                threshold=self.thresholds.error_rate_percent,
                severity=AlertSeverity.HIGH,
                message=f"Error rate: {error_rate:.2f}%",
            ))

        return results

    def should_raise(self, alert_type: str) -> bool:
        """
        Decide whether a breached check produces a new alert.

        By default every breach raises, so a persisting condition yields one
        alert per tick. With ``suppress_duplicates`` a type that already has
        an active alert is skipped until that alert is resolved.
        """
        if not self.suppress_duplicates:
            return True
        return not self.store.has_active_alert(alert_type)

    def create_alert(self,
                     alert_type: str,
                     message: str,
                     severity: Union[AlertSeverity, str, None] = AlertSeverity.MEDIUM) -> Alert:
        """
        Validate, store and (for high severity) notify.

        Raises:
            ValidationError: If type or message is missing or severity is unknown.
        """
        if not alert_type or not str(alert_type).strip():
            raise ValidationError("Alert type is required")
        if not message or not str(message).strip():
            raise ValidationError("Alert message is required")
        severity = parse_severity(severity)

        alert = self.store.add_alert(
            Alert(type=str(alert_type), message=str(message),
                  severity=severity, created_at=self.clock()),
            max_alerts=self.max_alerts,
        )

        logger.warning("System alert raised",
                       alert_id=alert.id,
                       alert_type=alert.type,
                       severity=severity.value.upper(),
                       message=alert.message)

        self.notifier.notify(alert)
        return alert


def error_rate_percent(requests: Sequence) -> float:
    """Percentage of records flagged as errors; zero for an empty sequence."""
    if not requests:
        return 0.0
    errors = sum(1 for r in requests if r.has_error)
    return errors / len(requests) * 100
