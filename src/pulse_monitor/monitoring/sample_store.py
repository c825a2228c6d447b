"""
Bounded, time-ordered in-memory storage for host samples, request
records and alerts.

Every read and write goes through one re-entrant lock. Reads copy data out
under the lock so callers never hold live references to stored state.
"""

import dataclasses
import threading
from collections import deque
from enum import Enum
from typing import Deque, Dict, List, Optional, Tuple, Union

from .models import Alert, MetricSample, RequestRecord


class Series(Enum):
    """Queryable series. CPU, memory and disk share one sample per tick."""
    CPU = "cpu"
    MEMORY = "memory"
    DISK = "disk"
    REQUESTS = "requests"


class SampleStore:
    """
    Thread-safe owner of all monitoring data.

    Metric samples are unbounded at append time and trimmed by the retention
    manager. Request records live in a ring buffer capped at
    ``max_request_records``. Running request/error totals are kept apart from
    the ring buffer so they never decrease when records are evicted.
    """

    def __init__(self, max_request_records: int = 1000):
        self.max_request_records = max_request_records

        self._metrics: List[MetricSample] = []
        self._requests: Deque[RequestRecord] = deque(maxlen=max_request_records)
        self._alerts: List[Alert] = []

        self._total_requests = 0
        self._total_errors = 0

        # Thread safety
        self._lock = threading.RLock()

    # Samples

    def append_metric_sample(self, sample: MetricSample) -> None:
        """Append one host sample to the CPU/memory/disk series."""
        with self._lock:
            self._metrics.append(sample)

    def append_request_record(self, record: RequestRecord) -> None:
        """Append a request record and bump the running totals."""
        with self._lock:
            self._total_requests += 1
            if record.has_error:
                self._total_errors += 1
            # deque(maxlen) evicts from the left once full
            self._requests.append(record)

    def query(self, series: Union[Series, str], since: float) -> List[Union[MetricSample, RequestRecord]]:
        """Return entries with ``timestamp > since`` in arrival order."""
        series = Series(series)
        with self._lock:
            source = self._requests if series is Series.REQUESTS else self._metrics
            return [entry for entry in source if entry.timestamp > since]

    def latest_metric_sample(self) -> Optional[MetricSample]:
        with self._lock:
            return self._metrics[-1] if self._metrics else None

    def request_totals(self) -> Tuple[int, int]:
        """Return (total requests, total errors) since process start."""
        with self._lock:
            return self._total_requests, self._total_errors

    def sizes(self) -> Dict[str, int]:
        with self._lock:
            return {
                "metrics": len(self._metrics),
                "requests": len(self._requests),
                "alerts": len(self._alerts),
            }

    # Alerts

    def add_alert(self, alert: Alert, max_alerts: Optional[int] = None) -> Alert:
        """Append an alert, then evict the oldest resolved alerts beyond the cap."""
        with self._lock:
            self._alerts.append(alert)
            if max_alerts is not None:
                self._evict_resolved_alerts(max_alerts)
            return dataclasses.replace(alert)

    def alerts(self, active: Optional[bool] = None) -> List[Alert]:
        """Snapshot alerts in creation order, optionally filtered by state."""
        with self._lock:
            return [
                dataclasses.replace(alert)
                for alert in self._alerts
                if active is None or alert.is_active == active
            ]

    def get_alert(self, alert_id: str) -> Optional[Alert]:
        with self._lock:
            for alert in self._alerts:
                if alert.id == alert_id:
                    return dataclasses.replace(alert)
        return None

    def has_active_alert(self, alert_type: str) -> bool:
        with self._lock:
            return any(a.is_active and a.type == alert_type for a in self._alerts)

    def resolve_alert(self, alert_id: str, now: float) -> Optional[Alert]:
        """
        Resolve an active alert in place.

        Returns a snapshot of the resolved alert, or None when the id is
        unknown or the alert was already resolved.
        """
        with self._lock:
            for alert in self._alerts:
                if alert.id == alert_id:
                    if alert.resolve(now):
                        return dataclasses.replace(alert)
                    return None
        return None

    # Retention

    def prune(self, cutoff: float, max_alerts: Optional[int] = None) -> Dict[str, int]:
        """
        Drop samples, request records and resolved alerts created at or
        before ``cutoff``. Active alerts are never dropped.
        """
        with self._lock:
            metrics_before = len(self._metrics)
            self._metrics = [m for m in self._metrics if m.timestamp > cutoff]

            requests_before = len(self._requests)
            kept = [r for r in self._requests if r.timestamp > cutoff]
            self._requests.clear()
            self._requests.extend(kept)

            alerts_before = len(self._alerts)
            self._alerts = [
                a for a in self._alerts if a.is_active or a.created_at > cutoff
            ]
            if max_alerts is not None:
                self._evict_resolved_alerts(max_alerts)

            return {
                "metrics": metrics_before - len(self._metrics),
                "requests": requests_before - len(self._requests),
                "alerts": alerts_before - len(self._alerts),
            }

    def _evict_resolved_alerts(self, max_alerts: int) -> None:
        # Caller holds the lock
        excess = len(self._alerts) - max_alerts
        if excess <= 0:
            return
        kept: List[Alert] = []
        for alert in self._alerts:
            if excess > 0 and alert.resolved:
                excess -= 1
                continue
            kept.append(alert)
        self._alerts = kept
