"""
Monitoring data model.

Samples and request records are immutable value objects owned by the
sample store. Alerts are mutable only through resolution. Timestamps are
epoch seconds internally and are exported as epoch milliseconds.
"""

import random
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional


def to_millis(timestamp: Optional[float]) -> Optional[int]:
    """Convert epoch seconds to integer epoch milliseconds."""
    if timestamp is None:
        return None
    return int(round(timestamp * 1000))


class AlertSeverity(Enum):
    """Alert severity. Only HIGH is pushed to the external sink."""
    MEDIUM = "medium"
    HIGH = "high"


class AlertType:
    """Alert types raised by the evaluator."""
    HIGH_CPU_USAGE = "HIGH_CPU_USAGE"
    HIGH_MEMORY_USAGE = "HIGH_MEMORY_USAGE"
    SLOW_RESPONSE = "SLOW_RESPONSE"
    HIGH_ERROR_RATE = "HIGH_ERROR_RATE"


class HealthState(Enum):
    """Derived overall health."""
    HEALTHY = "healthy"
    WARNING = "warning"
    CRITICAL = "critical"


class TimeRange(Enum):
    """Supported ranges for detailed statistics."""
    ONE_HOUR = "1h"
    SIX_HOURS = "6h"
    ONE_DAY = "24h"

    @property
    def seconds(self) -> int:
        return {"1h": 3600, "6h": 21600, "24h": 86400}[self.value]

    @classmethod
    def parse(cls, value: Optional[str]) -> "TimeRange":
        """Parse a range string, falling back to one hour for unknown input."""
        for member in cls:
            if member.value == value:
                return member
        return cls.ONE_HOUR


@dataclass(frozen=True)
class MetricSample:
    """One host resource measurement."""

    timestamp: float
    cpu_percent: float
    memory_total: int
    memory_used: int
    memory_free: int
    memory_percent: float
    disk_total: int
    disk_used: int
    disk_percent: float

    def to_dict(self) -> Dict[str, Any]:
        return {
            "timestamp": to_millis(self.timestamp),
            "cpu": self.cpu_percent,
            "memory": {
                "total": self.memory_total,
                "used": self.memory_used,
                "free": self.memory_free,
                "usage": self.memory_percent,
            },
            "disk": {
                "total": self.disk_total,
                "used": self.disk_used,
                "usage": self.disk_percent,
            },
        }


@dataclass(frozen=True)
class RequestRecord:
    """Timing of one completed inbound request."""

    timestamp: float
    response_time_ms: float
    has_error: bool

    def to_dict(self) -> Dict[str, Any]:
        return {
            "timestamp": to_millis(self.timestamp),
            "responseTime": self.response_time_ms,
            "hasError": self.has_error,
        }


def new_alert_id(now: float) -> str:
    """Creation time in milliseconds plus a random tiebreaker."""
    return f"{to_millis(now)}-{random.getrandbits(32):08x}"


@dataclass
class Alert:
    """A threshold breach or operator-raised condition."""

    type: str
    message: str
    severity: AlertSeverity
    created_at: float = field(default_factory=time.time)
    id: str = ""
    resolved: bool = False
    resolved_at: Optional[float] = None

    def __post_init__(self) -> None:
        if not self.id:
            self.id = new_alert_id(self.created_at)

    def resolve(self, now: float) -> bool:
        """Mark resolved. Returns False if it already was."""
        if self.resolved:
            return False
        self.resolved = True
        self.resolved_at = now
        return True

    @property
    def is_active(self) -> bool:
        return not self.resolved

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "type": self.type,
            "message": self.message,
            "severity": self.severity.value,
            "timestamp": to_millis(self.created_at),
            "resolved": self.resolved,
            "resolvedAt": to_millis(self.resolved_at),
        }


@dataclass(frozen=True)
class Thresholds:
    """Process-wide alert thresholds."""

    cpu_percent: float = 80.0
    memory_percent: float = 85.0
    disk_percent: float = 90.0
    response_time_ms: float = 5000.0
    error_rate_percent: float = 10.0


@dataclass
class HealthStatus:
    """Aggregate health computed on demand."""

    status: HealthState
    timestamp: float
    uptime_seconds: float
    cpu_percent: float
    memory_percent: float
    disk_percent: float
    error_rate_percent: float
    avg_response_time_ms: float
    total_requests: int
    total_errors: int
    active_alerts: int
    critical_alerts: int
    recent_alerts: List[Alert] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "status": self.status.value,
            "timestamp": to_millis(self.timestamp),
            "uptime": int(self.uptime_seconds * 1000),
            "metrics": {
                "cpu": self.cpu_percent,
                "memory": self.memory_percent,
                "disk": self.disk_percent,
                "errorRate": self.error_rate_percent,
                "avgResponseTime": self.avg_response_time_ms,
                "totalRequests": self.total_requests,
                "totalErrors": self.total_errors,
            },
            "alerts": {
                "total": self.active_alerts,
                "critical": self.critical_alerts,
                "recent": [alert.to_dict() for alert in self.recent_alerts],
            },
        }


@dataclass
class SeriesStats:
    """Average and maximum over a filtered metric series."""

    data: List[MetricSample]
    average: float
    max: float


@dataclass
class RequestStats:
    """Totals over a filtered request series."""

    data: List[RequestRecord]
    total: int
    errors: int
    average_response_time: float


@dataclass
class DetailedStats:
    """Time-ranged statistics for the metrics endpoint."""

    time_range: TimeRange
    start_time: float
    end_time: float
    cpu: SeriesStats
    memory: SeriesStats
    disk: SeriesStats
    requests: RequestStats

    def to_dict(self) -> Dict[str, Any]:
        def series(stats: SeriesStats, key: str) -> Dict[str, Any]:
            return {
                "data": [
                    {"timestamp": to_millis(s.timestamp), "usage": getattr(s, key)}
                    for s in stats.data
                ],
                "average": stats.average,
                "max": stats.max,
            }

        return {
            "timeRange": self.time_range.value,
            "startTime": to_millis(self.start_time),
            "endTime": to_millis(self.end_time),
            "cpu": series(self.cpu, "cpu_percent"),
            "memory": series(self.memory, "memory_percent"),
            "disk": series(self.disk, "disk_percent"),
            "requests": {
                "data": [r.to_dict() for r in self.requests.data],
                "total": self.requests.total,
                "errors": self.requests.errors,
                "averageResponseTime": self.requests.average_response_time,
            },
        }
