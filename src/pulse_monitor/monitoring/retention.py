"""Retention policy for in-memory history."""

import time
from typing import Callable, Dict

import structlog

from .sample_store import SampleStore

logger = structlog.get_logger(__name__)


class RetentionManager:
    """
    Prunes history older than the retention horizon.

    Samples and request records older than the horizon are dropped, as are
    resolved alerts created before it. Active alerts are kept regardless of
    age. The alert list is then held to ``max_alerts`` by evicting the oldest
    resolved alerts.
    """

    def __init__(self,
                 store: SampleStore,
                 retention_hours: float = 24.0,
                 max_alerts: int = 50,
                 clock: Callable[[], float] = time.time):
        self.store = store
        self.retention_seconds = retention_hours * 3600
        self.max_alerts = max_alerts
        self.clock = clock

    def cleanup(self) -> Dict[str, int]:
        """Cleanup tick. Returns the number of removed entries per kind."""

        cutoff = self.clock() - self.retention_seconds
        removed = self.store.prune(cutoff, max_alerts=self.max_alerts)

        logger.info("Historical monitoring data cleaned up",
                    removed_metrics=removed["metrics"],
                    removed_requests=removed["requests"],
                    removed_alerts=removed["alerts"],
                    retention_hours=self.retention_seconds / 3600)

        return removed
