"""
Host resource sampling.

Samples CPU, memory and disk usage with psutil and appends exactly one
MetricSample per tick to the sample store. Sampling failures are logged and
skipped so the collection loop keeps its cadence. ``process_snapshot`` reports
the monitored process itself for the basic metrics route.
"""

import platform
import sys
import time
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Optional, Tuple

import psutil
import structlog

from pulse_monitor.core.exceptions import CollectionError

from .models import MetricSample
from .sample_store import SampleStore

logger = structlog.get_logger(__name__)


class HostMetricsCollector:
    """
    Periodic host resource sampler.

    CPU usage is the system-wide utilization since the previous tick, as
    reported by ``psutil.cpu_percent(interval=None)``. Call ``prime()`` once
    before the first tick so that the first sample has a baseline.
    """

    def __init__(self,
                 store: SampleStore,
                 disk_path: str = ".",
                 clock: Callable[[], float] = time.time):
        """Initialize host metrics collector."""

        self.store = store
        self.disk_path = disk_path
        self.clock = clock

    def prime(self) -> None:
        """Establish the CPU time baseline for the next reading."""
        try:
            psutil.cpu_percent(interval=None)
        except Exception as e:
            logger.warning("CPU baseline unavailable", error=str(e))

    def sample(self) -> MetricSample:
        """Take one host measurement without storing it."""

        try:
            cpu_percent = self._read_cpu()
            memory_total, memory_used, memory_free, memory_percent = self._read_memory()
        except Exception as e:
            raise CollectionError(f"Host metric read failed: {e}") from e

        disk_total, disk_used, disk_percent = self._read_disk()

        return MetricSample(
            timestamp=self.clock(),
            cpu_percent=cpu_percent,
            memory_total=memory_total,
            memory_used=memory_used,
            memory_free=memory_free,
            memory_percent=memory_percent,
            disk_total=disk_total,
            disk_used=disk_used,
            disk_percent=disk_percent,
        )

    def collect(self) -> Optional[MetricSample]:
        """Collection tick: sample and append, or log and skip on failure."""

        try:
            sample = self.sample()
        except CollectionError as e:
            logger.error("System metrics collection failed", error=str(e))
            return None

        self.store.append_metric_sample(sample)

        logger.debug("Host metrics collected",
                     cpu=sample.cpu_percent,
                     memory=sample.memory_percent,
                     disk=sample.disk_percent)

        return sample

    def _read_cpu(self) -> float:
        usage = psutil.cpu_percent(interval=None)
        return max(0.0, min(100.0, float(usage)))

    def _read_memory(self) -> Tuple[int, int, int, float]:
        memory = psutil.virtual_memory()
        total = int(memory.total)
        free = int(memory.free)
        used = total - free
        usage = round(used / total * 100, 2) if total > 0 else 0.0
        return total, used, free, usage

    def _read_disk(self) -> Tuple[int, int, float]:
        """Usage of the volume holding ``disk_path``; zeros when unavailable."""
        try:
            disk = psutil.disk_usage(self.disk_path)
        except Exception as e:
            logger.warning("Disk usage unavailable",
                           path=self.disk_path,
                           error=str(e))
            return 0, 0, 0.0

        usage = round(disk.used / disk.total * 100, 2) if disk.total > 0 else 0.0
        return int(disk.total), int(disk.used), usage


def _megabytes(value: int) -> str:
    return f"{round(value / 1024 / 1024)} MB"


def process_snapshot(clock: Callable[[], float] = time.time) -> Dict[str, Any]:
    """Uptime, memory and runtime details of the current process."""

    process = psutil.Process()
    memory = process.memory_info()
    now = clock()

    return {
        "timestamp": datetime.fromtimestamp(now, tz=timezone.utc).isoformat(),
        "uptime": max(0, int(now - process.create_time())),
        "memory": {
            "rss": _megabytes(memory.rss),
            "vms": _megabytes(memory.vms),
        },
        "system": {
            "platform": sys.platform,
            "pythonVersion": platform.python_version(),
            "pid": process.pid,
        },
    }
