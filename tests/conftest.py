"""
Pytest configuration and fixtures for Pulse Monitor tests.

This module provides common test fixtures and configuration
for the entire test suite.
"""

import os
import tempfile
from pathlib import Path
from typing import Generator, List

import pytest

from pulse_monitor.config.settings import MonitoringSettings, Settings
from pulse_monitor.core.exceptions import NotificationError
from pulse_monitor.core.logging import setup_logging
from pulse_monitor.monitoring.models import Alert, MetricSample, RequestRecord
from pulse_monitor.monitoring.notifier import AlertNotifier, AlertSink
from pulse_monitor.monitoring.sample_store import SampleStore

# 2026-01-15 12:30:00 UTC
BASE_TIME = 1768480200.0


class FakeClock:
    """Manually advanced clock injected wherever components read the time."""

    def __init__(self, now: float = BASE_TIME):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> float:
        self.now += seconds
        return self.now


class RecordingSink(AlertSink):
    """Alert sink that keeps every delivered alert in memory."""

    name = "recording"

    def __init__(self, fail: bool = False):
        self.fail = fail
        self.sent: List[Alert] = []
        self.closed = False

    def send(self, alert: Alert) -> None:
        if self.fail:
            raise NotificationError("sink unavailable")
        self.sent.append(alert)

    def close(self) -> None:
        self.closed = True


def make_sample(timestamp: float,
                cpu: float = 10.0,
                memory: float = 20.0,
                disk: float = 30.0) -> MetricSample:
    """Build a metric sample with round byte counts."""
    total = 16 * 1024 ** 3
    used = int(total * memory / 100)
    return MetricSample(
        timestamp=timestamp,
        cpu_percent=cpu,
        memory_total=total,
        memory_used=used,
        memory_free=total - used,
        memory_percent=memory,
        disk_total=500 * 1024 ** 3,
        disk_used=int(500 * 1024 ** 3 * disk / 100),
        disk_percent=disk,
    )


def make_request(timestamp: float,
                 response_time_ms: float = 100.0,
                 has_error: bool = False) -> RequestRecord:
    return RequestRecord(timestamp=timestamp,
                         response_time_ms=response_time_ms,
                         has_error=has_error)


@pytest.fixture(scope="session", autouse=True)
def setup_test_logging():
    """Set up logging for tests."""
    setup_logging(log_level="DEBUG", environment="testing")


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for tests."""
    with tempfile.TemporaryDirectory() as temp_dir:
        yield Path(temp_dir)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def store() -> SampleStore:
    return SampleStore(max_request_records=1000)


@pytest.fixture
def sink() -> RecordingSink:
    return RecordingSink()


@pytest.fixture
def notifier(sink) -> Generator[AlertNotifier, None, None]:
    notifier = AlertNotifier(sink, max_workers=1)
    yield notifier
    notifier.close(timeout=1.0)


@pytest.fixture
def monitoring_settings() -> Settings:
    """Settings built explicitly so the process environment cannot leak in."""
    return Settings(
        environment="testing",
        log_level="DEBUG",
        monitoring=MonitoringSettings(
            collection_interval_seconds=30,
            evaluation_interval_seconds=300,
            cleanup_interval_seconds=3600,
        ),
    )


@pytest.fixture
def test_settings() -> Generator[Settings, None, None]:
    """Create environment-loaded test settings with safe defaults."""
    # Set test environment variables
    test_env = {
        "ENVIRONMENT": "testing",
        "DEBUG": "true",
        "LOG_LEVEL": "DEBUG",
        "MONITOR_COLLECTION_INTERVAL_SECONDS": "5",
        "THRESHOLD_CPU_PERCENT": "75",
    }

    # Temporarily set environment variables
    original_env = {}
    for key, value in test_env.items():
        original_env[key] = os.environ.get(key)
        os.environ[key] = value

    try:
        # Clear the settings cache and create new settings
        from pulse_monitor.config.settings import get_settings
        get_settings.cache_clear()
        settings = get_settings()
        yield settings
    finally:
        # Restore original environment variables
        for key, value in original_env.items():
            if value is None:
                os.environ.pop(key, None)
            else:
                os.environ[key] = value

        # Clear the cache again
        get_settings.cache_clear()


# Pytest configuration
def pytest_configure(config):
    """Configure pytest with custom markers."""
    config.addinivalue_line(
        "markers", "unit: mark test as a unit test"
    )
    config.addinivalue_line(
        "markers", "integration: mark test as an integration test"
    )
    config.addinivalue_line(
        "markers", "slow: mark test as slow running"
    )


def pytest_collection_modifyitems(config, items):
    """Modify test collection to add markers based on file location."""
    for item in items:
        # Add unit marker to tests in unit/ directory
        if "unit" in str(item.fspath):
            item.add_marker(pytest.mark.unit)

        # Add integration marker to tests in integration/ directory
        elif "integration" in str(item.fspath):
            item.add_marker(pytest.mark.integration)
