"""
Unit tests for background cadences and the service lifecycle.
"""

import asyncio
import threading

import pytest

from conftest import RecordingSink
from pulse_monitor.monitoring.scheduler import PeriodicTask
from pulse_monitor.monitoring.service import MonitoringService


class TestPeriodicTask:
    """Test the periodic loop."""

    def test_rejects_non_positive_interval(self) -> None:
        with pytest.raises(ValueError):
            PeriodicTask("bad", 0, lambda: None)

    @pytest.mark.asyncio
    async def test_runs_on_cadence(self) -> None:
        calls = []
        task = PeriodicTask("tick", 0.01, lambda: calls.append(1))

        task.start()
        await asyncio.sleep(0.1)
        await task.stop()

        assert task.tick_count >= 2
        assert len(calls) == task.tick_count
        assert not task.is_running

    @pytest.mark.asyncio
    async def test_first_tick_waits_one_interval(self) -> None:
        calls = []
        task = PeriodicTask("slow", 60, lambda: calls.append(1))

        task.start()
        await asyncio.sleep(0.05)
        await task.stop()

        assert calls == []

    @pytest.mark.asyncio
    async def test_errors_do_not_stop_loop(self) -> None:
        def failing():
            raise RuntimeError("tick failed")

        task = PeriodicTask("failing", 0.01, failing)

        task.start()
        await asyncio.sleep(0.08)
        await task.stop()

        assert task.error_count >= 2
        assert task.tick_count == 0

    @pytest.mark.asyncio
    async def test_stop_waits_for_in_flight_tick(self) -> None:
        started = threading.Event()
        finished = threading.Event()

        def slow():
            started.set()
            finished.wait(0.2)
            return "done"

        task = PeriodicTask("in-flight", 0.01, slow)
        task.start()
        while not started.is_set():
            await asyncio.sleep(0.005)

        threading.Timer(0.05, finished.set).start()
        await task.stop()

        assert finished.is_set()
        assert task.tick_count == 1

    @pytest.mark.asyncio
    async def test_run_once(self) -> None:
        task = PeriodicTask("once", 60, lambda: 7)
        assert await task.run_once() == 7
        assert task.tick_count == 1


class TestMonitoringServiceLifecycle:
    """Test explicit start/stop ownership."""

    @pytest.mark.asyncio
    async def test_start_and_stop(self, monitoring_settings) -> None:
        sink = RecordingSink()
        service = MonitoringService(monitoring_settings, sink=sink)

        assert not service.is_running
        assert not any(t.is_running for t in service.tasks)

        await service.start()
        assert service.is_running
        assert [t.name for t in service.tasks] == [
            "metrics-collector", "alert-evaluator", "retention-manager"
        ]
        assert all(t.is_running for t in service.tasks)

        await service.stop()
        assert not service.is_running
        assert not any(t.is_running for t in service.tasks)
        assert sink.closed

    @pytest.mark.asyncio
    async def test_restart_keeps_delivering_alerts(self, monitoring_settings) -> None:
        """High alerts raised after stop/start still reach the sink."""
        sink = RecordingSink()
        service = MonitoringService(monitoring_settings, sink=sink)

        await service.start()
        await service.stop()
        await service.start()
        try:
            service.create_alert("T", "after restart", "high")
            assert service.notifier.drain(timeout=2.0)
            assert [a.message for a in sink.sent] == ["after restart"]
            assert service.evaluator.notifier is service.notifier
        finally:
            await service.stop()

    @pytest.mark.asyncio
    async def test_stop_without_start_is_noop(self, monitoring_settings) -> None:
        service = MonitoringService(monitoring_settings, sink=RecordingSink())
        await service.stop()
        assert not service.is_running

    def test_settings_flow_into_components(self, monitoring_settings) -> None:
        service = MonitoringService(monitoring_settings, sink=RecordingSink())
        try:
            assert service.evaluator.thresholds.cpu_percent == 80.0
            assert service.store.max_request_records == 1000
            assert service.tasks[0].interval_seconds == 30
        finally:
            service.notifier.close(timeout=1.0)
