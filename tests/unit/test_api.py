"""
Unit tests for the monitoring HTTP API.

The service is driven with a fake clock and a recording sink; background
loops only run in the lifespan test.
"""

import os
import platform
from typing import Generator

import pytest
from fastapi.testclient import TestClient

from conftest import FakeClock, RecordingSink, make_sample
from pulse_monitor.api.main import create_app
from pulse_monitor.config.settings import SecuritySettings, Settings
from pulse_monitor.core.exceptions import ConfigurationError
from pulse_monitor.monitoring.service import MonitoringService


@pytest.fixture
def service(monitoring_settings: Settings, clock: FakeClock) -> Generator[MonitoringService, None, None]:
    service = MonitoringService(monitoring_settings, sink=RecordingSink(), clock=clock)
    yield service
    service.notifier.close(timeout=1.0)


@pytest.fixture
def client(service: MonitoringService) -> TestClient:
    return TestClient(create_app(service))


class TestHealthEndpoints:
    """Test the public health check."""

    def test_healthy_without_data(self, client: TestClient) -> None:
        response = client.get("/api/monitoring/health")

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["status"] == "healthy"
        assert body["metrics"]["cpu"] == 0
        assert body["alerts"]["total"] == 0

    def test_critical_returns_503(self, client: TestClient, service: MonitoringService) -> None:
        service.create_alert("HIGH_CPU_USAGE", "CPU average usage: 95.00%", "high")

        response = client.get("/api/monitoring/health")

        assert response.status_code == 503
        body = response.json()
        assert body["success"] is False
        assert body["status"] == "critical"
        assert body["alerts"]["critical"] == 1

    def test_root_health_alias(self, client: TestClient) -> None:
        assert client.get("/health").json()["status"] == "healthy"

    def test_requests_are_instrumented(self, client: TestClient, service: MonitoringService) -> None:
        client.get("/health")
        client.get("/does-not-exist")

        assert service.store.request_totals() == (2, 1)


class TestMetricsEndpoints:
    """Test ranged statistics and Prometheus exposition."""

    def test_metrics_range(self, client, service, clock) -> None:
        service.store.append_metric_sample(make_sample(clock() - 4 * 3600, cpu=70))

        one_hour = client.get("/api/monitoring/metrics").json()["stats"]
        six_hours = client.get("/api/monitoring/metrics", params={"range": "6h"}).json()["stats"]

        assert one_hour["timeRange"] == "1h"
        assert one_hour["cpu"]["data"] == []
        assert six_hours["cpu"]["max"] == 70

    def test_basic_metrics(self, client) -> None:
        response = client.get("/api/monitoring/metrics/basic")

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["system"]["pid"] == os.getpid()
        assert data["system"]["pythonVersion"] == platform.python_version()
        assert data["memory"]["rss"].endswith(" MB")
        assert data["uptime"] >= 0

    def test_unknown_range_falls_back(self, client) -> None:
        response = client.get("/api/monitoring/metrics", params={"range": "30d"})
        assert response.json()["stats"]["timeRange"] == "1h"

    def test_prometheus(self, client, service, clock) -> None:
        service.store.append_metric_sample(make_sample(clock(), cpu=33))

        response = client.get("/api/monitoring/metrics/prometheus")

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/plain")
        assert "pulse_monitor_cpu_usage_percent 33.0" in response.text

    def test_status_and_dashboard(self, client) -> None:
        status = client.get("/api/monitoring/status").json()
        dashboard = client.get("/api/monitoring/dashboard", params={"range": "24h"}).json()

        assert status["success"] is True
        assert status["status"] == "healthy"
        assert set(dashboard["dashboard"]) == {
            "overview", "todayStats", "systemMetrics", "alerts", "charts"
        }


class TestAlertEndpoints:
    """Test alert listing, creation and resolution."""

    def test_create_alert_defaults_to_medium(self, client: TestClient) -> None:
        response = client.post("/api/monitoring/alerts/create",
                               json={"type": "MANUAL", "message": "maintenance window"})

        assert response.status_code == 201
        alert = response.json()["alert"]
        assert alert["severity"] == "medium"
        assert alert["resolved"] is False
        assert alert["resolvedAt"] is None

    @pytest.mark.parametrize("payload", [
        {"message": "no type"},
        {"type": "MANUAL"},
        {"type": "MANUAL", "message": "m", "severity": "catastrophic"},
    ])
    def test_create_alert_validation(self, client: TestClient, payload) -> None:
        response = client.post("/api/monitoring/alerts/create", json=payload)

        assert response.status_code == 400
        assert response.json()["success"] is False

    def test_resolve_flow(self, client: TestClient, service: MonitoringService) -> None:
        alert = service.create_alert("MANUAL", "m")

        first = client.post("/api/monitoring/alerts/resolve", json={"alertId": alert.id})
        second = client.post("/api/monitoring/alerts/resolve", json={"alertId": alert.id})

        assert first.status_code == 200
        assert first.json() == {"success": True, "message": "Alert resolved"}
        assert second.status_code == 404

        alerts = client.get("/api/monitoring/alerts").json()["alerts"]
        assert alerts["total"] == 1
        assert alerts["active"] == []
        assert alerts["resolved"][0]["id"] == alert.id

    def test_resolve_unknown(self, client: TestClient) -> None:
        response = client.post("/api/monitoring/alerts/resolve", json={"alertId": "nonexistent"})

        assert response.status_code == 404
        assert client.get("/api/monitoring/health").json()["status"] == "healthy"

    def test_resolve_requires_alert_id(self, client: TestClient) -> None:
        response = client.post("/api/monitoring/alerts/resolve", json={})
        assert response.status_code == 400


class TestOperatorToken:
    """Test bearer token protection of operator routes."""

    @pytest.fixture
    def secured_client(self, clock) -> Generator[TestClient, None, None]:
        settings = Settings(environment="testing",
                            security=SecuritySettings(api_token="s3cret"))
        service = MonitoringService(settings, sink=RecordingSink(), clock=clock)
        yield TestClient(create_app(service))
        service.notifier.close(timeout=1.0)

    def test_health_is_public(self, secured_client: TestClient) -> None:
        assert secured_client.get("/api/monitoring/health").status_code == 200
        assert secured_client.get("/api/monitoring/metrics/basic").status_code == 200

    def test_production_requires_token(self) -> None:
        """The app refuses to build with open operator routes in production."""
        settings = Settings(environment="production",
                            security=SecuritySettings(api_token=None))
        service = MonitoringService(settings, sink=RecordingSink())
        try:
            with pytest.raises(ConfigurationError, match="API_TOKEN"):
                create_app(service)
        finally:
            service.notifier.close(timeout=1.0)

    def test_operator_routes_require_token(self, secured_client: TestClient) -> None:
        assert secured_client.get("/api/monitoring/alerts").status_code == 401
        wrong = {"Authorization": "Bearer nope"}
        assert secured_client.get("/api/monitoring/alerts", headers=wrong).status_code == 401

        right = {"Authorization": "Bearer s3cret"}
        assert secured_client.get("/api/monitoring/alerts", headers=right).status_code == 200


class TestLifespan:
    """Test that the app owns the service lifecycle."""

    def test_lifespan_starts_and_stops_service(self, monitoring_settings) -> None:
        service = MonitoringService(monitoring_settings, sink=RecordingSink())

        with TestClient(create_app(service)) as client:
            assert service.is_running
            assert client.get("/health").status_code == 200

        assert not service.is_running
