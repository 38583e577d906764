"""Integration tests for health check endpoints."""

import logging

import pytest
from fastapi.testclient import TestClient

from hearttoheart.services.flow_store import FlowStore


class TestHealthEndpoint:
    """Tests for /health endpoint."""

    def test_health_returns_200(self, client: TestClient) -> None:
        """Test that /health endpoint returns 200 status."""
        response = client.get("/health")
        assert response.status_code == 200

    def test_health_returns_healthy_status(self, client: TestClient) -> None:
        """Test that /health endpoint returns healthy status."""
        data = client.get("/health").json()

        assert data["status"] == "healthy"
        assert data["timestamp"] is not None
        assert data["version"] == "0.1.0"

    def test_health_reports_generation_and_flows(self, client: TestClient, flow_store: FlowStore) -> None:
        """Test that /health reports key configuration and live flow count."""
        flow_store.create("en")
        flow_store.create("zh")

        data = client.get("/health").json()

        assert data["generation_enabled"] is True
        assert data["active_flows"] == 2

    def test_status_enum_is_published(self, client: TestClient) -> None:
        """Test that the documented health status values are the ones the endpoint returns."""
        schema = client.get("/openapi.json").json()

        assert schema["components"]["schemas"]["HealthStatus"]["enum"] == ["healthy"]


class TestMetricsEndpoint:
    """Tests for /health/metrics endpoint."""

    def test_metrics_shape(self, client: TestClient) -> None:
        """Test that request and generation stats are reported."""
        client.get("/api/v1/catalog/en")

        data = client.get("/health/metrics").json()

        assert data["requests"]["total_requests"] >= 1
        assert "/api/v1/catalog/en" in data["requests_by_path"]
        assert "total_calls" in data["generation"]

    def test_handled_errors_are_timed(self, client: TestClient, caplog: pytest.LogCaptureFixture) -> None:
        """Test that requests turned into error responses still reach the latency log."""
        flow_id = client.post("/api/v1/flows", json={"language": "en"}).json()["flow_id"]
        path = f"/api/v1/flows/{flow_id}/back"

        with caplog.at_level(logging.WARNING, logger="hearttoheart.api.middleware.latency_logging"):
            response = client.post(path)

        assert response.status_code == 409
        assert any(f"POST {path} - 409" in record.getMessage() for record in caplog.records)
        assert "/api/v1/flows/{id}/back" in client.get("/health/metrics").json()["requests_by_path"]
