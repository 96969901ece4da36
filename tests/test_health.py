"""
Tests for health check endpoints.
"""
import pytest
from fastapi.testclient import TestClient
from factory_events.adapters.memory import InMemoryEventStore
from factory_events.health import HealthChecker
from factory_events.main import app

client = TestClient(app)


def test_health_liveness():
    r = client.get("/health")
    assert r.status_code == 200
    data = r.json()
    assert data["status"] == "ok"
    assert data["service"] == "factory-events"
    assert data["version"] == "0.1.0"
    assert "timestamp" in data


def test_health_readiness():
    r = client.get("/health/ready")
    # Should be 200 (ready) or 503 (not ready)
    assert r.status_code in [200, 503]
    data = r.json()
    assert data["service"] == "factory-events"
    assert data["checks"]["store"]["status"] == "ok"
    assert "disk_space" in data["checks"]
    assert "memory" in data["checks"]


@pytest.mark.asyncio
async def test_readiness_fails_when_store_is_down():
    class DownStore(InMemoryEventStore):
        async def health_check(self) -> bool:
            return False

    result = await HealthChecker(DownStore()).readiness()
    assert result["status"] == "not_ready"
    assert result["checks"]["store"]["status"] == "error"


def test_metrics_endpoint():
    r = client.get("/metrics")
    assert r.status_code == 200
    content = r.text
    assert "http_requests_total" in content
    assert "http_request_duration_seconds" in content
    assert "app_up" in content
    assert "factory_events_ingested_total" in content
