from fastapi.testclient import TestClient

from criteria_analyzer.config import settings
from criteria_analyzer.main import app


def test_root_reports_running_service() -> None:
    with TestClient(app) as client:
        response = client.get("/")
    assert response.status_code == 200
    assert response.json()["status"] == "running"


def test_health_endpoint() -> None:
    with TestClient(app) as client:
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json()["status"] == "ok"


def test_ready_endpoint_reflects_credential(monkeypatch) -> None:
    monkeypatch.setattr(settings, "upstage_api_key", "")
    monkeypatch.setattr(settings, "proxy_url", "")
    with TestClient(app) as client:
        degraded = client.get("/ready")
    assert degraded.status_code == 503
    assert degraded.json()["checks"]["credential"] == "missing"

    monkeypatch.setattr(settings, "upstage_api_key", "up_testkey1234567890abcd")
    with TestClient(app) as client:
        ready = client.get("/ready")
    assert ready.status_code == 200
    assert ready.json()["status"] == "ready"
