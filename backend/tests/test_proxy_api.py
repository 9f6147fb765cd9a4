import base64

import httpx
import pytest
from fastapi.testclient import TestClient

from criteria_analyzer.config import Settings
from criteria_analyzer.main import app
from criteria_analyzer.upstage import UpstageProxy


def _proxy(handler, api_key: str = "up_testkey1234567890abcd") -> UpstageProxy:
    return UpstageProxy(
        Settings(upstage_api_key=api_key),
        httpx.AsyncClient(transport=httpx.MockTransport(handler)),
    )


@pytest.mark.parametrize("method", ["GET", "PUT", "DELETE"])
def test_non_post_methods_are_rejected(method: str) -> None:
    with TestClient(app) as client:
        response = client.request(method, "/api/upstage")
    assert response.status_code == 405
    assert response.json() == {"error": "Method not allowed"}


def test_preflight_is_answered() -> None:
    with TestClient(app) as client:
        response = client.options("/api/upstage")
    assert response.status_code == 200
    assert "POST" in response.headers["Access-Control-Allow-Methods"]


def test_missing_key_returns_server_error(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(
        "criteria_analyzer.main.get_upstage_proxy",
        lambda: _proxy(lambda request: httpx.Response(200, json={}), api_key=""),
    )
    with TestClient(app) as client:
        response = client.post(
            "/api/upstage",
            json={"endpoint": "https://api.upstage.ai/v1/solar/chat/completions", "body": {}, "isFormData": False},
        )
    assert response.status_code == 500
    assert response.json() == {"error": "API key not configured"}


def test_upstream_status_and_body_are_mirrored(monkeypatch: pytest.MonkeyPatch) -> None:
    captured: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        captured.append(request)
        return httpx.Response(402, json={"error": {"message": "Insufficient credit"}})

    monkeypatch.setattr("criteria_analyzer.main.get_upstage_proxy", lambda: _proxy(handler))
    with TestClient(app) as client:
        response = client.post(
            "/api/upstage",
            json={
                "endpoint": "https://api.upstage.ai/v1/document-digitization",
                "isFormData": True,
                "body": {
                    "model": "document-parse",
                    "document": {"data": base64.b64encode(b"%PDF").decode("ascii"), "filename": "a.pdf"},
                },
            },
        )
    assert response.status_code == 402
    assert response.json() == {"error": {"message": "Insufficient credit"}}
    assert captured[0].headers["Authorization"] == "Bearer up_testkey1234567890abcd"


def test_transport_errors_become_server_errors(monkeypatch: pytest.MonkeyPatch) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused")

    monkeypatch.setattr("criteria_analyzer.main.get_upstage_proxy", lambda: _proxy(handler))
    with TestClient(app) as client:
        response = client.post(
            "/api/upstage",
            json={"endpoint": "https://api.upstage.ai/v1/solar/chat/completions", "body": {"messages": []}},
        )
    assert response.status_code == 500
    assert response.json() == {"error": "connection refused"}
