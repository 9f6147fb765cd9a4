from __future__ import annotations

import asyncio
import base64
import json

import httpx
import pytest

from criteria_analyzer.config import Settings
from criteria_analyzer.errors import CredentialMissing, EndpointNotAllowed, UpstreamHttpError
from criteria_analyzer.upstage import (
    ProxyRequest,
    ProxyResponse,
    RemoteProxyTransport,
    UpstageClient,
    UpstageProxy,
    build_multipart,
    extract_chat_content,
)


def _settings(**overrides) -> Settings:
    values = {"upstage_api_key": "up_testkey1234567890abcd"}
    values.update(overrides)
    return Settings(**values)


def test_multipart_fields_are_rebuilt_from_base64_document() -> None:
    data, files = build_multipart(
        {
            "model": "document-parse",
            "ocr": "force",
            "output_formats": "['text']",
            "mode": "",
            "document": {"data": base64.b64encode(b"%PDF-1.7").decode("ascii"), "filename": "a.pdf", "contentType": "application/pdf"},
        }
    )
    assert data == {"model": "document-parse", "ocr": "force", "output_formats": "['text']"}
    assert files["document"] == ("a.pdf", b"%PDF-1.7", "application/pdf")


def test_multipart_rejects_invalid_base64() -> None:
    with pytest.raises(ValueError):
        build_multipart({"document": {"data": "not base64!!", "filename": "a.pdf"}})


def test_proxy_forwards_multipart_with_bearer_credential() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json={"content": {"text": "ok"}})

    settings = _settings()
    client = UpstageClient(settings, UpstageProxy(settings, httpx.AsyncClient(transport=httpx.MockTransport(handler))))

    parsed, raw = asyncio.run(
        client.parse_document(filename="checklist.pdf", content=b"%PDF", content_type="application/pdf")
    )

    assert parsed.content.text == "ok"
    assert raw == {"content": {"text": "ok"}}
    request = seen[0]
    assert str(request.url) == settings.parse_api_url
    assert request.headers["Authorization"] == "Bearer up_testkey1234567890abcd"
    assert request.headers["Content-Type"].startswith("multipart/form-data")
    body = request.read()
    assert b'name="model"' in body
    assert b"document-parse" in body
    assert b'filename="checklist.pdf"' in body
    assert b"%PDF" in body


def test_proxy_forwards_chat_as_json_and_mirrors_errors() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        payload = json.loads(request.content)
        assert payload["model"] == "solar-pro"
        assert request.headers["Content-Type"] == "application/json"
        return httpx.Response(429, json={"error": {"message": "Too many requests"}})

    settings = _settings()
    client = UpstageClient(settings, UpstageProxy(settings, httpx.AsyncClient(transport=httpx.MockTransport(handler))))

    with pytest.raises(UpstreamHttpError) as excinfo:
        asyncio.run(client.complete_chat([{"role": "user", "content": "hi"}]))
    assert excinfo.value.status_code == 429
    assert str(excinfo.value) == "Too many requests (429)"


def test_non_json_upstream_body_is_wrapped() -> None:
    transport = httpx.MockTransport(lambda request: httpx.Response(502, text="Bad Gateway"))
    settings = _settings()
    proxy = UpstageProxy(settings, httpx.AsyncClient(transport=transport))

    response = asyncio.run(proxy.forward(ProxyRequest(endpoint=settings.chat_api_url, body={})))

    assert response == ProxyResponse(status_code=502, body={"error": "Bad Gateway"})


def test_proxy_refuses_without_key_and_for_foreign_hosts() -> None:
    with pytest.raises(CredentialMissing):
        asyncio.run(UpstageProxy(_settings(upstage_api_key="")).forward(ProxyRequest(endpoint="https://api.upstage.ai/x")))
    with pytest.raises(EndpointNotAllowed):
        asyncio.run(UpstageProxy(_settings()).forward(ProxyRequest(endpoint="https://example.org/steal")))


def test_remote_transport_posts_wire_format() -> None:
    received: list[dict[str, object]] = []

    def handler(request: httpx.Request) -> httpx.Response:
        received.append(json.loads(request.content))
        return httpx.Response(200, json={"choices": [{"message": {"content": "안녕"}}]})

    settings = _settings(upstage_api_key="")
    transport = RemoteProxyTransport(
        "https://relay.example.org/api/upstage",
        http_client=httpx.AsyncClient(transport=httpx.MockTransport(handler)),
    )
    client = UpstageClient(settings, transport)

    content, _ = asyncio.run(client.complete_chat([{"role": "user", "content": "hi"}]))

    assert content == "안녕"
    assert client.has_credential
    assert received[0]["isFormData"] is False
    assert received[0]["endpoint"] == settings.chat_api_url


def test_chat_content_tolerates_unexpected_shapes() -> None:
    assert extract_chat_content({}) == ""
    assert extract_chat_content({"choices": [{"message": None}]}) == ""
    assert extract_chat_content({"choices": [{"message": {"content": "x"}}]}) == "x"
