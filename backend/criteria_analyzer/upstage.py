from __future__ import annotations

import base64
from dataclasses import dataclass
import logging
import time
from typing import Any, Awaitable, Callable, Sequence
from urllib.parse import urlparse

import httpx
from pydantic import BaseModel, ConfigDict, Field

from criteria_analyzer.config import Settings
from criteria_analyzer.errors import CredentialMissing, EndpointNotAllowed, UpstreamHttpError
from criteria_analyzer.observability import sanitize_for_logging
from criteria_analyzer.parsing.models import ParseResponse

logger = logging.getLogger("criteria.upstage")
proxy_logger = logging.getLogger("criteria.proxy")


class ProxyRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    endpoint: str = Field(..., min_length=1)
    body: dict[str, Any] = Field(default_factory=dict)
    is_form_data: bool = Field(default=False, alias="isFormData")

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True)


@dataclass(frozen=True)
class ProxyResponse:
    status_code: int
    body: Any

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 300


ProxyTransport = Callable[[ProxyRequest], Awaitable[ProxyResponse]]


def _decode_body(response: httpx.Response) -> Any:
    try:
        return response.json()
    except ValueError:
        return {"error": response.text}


def build_multipart(body: dict[str, Any]) -> tuple[dict[str, str], dict[str, tuple[str, bytes, str]]]:
    data = {"model": str(body.get("model") or "document-parse")}
    for key in ("ocr", "output_formats", "mode"):
        if body.get(key):
            data[key] = str(body[key])

    files: dict[str, tuple[str, bytes, str]] = {}
    document = body.get("document")
    if isinstance(document, dict) and document.get("data"):
        content = base64.b64decode(str(document["data"]), validate=True)
        files["document"] = (
            str(document.get("filename") or "document"),
            content,
            str(document.get("contentType") or "application/octet-stream"),
        )
    return data, files


class UpstageProxy:
    """Relays proxy requests upstream with the server-side bearer credential."""

    def __init__(self, settings: Settings, http_client: httpx.AsyncClient | None = None) -> None:
        self._settings = settings
        self._client = http_client
        self._allowed_hosts = {
            urlparse(url).netloc.lower()
            for url in (settings.parse_api_url, settings.chat_api_url)
            if urlparse(url).netloc
        }

    @property
    def has_credential(self) -> bool:
        return bool(self._settings.upstage_api_key.strip())

    async def __call__(self, request: ProxyRequest) -> ProxyResponse:
        return await self.forward(request)

    async def forward(self, request: ProxyRequest) -> ProxyResponse:
        if not self.has_credential:
            proxy_logger.error("proxy_credential_missing", extra={"event": "proxy_credential_missing"})
            raise CredentialMissing("API key not configured")
        host = urlparse(request.endpoint).netloc.lower()
        if host not in self._allowed_hosts:
            raise EndpointNotAllowed(f"Endpoint host '{host}' is not an allowed upstream.")

        if self._client is not None:
            return await self._send(self._client, request)
        async with httpx.AsyncClient(timeout=self._settings.upstream_timeout_seconds) as client:
            return await self._send(client, request)

    async def _send(self, client: httpx.AsyncClient, request: ProxyRequest) -> ProxyResponse:
        headers = {"Authorization": f"Bearer {self._settings.upstage_api_key.strip()}"}
        started = time.perf_counter()
        proxy_logger.info(
            "proxy_forward_started",
            extra={
                "event": "proxy_forward_started",
                "endpoint": request.endpoint,
                "is_form_data": request.is_form_data,
            },
        )
        if request.is_form_data:
            data, files = build_multipart(request.body)
            response = await client.post(request.endpoint, headers=headers, data=data, files=files)
        else:
            headers["Content-Type"] = "application/json"
            response = await client.post(request.endpoint, headers=headers, json=request.body)

        body = _decode_body(response)
        duration_ms = round((time.perf_counter() - started) * 1000, 2)
        if response.is_success:
            proxy_logger.info(
                "proxy_forward_completed",
                extra={
                    "event": "proxy_forward_completed",
                    "endpoint": request.endpoint,
                    "status_code": response.status_code,
                    "duration_ms": duration_ms,
                },
            )
        else:
            proxy_logger.error(
                "proxy_upstream_error",
                extra={
                    "event": "proxy_upstream_error",
                    "endpoint": request.endpoint,
                    "status_code": response.status_code,
                    "duration_ms": duration_ms,
                    "body": sanitize_for_logging(body),
                },
            )
        return ProxyResponse(status_code=response.status_code, body=body)


class RemoteProxyTransport:
    """Posts proxy requests to a separately deployed relay that holds the credential."""

    def __init__(self, proxy_url: str, *, timeout: float = 120.0, http_client: httpx.AsyncClient | None = None) -> None:
        self._proxy_url = proxy_url
        self._timeout = timeout
        self._client = http_client

    @property
    def has_credential(self) -> bool:
        # The relay owns the key; a missing key comes back as an upstream 500.
        return True

    async def __call__(self, request: ProxyRequest) -> ProxyResponse:
        if self._client is not None:
            response = await self._client.post(self._proxy_url, json=request.to_wire())
        else:
            async with httpx.AsyncClient(timeout=self._timeout) as client:
                response = await client.post(self._proxy_url, json=request.to_wire())
        return ProxyResponse(status_code=response.status_code, body=_decode_body(response))


def format_output_formats(formats: Sequence[str]) -> str:
    return "[" + ", ".join(f"'{value}'" for value in formats) + "]"


class UpstageClient:
    def __init__(self, settings: Settings, transport: ProxyTransport) -> None:
        self._settings = settings
        self._transport = transport

    @property
    def has_credential(self) -> bool:
        return bool(getattr(self._transport, "has_credential", True))

    def build_parse_request(
        self,
        *,
        filename: str,
        content: bytes,
        content_type: str,
        output_formats: Sequence[str] = ("text", "markdown"),
    ) -> ProxyRequest:
        return ProxyRequest(
            endpoint=self._settings.parse_api_url,
            is_form_data=True,
            body={
                "model": self._settings.parse_model,
                "ocr": self._settings.parse_ocr,
                "output_formats": format_output_formats(output_formats),
                "mode": self._settings.parse_mode,
                "document": {
                    "data": base64.b64encode(content).decode("ascii"),
                    "filename": filename,
                    "contentType": content_type,
                },
            },
        )

    def build_chat_request(self, messages: list[dict[str, str]]) -> ProxyRequest:
        return ProxyRequest(
            endpoint=self._settings.chat_api_url,
            is_form_data=False,
            body={
                "model": self._settings.chat_model,
                "messages": messages,
                "temperature": self._settings.chat_temperature,
                "max_tokens": self._settings.chat_max_tokens,
            },
        )

    async def parse_document(
        self,
        *,
        filename: str,
        content: bytes,
        content_type: str,
        output_formats: Sequence[str] = ("text", "markdown"),
    ) -> tuple[ParseResponse, dict[str, Any]]:
        request = self.build_parse_request(
            filename=filename,
            content=content,
            content_type=content_type,
            output_formats=output_formats,
        )
        response = await self._transport(request)
        if not response.ok:
            raise UpstreamHttpError(response.status_code, response.body, stage="parse")
        raw = response.body if isinstance(response.body, dict) else {}
        logger.info(
            "document_parse_completed",
            extra={
                "event": "document_parse_completed",
                "file_name": filename,
                "element_count": len(raw.get("elements") or []),
            },
        )
        return ParseResponse.model_validate(raw), raw

    async def complete_chat(self, messages: list[dict[str, str]]) -> tuple[str, dict[str, Any]]:
        response = await self._transport(self.build_chat_request(messages))
        if not response.ok:
            raise UpstreamHttpError(response.status_code, response.body, stage="chat")
        raw = response.body if isinstance(response.body, dict) else {}
        return extract_chat_content(raw), raw


def extract_chat_content(payload: dict[str, Any]) -> str:
    choices = payload.get("choices")
    if not isinstance(choices, list) or not choices or not isinstance(choices[0], dict):
        return ""
    message = choices[0].get("message")
    if not isinstance(message, dict):
        return ""
    content = message.get("content")
    return content if isinstance(content, str) else ""
