from __future__ import annotations

import logging
from typing import Callable

import httpx
from fastapi import APIRouter, Response
from fastapi.responses import JSONResponse

from criteria_analyzer.errors import CredentialMissing, EndpointNotAllowed
from criteria_analyzer.upstage import ProxyRequest, UpstageProxy

logger = logging.getLogger("criteria.proxy")

UpstageProxyGetter = Callable[[], UpstageProxy]

PROXY_PATH = "/api/upstage"
PROXY_CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "POST, OPTIONS",
    "Access-Control-Allow-Headers": "Content-Type",
}


def build_proxy_router(*, get_upstage_proxy: UpstageProxyGetter) -> APIRouter:
    router = APIRouter()

    @router.options(PROXY_PATH)
    def preflight() -> Response:
        return Response(status_code=200, headers=PROXY_CORS_HEADERS)

    @router.api_route(PROXY_PATH, methods=["GET", "PUT", "PATCH", "DELETE"], response_model=None)
    def method_not_allowed() -> JSONResponse:
        return JSONResponse(status_code=405, content={"error": "Method not allowed"}, headers=PROXY_CORS_HEADERS)

    @router.post(PROXY_PATH, response_model=None)
    async def forward(payload: ProxyRequest) -> JSONResponse:
        proxy = get_upstage_proxy()
        try:
            result = await proxy.forward(payload)
        except CredentialMissing:
            return JSONResponse(status_code=500, content={"error": "API key not configured"}, headers=PROXY_CORS_HEADERS)
        except EndpointNotAllowed as exc:
            return JSONResponse(status_code=400, content={"error": str(exc)}, headers=PROXY_CORS_HEADERS)
        except (httpx.HTTPError, ValueError) as exc:
            logger.error(
                "proxy_forward_failed",
                extra={"event": "proxy_forward_failed", "endpoint": payload.endpoint, "error": str(exc)},
            )
            return JSONResponse(status_code=500, content={"error": str(exc)}, headers=PROXY_CORS_HEADERS)
        return JSONResponse(status_code=result.status_code, content=result.body, headers=PROXY_CORS_HEADERS)

    return router
