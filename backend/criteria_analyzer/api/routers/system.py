from __future__ import annotations

from fastapi import APIRouter
from fastapi.responses import JSONResponse

from criteria_analyzer.config import settings
from criteria_analyzer.version import APP_VERSION


router = APIRouter()


@router.get("/")
def root() -> dict[str, str]:
    return {"service": "criteria-analyzer", "status": "running", "version": APP_VERSION}


@router.get("/health")
def health() -> dict[str, str]:
    return {"status": "ok", "environment": settings.app_env}


@router.get("/ready", response_model=None)
def ready() -> JSONResponse:
    credential_ok = bool(settings.upstage_api_key.strip()) or bool(settings.proxy_url.strip())
    payload: dict[str, object] = {
        "status": "ready" if credential_ok else "degraded",
        "environment": settings.app_env,
        "checks": {
            "credential": "configured" if credential_ok else "missing",
            "proxy": "remote" if settings.proxy_url.strip() else "in_process",
        },
    }
    return JSONResponse(status_code=200 if credential_ok else 503, content=payload)
