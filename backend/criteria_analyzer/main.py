from contextlib import asynccontextmanager
from functools import lru_cache
import logging
import time

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

from criteria_analyzer.api.routers.proxy import build_proxy_router
from criteria_analyzer.api.routers.session import build_session_router
from criteria_analyzer.api.routers.system import router as system_router
from criteria_analyzer.config import settings
from criteria_analyzer.ingestion import IngestionOrchestrator
from criteria_analyzer.observability import (
    configure_logging,
    normalize_request_id,
    reset_request_id,
    sanitize_for_logging,
    set_request_id,
)
from criteria_analyzer.session import Session
from criteria_analyzer.upstage import RemoteProxyTransport, UpstageClient, UpstageProxy
from criteria_analyzer.version import APP_VERSION

logger = logging.getLogger("criteria.api")


@lru_cache(maxsize=1)
def _cached_upstage_proxy() -> UpstageProxy:
    return UpstageProxy(settings=settings)


def get_upstage_proxy() -> UpstageProxy:
    return _cached_upstage_proxy()


def get_ingestion_orchestrator() -> IngestionOrchestrator:
    if settings.proxy_url.strip():
        transport = RemoteProxyTransport(settings.proxy_url.strip(), timeout=settings.upstream_timeout_seconds)
        return IngestionOrchestrator(settings, UpstageClient(settings, transport))
    return IngestionOrchestrator(settings, UpstageClient(settings, get_upstage_proxy()))


@asynccontextmanager
async def lifespan(_: FastAPI):
    configure_logging(settings.log_level)
    logger.info(
        "application_startup",
        extra={
            "event": "application_startup",
            "environment": settings.app_env,
            "proxy": "remote" if settings.proxy_url.strip() else "in_process",
        },
    )
    yield
    logger.info("application_shutdown", extra={"event": "application_shutdown"})


def create_app() -> FastAPI:
    app = FastAPI(title=settings.app_name, version=APP_VERSION, lifespan=lifespan)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=False,
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers=["Content-Type", settings.request_id_header],
    )
    app.state.session = Session.new(settings.supported_extensions_list)

    @app.middleware("http")
    async def request_context_middleware(request: Request, call_next):
        request_id = normalize_request_id(request.headers.get(settings.request_id_header))
        request.state.request_id = request_id
        token = set_request_id(request_id)
        started = time.perf_counter()

        logger.info(
            "request_started",
            extra={
                "event": "request_started",
                "request_id": request_id,
                "method": request.method,
                "path": request.url.path,
                "query": sanitize_for_logging(dict(request.query_params)),
                "client_ip": request.client.host if request.client else None,
            },
        )

        try:
            response = await call_next(request)
            elapsed_ms = round((time.perf_counter() - started) * 1000, 2)
            response.headers[settings.request_id_header] = request_id
            logger.info(
                "request_completed",
                extra={
                    "event": "request_completed",
                    "request_id": request_id,
                    "method": request.method,
                    "path": request.url.path,
                    "status_code": response.status_code,
                    "duration_ms": elapsed_ms,
                },
            )
            return response
        except Exception:
            elapsed_ms = round((time.perf_counter() - started) * 1000, 2)
            logger.exception(
                "request_failed",
                extra={
                    "event": "request_failed",
                    "request_id": request_id,
                    "method": request.method,
                    "path": request.url.path,
                    "duration_ms": elapsed_ms,
                },
            )
            raise
        finally:
            reset_request_id(token)

    app.include_router(system_router)
    app.include_router(build_proxy_router(get_upstage_proxy=lambda: get_upstage_proxy()))
    app.include_router(
        build_session_router(
            get_session=lambda: app.state.session,
            get_ingestion_orchestrator=lambda: get_ingestion_orchestrator(),
        )
    )
    return app


app = create_app()
