"""
FastAPI application for the webhook relay

Public call-tracking webhooks are validated, mapped and forwarded to the
workflow engine; the management API creates and maintains them.
"""
import logging
from contextlib import asynccontextmanager

import httpx
import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.routing import APIRoute

from webhook_relay.api.middleware.rate_limit_middleware import RateLimitMiddleware
from webhook_relay.api.v1.router import api_router
from webhook_relay.config.database import SessionLocal, init_db
from webhook_relay.config.settings import get_settings
from webhook_relay.core.errors import register_exception_handlers
from webhook_relay.core.middleware import correlation_id_middleware, request_logging_middleware
from webhook_relay.core.monitoring import health_router
from webhook_relay.services.monitoring.monitoring_service import MonitoringService
from webhook_relay.services.workflow.workflow_engine import build_workflow_engine
from webhook_relay.utils.my_logging import setup_logging
from webhook_relay.webhooks.router import webhook_router

logger = logging.getLogger(__name__)
settings = get_settings()


def _log_routes(app: FastAPI) -> None:
    routes_list = []
    for route in app.routes:
        if isinstance(route, APIRoute):
            for method in route.methods:
                routes_list.append((method, route.path, route.name))

    for method, path, name in sorted(routes_list, key=lambda x: (x[1], x[0])):
        logger.debug(f"  {method:8} {path:45} ({name})")

    logger.info(f"Total routes registered: {len(routes_list)}")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events"""
    # Startup
    setup_logging()
    logger.info(f"{settings.APP_NAME} starting up ({settings.ENVIRONMENT})")

    init_db()

    http_client = httpx.AsyncClient(timeout=settings.FORWARD_TIMEOUT_SECONDS)
    app.state.http_client = http_client
    app.state.workflow_engine = build_workflow_engine(settings, http_client)
    app.state.monitoring_service = MonitoringService(
        session_factory=SessionLocal,
        http_client=http_client,
        interval_seconds=settings.health_check_interval_seconds,
        enabled=settings.ENABLE_HEALTH_CHECKS,
        check_timeout=settings.HEALTH_CHECK_TIMEOUT_SECONDS,
    )
    await app.state.monitoring_service.start()

    _log_routes(app)

    yield

    # Shutdown
    logger.info(f"{settings.APP_NAME} shutting down")
    await app.state.monitoring_service.stop()
    await http_client.aclose()


def create_app() -> FastAPI:
    """Create and configure FastAPI application"""

    app = FastAPI(
        title=settings.APP_NAME,
        description="Relays call-tracking webhooks to the workflow engine",
        version="1.0.0",
        lifespan=lifespan,
        docs_url="/docs" if settings.DEBUG else None,
        redoc_url="/redoc" if settings.DEBUG else None,
    )

    app.add_middleware(
        RateLimitMiddleware,
        max_requests=settings.RATE_LIMIT_REQUESTS,
        window_seconds=settings.RATE_LIMIT_WINDOW_SECONDS,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.ALLOWED_ORIGINS,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers=["*"],
    )

    app.middleware("http")(request_logging_middleware)
    app.middleware("http")(correlation_id_middleware)

    register_exception_handlers(app)

    # Management API first: the public route would otherwise match /api/webhook/...
    app.include_router(api_router, prefix="/api", tags=["api"])
    app.include_router(health_router, prefix="/health", tags=["monitoring"])
    app.include_router(webhook_router, tags=["ingestion"])

    return app


app = create_app()


if __name__ == "__main__":
    uvicorn.run(
        "webhook_relay.main:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=settings.DEBUG,
        log_level=settings.LOG_LEVEL.lower()
    )
