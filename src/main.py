"""Church portal FastAPI application entry point.

Wires together the backend client, the content cache storage, and the
services behind the proxy routes via dependency injection.  Loads
configuration from ``.env`` and ``config/config.yaml`` and configures
structured logging.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Any

import httpx
import structlog
import uvicorn
from fastapi import FastAPI

from src.api.middleware import (
    ErrorHandlingMiddleware,
    RequestLoggingMiddleware,
    configure_cors,
)
from src.api.routes import router as api_router
from src.config.loader import load_config
from src.config.settings import Settings
from src.providers.backend.church_api_client import ChurchApiClient
from src.providers.storage import build_storage
from src.providers.storage.sqlite_storage import SQLiteStorageProvider
from src.services.content_feeds import ContentFeedService, feeds_from_config
from src.services.dashboard_service import DEFAULT_PENDING_STATUSES, DashboardService
from src.utils.logging import configure_logging, get_logger

# ---------------------------------------------------------------------------
# Module-level settings & logging
# ---------------------------------------------------------------------------

settings = Settings()
config = load_config(settings=settings)

configure_logging(
    log_level=settings.log_level,
    json_output=(settings.app_env == "production"),
)
_logger: structlog.BoundLogger = get_logger(__name__)


# ---------------------------------------------------------------------------
# Component factories
# ---------------------------------------------------------------------------


def build_http_client(app_settings: Settings) -> httpx.AsyncClient:
    """Shared client for every backend call, rooted at ``API_BASE_URL``."""
    return httpx.AsyncClient(
        base_url=app_settings.api_base_url,
        timeout=app_settings.backend_timeout_seconds,
    )


def build_dashboard_service(
    api_client: ChurchApiClient, app_config: dict[str, Any]
) -> DashboardService:
    dashboard_section = app_config.get("dashboard", {}) or {}
    return DashboardService(
        api_client=api_client,
        recent_window_days=int(dashboard_section.get("recent_window_days", 30)),
        pending_statuses=dashboard_section.get(
            "pending_testimony_statuses", DEFAULT_PENDING_STATUSES
        ),
    )


# ---------------------------------------------------------------------------
# Full DI assembly for the FastAPI application
# ---------------------------------------------------------------------------


def _build_all(app_settings: Settings, app_config: dict[str, Any]) -> dict[str, Any]:
    """Construct every provider and service instance for the application.

    Returns a flat dict of named components to be stored on ``app.state``.
    """
    http_client = build_http_client(app_settings)
    api_client = ChurchApiClient(http_client=http_client)
    storage = build_storage(app_settings)

    return {
        "settings": app_settings,
        "http_client": http_client,
        "api_client": api_client,
        "storage": storage,
        "dashboard_service": build_dashboard_service(api_client, app_config),
        "content_feeds": ContentFeedService(
            api_client=api_client,
            storage=storage,
            feeds=feeds_from_config(app_config),
        ),
    }


# ---------------------------------------------------------------------------
# Application lifespan (startup / shutdown)
# ---------------------------------------------------------------------------


@asynccontextmanager
async def _lifespan(application: FastAPI):  # noqa: ANN201
    """Initialise all providers and services on startup, clean up on shutdown."""
    components = _build_all(settings, config)

    for key, value in components.items():
        setattr(application.state, key, value)

    storage = components["storage"]
    if isinstance(storage, SQLiteStorageProvider):
        await storage.initialize()

    _logger.info(
        "app_startup",
        version="0.1.0",
        environment=settings.app_env,
        backend=settings.api_base_url,
        cache_backend=storage.get_provider_name(),
    )

    yield

    # -- Shutdown: close shared httpx client --
    http_client: httpx.AsyncClient = components["http_client"]
    await http_client.aclose()
    _logger.info("app_shutdown", message="HTTP client closed")


# ---------------------------------------------------------------------------
# FastAPI application factory
# ---------------------------------------------------------------------------


def create_app() -> FastAPI:
    """Build and configure the FastAPI application."""
    application = FastAPI(
        title="Church Portal API",
        version="0.1.0",
        description=(
            "Proxy between the church website's admin tools and the external "
            "REST backend: authentication, members, departments, devotionals, "
            "testimony moderation and dashboard statistics."
        ),
        lifespan=_lifespan,
    )

    # -- Middleware (order matters: last added = first executed) --
    application.add_middleware(ErrorHandlingMiddleware)
    application.add_middleware(RequestLoggingMiddleware)
    configure_cors(application, allowed_origins=settings.get_cors_origins())

    # -- API routes --
    application.include_router(api_router)

    return application


app = create_app()

# ---------------------------------------------------------------------------
# CLI entry point
# ---------------------------------------------------------------------------

if __name__ == "__main__":
    uvicorn.run(
        "src.main:app",
        host=settings.app_host,
        port=settings.app_port,
        reload=(settings.app_env == "development"),
    )
