"""
Main FastAPI application entry point.

``create_app`` builds the security core, installs the rate limit middleware
and mounts the health and admin routers. There is no module-level app
instance; run with the factory flag:

    uvicorn src.main:create_app --factory
"""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from typing import Optional

import structlog
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from src.core.config import Settings, get_settings
from src.core.container import SecurityCore, build_security_core
from src.core.logging import configure_logging
from src.core.storage.base import StorageError
from src.presentation.routers.admin import admin_router
from src.presentation.routers.system import system_router
from src.rate_limiter.middleware import RateLimitMiddleware

logger = structlog.get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan context manager.

    Handles startup and shutdown events:
    - Startup: Ping the counter store, start the notification worker and
      the retention sweeper
    - Shutdown: Stop the sweeper, drain and stop notifications, close the
      counter store

    Args:
        app: FastAPI application instance.

    Yields:
        None during application lifetime.
    """
    core: SecurityCore = app.state.security_core

    reachable = await core.store.ping()
    logger.info(
        "security_core_started",
        storage=core.store.name,
        storage_reachable=reachable,
        environment=core.settings.environment.value,
    )
    await core.notifier.start()
    await core.sweeper.start()

    yield

    await core.sweeper.stop()
    await core.notifier.stop()
    await core.store.close()
    logger.info("security_core_stopped")


async def storage_error_handler(request: Request, exc: StorageError) -> JSONResponse:
    """Admin endpoints surface storage outages as 503."""
    logger.error(
        "storage_unavailable",
        path=request.url.path,
        error_message=str(exc),
    )
    return JSONResponse(
        status_code=503,
        content={"detail": "Security storage is unavailable"},
    )


def create_app(
    settings: Optional[Settings] = None,
    core: Optional[SecurityCore] = None,
) -> FastAPI:
    """Build the FastAPI application.

    Args:
        settings: Application settings (loaded from the environment when omitted).
        core: Prebuilt security core (built from settings when omitted).

    Returns:
        FastAPI: Configured application.
    """
    if core is not None:
        settings = core.settings
    elif settings is None:
        settings = get_settings()

    if not settings.is_testing:
        configure_logging(settings)

    if core is None:
        core = build_security_core(settings)

    app = FastAPI(
        title=settings.app_name,
        description="Security enforcement core",
        version=settings.app_version,
        docs_url="/docs" if settings.is_development else None,
        redoc_url=None,
        lifespan=lifespan,
    )
    app.state.security_core = core

    app.add_middleware(RateLimitMiddleware, rate_limiter=core.rate_limiter)
    app.add_exception_handler(StorageError, storage_error_handler)

    app.include_router(system_router)
    app.include_router(admin_router)

    return app
