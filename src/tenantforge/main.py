"""FastAPI application factory."""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from redis.exceptions import RedisError

from tenantforge import __version__
from tenantforge.api import get_api_router
from tenantforge.config import settings
from tenantforge.core.auth import IdentityMiddleware, RequestIdMiddleware
from tenantforge.core.cache import close_redis_pool
from tenantforge.core.database import async_engine
from tenantforge.core.errors import register_exception_handlers
from tenantforge.core.jobs import close_arq_pool, init_arq_pool
from tenantforge.core.logging import RequestLoggingMiddleware, configure_logging
from tenantforge.core.observability import (
    instrument_sqlalchemy,
    setup_tracing,
    shutdown_tracing,
)
from tenantforge.core.rate_limit import RateLimitMiddleware


configure_logging(settings)

logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan handler."""
    logger.info(
        "application_startup",
        app_name=settings.app_name,
        environment=settings.environment,
    )

    # The API works without the job queue; on-demand sweeps are then unavailable
    try:
        await init_arq_pool()
        logger.info("arq_pool_initialized")
    except (RedisError, OSError) as e:
        logger.warning("arq_pool_init_failed", error=str(e))

    yield

    logger.info("application_shutdown")

    shutdown_tracing()
    await close_arq_pool()
    await close_redis_pool()
    await async_engine.dispose()
    logger.info("application_shutdown_complete")


def create_app() -> FastAPI:
    """Create and configure the FastAPI application.

    Returns:
        Configured FastAPI application instance.
    """
    app = FastAPI(
        title=settings.app_name,
        description="Tenant provisioning and lifecycle orchestration",
        version=__version__,
        debug=settings.debug,
        lifespan=lifespan,
        docs_url="/docs" if not settings.is_production else None,
        redoc_url="/redoc" if not settings.is_production else None,
        openapi_url="/openapi.json" if not settings.is_production else None,
    )

    # Middleware added last runs first
    app.add_middleware(RateLimitMiddleware)
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(IdentityMiddleware)
    app.add_middleware(RequestIdMiddleware)

    cors_origins = settings.cors_origins
    if settings.is_development and not cors_origins:
        cors_origins = ["http://localhost:3000", "http://localhost:5173"]

    app.add_middleware(
        CORSMiddleware,
        allow_origins=cors_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "DELETE", "OPTIONS"],
        allow_headers=["Authorization", "Content-Type", "X-Request-ID"],
        expose_headers=[
            "X-Request-ID",
            "X-RateLimit-Limit",
            "X-RateLimit-Remaining",
            "X-RateLimit-Window",
            "Retry-After",
        ],
    )

    register_exception_handlers(app)

    app.include_router(get_api_router())

    if setup_tracing(app, settings):
        instrument_sqlalchemy(async_engine)

    return app

