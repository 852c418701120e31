"""Application factory for the FastAPI app.

Centralizes app construction (logging, rate limiters, middleware, handlers,
routers) so tests can build isolated instances with their own limiters.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI

from weanime.adapters.rate_limit.profiles import RateLimiters, build_rate_limiters
from weanime.adapters.rate_limit.sweeper import EvictionSweeper
from weanime.api.routes import admin_router, health_router, monitoring_router
from weanime.core.config import settings
from weanime.core.exception_handlers import setup_exception_handlers
from weanime.core.logging import configure_logging
from weanime.core.middleware import request_id_middleware
from weanime.core.openapi import apply_openapi_customizations

logger = logging.getLogger(__name__)

VERSION = "0.1.0"


def create_app(rate_limiters: RateLimiters | None = None) -> FastAPI:
    """Create and configure the FastAPI application instance.

    Args:
        rate_limiters: Pre-built limiters (tests inject ones with a fake
            clock). Built from settings when omitted.

    Returns:
        Configured FastAPI app with middleware, handlers, routers and docs.
    """
    # Logging first so subsequent init logs are formatted as desired
    configure_logging(settings.log)

    limiters = rate_limiters if rate_limiters is not None else build_rate_limiters(settings.rate_limit)
    sweeper = EvictionSweeper(limiters, interval_seconds=settings.rate_limit.sweep_interval_seconds)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        sweeper.start()
        logger.info("app.started", extra={"version": VERSION, "env": settings.app_env})
        try:
            yield
        finally:
            await sweeper.stop()
            logger.info("app.stopped")

    app = FastAPI(
        title="WeAnime API",
        description=(
            "Rate limited WeAnime API surface: client error reporting and "
            "rate limit administration. Every guarded route reports its quota "
            "in X-RateLimit-* headers and answers 429 when it is exhausted."
        ),
        version=VERSION,
        lifespan=lifespan,
    )
    app.state.rate_limiters = limiters
    app.state.eviction_sweeper = sweeper

    # Middleware
    app.middleware("http")(request_id_middleware)

    # Exception handlers
    setup_exception_handlers(app)

    # Routers
    app.include_router(monitoring_router, prefix="/v1")
    app.include_router(admin_router, prefix="/v1")
    app.include_router(health_router)

    apply_openapi_customizations(app)

    return app
