"""FastAPI application factory.

Learn: App factory pattern — create_app() returns a configured FastAPI
instance. Lifespan manages startup/shutdown (schema, Redis, engine).
Middleware, CORS, exception handlers and routers are all registered here.
"""

from contextlib import asynccontextmanager
from typing import Optional

import redis.asyncio as aioredis
import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from backoffice import __version__
from backoffice.api import api_router
from backoffice.config import Settings, settings
from backoffice.db.engine import create_schema, engine
from backoffice.errors import register_exception_handlers
from backoffice.middleware.rate_limit import (
    FixedWindowRateLimiter,
    RateLimiter,
    RateLimitMiddleware,
    RedisRateLimiter,
)
from backoffice.middleware.request_id import RequestIdMiddleware
from backoffice.middleware.security import SecurityHeadersMiddleware

logger = structlog.get_logger()


def build_rate_limiter(config: Settings) -> RateLimiter:
    """Redis-backed when BACKOFFICE_REDIS_URL is set, in-process otherwise."""
    if config.redis_url:
        client = aioredis.from_url(config.redis_url, encoding="utf-8", decode_responses=True)
        return RedisRateLimiter(client, config.rate_limit_window_seconds)
    return FixedWindowRateLimiter(config.rate_limit_window_seconds)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown lifecycle.

    Learn: Anything before `yield` runs at startup, after `yield` at shutdown.
    """
    logger.info(
        "backoffice.starting",
        version=__version__,
        environment=settings.environment,
        port=settings.port,
    )

    if settings.create_schema_on_startup:
        await create_schema(engine)
        logger.info("backoffice.schema_ready")

    yield

    logger.info("backoffice.shutdown")
    limiter = getattr(app.state, "rate_limiter", None)
    if isinstance(limiter, RedisRateLimiter):
        await limiter.redis.aclose()
    await engine.dispose()


def create_app(config: Optional[Settings] = None, rate_limiter: Optional[RateLimiter] = None) -> FastAPI:
    """Build and return the FastAPI application."""
    config = config or settings
    app = FastAPI(
        title="Backoffice",
        description="Admin panel API: users, clients, inquiries, projects and settings",
        version=__version__,
        lifespan=lifespan,
    )

    register_exception_handlers(app)

    # ── Middleware stack ──────────────────────────────────────
    # Starlette runs middleware in reverse order of registration.
    # Request flow: CORS → RequestId → Security → RateLimit → handler
    limiter = rate_limiter if rate_limiter is not None else build_rate_limiter(config)
    app.state.rate_limiter = limiter

    app.add_middleware(
        RateLimitMiddleware,
        limiter=limiter,
        default_limit=config.rate_limit_requests,
        login_limit=config.rate_limit_auth_requests,
        enabled=config.rate_limit_enabled,
    )
    app.add_middleware(SecurityHeadersMiddleware)
    app.add_middleware(RequestIdMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(api_router)
    return app


# Default app instance (used by uvicorn: backoffice.main:app)
app = create_app()


def run() -> None:
    """Console entry point: serve the API with uvicorn."""
    import uvicorn

    uvicorn.run(
        "backoffice.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
    )
