"""FastAPI application factory.

Learn: App factory pattern — create_app() returns a configured FastAPI
instance. Lifespan manages startup/shutdown of the store handle and the
optional Redis connection. Middleware, CORS, error handlers and routers
are all registered here.
"""

from contextlib import asynccontextmanager
from typing import Optional

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from redis.exceptions import RedisError

from matrixstore import __version__
from matrixstore.api import api_router
from matrixstore.config import settings
from matrixstore.db.engine import Database
from matrixstore.errors import register_exception_handlers
from matrixstore.logging_config import configure_logging
from matrixstore.middleware.rate_limit import RateLimitMiddleware
from matrixstore.middleware.request_id import RequestIdMiddleware
from matrixstore.middleware.security import SecurityHeadersMiddleware
from matrixstore.redis_client import close_redis, init_redis
from matrixstore.services.matrix_service import ensure_strategy_supported

logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown lifecycle.

    Anything before `yield` runs at startup, after `yield` runs at shutdown.
    A Database handed to create_app() is used as-is but still closed here.
    """
    logger.info(
        "matrixstore.starting",
        version=__version__,
        environment=settings.environment,
        port=settings.port,
        matrix_id_strategy=settings.matrix_id_strategy,
        matrix_resave_policy=settings.matrix_resave_policy,
    )

    if getattr(app.state, "database", None) is None:
        app.state.database = Database.from_settings(settings)
    ensure_strategy_supported(
        settings.matrix_id_strategy, app.state.database.engine.dialect.name
    )

    try:
        await init_redis()
        logger.info("matrixstore.redis_connected")
    except (RedisError, OSError) as e:
        logger.warning("matrixstore.redis_unavailable", error=str(e))

    yield

    logger.info("matrixstore.shutdown")
    await close_redis()
    await app.state.database.close()


def create_app(database: Optional[Database] = None) -> FastAPI:
    """Build and return the FastAPI application."""
    configure_logging(settings)

    app = FastAPI(
        title="matrixstore",
        description="Accounts, bearer tokens and per-user matrix storage",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.database = database

    # ── Middleware stack ──────────────────────────────────────
    # Note: Starlette middleware executes in reverse order of registration.
    # Request flow: CORS → RateLimit → Security → RequestId → handler
    app.add_middleware(RequestIdMiddleware)
    app.add_middleware(SecurityHeadersMiddleware)
    app.add_middleware(
        RateLimitMiddleware,
        default_rpm=settings.rate_limit_rpm,
        auth_rpm=settings.rate_limit_auth_rpm,
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_exception_handlers(app)
    app.include_router(api_router)
    return app


# Default app instance (used by uvicorn: matrixstore.main:app)
app = create_app()
