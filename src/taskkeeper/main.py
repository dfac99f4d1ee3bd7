"""FastAPI application factory.

Learn: App factory pattern — create_app() returns a configured FastAPI
instance. Settings and the container can be passed in (tests hand over an
in-memory container); otherwise the process settings and a PostgreSQL
container are used. Lifespan manages startup/shutdown (Redis, engine).
"""

from contextlib import asynccontextmanager
from typing import Optional

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from taskkeeper import __version__
from taskkeeper.api import api_router
from taskkeeper.api.errors import register_exception_handlers
from taskkeeper.cache.redis import close_redis, connect_redis
from taskkeeper.config import Settings
from taskkeeper.config import settings as default_settings
from taskkeeper.container import Container, build_container
from taskkeeper.log import configure_logging
from taskkeeper.middleware.rate_limit import RateLimitMiddleware
from taskkeeper.middleware.request_id import RequestIdMiddleware
from taskkeeper.middleware.security import SecurityHeadersMiddleware

logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown lifecycle.

    Learn: Anything before `yield` runs at startup, after `yield` runs at
    shutdown. Redis is optional: without it the app only loses rate limiting.
    """
    container: Container = app.state.container
    settings = container.settings
    logger.info(
        "taskkeeper.starting",
        version=__version__,
        environment=settings.environment,
        port=settings.port,
    )

    try:
        app.state.redis = await connect_redis(settings.redis_url)
        logger.info("taskkeeper.redis_connected", url=settings.redis_url)
    except Exception as e:
        app.state.redis = None
        logger.warning("taskkeeper.redis_unavailable", error=str(e))

    yield

    logger.info("taskkeeper.shutdown")
    await close_redis(app.state.redis)
    app.state.redis = None
    await container.close()


def create_app(
    settings: Optional[Settings] = None,
    container: Optional[Container] = None,
) -> FastAPI:
    """Build and return the FastAPI application."""
    if container is not None:
        settings = container.settings
    settings = settings or default_settings
    container = container or build_container(settings)

    configure_logging(settings)

    app = FastAPI(
        title="Taskkeeper",
        description="Per-user task lists behind cookie sessions",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.container = container
    app.state.redis = None

    register_exception_handlers(app)

    # ── Middleware stack ──────────────────────────────────────
    # Starlette middleware executes in reverse order of registration.
    # Request flow: RequestId → Security → RateLimit → CORS → handler
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(
        RateLimitMiddleware,
        default_rpm=settings.rate_limit_rpm,
        auth_rpm=settings.rate_limit_auth_rpm,
    )
    app.add_middleware(SecurityHeadersMiddleware)
    app.add_middleware(RequestIdMiddleware)

    app.include_router(api_router)

    return app


# Default app instance (used by uvicorn: taskkeeper.main:app)
app = create_app()
