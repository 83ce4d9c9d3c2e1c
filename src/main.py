from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import uvicorn
from arq import create_pool
from arq.connections import RedisSettings
from fastapi import FastAPI
from redis.exceptions import RedisError

from src.core.config import settings
from src.core.database import engine
from src.core.logging import configure_logging
from src.core.redis import redis_client

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    # Startup
    app.state.engine = engine
    app.state.redis = redis_client if settings.redis_enabled else None
    app.state.arq_pool = None
    if settings.queue_enabled:
        try:
            app.state.arq_pool = await create_pool(
                RedisSettings.from_dsn(settings.redis_url),
                default_queue_name=settings.arq_queue_name,
            )
        except (RedisError, OSError) as exc:
            logger.warning("Job queue unavailable at startup: %s", exc)
    yield
    # Shutdown
    if app.state.arq_pool is not None:
        await app.state.arq_pool.aclose()
    await redis_client.aclose()
    await engine.dispose()


def create_app() -> FastAPI:
    configure_logging(settings.app_log_level)

    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )

    # Register routes
    from src.api.health import router as health_router

    app.include_router(health_router, tags=["Health"])

    return app


app = create_app()


if __name__ == "__main__":
    uvicorn.run(app, host=settings.app_host, port=settings.app_port)
