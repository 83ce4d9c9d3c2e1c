from __future__ import annotations

import logging
import time

from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine

from src.core.config import settings
from src.schemas.health import DatabaseHealth

logger = logging.getLogger(__name__)

engine: AsyncEngine = create_async_engine(
    settings.database_url,
    pool_size=settings.database_pool_size,
    pool_pre_ping=True,
)


def pool_stats(db_engine: AsyncEngine) -> dict[str, int] | None:
    """Connection pool counters, or None for pools that don't track them."""
    pool = db_engine.pool
    try:
        return {
            "size": pool.size(),  # type: ignore[attr-defined]
            "checked_in": pool.checkedin(),  # type: ignore[attr-defined]
            "checked_out": pool.checkedout(),  # type: ignore[attr-defined]
            "overflow": pool.overflow(),  # type: ignore[attr-defined]
        }
    except AttributeError:
        return None


async def check_database_health(db_engine: AsyncEngine) -> DatabaseHealth:
    """Run a trivial query and report how long the round-trip took."""
    start = time.monotonic()
    try:
        async with db_engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
    except (SQLAlchemyError, OSError) as exc:
        logger.warning("Database health query failed: %s", exc)
        return DatabaseHealth(
            ok=False,
            response_time_ms=round((time.monotonic() - start) * 1000, 2),
            error_detail=str(exc) or type(exc).__name__,
        )

    return DatabaseHealth(
        ok=True,
        response_time_ms=round((time.monotonic() - start) * 1000, 2),
        pool_stats=pool_stats(db_engine),
    )
