from __future__ import annotations

import logging
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from arq.connections import ArqRedis
from redis.asyncio import Redis
from sqlalchemy.ext.asyncio import AsyncEngine

from src.core import process
from src.core.database import check_database_health
from src.core.queue import get_queue_stats
from src.core.redis import CACHE_FALLBACK, get_cache_health
from src.schemas.health import (
    CacheConnected,
    CacheDisabled,
    CheckResult,
    CheckStatus,
    QueueStats,
)

logger = logging.getLogger(__name__)

Probe = Callable[[], Awaitable[CheckResult]]

DATABASE_LATENCY_MS = 100
CACHE_LATENCY_MS = 100
USAGE_DEGRADED_PERCENT = 80
USAGE_UNHEALTHY_PERCENT = 90
QUEUE_MAX_PENDING = 1000
QUEUE_MAX_FAILURE_RATIO = 0.1
QUEUE_MIN_SAMPLE = 10


def _elapsed_ms(start: float) -> float:
    return round((time.monotonic() - start) * 1000, 2)


def usage_status(percent: float) -> CheckStatus:
    """Map a utilisation percentage onto a status; both thresholds are exclusive."""
    if percent > USAGE_UNHEALTHY_PERCENT:
        return CheckStatus.UNHEALTHY
    if percent > USAGE_DEGRADED_PERCENT:
        return CheckStatus.DEGRADED
    return CheckStatus.HEALTHY


def evaluate_queue(stats: QueueStats) -> CheckResult:
    status = CheckStatus.HEALTHY
    message = None

    if stats.pending > QUEUE_MAX_PENDING:
        status = CheckStatus.DEGRADED
        message = f"High queue depth: {stats.pending} jobs"
    elif stats.failure_ratio > QUEUE_MAX_FAILURE_RATIO and stats.processed > QUEUE_MIN_SAMPLE:
        status = CheckStatus.DEGRADED
        message = f"High failure rate: {stats.failure_ratio * 100:.1f}%"

    return CheckResult(
        status=status,
        message=message,
        details={"enabled": True, **stats.model_dump()},
    )


@dataclass
class HealthProbes:
    """Subsystem probes bound to the handles and flags of one process.

    Every probe returns a CheckResult and never raises: failures are turned
    into the worst status that subsystem is allowed to report. Only the
    database probe can report unhealthy for a dependency outage.
    """

    engine: AsyncEngine | None
    redis: Redis | None
    arq_pool: ArqRedis | None
    cache_enabled: bool
    queue_enabled: bool
    ai_enabled: bool
    billing_enabled: bool
    queue_name: str = "arq:queue"

    async def database(self) -> CheckResult:
        if self.engine is None:
            return CheckResult(
                status=CheckStatus.UNHEALTHY,
                latency_ms=0,
                message="Database engine not initialized",
            )
        try:
            health = await check_database_health(self.engine)
        except Exception as exc:
            logger.warning("Database probe failed: %s", exc)
            return CheckResult(
                status=CheckStatus.UNHEALTHY,
                latency_ms=0,
                message=str(exc) or "Database connection failed",
            )

        if not health.ok:
            return CheckResult(
                status=CheckStatus.UNHEALTHY,
                latency_ms=health.response_time_ms,
                message=health.error_detail or "Database connection failed",
            )

        slow = health.response_time_ms >= DATABASE_LATENCY_MS
        return CheckResult(
            status=CheckStatus.DEGRADED if slow else CheckStatus.HEALTHY,
            latency_ms=health.response_time_ms,
            message="High database latency" if slow else None,
            details=health.pool_stats,
        )

    async def cache(self) -> CheckResult:
        try:
            state = await get_cache_health(self.redis, self.cache_enabled)
        except Exception as exc:
            # Cache trouble never fails the service, the fallback takes over.
            logger.warning("Cache probe failed: %s", exc)
            return CheckResult(
                status=CheckStatus.DEGRADED,
                latency_ms=0,
                message=f"Redis check failed (using fallback): {str(exc) or 'Unknown error'}",
                details={"enabled": True, "connected": False, "fallback": CACHE_FALLBACK},
            )

        if isinstance(state, CacheDisabled):
            return CheckResult(
                status=CheckStatus.HEALTHY,
                latency_ms=0,
                message="Redis is disabled (using fallback mechanisms)",
                details={"enabled": False, "fallback": CACHE_FALLBACK},
            )

        if isinstance(state, CacheConnected):
            slow = state.response_time_ms >= CACHE_LATENCY_MS
            return CheckResult(
                status=CheckStatus.DEGRADED if slow else CheckStatus.HEALTHY,
                latency_ms=state.response_time_ms,
                message="High cache latency" if slow else None,
                details={"enabled": True, "connected": True, "fallback": "none"},
            )

        return CheckResult(
            status=CheckStatus.DEGRADED,
            latency_ms=state.response_time_ms,
            message=f"Redis unavailable (using fallback): {state.message or 'Connection failed'}",
            details={"enabled": True, "connected": False, "fallback": state.fallback},
        )

    async def memory(self) -> CheckResult:
        try:
            percent, usage = process.memory_usage()
        except Exception as exc:
            logger.warning("Memory probe failed: %s", exc)
            return CheckResult(status=CheckStatus.DEGRADED, message=f"Memory check failed: {exc}")

        status = usage_status(percent)
        message = {
            CheckStatus.UNHEALTHY: "Critical memory usage",
            CheckStatus.DEGRADED: "High memory usage",
        }.get(status)
        return CheckResult(
            status=status,
            usage_percent=round(percent, 1),
            message=message,
            details=usage.model_dump(),
        )

    async def cpu(self) -> CheckResult:
        try:
            percent, times = process.cpu_usage()
        except Exception as exc:
            logger.warning("CPU probe failed: %s", exc)
            return CheckResult(status=CheckStatus.DEGRADED, message=f"CPU check failed: {exc}")

        status = usage_status(percent)
        message = {
            CheckStatus.UNHEALTHY: "Critical CPU usage",
            CheckStatus.DEGRADED: "High CPU usage",
        }.get(status)
        return CheckResult(
            status=status,
            usage_percent=round(percent, 1),
            message=message,
            details=times,
        )

    async def queue(self) -> CheckResult:
        start = time.monotonic()
        if not self.queue_enabled:
            return CheckResult(
                status=CheckStatus.HEALTHY,
                latency_ms=0,
                message="Job queue disabled (Redis not available)",
                details={"enabled": False, **QueueStats().model_dump()},
            )

        try:
            stats = await get_queue_stats(self.arq_pool, self.queue_name)
        except Exception as exc:
            # Background jobs are optional, the service keeps serving without them.
            logger.warning("Job queue probe failed: %s", exc)
            return CheckResult(
                status=CheckStatus.DEGRADED,
                latency_ms=_elapsed_ms(start),
                message=f"Job queue check failed: {str(exc) or 'Unknown error'}",
                details={"enabled": True, "error": str(exc)},
            )

        result = evaluate_queue(stats)
        result.latency_ms = _elapsed_ms(start)
        return result

    async def api(self) -> CheckResult:
        details = {
            "gemini": "enabled" if self.ai_enabled else "disabled",
            "stripe": "enabled" if self.billing_enabled else "disabled",
        }
        if not self.ai_enabled:
            return CheckResult(
                status=CheckStatus.DEGRADED,
                latency_ms=0,
                message="Gemini AI service not configured",
                details=details,
            )
        return CheckResult(status=CheckStatus.HEALTHY, latency_ms=0, details=details)

    def health_set(self) -> dict[str, Probe]:
        return {
            "database": self.database,
            "redis": self.cache,
            "memory": self.memory,
            "cpu": self.cpu,
            "queue": self.queue,
            "api": self.api,
        }

    def readiness_set(self) -> dict[str, Probe]:
        return {
            "database": self.database,
            "redis": self.cache,
        }
