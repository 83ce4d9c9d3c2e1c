from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from datetime import UTC, datetime

import psutil

from src.core import process
from src.health.executor import run_probes
from src.health.merger import merge_health, merge_readiness
from src.health.probes import Probe
from src.schemas.health import (
    CheckResult,
    CheckStatus,
    HealthStatus,
    LivenessStatus,
    ReadinessState,
    ReadinessStatus,
)

logger = logging.getLogger(__name__)


def _now() -> datetime:
    return datetime.now(UTC)


def failed_checks(names: Iterable[str], message: str) -> dict[str, CheckResult]:
    """Mark every named check unhealthy with the same cause."""
    return {name: CheckResult(status=CheckStatus.UNHEALTHY, message=message) for name in names}


async def evaluate_health(
    probes: Mapping[str, Probe],
    timeout: float,
    version: str | None = None,
) -> HealthStatus:
    checks = await run_probes(probes, timeout)
    return HealthStatus(
        status=merge_health(checks),
        timestamp=_now(),
        uptime_seconds=round(process.uptime_seconds()),
        version=version,
        checks=checks,
    )


async def evaluate_readiness(probes: Mapping[str, Probe], timeout: float) -> ReadinessStatus:
    checks = await run_probes(probes, timeout)
    return ReadinessStatus(
        status=merge_readiness(checks),
        timestamp=_now(),
        checks=checks,
    )


def unhealthy_status(
    names: Iterable[str],
    message: str,
    version: str | None = None,
) -> HealthStatus:
    return HealthStatus(
        status=CheckStatus.UNHEALTHY,
        timestamp=_now(),
        uptime_seconds=round(process.uptime_seconds()),
        version=version,
        checks=failed_checks(names, message),
    )


def not_ready_status(names: Iterable[str], message: str) -> ReadinessStatus:
    return ReadinessStatus(
        status=ReadinessState.NOT_READY,
        timestamp=_now(),
        checks=failed_checks(names, message),
    )


def liveness_status() -> LivenessStatus:
    """Process vitals only; touches no dependency."""
    usage = None
    try:
        _, usage = process.memory_usage()
    except psutil.Error as exc:
        logger.warning("Could not read process memory: %s", exc)
    return LivenessStatus(
        timestamp=_now(),
        uptime_seconds=round(process.uptime_seconds(), 3),
        memory_usage=usage,
    )
