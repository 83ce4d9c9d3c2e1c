from __future__ import annotations

import logging
from collections.abc import Mapping

from fastapi import APIRouter, Depends, Response, status

from src.api.deps import get_health_probes, get_probe_timeout
from src.core.config import settings
from src.core.exceptions import ProbeTimeoutError
from src.health.probes import HealthProbes, Probe
from src.health.service import (
    evaluate_health,
    evaluate_readiness,
    liveness_status,
    not_ready_status,
    unhealthy_status,
)
from src.schemas import (
    CheckStatus,
    HealthStatus,
    LivenessStatus,
    ReadinessState,
    ReadinessStatus,
)

logger = logging.getLogger(__name__)

router = APIRouter()

# Reported when the probe set itself could not be built.
HEALTH_CHECKS = ("database", "redis", "memory", "cpu", "queue", "api")
READINESS_CHECKS = ("database", "redis")


@router.get("/health", response_model=HealthStatus, response_model_exclude_none=True)
async def health_check(
    response: Response,
    probes: HealthProbes = Depends(get_health_probes),
    timeout: float = Depends(get_probe_timeout),
) -> HealthStatus:
    """Report overall service health; 503 only when the database is down."""
    probe_set: Mapping[str, Probe] = {}
    try:
        probe_set = probes.health_set()
        health = await evaluate_health(probe_set, timeout, version=settings.app_version)
    except ProbeTimeoutError:
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE
        return unhealthy_status(probe_set, "Health check timeout", settings.app_version)
    except Exception:
        logger.exception("Health check failed")
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE
        return unhealthy_status(HEALTH_CHECKS, "Health check failed", settings.app_version)

    if health.status == CheckStatus.UNHEALTHY:
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    return health


@router.get("/ready", response_model=ReadinessStatus, response_model_exclude_none=True)
@router.get(
    "/health/ready",
    response_model=ReadinessStatus,
    response_model_exclude_none=True,
    include_in_schema=False,
)
async def readiness_check(
    response: Response,
    probes: HealthProbes = Depends(get_health_probes),
    timeout: float = Depends(get_probe_timeout),
) -> ReadinessStatus:
    """Whether this instance should receive traffic. The cache is ignored."""
    probe_set: Mapping[str, Probe] = {}
    try:
        probe_set = probes.readiness_set()
        readiness = await evaluate_readiness(probe_set, timeout)
    except ProbeTimeoutError:
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE
        return not_ready_status(probe_set, "Readiness check timeout")
    except Exception:
        logger.exception("Readiness check failed")
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE
        return not_ready_status(READINESS_CHECKS, "Readiness check failed")

    if readiness.status != ReadinessState.READY:
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    return readiness


@router.get("/live", response_model=LivenessStatus, response_model_exclude_none=True)
@router.get(
    "/health/live",
    response_model=LivenessStatus,
    response_model_exclude_none=True,
    include_in_schema=False,
)
async def liveness_check() -> LivenessStatus:
    return liveness_status()
