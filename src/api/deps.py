from __future__ import annotations

from fastapi import Request

from src.core.config import settings
from src.health.probes import HealthProbes


def get_health_probes(request: Request) -> HealthProbes:
    """Bind the probe set to the handles opened in the app lifespan."""
    state = request.app.state
    return HealthProbes(
        engine=getattr(state, "engine", None),
        redis=getattr(state, "redis", None),
        arq_pool=getattr(state, "arq_pool", None),
        cache_enabled=settings.redis_enabled,
        queue_enabled=settings.queue_enabled,
        ai_enabled=settings.ai_enabled,
        billing_enabled=settings.billing_enabled,
        queue_name=settings.arq_queue_name,
    )


def get_probe_timeout() -> float:
    return settings.health_check_timeout
