from __future__ import annotations

from collections.abc import Mapping

from src.schemas.health import CheckResult, CheckStatus, ReadinessState

CRITICAL_CHECK = "database"

# Checks that can pull the aggregate down to degraded. "api" is informational.
DEGRADING_CHECKS = ("database", "redis", "memory", "cpu", "queue")


def merge_health(checks: Mapping[str, CheckResult]) -> CheckStatus:
    """Reduce individual check results to the overall service status.

    Only the database can make the service unhealthy. Any other check that is
    not healthy, including memory or CPU past their critical threshold, only
    degrades it.
    """
    if checks[CRITICAL_CHECK].status == CheckStatus.UNHEALTHY:
        return CheckStatus.UNHEALTHY

    for name in DEGRADING_CHECKS:
        result = checks.get(name)
        if result is not None and result.status != CheckStatus.HEALTHY:
            return CheckStatus.DEGRADED

    return CheckStatus.HEALTHY


def merge_readiness(checks: Mapping[str, CheckResult]) -> ReadinessState:
    if checks[CRITICAL_CHECK].status == CheckStatus.HEALTHY:
        return ReadinessState.READY
    return ReadinessState.NOT_READY
