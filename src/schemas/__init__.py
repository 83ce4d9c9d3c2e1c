from __future__ import annotations

from .health import (
    CacheConnected,
    CacheDisabled,
    CacheDisconnected,
    CacheState,
    CheckResult,
    CheckStatus,
    DatabaseHealth,
    HealthStatus,
    LivenessStatus,
    MemoryUsage,
    QueueStats,
    ReadinessState,
    ReadinessStatus,
)

__all__ = [
    # health
    "CheckResult",
    "CheckStatus",
    "HealthStatus",
    "LivenessStatus",
    "MemoryUsage",
    "ReadinessState",
    "ReadinessStatus",
    # collaborators
    "CacheConnected",
    "CacheDisabled",
    "CacheDisconnected",
    "CacheState",
    "DatabaseHealth",
    "QueueStats",
]
