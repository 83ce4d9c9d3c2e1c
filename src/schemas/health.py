from __future__ import annotations

from datetime import datetime
from enum import StrEnum
from typing import Any, Literal

from pydantic import BaseModel, Field


class CheckStatus(StrEnum):
    HEALTHY = "healthy"
    DEGRADED = "degraded"
    UNHEALTHY = "unhealthy"


class ReadinessState(StrEnum):
    READY = "ready"
    NOT_READY = "not ready"


class CheckResult(BaseModel):
    """Outcome of a single subsystem probe."""

    status: CheckStatus
    latency_ms: float | None = None
    usage_percent: float | None = Field(default=None, ge=0)
    message: str | None = None
    details: dict[str, Any] | None = None


class HealthStatus(BaseModel):
    status: CheckStatus
    timestamp: datetime
    uptime_seconds: int
    version: str | None = None
    checks: dict[str, CheckResult]


class ReadinessStatus(BaseModel):
    status: ReadinessState
    timestamp: datetime
    checks: dict[str, CheckResult]


class MemoryUsage(BaseModel):
    """Process memory figures in MB."""

    rss: int
    vms: int
    total: int
    available: int


class LivenessStatus(BaseModel):
    status: Literal["alive"] = "alive"
    timestamp: datetime
    uptime_seconds: float
    memory_usage: MemoryUsage | None = None


# --- Collaborator payloads ---


class DatabaseHealth(BaseModel):
    ok: bool
    response_time_ms: float
    pool_stats: dict[str, int] | None = None
    error_detail: str | None = None


class CacheDisabled(BaseModel):
    state: Literal["disabled"] = "disabled"


class CacheConnected(BaseModel):
    state: Literal["connected"] = "connected"
    response_time_ms: float


class CacheDisconnected(BaseModel):
    state: Literal["disconnected"] = "disconnected"
    response_time_ms: float = 0.0
    message: str | None = None
    fallback: str


CacheState = CacheDisabled | CacheConnected | CacheDisconnected


class QueueStats(BaseModel):
    waiting: int = Field(default=0, ge=0)
    active: int = Field(default=0, ge=0)
    completed: int = Field(default=0, ge=0)
    failed: int = Field(default=0, ge=0)
    delayed: int = Field(default=0, ge=0)

    @property
    def pending(self) -> int:
        return self.waiting + self.active + self.delayed

    @property
    def processed(self) -> int:
        return self.completed + self.failed

    @property
    def failure_ratio(self) -> float:
        if self.processed == 0:
            return 0.0
        return self.failed / self.processed
