from __future__ import annotations

import asyncio
from collections.abc import Callable
from typing import Any
from unittest.mock import AsyncMock, MagicMock, patch

import psutil
import pytest
from httpx import AsyncClient

from src.health.probes import HealthProbes
from src.schemas import CacheConnected, CheckResult, CheckStatus, DatabaseHealth, QueueStats


@pytest.mark.asyncio
async def test_health_all_nominal(
    client: AsyncClient,
    make_probes: Callable[..., HealthProbes],
    use_probes: Callable[..., None],
    database: AsyncMock,
    vitals: dict[str, Any],
) -> None:
    use_probes(make_probes())

    response = await client.get("/health")

    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "healthy"
    assert data["version"]
    assert isinstance(data["uptime_seconds"], int)
    assert set(data["checks"]) == {"database", "redis", "memory", "cpu", "queue", "api"}
    assert data["checks"]["database"]["latency_ms"] == 40
    assert data["checks"]["redis"]["details"]["enabled"] is False
    assert data["checks"]["queue"]["details"]["enabled"] is False
    assert data["checks"]["memory"]["usage_percent"] == 50.0
    assert "message" not in data["checks"]["database"]


@pytest.mark.asyncio
async def test_health_slow_database_is_degraded(
    client: AsyncClient,
    make_probes: Callable[..., HealthProbes],
    use_probes: Callable[..., None],
    database: AsyncMock,
    vitals: dict[str, Any],
) -> None:
    database.return_value = DatabaseHealth(ok=True, response_time_ms=150)
    use_probes(make_probes())

    response = await client.get("/health")

    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "degraded"
    assert data["checks"]["database"]["status"] == "degraded"


@pytest.mark.asyncio
async def test_database_down_fails_health_and_readiness(
    client: AsyncClient,
    make_probes: Callable[..., HealthProbes],
    use_probes: Callable[..., None],
    database: AsyncMock,
    vitals: dict[str, Any],
) -> None:
    database.side_effect = ConnectionRefusedError("connection refused")
    use_probes(make_probes())

    health = await client.get("/health")
    ready = await client.get("/ready")

    assert health.status_code == 503
    assert health.json()["status"] == "unhealthy"
    assert health.json()["checks"]["database"]["message"] == "connection refused"
    assert ready.status_code == 503
    assert ready.json()["status"] == "not ready"


@pytest.mark.asyncio
async def test_cache_failure_degrades_but_stays_ready(
    client: AsyncClient,
    make_probes: Callable[..., HealthProbes],
    use_probes: Callable[..., None],
    database: AsyncMock,
    vitals: dict[str, Any],
) -> None:
    use_probes(make_probes(cache_enabled=True))

    with patch("src.health.probes.get_cache_health", AsyncMock(side_effect=RuntimeError("boom"))):
        health = await client.get("/health")
        ready = await client.get("/ready")

    assert health.status_code == 200
    assert health.json()["status"] == "degraded"
    assert health.json()["checks"]["redis"]["status"] == "degraded"
    assert ready.status_code == 200
    assert ready.json()["status"] == "ready"
    assert set(ready.json()["checks"]) == {"database", "redis"}


@pytest.mark.asyncio
async def test_hung_probe_times_out(
    client: AsyncClient,
    make_probes: Callable[..., HealthProbes],
    use_probes: Callable[..., None],
    database: AsyncMock,
    vitals: dict[str, Any],
) -> None:
    async def hang(*args: Any) -> DatabaseHealth:
        await asyncio.sleep(30)
        return DatabaseHealth(ok=True, response_time_ms=0)

    database.side_effect = hang
    use_probes(make_probes(), timeout=0.2)

    health = await client.get("/health")
    ready = await client.get("/ready")

    assert health.status_code == 503
    data = health.json()
    assert data["status"] == "unhealthy"
    assert set(data["checks"]) == {"database", "redis", "memory", "cpu", "queue", "api"}
    for check in data["checks"].values():
        assert check["status"] == "unhealthy"
        assert "timeout" in check["message"]

    assert ready.status_code == 503
    assert ready.json()["status"] == "not ready"
    assert "timeout" in ready.json()["checks"]["database"]["message"]


@pytest.mark.asyncio
async def test_deep_queue_degrades_health(
    client: AsyncClient,
    make_probes: Callable[..., HealthProbes],
    use_probes: Callable[..., None],
    database: AsyncMock,
    vitals: dict[str, Any],
) -> None:
    use_probes(make_probes(cache_enabled=True, queue_enabled=True, redis=MagicMock()))

    stats = AsyncMock(return_value=QueueStats(waiting=1200))
    cache = AsyncMock(return_value=CacheConnected(response_time_ms=2))
    with (
        patch("src.health.probes.get_queue_stats", stats),
        patch("src.health.probes.get_cache_health", cache),
    ):
        response = await client.get("/health")

    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "degraded"
    assert data["checks"]["queue"]["status"] == "degraded"
    assert "1200" in data["checks"]["queue"]["message"]


@pytest.mark.asyncio
async def test_unexpected_failure_returns_503(
    client: AsyncClient,
    use_probes: Callable[..., None],
) -> None:
    broken = MagicMock()
    broken.health_set.side_effect = RuntimeError("malformed probe set")
    broken.readiness_set.side_effect = RuntimeError("malformed probe set")
    use_probes(broken)

    health = await client.get("/health")
    ready = await client.get("/ready")

    assert health.status_code == 503
    assert health.json()["status"] == "unhealthy"
    assert health.json()["checks"]["database"]["message"] == "Health check failed"
    assert ready.status_code == 503
    assert ready.json()["status"] == "not ready"


@pytest.mark.asyncio
async def test_readiness_alias(
    client: AsyncClient,
    make_probes: Callable[..., HealthProbes],
    use_probes: Callable[..., None],
    database: AsyncMock,
) -> None:
    use_probes(make_probes())

    response = await client.get("/health/ready")

    assert response.status_code == 200
    assert response.json()["status"] == "ready"


@pytest.mark.asyncio
async def test_liveness_is_stable(client: AsyncClient, vitals: dict[str, Any]) -> None:
    first = await client.get("/live")
    second = await client.get("/health/live")

    assert first.status_code == 200
    assert second.status_code == 200
    assert first.json()["status"] == second.json()["status"] == "alive"
    assert second.json()["uptime_seconds"] >= first.json()["uptime_seconds"]
    assert first.json()["memory_usage"] == {"rss": 120, "vms": 480, "total": 1000, "available": 600}
    assert "checks" not in first.json()


@pytest.mark.asyncio
async def test_liveness_touches_no_dependency(
    client: AsyncClient,
    database: AsyncMock,
    vitals: dict[str, Any],
) -> None:
    response = await client.get("/live")

    assert response.status_code == 200
    database.assert_not_called()


@pytest.mark.asyncio
async def test_timeout_body_lists_the_served_checks(
    client: AsyncClient,
    use_probes: Callable[..., None],
) -> None:
    async def hang() -> CheckResult:
        await asyncio.sleep(30)
        return CheckResult(status=CheckStatus.HEALTHY)

    async def fine() -> CheckResult:
        return CheckResult(status=CheckStatus.HEALTHY)

    custom = MagicMock()
    custom.health_set.return_value = {"database": hang, "search": fine}
    custom.readiness_set.return_value = {"database": hang, "search": fine}
    use_probes(custom, timeout=0.1)

    health = await client.get("/health")
    ready = await client.get("/ready")

    assert health.status_code == 503
    assert set(health.json()["checks"]) == {"database", "search"}
    assert ready.status_code == 503
    assert set(ready.json()["checks"]) == {"database", "search"}


@pytest.mark.asyncio
async def test_liveness_survives_unreadable_memory(client: AsyncClient) -> None:
    with patch("src.core.process.memory_usage", side_effect=psutil.AccessDenied(pid=1)):
        response = await client.get("/live")

    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "alive"
    assert data["uptime_seconds"] >= 0
    assert "memory_usage" not in data
