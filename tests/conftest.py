from __future__ import annotations

import os

os.environ["REDIS_ENABLED"] = "true"
os.environ["GEMINI_API_KEY"] = "test-key"

from collections.abc import AsyncGenerator, Callable, Generator
from typing import Any
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from httpx import ASGITransport, AsyncClient

from src.api.deps import get_health_probes, get_probe_timeout
from src.health.probes import HealthProbes
from src.main import app
from src.schemas import DatabaseHealth, MemoryUsage

MEMORY = MemoryUsage(rss=120, vms=480, total=1000, available=600)


@pytest.fixture
async def client() -> AsyncGenerator[AsyncClient, None]:
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest.fixture
def vitals() -> Generator[dict[str, Any], None, None]:
    """Patch process vitals; tests adjust the returned percentages."""
    values: dict[str, Any] = {"memory": 50.0, "cpu": 30.0}
    with (
        patch(
            "src.core.process.memory_usage",
            side_effect=lambda: (values["memory"], MEMORY),
        ),
        patch(
            "src.core.process.cpu_usage",
            side_effect=lambda: (values["cpu"], {"user": 1.0, "system": 0.5}),
        ),
    ):
        yield values


@pytest.fixture
def database() -> Generator[AsyncMock, None, None]:
    check = AsyncMock(return_value=DatabaseHealth(ok=True, response_time_ms=40))
    with patch("src.health.probes.check_database_health", check):
        yield check


@pytest.fixture
def make_probes() -> Callable[..., HealthProbes]:
    def _make(**overrides: Any) -> HealthProbes:
        options: dict[str, Any] = {
            "engine": MagicMock(),
            "redis": None,
            "arq_pool": None,
            "cache_enabled": False,
            "queue_enabled": False,
            "ai_enabled": True,
            "billing_enabled": False,
        }
        options.update(overrides)
        return HealthProbes(**options)

    return _make


@pytest.fixture
def use_probes() -> Generator[Callable[..., None], None, None]:
    """Serve the given probe set (and optional deadline) from the app."""

    def _use(probes: HealthProbes, timeout: float | None = None) -> None:
        app.dependency_overrides[get_health_probes] = lambda: probes
        if timeout is not None:
            app.dependency_overrides[get_probe_timeout] = lambda: timeout

    yield _use
    app.dependency_overrides.clear()
