from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Mapping

from src.core.exceptions import ProbeTimeoutError
from src.health.probes import Probe
from src.schemas.health import CheckResult

logger = logging.getLogger(__name__)


async def run_probes(probes: Mapping[str, Probe], timeout: float) -> dict[str, CheckResult]:
    """Run all probes concurrently and wait for them at most ``timeout`` seconds.

    If anything is still running at the deadline the stragglers are cancelled
    and ProbeTimeoutError is raised; their results are never read. A probe
    that raises instead of returning propagates its exception unchanged.
    """
    start = time.monotonic()
    tasks = {
        name: asyncio.create_task(probe(), name=f"probe:{name}")
        for name, probe in probes.items()
    }
    if not tasks:
        return {}

    try:
        _, pending = await asyncio.wait(tasks.values(), timeout=timeout)
    except asyncio.CancelledError:
        for task in tasks.values():
            task.cancel()
        raise

    if pending:
        for task in pending:
            task.cancel()
        names = [name for name, task in tasks.items() if task in pending]
        logger.warning("Probes timed out after %.0fms: %s", timeout * 1000, ", ".join(names))
        raise ProbeTimeoutError(names, timeout)

    elapsed = time.monotonic() - start
    if elapsed > timeout:
        logger.warning(
            "Health evaluation took %.0fms, exceeding the %.0fms limit",
            elapsed * 1000,
            timeout * 1000,
        )

    return {name: task.result() for name, task in tasks.items()}
