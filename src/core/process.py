from __future__ import annotations

import time

import psutil

from src.schemas.health import MemoryUsage

_MB = 1024 * 1024

_process = psutil.Process()
# Anchor uptime to a monotonic clock so it never goes backwards.
_started_monotonic = time.monotonic() - max(time.time() - _process.create_time(), 0.0)


def uptime_seconds() -> float:
    return time.monotonic() - _started_monotonic


def memory_usage() -> tuple[float, MemoryUsage]:
    """Return the share of system memory held by this process and MB figures."""
    info = _process.memory_info()
    system = psutil.virtual_memory()
    percent = info.rss / system.total * 100 if system.total else 0.0
    return percent, MemoryUsage(
        rss=round(info.rss / _MB),
        vms=round(info.vms / _MB),
        total=round(system.total / _MB),
        available=round(system.available / _MB),
    )


def cpu_usage() -> tuple[float, dict[str, float]]:
    """CPU time spent by this process as a percentage of its wall-clock lifetime."""
    times = _process.cpu_times()
    busy = times.user + times.system
    uptime = uptime_seconds()
    percent = busy / uptime * 100 if uptime > 0 else 0.0
    return percent, {
        "user": round(times.user, 3),
        "system": round(times.system, 3),
    }
