from __future__ import annotations

from arq.connections import ArqRedis
from arq.constants import in_progress_key_prefix
from arq.utils import timestamp_ms

from src.schemas.health import QueueStats


async def get_queue_stats(pool: ArqRedis | None, queue_name: str) -> QueueStats:
    """Collect job counts for an ARQ queue.

    ARQ keeps queued jobs in a sorted set scored by the time they become
    runnable, so anything scored in the future is still delayed. A running
    job holds an in-progress key but stays in the sorted set until it
    finishes, so it is moved out of waiting/delayed and counted as active.
    Finished jobs leave a result record tagged with their queue.

    Args:
        pool: The ARQ redis pool created at startup.
        queue_name: Name of the sorted set backing the queue.

    Returns:
        Counts of waiting, active, completed, failed and delayed jobs.
    """
    if pool is None:
        raise RuntimeError("Job queue pool is not initialized")

    now = timestamp_ms()
    waiting = await pool.zcount(queue_name, "-inf", now)
    delayed = await pool.zcount(queue_name, f"({now}", "+inf")

    active = 0
    async for key in pool.scan_iter(match=f"{in_progress_key_prefix}*"):
        if isinstance(key, bytes):
            key = key.decode()
        score = await pool.zscore(queue_name, key[len(in_progress_key_prefix) :])
        if score is None:
            # In progress on another queue.
            continue
        active += 1
        if score <= now:
            waiting -= 1
        else:
            delayed -= 1

    results = [r for r in await pool.all_job_results() if r.queue_name == queue_name]
    completed = sum(1 for r in results if r.success)

    return QueueStats(
        waiting=max(waiting, 0),
        active=active,
        completed=completed,
        failed=len(results) - completed,
        delayed=max(delayed, 0),
    )
