"""Async job orchestration primitives.

Three coordination shapes used by the story workflows:

- ``run_parallel``   fan-out/fan-in over named jobs
- ``run_sequential`` waterfall pipeline, each stage fed the previous output
- ``run_each``       one operation mapped over a list, concurrently

All three follow the service-layer tuple convention:

    results, err = await run_parallel({...})
    if err:
        ...

Scheduling is cooperative (asyncio, one thread). A failing job never
cancels its siblings: every job that was issued runs to completion and
only then does the caller continue. No timeouts are applied here.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable, Iterable

logger = logging.getLogger(__name__)

Job = Callable[[], Awaitable[Any]]
Stage = Callable[[Any], Awaitable[Any]]


async def _settle(name: str, job: Job, slots: dict[str, tuple[Any, Exception | None]]):
    # One slot per job name, written exactly once by that job.
    try:
        slots[name] = (await job(), None)
    except Exception as exc:  # noqa: BLE001 - captured and reported to the caller
        logger.debug("Parallel job %s failed: %s", name, exc)
        slots[name] = (None, exc)


async def run_parallel(jobs: dict[str, Job]) -> tuple[dict[str, Any] | None, Exception | None]:
    """Run named jobs concurrently and wait for all of them.

    Args:
        jobs: Mapping of job name to a zero-argument coroutine function.

    Returns:
        (results_by_name, None) when every job succeeded.
        (None, first_error) otherwise, "first" meaning first in registration
        order. Results of the jobs that did succeed are discarded.
    """
    slots: dict[str, tuple[Any, Exception | None]] = {}
    await asyncio.gather(*(_settle(name, job, slots) for name, job in jobs.items()))

    for name in jobs:
        _, err = slots[name]
        if err is not None:
            return None, err
    return {name: slots[name][0] for name in jobs}, None


async def run_sequential(stages: list[Stage], initial: Any = None) -> tuple[Any, Exception | None]:
    """Run stages in order, feeding each stage the previous stage's output.

    The first stage receives ``initial``. On the first failure the remaining
    stages are skipped and ``(None, error)`` is returned; otherwise
    ``(last_output, None)``.
    """
    value = initial
    for index, stage in enumerate(stages):
        try:
            value = await stage(value)
        except Exception as exc:  # noqa: BLE001 - surfaced as the pipeline error
            logger.debug("Sequential stage %d (%s) failed: %s",
                         index, getattr(stage, "__name__", stage), exc)
            return None, exc
    return value, None


async def run_each(
    operation: Callable[[Any], Awaitable[Any]],
    items: Iterable[Any],
) -> tuple[list[Any] | None, Exception | None]:
    """Apply ``operation`` to every item concurrently.

    Same completion and error semantics as ``run_parallel``; results are
    returned in input order.
    """
    items = list(items)
    jobs = {str(i): (lambda item=item: operation(item)) for i, item in enumerate(items)}
    results, err = await run_parallel(jobs)
    if err:
        return None, err
    return [results[str(i)] for i in range(len(items))], None
