"""Bounded fan-out/fan-in over independent async tasks.

``run_all`` starts every task at once, then either returns all results in
submission order or raises for the first failure. In-flight siblings of a
failed task are cancelled and awaited before the error propagates, so no task
outlives the call and no partial result escapes.
"""

import asyncio
from collections.abc import Awaitable, Callable, Sequence
from typing import TypeVar

import structlog

from .errors import AgentFailedError, AgentTimeoutError, AnalysisTimeoutError

logger = structlog.get_logger()

T = TypeVar("T")

Job = tuple[str, Callable[[], Awaitable[T]]]


async def _run_one(name: str, factory: Callable[[], Awaitable[T]], timeout: float | None) -> T:
    if timeout is None:
        return await factory()
    try:
        return await asyncio.wait_for(factory(), timeout)
    except TimeoutError as e:
        raise AgentTimeoutError(f"{name} timed out after {timeout}s", agent=name) from e


async def run_all(
    jobs: Sequence[Job[T]],
    timeout: float | None = None,
    task_timeout: float | None = None,
) -> list[T]:
    """Run named jobs concurrently and collect every result or the first error.

    Args:
        jobs: ``(name, factory)`` pairs; each factory returns a fresh awaitable.
        timeout: Budget for the whole group, in seconds.
        task_timeout: Budget for each job, in seconds.

    Raises:
        AgentFailedError: A job raised; ``cause`` holds the original exception.
        AnalysisTimeoutError: The group budget ran out with jobs still running.
    """
    if not jobs:
        return []

    tasks = [
        asyncio.create_task(_run_one(name, factory, task_timeout), name=name)
        for name, factory in jobs
    ]
    try:
        done, pending = await asyncio.wait(
            tasks, timeout=timeout, return_when=asyncio.FIRST_EXCEPTION
        )

        failures = [
            (task.get_name(), task.exception())
            for task in tasks
            if task in done and not task.cancelled() and task.exception() is not None
        ]
        if failures:
            name, exc = failures[0]
            logger.warning(
                "fanout_task_failed",
                task=name,
                error=str(exc),
                cancelled_siblings=len(pending),
            )
            raise AgentFailedError(name, exc) from exc

        if pending:
            names = sorted(task.get_name() for task in pending)
            logger.warning("fanout_timeout", timeout=timeout, pending=names)
            raise AnalysisTimeoutError(
                f"Timed out after {timeout}s waiting for: {', '.join(names)}"
            )

        return [task.result() for task in tasks]
    finally:
        unfinished = [task for task in tasks if not task.done()]
        for task in unfinished:
            task.cancel()
        if unfinished:
            await asyncio.gather(*unfinished, return_exceptions=True)
