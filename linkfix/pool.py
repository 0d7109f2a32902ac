"""Bounded-concurrency execution of async work items."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, Generic, Iterable, List, TypeVar, Union

LOGGER = logging.getLogger(__name__)

T = TypeVar("T")
R = TypeVar("R")


@dataclass(frozen=True, slots=True)
class TaskFailure(Generic[T]):
    """Placeholder result for a work item whose coroutine raised."""

    item: T
    error: str


async def run_bounded(
    items: Iterable[T],
    concurrency: int,
    worker: Callable[[T], Awaitable[R]],
) -> List[Union[R, TaskFailure[T]]]:
    """Run ``worker`` over ``items`` with at most ``concurrency`` in flight.

    Results are collected in completion order, not input order. A worker
    that raises does not cancel its siblings; its slot in the output is a
    :class:`TaskFailure` instead.
    """
    semaphore = asyncio.Semaphore(max(1, concurrency))
    results: List[Union[R, TaskFailure[T]]] = []

    async def _run(item: T) -> None:
        async with semaphore:
            try:
                outcome: Union[R, TaskFailure[T]] = await worker(item)
            except Exception as exc:
                LOGGER.warning("Work item %r failed: %s", item, exc)
                outcome = TaskFailure(item=item, error=str(exc) or type(exc).__name__)
        results.append(outcome)

    await asyncio.gather(*(_run(item) for item in items))
    return results
