"""Async utilities for running blocking file sync work from a bounded worker pool."""

import asyncio
import logging
import os
import threading
from typing import Any, Awaitable, Callable, Sequence, TypeVar

T = TypeVar("T")
R = TypeVar("R")
logger = logging.getLogger(__name__)

MAX_DEFAULT_WORKERS = 8


class CancellationToken:
    """Cooperative cancellation flag shared between a caller and the workers.

    Workers poll ``cancelled`` between items; an item already in progress
    always runs to completion.
    """

    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        """Request cancellation."""
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()


def default_worker_count(cpu_count: int | None = None) -> int:
    """Return ``min(cpu_count, 8)``, never less than 1.

    Args:
        cpu_count: CPU count to use. Defaults to ``os.cpu_count()``.
    """
    if cpu_count is None:
        cpu_count = os.cpu_count() or 1
    return max(1, min(cpu_count, MAX_DEFAULT_WORKERS))


async def run_sync(
    func: Callable[..., T], *args: Any, **kwargs: Any
) -> T:
    """Run a synchronous function in a thread pool without blocking the event loop.

    Used to move file reads, file writes and registry flushes off the loop
    so one worker's I/O never stalls the others.

    Args:
        func: Synchronous function to call
        *args: Positional arguments for func
        **kwargs: Keyword arguments for func

    Returns:
        Result of func(*args, **kwargs)

    Example:
        content = await run_sync(path.read_text, encoding="utf-8")
    """
    return await asyncio.to_thread(func, *args, **kwargs)


async def run_worker_pool(
    items: Sequence[T],
    worker: Callable[[T], Awaitable[R]],
    max_workers: int | None = None,
    token: CancellationToken | None = None,
) -> list[R | None]:
    """Process *items* with at most *max_workers* concurrent workers.

    Workers pull the next item from a shared index counter until the
    sequence is exhausted or *token* is cancelled. Exceptions raised by
    *worker* propagate; callers that need per-item isolation catch inside
    the worker.

    Args:
        items: Items to process.
        worker: Coroutine function called once per item.
        max_workers: Pool size. Defaults to ``default_worker_count()``.
        token: Optional cancellation token checked before each item.

    Returns:
        List aligned with *items*. Entries for items that were never
        started because of cancellation are ``None``.
    """
    results: list[R | None] = [None] * len(items)
    if not items:
        return results

    pool_size = max_workers or default_worker_count()
    pool_size = max(1, min(pool_size, len(items)))
    next_index = 0

    async def _worker_loop(worker_id: int) -> None:
        nonlocal next_index
        while True:
            if token is not None and token.cancelled:
                logger.debug("Worker %d stopping: cancelled", worker_id)
                return
            # Single-threaded event loop: claiming the index needs no lock
            index = next_index
            if index >= len(items):
                return
            next_index += 1
            results[index] = await worker(items[index])

    logger.debug(
        "Starting worker pool: %d workers for %d items",
        pool_size,
        len(items),
    )
    await asyncio.gather(*(_worker_loop(i) for i in range(pool_size)))
    return results
