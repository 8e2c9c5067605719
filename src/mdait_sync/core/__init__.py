"""Concurrency helpers shared by the sync engine."""

from .async_utils import (
    CancellationToken,
    default_worker_count,
    run_sync,
    run_worker_pool,
)

__all__ = [
    "CancellationToken",
    "default_worker_count",
    "run_sync",
    "run_worker_pool",
]
