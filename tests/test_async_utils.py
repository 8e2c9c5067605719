"""Tests for core/async_utils.py -- worker pool, cancellation, thread offload."""

import asyncio
import threading

import pytest

from mdait_sync.core.async_utils import (
    MAX_DEFAULT_WORKERS,
    CancellationToken,
    default_worker_count,
    run_sync,
    run_worker_pool,
)

# ---------------------------------------------------------------------------
# CancellationToken / default_worker_count
# ---------------------------------------------------------------------------


class TestCancellationToken:
    def test_initially_not_cancelled(self):
        assert CancellationToken().cancelled is False

    def test_cancel(self):
        token = CancellationToken()
        token.cancel()
        token.cancel()
        assert token.cancelled is True


class TestDefaultWorkerCount:
    @pytest.mark.parametrize(
        "cpus,expected", [(1, 1), (4, 4), (8, 8), (32, MAX_DEFAULT_WORKERS), (0, 1)]
    )
    def test_bounds(self, cpus, expected):
        assert default_worker_count(cpus) == expected

    def test_uses_os_cpu_count(self):
        assert 1 <= default_worker_count() <= MAX_DEFAULT_WORKERS


# ---------------------------------------------------------------------------
# run_sync
# ---------------------------------------------------------------------------


class TestRunSync:
    async def test_returns_result(self):
        assert await run_sync(sum, [1, 2, 3]) == 6

    async def test_passes_kwargs(self):
        assert await run_sync(sorted, [3, 1, 2], reverse=True) == [3, 2, 1]

    async def test_runs_off_loop_thread(self):
        loop_thread = threading.get_ident()
        worker_thread = await run_sync(threading.get_ident)
        assert worker_thread != loop_thread

    async def test_propagates_exceptions(self):
        def _boom():
            raise OSError("read-only file system")

        with pytest.raises(OSError, match="read-only"):
            await run_sync(_boom)


# ---------------------------------------------------------------------------
# run_worker_pool
# ---------------------------------------------------------------------------


class TestRunWorkerPool:
    async def test_results_aligned_with_items(self):
        async def _work(n: int) -> int:
            # Later items finish first
            await asyncio.sleep(0.001 * (10 - n))
            return n * n

        assert await run_worker_pool(list(range(10)), _work, max_workers=4) == [
            n * n for n in range(10)
        ]

    async def test_empty_items(self):
        async def _work(n):
            raise AssertionError("not called")

        assert await run_worker_pool([], _work) == []

    async def test_concurrency_bounded(self):
        active = 0
        peak = 0

        async def _work(n: int) -> int:
            nonlocal active, peak
            active += 1
            peak = max(peak, active)
            await asyncio.sleep(0.005)
            active -= 1
            return n

        await run_worker_pool(list(range(12)), _work, max_workers=3)
        assert peak == 3

    async def test_each_item_processed_once(self):
        seen: list[int] = []

        async def _work(n: int) -> None:
            await asyncio.sleep(0)
            seen.append(n)

        await run_worker_pool(list(range(20)), _work, max_workers=5)
        assert sorted(seen) == list(range(20))

    async def test_cancel_before_start(self):
        token = CancellationToken()
        token.cancel()

        async def _work(n: int) -> int:
            return n

        assert await run_worker_pool([1, 2, 3], _work, token=token) == [None, None, None]

    async def test_cancel_mid_run_finishes_current_item(self):
        token = CancellationToken()

        async def _work(n: int) -> int:
            if n == 2:
                token.cancel()
            await asyncio.sleep(0)
            return n

        results = await run_worker_pool(list(range(6)), _work, max_workers=1, token=token)
        assert results == [0, 1, 2, None, None, None]

    async def test_exceptions_propagate(self):
        async def _work(n: int) -> int:
            if n == 1:
                raise ValueError("bad item")
            return n

        with pytest.raises(ValueError, match="bad item"):
            await run_worker_pool([0, 1, 2], _work, max_workers=1)
