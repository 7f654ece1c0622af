"""
Unit tests for the worker pool
"""

import asyncio
from unittest.mock import patch

import pytest

from framerender.core.exceptions import WorkerPoolError
from framerender.services.worker_pool import WorkerPool, get_actual_concurrency


class Worker:
    def __init__(self, name: str):
        self.name = name


class TestWorkerPool:
    """Test WorkerPool"""

    @pytest.fixture
    def workers(self):
        return [Worker("a"), Worker("b")]

    def test_empty_pool_rejected(self):
        with pytest.raises(WorkerPoolError):
            WorkerPool([])

    @pytest.mark.asyncio
    async def test_acquire_and_release(self, workers):
        pool = WorkerPool(workers)

        first = await pool.acquire()
        second = await pool.acquire()

        assert first is not second
        assert pool.available == 0

        pool.release(first)
        assert pool.available == 1
        assert await pool.acquire() is first

    @pytest.mark.asyncio
    async def test_worker_never_held_twice(self, workers):
        pool = WorkerPool(workers)
        holders = set()
        max_held = 0

        async def use_worker(delay: float):
            nonlocal max_held
            worker = await pool.acquire()
            assert worker.name not in holders
            holders.add(worker.name)
            max_held = max(max_held, len(holders))
            await asyncio.sleep(delay)
            holders.remove(worker.name)
            pool.release(worker)

        await asyncio.gather(*(use_worker(0.001 * (i % 3)) for i in range(20)))

        assert max_held == 2
        assert pool.available == 2

    @pytest.mark.asyncio
    async def test_waiters_served_in_order(self):
        worker = Worker("only")
        pool = WorkerPool([worker])
        order = []

        held = await pool.acquire()

        async def wait_turn(name: str):
            acquired = await pool.acquire()
            order.append(name)
            pool.release(acquired)

        tasks = []
        for name in ("first", "second", "third"):
            tasks.append(asyncio.ensure_future(wait_turn(name)))
            await asyncio.sleep(0)

        assert pool.waiting == 3
        pool.release(held)
        await asyncio.gather(*tasks)

        assert order == ["first", "second", "third"]

    @pytest.mark.asyncio
    async def test_release_hands_worker_to_waiter(self):
        worker = Worker("only")
        pool = WorkerPool([worker])
        held = await pool.acquire()

        waiter = asyncio.ensure_future(pool.acquire())
        await asyncio.sleep(0)
        pool.release(held)

        # Handed over directly, never back in the free list
        assert pool.available == 0
        assert await waiter is worker

    @pytest.mark.asyncio
    async def test_cancelled_waiter_is_skipped(self):
        worker = Worker("only")
        pool = WorkerPool([worker])
        held = await pool.acquire()

        cancelled = asyncio.ensure_future(pool.acquire())
        await asyncio.sleep(0)
        served = asyncio.ensure_future(pool.acquire())
        await asyncio.sleep(0)

        cancelled.cancel()
        await asyncio.sleep(0)
        pool.release(held)

        assert await served is worker
        assert cancelled.cancelled()

    @pytest.mark.asyncio
    async def test_release_foreign_worker(self, workers):
        pool = WorkerPool(workers)

        with pytest.raises(WorkerPoolError):
            pool.release(Worker("stranger"))

    @pytest.mark.asyncio
    async def test_double_release(self, workers):
        pool = WorkerPool(workers)
        worker = await pool.acquire()
        pool.release(worker)

        with pytest.raises(WorkerPoolError):
            pool.release(worker)

    @pytest.mark.asyncio
    async def test_checkout_releases_on_error(self, workers):
        pool = WorkerPool(workers)

        with pytest.raises(RuntimeError):
            async with pool.checkout():
                raise RuntimeError("broken tab")

        assert pool.available == 2


class TestActualConcurrency:
    """Test get_actual_concurrency"""

    @pytest.mark.parametrize("cpus,expected", [(1, 1), (4, 2), (16, 8), (64, 8)])
    def test_default(self, cpus, expected):
        with patch("framerender.services.worker_pool.get_cpu_count", return_value=cpus):
            assert get_actual_concurrency(None) == expected

    @pytest.mark.parametrize("preference", [0, -3, 2.5, "4", True])
    def test_invalid_falls_back_to_default(self, preference):
        with patch("framerender.services.worker_pool.get_cpu_count", return_value=8):
            assert get_actual_concurrency(preference) == 4

    def test_clamped_to_cpu_count(self):
        with patch("framerender.services.worker_pool.get_cpu_count", return_value=4):
            assert get_actual_concurrency(3) == 3
            assert get_actual_concurrency(12) == 4
