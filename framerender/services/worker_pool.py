"""
Pool of reusable render workers
"""

import asyncio
import os
import threading
from collections import deque
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Deque, Dict, Generic, List, Optional, TypeVar

from ..core.exceptions import WorkerPoolError
from ..core.logging_manager import get_logging_manager

T = TypeVar("T")

MAX_DEFAULT_CONCURRENCY = 8


def get_cpu_count() -> int:
    return os.cpu_count() or 1


def get_actual_concurrency(user_preference: Optional[Any] = None) -> int:
    """
    Resolve how many workers to open.

    Unspecified or invalid values fall back to half the CPUs (between 1 and 8);
    values above the CPU count are clamped to it.
    """
    max_cpus = get_cpu_count()
    default = min(MAX_DEFAULT_CONCURRENCY, max(1, round(max_cpus / 2)))

    if user_preference is None:
        return default

    if not isinstance(user_preference, int) or isinstance(user_preference, bool) or user_preference < 1:
        get_logging_manager().get_logger("worker_pool").warning(
            f"Ignoring invalid concurrency {user_preference!r}, using {default}"
        )
        return default

    return min(user_preference, max_cpus)


class WorkerPool(Generic[T]):
    """
    Hands out workers one caller at a time.

    When no worker is free, callers wait in a FIFO queue and a released
    worker goes straight to the longest waiting caller. Broken workers are
    not replaced; callers must release them like any other.
    """

    def __init__(self, workers: List[T]):
        if not workers:
            raise WorkerPoolError("A worker pool needs at least one worker")
        self._workers = list(workers)
        self._free: Deque[T] = deque(self._workers)
        self._busy: Dict[int, T] = {}
        self._waiters: Deque[asyncio.Future] = deque()
        self._lock = threading.Lock()
        self.logger = get_logging_manager().get_logger("worker_pool")

    @property
    def workers(self) -> List[T]:
        return list(self._workers)

    @property
    def size(self) -> int:
        return len(self._workers)

    @property
    def available(self) -> int:
        with self._lock:
            return len(self._free)

    @property
    def waiting(self) -> int:
        with self._lock:
            return sum(1 for waiter in self._waiters if not waiter.done())

    def _owns(self, worker: T) -> bool:
        return any(candidate is worker for candidate in self._workers)

    async def acquire(self) -> T:
        """Get a free worker, waiting for one to be released if necessary"""
        with self._lock:
            if self._free:
                worker = self._free.popleft()
                self._busy[id(worker)] = worker
                return worker

            waiter = asyncio.get_running_loop().create_future()
            self._waiters.append(waiter)

        try:
            return await waiter
        except asyncio.CancelledError:
            with self._lock:
                handed_off = waiter.done() and not waiter.cancelled()
                if not handed_off:
                    try:
                        self._waiters.remove(waiter)
                    except ValueError:
                        pass
            if handed_off:
                # Worker arrived while we were being cancelled
                self.release(waiter.result())
            raise

    def release(self, worker: T) -> None:
        """Give a worker back, handing it to the longest waiting caller if any"""
        with self._lock:
            if not self._owns(worker):
                raise WorkerPoolError("Cannot release a worker that does not belong to this pool")
            if id(worker) not in self._busy:
                raise WorkerPoolError("Cannot release a worker that is not checked out")

            while self._waiters:
                waiter = self._waiters.popleft()
                if not waiter.done():
                    waiter.set_result(worker)
                    return

            del self._busy[id(worker)]
            self._free.append(worker)

    @asynccontextmanager
    async def checkout(self) -> AsyncIterator[T]:
        """Acquire a worker for the duration of the block"""
        worker = await self.acquire()
        try:
            yield worker
        finally:
            self.release(worker)
