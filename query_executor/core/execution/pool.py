import asyncio
import logging
from typing import Awaitable, Callable, List, Optional, Set

from query_executor.core.exceptions import PoolSaturatedError

logger = logging.getLogger(__name__)

Job = Callable[[], Awaitable[None]]


class WorkerPool:
    """
    Bounded pool of background workers.

    ``min_workers`` core workers take jobs from a queue. A job only counts as
    backlog once every live worker already has one, and at most
    ``queue_capacity`` jobs may wait. When the backlog is full an overflow
    worker is started for the new job, up to ``max_workers`` workers in total;
    it drains the queue and exits once the queue is empty. Past that,
    submissions are rejected instead of queued, so at most
    ``max_workers + queue_capacity`` jobs are ever accepted and unfinished.

    Workers are asyncio tasks, started lazily on the first submission so the
    pool binds to the event loop that actually uses it.
    """

    def __init__(self, min_workers: int = 5, max_workers: int = 10, queue_capacity: int = 25):
        if min_workers < 1:
            raise ValueError("min_workers must be at least 1")
        if max_workers < min_workers:
            raise ValueError("max_workers must be >= min_workers")
        if queue_capacity < 1:
            raise ValueError("queue_capacity must be at least 1")

        self.min_workers = min_workers
        self.max_workers = max_workers
        self.queue_capacity = queue_capacity

        self._queue: Optional[asyncio.Queue] = None
        self._core_workers: List[asyncio.Task] = []
        self._overflow_workers: Set[asyncio.Task] = set()
        # Accepted jobs that have not finished yet (running or waiting)
        self._in_flight = 0

    @property
    def size(self) -> int:
        """Number of live workers (core + overflow)."""
        return len(self._core_workers) + len(self._overflow_workers)

    @property
    def in_flight(self) -> int:
        """Number of accepted jobs that have not finished."""
        return self._in_flight

    @property
    def backlog(self) -> int:
        """Number of jobs waiting in the queue."""
        return self._queue.qsize() if self._queue is not None else 0

    def _ensure_started(self) -> asyncio.Queue:
        if self._queue is None:
            # Capacity is enforced in submit() against in-flight jobs, since a
            # job handed to an idle worker sits in the queue until it runs
            self._queue = asyncio.Queue()
            self._core_workers = [
                asyncio.create_task(self._core_worker(), name=f"query-worker-{i}")
                for i in range(self.min_workers)
            ]
            logger.info(
                f"Started worker pool: {self.min_workers}-{self.max_workers} workers, "
                f"queue capacity {self.queue_capacity}"
            )
        return self._queue

    def submit(self, job: Job) -> None:
        """
        Schedule a job without waiting for it.

        Raises:
            PoolSaturatedError: If every worker is busy, the backlog is full
                and no more workers may be started.
        """
        queue = self._ensure_started()
        waiting = self._in_flight - self.size

        if waiting < self.queue_capacity:
            queue.put_nowait(job)
            self._in_flight += 1
            return

        if self.size >= self.max_workers:
            logger.warning("Worker pool saturated, rejecting job")
            raise PoolSaturatedError(self.max_workers, self.queue_capacity)

        task = asyncio.create_task(self._overflow_worker(job))
        self._overflow_workers.add(task)
        task.add_done_callback(self._overflow_workers.discard)
        self._in_flight += 1
        logger.info(f"Backlog full, started overflow worker ({self.size}/{self.max_workers})")

    async def _run(self, job: Job) -> None:
        try:
            await job()
        except Exception:
            # One failing job must not take its worker down
            logger.exception("Background job raised an unhandled error")
        finally:
            self._in_flight -= 1

    async def _core_worker(self) -> None:
        queue = self._queue
        while True:
            job = await queue.get()
            try:
                await self._run(job)
            finally:
                queue.task_done()

    async def _overflow_worker(self, first_job: Job) -> None:
        await self._run(first_job)
        queue = self._queue
        while True:
            try:
                job = queue.get_nowait()
            except asyncio.QueueEmpty:
                return
            try:
                await self._run(job)
            finally:
                queue.task_done()

    async def shutdown(self) -> None:
        """Wait for queued and running jobs, then stop the workers."""
        if self._queue is None:
            return

        await self._queue.join()
        if self._overflow_workers:
            await asyncio.gather(*self._overflow_workers, return_exceptions=True)

        for task in self._core_workers:
            task.cancel()
        await asyncio.gather(*self._core_workers, return_exceptions=True)

        self._core_workers = []
        self._queue = None
        logger.info("Worker pool stopped")
