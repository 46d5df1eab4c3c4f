import asyncio
import pytest

from query_executor.core.exceptions import PoolSaturatedError
from query_executor.core.execution.pool import WorkerPool


@pytest.mark.parametrize(
    "kwargs",
    [
        {"min_workers": 0},
        {"min_workers": 3, "max_workers": 2},
        {"queue_capacity": 0},
    ],
)
def test_invalid_pool_sizes(kwargs):
    with pytest.raises(ValueError):
        WorkerPool(**kwargs)


@pytest.mark.asyncio
async def test_rejects_when_queue_and_workers_are_exhausted():
    """One core worker, two queued jobs, one overflow worker, then reject"""
    pool = WorkerPool(min_workers=1, max_workers=2, queue_capacity=2)
    gate = asyncio.Event()
    finished = []

    def blocked_job(name):
        async def _job():
            await gate.wait()
            finished.append(name)

        return _job

    pool.submit(blocked_job("core"))
    pool.submit(blocked_job("queued-1"))
    pool.submit(blocked_job("queued-2"))
    assert pool.size == 1

    pool.submit(blocked_job("overflow"))
    assert pool.size == 2

    with pytest.raises(PoolSaturatedError) as exc_info:
        pool.submit(blocked_job("rejected"))

    assert exc_info.value.status_code == 503
    assert pool.in_flight == 4

    gate.set()
    await pool.shutdown()

    assert sorted(finished) == ["core", "overflow", "queued-1", "queued-2"]
    assert pool.in_flight == 0


@pytest.mark.asyncio
async def test_idle_worker_counts_towards_capacity():
    """A job handed to an idle worker does not use up the backlog"""
    pool = WorkerPool(min_workers=1, max_workers=1, queue_capacity=1)
    gate = asyncio.Event()

    async def job():
        await gate.wait()

    # Worker has not picked the first job up yet
    pool.submit(job)
    pool.submit(job)

    with pytest.raises(PoolSaturatedError):
        pool.submit(job)

    gate.set()
    await asyncio.wait_for(pool.shutdown(), 5)


@pytest.mark.asyncio
async def test_default_pool_accepts_workers_plus_backlog():
    pool = WorkerPool()
    gate = asyncio.Event()

    async def job():
        await gate.wait()

    for _ in range(35):
        pool.submit(job)

    with pytest.raises(PoolSaturatedError):
        pool.submit(job)
    assert pool.size == 10

    gate.set()
    await asyncio.wait_for(pool.shutdown(), 5)


@pytest.mark.asyncio
async def test_overflow_worker_exits_when_queue_drains():
    pool = WorkerPool(min_workers=1, max_workers=3, queue_capacity=1)
    gate = asyncio.Event()

    async def job():
        await gate.wait()

    pool.submit(job)
    pool.submit(job)
    assert pool.size == 1
    pool.submit(job)
    assert pool.size == 2

    gate.set()
    await asyncio.wait_for(pool.shutdown(), 5)

    assert pool.size == 0


@pytest.mark.asyncio
async def test_failing_job_does_not_kill_the_worker():
    pool = WorkerPool(min_workers=1, max_workers=1, queue_capacity=5)
    ran = []

    async def bad_job():
        raise RuntimeError("boom")

    async def good_job():
        ran.append("good")

    pool.submit(bad_job)
    pool.submit(good_job)
    await asyncio.wait_for(pool.shutdown(), 5)

    assert ran == ["good"]


@pytest.mark.asyncio
async def test_shutdown_waits_for_all_jobs():
    pool = WorkerPool(min_workers=2, max_workers=2, queue_capacity=10)
    done = []

    def job(i):
        async def _job():
            await asyncio.sleep(0.01)
            done.append(i)

        return _job

    for i in range(8):
        pool.submit(job(i))
    assert pool.backlog == 8

    await asyncio.wait_for(pool.shutdown(), 5)

    assert sorted(done) == list(range(8))
    assert pool.backlog == 0


@pytest.mark.asyncio
async def test_shutdown_of_unused_pool_is_a_no_op():
    pool = WorkerPool()
    await pool.shutdown()
    assert pool.size == 0
