import asyncio
import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker

from query_executor.main import app
from query_executor.core import models
from query_executor.core.config import settings
from query_executor.core.database import Base, get_db
from query_executor.core.dataset import load_dataset
from query_executor.core.execution.cache import ResultCache
from query_executor.core.execution.executor import QueryExecutor
from query_executor.core.execution.pool import WorkerPool
from query_executor.core.execution.registry import AsyncTaskRegistry
from query_executor.core.execution.service import (
    QueryExecutionService,
    get_execution_service,
)
from query_executor.core.execution.store import SqlQueryStore


class CountingExecutor:
    """Executor double that counts real executions and can be slowed down."""

    def __init__(self, inner, delay: float = 0.0, gate: asyncio.Event = None):
        self.inner = inner
        self.delay = delay
        self.gate = gate
        self.calls = 0

    async def execute(self, sql: str):
        self.calls += 1
        if self.gate is not None:
            await self.gate.wait()
        if self.delay:
            await asyncio.sleep(self.delay)
        return await self.inner.execute(sql)


# Fresh sqlite file per test, with tables created and the dataset loaded
@pytest_asyncio.fixture(scope="function")
async def test_engine(tmp_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}", echo=False)
    async with engine.begin() as conn:
        # Create all tables
        await conn.run_sync(Base.metadata.create_all)
    await load_dataset(engine, settings.DATASET_CSV_PATH)
    yield engine
    await engine.dispose()


@pytest.fixture(scope="function")
def session_factory(test_engine):
    return async_sessionmaker(test_engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture(scope="function")
async def db_session(session_factory):
    async with session_factory() as session:
        yield session


# Register a query directly in the store, return its id
@pytest.fixture(scope="function")
def stored_query(session_factory):
    async def _create(text: str) -> int:
        async with session_factory() as session:
            query = models.StoredQuery(query=text)
            session.add(query)
            await session.commit()
            await session.refresh(query)
            return query.id

    return _create


@pytest.fixture(scope="function")
def counting_executor(test_engine):
    return CountingExecutor(QueryExecutor(test_engine))


@pytest_asyncio.fixture(scope="function")
async def make_service(session_factory):
    """Build an isolated service; every one built is drained at teardown."""
    services = []

    def _make(executor, min_workers=2, max_workers=4, queue_capacity=10):
        pool = WorkerPool(min_workers, max_workers, queue_capacity)
        service = QueryExecutionService(
            store=SqlQueryStore(session_factory),
            executor=executor,
            cache=ResultCache(),
            registry=AsyncTaskRegistry(pool),
        )
        services.append(service)
        return service

    yield _make

    for service in services:
        gate = getattr(service.executor, "gate", None)
        if gate is not None:
            gate.set()
        await service.shutdown()


@pytest.fixture(scope="function")
def execution_service(make_service, counting_executor):
    return make_service(counting_executor)


# Poll an async execution until it leaves PENDING/RUNNING
@pytest.fixture(scope="function")
def wait_for_terminal():
    async def _wait(get_status, execution_id, timeout: float = 5.0):
        async def _poll():
            while True:
                status = get_status(execution_id)
                if status.status.is_terminal:
                    return status
                await asyncio.sleep(0.01)

        return await asyncio.wait_for(_poll(), timeout)

    return _wait


# Client
@pytest_asyncio.fixture(scope="function")
async def client(db_session: AsyncSession, execution_service):
    async def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_execution_service] = lambda: execution_service

    async with AsyncClient(
        transport=ASGITransport(app=app), base_url="http://test"
    ) as ac:
        yield ac

    app.dependency_overrides.clear()
