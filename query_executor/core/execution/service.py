"""
EXECUTION SERVICE - The one entry point the API layer talks to.

    execute_sync:  store -> validator -> cache(executor) -> rows
    execute_async: registry.submit(execute_sync) -> execution id
    get_async_status: registry lookup

The cache and the registry are passed in rather than created here, so every
test can build an isolated service.
"""

import logging
from functools import lru_cache, partial
from typing import Protocol

from query_executor.core.config import settings
from query_executor.core.database import AsyncSessionLocal, engine
from query_executor.core.execution.cache import ResultCache
from query_executor.core.execution.executor import QueryExecutor, TabularResult
from query_executor.core.execution.pool import WorkerPool
from query_executor.core.execution.registry import AsyncExecution, AsyncTaskRegistry
from query_executor.core.execution.store import SqlQueryStore
from query_executor.core.execution.validator import validate_read_only

logger = logging.getLogger(__name__)


class QueryStore(Protocol):
    async def get_query_text(self, query_id: int) -> str: ...


class Executor(Protocol):
    async def execute(self, sql: str) -> TabularResult: ...


class QueryExecutionService:
    def __init__(
        self,
        store: QueryStore,
        executor: Executor,
        cache: ResultCache,
        registry: AsyncTaskRegistry,
    ):
        self.store = store
        self.executor = executor
        self.cache = cache
        self.registry = registry

    async def execute_sync(self, query_id: int) -> TabularResult:
        """
        Execute a stored query and return its rows.

        Results are cached per query id, and concurrent first calls for the
        same id share a single execution.

        Raises:
            QueryNotFoundError: Unknown query id
            QueryValidationError: Query is not read-only
            QueryExecutionError: The database rejected the query
        """
        sql = await self.store.get_query_text(query_id)
        logger.info(f"Executing query ID {query_id}: {sql}")

        validate_read_only(sql)

        return await self.cache.get_or_compute(query_id, partial(self.executor.execute, sql))

    def execute_async(self, query_id: int) -> str:
        """
        Start executing a stored query in the background.

        Any error the execution raises (including an unknown query id) ends up
        in the FAILED status of the returned execution id.

        Raises:
            PoolSaturatedError: The worker pool cannot accept another job
        """
        execution_id = self.registry.submit(partial(self.execute_sync, query_id))
        logger.info(f"Query {query_id} scheduled as async execution {execution_id}")
        return execution_id

    def get_async_status(self, execution_id: str) -> AsyncExecution:
        """Raises ExecutionNotFoundError for ids this service never issued."""
        return self.registry.get_status(execution_id)

    async def shutdown(self) -> None:
        await self.registry.pool.shutdown()


@lru_cache
def get_execution_service() -> QueryExecutionService:
    """Process-wide service built from settings. Overridden in tests."""
    pool = WorkerPool(
        min_workers=settings.ASYNC_MIN_WORKERS,
        max_workers=settings.ASYNC_MAX_WORKERS,
        queue_capacity=settings.ASYNC_QUEUE_CAPACITY,
    )
    return QueryExecutionService(
        store=SqlQueryStore(AsyncSessionLocal),
        executor=QueryExecutor(engine),
        cache=ResultCache(),
        registry=AsyncTaskRegistry(pool),
    )
