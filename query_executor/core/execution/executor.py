"""
EXECUTOR - Run a validated query against the dataset.

Data Flow:
    sql -> read-only connection -> cursor -> tuple of row tuples

The connection is put into read-only mode before the statement runs, so a
mutating statement that slipped past the validator is still refused by the
database itself (as far as the engine enforces it).
"""

import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Tuple

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncConnection, AsyncEngine

from query_executor.core.exceptions import QueryExecutionError

logger = logging.getLogger(__name__)

Row = Tuple[Any, ...]
TabularResult = Tuple[Row, ...]


@asynccontextmanager
async def read_only_connection(engine: AsyncEngine) -> AsyncIterator[AsyncConnection]:
    """
    Open a connection that refuses writes.

    SQLite: ``PRAGMA query_only`` is switched on for the duration and off again
    before the connection goes back to the pool, since the pool is shared with
    the dataset loader and the query store.
    Other engines: the transaction is declared READ ONLY.

    The connection is rolled back when the block exits.
    """
    async with engine.connect() as conn:
        if conn.dialect.name == "sqlite":
            await conn.exec_driver_sql("PRAGMA query_only = ON")
            try:
                yield conn
            finally:
                await conn.exec_driver_sql("PRAGMA query_only = OFF")
        else:
            await conn.exec_driver_sql("SET TRANSACTION READ ONLY")
            yield conn


class QueryExecutor:
    """Runs raw SELECT statements and materializes their rows."""

    def __init__(self, engine: AsyncEngine):
        self.engine = engine

    async def execute(self, sql: str) -> TabularResult:
        """
        Execute a query and return every row.

        The statement is sent as-is (no bind parameter parsing), and the whole
        cursor is read before returning. There is no row limit or timeout.

        Args:
            sql: Query text that already passed validate_read_only()

        Returns:
            Tuple of rows, each row a tuple of column values in select order

        Raises:
            QueryExecutionError: On any database error. Rows are never
                partially returned.
        """
        logger.info(f"Executing query: {sql}")

        try:
            async with read_only_connection(self.engine) as conn:
                result = await conn.exec_driver_sql(sql)
                if not result.returns_rows:
                    rows: TabularResult = ()
                else:
                    rows = tuple(tuple(row) for row in result.fetchall())
        except SQLAlchemyError as error:
            message = str(getattr(error, "orig", None) or error)
            logger.error(f"Error executing query {sql!r}: {message}")
            raise QueryExecutionError(f"Failed to execute query: {message}") from error

        logger.info(f"Query executed successfully, returned {len(rows)} rows")
        return rows
