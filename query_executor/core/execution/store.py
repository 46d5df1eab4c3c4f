from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from query_executor.core import models
from query_executor.core.exceptions import QueryNotFoundError


class SqlQueryStore:
    """
    Read side of the ``stored_queries`` table, as seen by the execution core.

    Every call opens its own session: background executions outlive the
    request that started them and cannot borrow its session.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self.session_factory = session_factory

    async def get_query_text(self, query_id: int) -> str:
        """Return the text of a stored query, or raise QueryNotFoundError."""
        async with self.session_factory() as session:
            stored = await session.get(models.StoredQuery, query_id)
        if stored is None:
            raise QueryNotFoundError(query_id)
        return stored.query
