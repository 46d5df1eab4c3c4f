import asyncio
import logging
from typing import Awaitable, Callable, Dict, Hashable

from query_executor.core.execution.executor import TabularResult

logger = logging.getLogger(__name__)


class ResultCache:
    """
    Memoizes query results by query id, with at most one computation in
    flight per id.

    Entries are never evicted and are keyed by id rather than query text,
    which is only correct because stored queries are immutable and ids are
    never reused.
    """

    def __init__(self):
        self._results: Dict[Hashable, TabularResult] = {}
        self._in_flight: Dict[Hashable, asyncio.Future] = {}

    def __contains__(self, key: Hashable) -> bool:
        return key in self._results

    def __len__(self) -> int:
        return len(self._results)

    def clear(self) -> None:
        self._results.clear()

    async def get_or_compute(
        self, key: Hashable, compute: Callable[[], Awaitable[TabularResult]]
    ) -> TabularResult:
        """
        Return the cached result for key, computing it on a miss.

        Concurrent callers for the same uncached key share one call to
        compute: the first caller runs it, the others wait on its outcome,
        including its exception. Failed computations are not cached.
        """
        while True:
            if key in self._results:
                logger.debug(f"Cache hit for query {key}")
                return self._results[key]

            pending = self._in_flight.get(key)
            if pending is None:
                break

            logger.debug(f"Waiting on in-flight computation for query {key}")
            try:
                # shield: a cancelled waiter must not cancel the shared computation
                return await asyncio.shield(pending)
            except asyncio.CancelledError:
                if not pending.cancelled():
                    raise
                # The computing caller was cancelled, take over

        future = asyncio.get_running_loop().create_future()
        self._in_flight[key] = future
        try:
            result = await compute()
        except asyncio.CancelledError:
            future.cancel()
            raise
        except Exception as error:
            future.set_exception(error)
            # Mark as retrieved so an unobserved failure does not warn
            future.exception()
            raise
        else:
            self._results[key] = result
            future.set_result(result)
            logger.debug(f"Cached result for query {key}")
            return result
        finally:
            del self._in_flight[key]
