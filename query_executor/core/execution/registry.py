"""
ASYNC TASK REGISTRY - Lifecycle and status of background executions.

State machine per execution id:

    PENDING --(job starts)------> RUNNING
    RUNNING --(job succeeds)----> COMPLETED(result)
    RUNNING --(job raises)------> FAILED(error message)

Each transition stores a new frozen AsyncExecution, so a poller always sees a
complete snapshot. Everything runs on the event loop thread, which makes the
plain dict safe to read and write without locks; only the job that owns an
execution id ever writes to its slot.

Entries are never removed. The registry grows with every async request for
the lifetime of the process.
"""

import logging
import uuid
from dataclasses import dataclass
from enum import Enum
from typing import Awaitable, Callable, Dict, Optional

from query_executor.core.exceptions import ExecutionNotFoundError, PoolSaturatedError
from query_executor.core.execution.executor import TabularResult
from query_executor.core.execution.pool import WorkerPool

logger = logging.getLogger(__name__)


class ExecutionStatus(str, Enum):
    """Async execution status."""

    PENDING = "PENDING"
    RUNNING = "RUNNING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"

    @property
    def is_terminal(self) -> bool:
        return self in (ExecutionStatus.COMPLETED, ExecutionStatus.FAILED)


@dataclass(frozen=True)
class AsyncExecution:
    execution_id: str
    status: ExecutionStatus
    result: Optional[TabularResult] = None
    error_message: Optional[str] = None

    @classmethod
    def pending(cls, execution_id: str) -> "AsyncExecution":
        return cls(execution_id, ExecutionStatus.PENDING)

    @classmethod
    def running(cls, execution_id: str) -> "AsyncExecution":
        return cls(execution_id, ExecutionStatus.RUNNING)

    @classmethod
    def completed(cls, execution_id: str, result: TabularResult) -> "AsyncExecution":
        return cls(execution_id, ExecutionStatus.COMPLETED, result=result)

    @classmethod
    def failed(cls, execution_id: str, error_message: str) -> "AsyncExecution":
        return cls(execution_id, ExecutionStatus.FAILED, error_message=error_message)


class AsyncTaskRegistry:
    def __init__(self, pool: WorkerPool):
        self.pool = pool
        self._executions: Dict[str, AsyncExecution] = {}

    def __len__(self) -> int:
        return len(self._executions)

    def submit(self, job: Callable[[], Awaitable[TabularResult]]) -> str:
        """
        Register a new execution as PENDING and schedule job on the pool.

        Returns immediately with the execution id.

        Raises:
            PoolSaturatedError: If the pool rejects the job. Nothing is left
                registered in that case.
        """
        execution_id = str(uuid.uuid4())
        self._executions[execution_id] = AsyncExecution.pending(execution_id)

        try:
            self.pool.submit(lambda: self._run(execution_id, job))
        except PoolSaturatedError:
            del self._executions[execution_id]
            raise

        logger.info(f"Async execution {execution_id} submitted")
        return execution_id

    def get_status(self, execution_id: str) -> AsyncExecution:
        status = self._executions.get(execution_id)
        if status is None:
            raise ExecutionNotFoundError(execution_id)
        return status

    async def _run(self, execution_id: str, job: Callable[[], Awaitable[TabularResult]]) -> None:
        self._executions[execution_id] = AsyncExecution.running(execution_id)
        try:
            result = await job()
        except Exception as error:
            logger.exception(f"Async execution {execution_id} failed")
            self._executions[execution_id] = AsyncExecution.failed(execution_id, str(error))
            return
        except BaseException:
            # Worker shut down mid-job
            self._executions[execution_id] = AsyncExecution.failed(
                execution_id, "Execution was cancelled"
            )
            raise

        self._executions[execution_id] = AsyncExecution.completed(execution_id, result)
        logger.info(f"Async execution {execution_id} completed successfully")
