"""
Query executor exceptions.

Every error the execution core raises derives from QueryExecutorException,
which carries the error code and HTTP status the API layer renders.
"""

from typing import Optional


class QueryExecutorException(Exception):
    """Base exception for the query executor."""

    def __init__(self, code: str, message: str, status_code: int = 500):
        self.code = code
        self.message = message
        self.status_code = status_code
        super().__init__(message)


class NotFoundError(QueryExecutorException):
    """Raised when a query or an async execution does not exist."""

    def __init__(self, code: str, message: str):
        super().__init__(code=code, message=message, status_code=404)


class QueryNotFoundError(NotFoundError):
    def __init__(self, query_id: int):
        self.query_id = query_id
        super().__init__("QUERY_NOT_FOUND", f"Query not found with id: {query_id}")


class ExecutionNotFoundError(NotFoundError):
    def __init__(self, execution_id: str):
        self.execution_id = execution_id
        super().__init__(
            "EXECUTION_NOT_FOUND", f"Async execution not found with id: {execution_id}"
        )


class QueryValidationError(QueryExecutorException):
    """Raised when a query breaks the read-only policy."""

    def __init__(self, reason: str, keyword: Optional[str] = None):
        self.reason = reason
        self.keyword = keyword
        super().__init__(code="VALIDATION_ERROR", message=reason, status_code=400)


class QueryExecutionError(QueryExecutorException):
    """Raised when the database engine fails to run a query."""

    def __init__(self, message: str):
        super().__init__(code="EXECUTION_ERROR", message=message, status_code=400)


class PoolSaturatedError(QueryExecutorException):
    """Raised when the background pool cannot take another job."""

    def __init__(self, max_workers: int, queue_capacity: int):
        super().__init__(
            code="POOL_SATURATED",
            message=(
                f"Async execution rejected, pool saturated "
                f"({max_workers} workers busy, {queue_capacity} jobs queued)"
            ),
            status_code=503,
        )
