from datetime import datetime
from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from query_executor.core.execution.registry import ExecutionStatus


# =========================
# STORED QUERY
# =========================
class QueryCreate(BaseModel):
    # Blank text is rejected after stripping
    query: str = Field(min_length=1)

    model_config = ConfigDict(str_strip_whitespace=True)


class QueryCreateResponse(BaseModel):
    id: int

    model_config = ConfigDict(from_attributes=True)


class QueryResponse(BaseModel):
    id: int
    query: str
    created_at: Optional[datetime] = None

    model_config = ConfigDict(
        from_attributes=True, alias_generator=to_camel, populate_by_name=True
    )


# =========================
# EXECUTION
# =========================
# Rows of column values, no column names
QueryResult = List[List[Any]]


class AsyncExecutionAccepted(BaseModel):
    execution_id: str
    status_url: str

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class AsyncExecutionResponse(BaseModel):
    execution_id: str
    status: ExecutionStatus
    result: Optional[QueryResult] = None
    error_message: Optional[str] = None

    model_config = ConfigDict(
        from_attributes=True, alias_generator=to_camel, populate_by_name=True
    )


class ErrorResponse(BaseModel):
    detail: str
    code: str
