import logging
from typing import Annotated, List

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from query_executor.core import models, schemas
from query_executor.core.database import get_db
from query_executor.core.execution.service import (
    QueryExecutionService,
    get_execution_service,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/queries", tags=["Queries"])

db_dep = Annotated[AsyncSession, Depends(get_db)]
service_dep = Annotated[QueryExecutionService, Depends(get_execution_service)]
query_id_param = Annotated[int, Query(alias="query", description="Stored query id")]

# Error bodies rendered by the app exception handler
execution_errors = {
    400: {"model": schemas.ErrorResponse, "description": "Query rejected or failed"},
    404: {"model": schemas.ErrorResponse, "description": "Query not found"},
}


# Register a query
@router.post(
    "",
    response_model=schemas.QueryCreateResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_query(payload: schemas.QueryCreate, db: db_dep):
    logger.info(f"POST /queries - Creating new query: {payload.query}")
    try:
        stored_query = models.StoredQuery(query=payload.query)
        db.add(stored_query)
        await db.commit()
        await db.refresh(stored_query)  # Refresh to get a generated ID by DB
    except Exception as error:
        await db.rollback()
        logger.error(f"Failed to store query: {error}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to store query",
        )

    logger.info(f"Query saved with ID: {stored_query.id}")
    return stored_query


# List registered queries
@router.get(
    "",
    response_model=List[schemas.QueryResponse],
    status_code=status.HTTP_200_OK,
)
async def list_queries(db: db_dep):
    logger.info("GET /queries - Fetching all queries")
    result = await db.execute(select(models.StoredQuery).order_by(models.StoredQuery.id))
    return result.scalars().all()


# Execute and wait for the rows
@router.get(
    "/execute",
    response_model=schemas.QueryResult,
    status_code=status.HTTP_200_OK,
    responses=execution_errors,
)
async def execute_query(query_id: query_id_param, service: service_dep):
    """
    Run a stored query and return its rows (no column names).
    Results are cached per query id.
    """
    logger.info(f"GET /queries/execute?query={query_id} - Executing query")
    return await service.execute_sync(query_id)


# Execute in the background
@router.post(
    "/execute/async",
    response_model=schemas.AsyncExecutionAccepted,
    status_code=status.HTTP_202_ACCEPTED,
    responses={503: {"model": schemas.ErrorResponse, "description": "Worker pool saturated"}},
)
async def execute_query_async(query_id: query_id_param, service: service_dep):
    """
    Schedule a stored query and return an execution id to poll.
    Answers 503 when the background pool is saturated.
    """
    logger.info(f"POST /queries/execute/async?query={query_id} - Starting async execution")
    execution_id = service.execute_async(query_id)
    return schemas.AsyncExecutionAccepted(
        execution_id=execution_id,
        status_url=f"/queries/execute/async/{execution_id}",
    )


# Poll an async execution
@router.get(
    "/execute/async/{execution_id}",
    response_model=schemas.AsyncExecutionResponse,
    status_code=status.HTTP_200_OK,
    responses={404: {"model": schemas.ErrorResponse, "description": "Execution not found"}},
)
async def get_async_status(execution_id: str, service: service_dep):
    logger.info(f"GET /queries/execute/async/{execution_id} - Fetching async query status")
    return service.get_async_status(execution_id)
