from fastapi import APIRouter
from query_executor.api.endpoints import queries

api_router = APIRouter()

# Combine all sub-routers into one
api_router.include_router(queries.router)
