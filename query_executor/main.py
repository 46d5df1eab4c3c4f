import asyncio
import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
import alembic.config
import alembic.command
from query_executor.core.config import settings
from query_executor.core.database import engine
from query_executor.core.dataset import load_dataset
from query_executor.core.exceptions import QueryExecutorException
from query_executor.core.execution.service import get_execution_service
from query_executor.api.router import api_router

logging.basicConfig(level=settings.LOG_LEVEL)
logger = logging.getLogger(__name__)


def run_migrations():
    """Sync function to run migrations"""
    alembic_cfg = alembic.config.Config("alembic.ini")
    # Keep the logging set up by the app
    alembic_cfg.attributes["configure_logger"] = False
    alembic.command.upgrade(alembic_cfg, "head")


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Apply any pending migrations automatically when the app starts
    if settings.RUN_MIGRATIONS_ON_STARTUP:
        try:
            await asyncio.to_thread(run_migrations)
            logger.info("Migrations applied successfully (or already up-to-date)")
        except Exception:
            logger.exception("Migration error during startup")

    if settings.LOAD_DATASET_ON_STARTUP:
        try:
            await load_dataset(engine, settings.DATASET_CSV_PATH)
            logger.info("Titanic dataset loaded successfully")
        except Exception:
            logger.exception("Failed to load Titanic dataset")

    yield

    # Let running async executions finish, then close all the connections
    await get_execution_service().shutdown()
    await engine.dispose()


app = FastAPI(title="Query Executor API", lifespan=lifespan)

# Include the master router containing all our endpoints
app.include_router(api_router)


@app.exception_handler(QueryExecutorException)
async def query_executor_exception_handler(request: Request, exc: QueryExecutorException):
    """Render core errors as {"detail", "code"} with their HTTP status."""
    logger.warning(f"{request.method} {request.url.path} -> {exc.code}: {exc.message}")
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.message, "code": exc.code},
    )


@app.get("/")
async def root():
    return {"message": "Welcome to the Query Executor API"}


def run():
    """Console entry point: serve the app with uvicorn."""
    import uvicorn

    uvicorn.run(
        "query_executor.main:app",
        host=settings.HOST,
        port=settings.PORT,
    )


if __name__ == "__main__":
    run()
