from pathlib import Path

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from sqlalchemy.engine import make_url

DATA_DIR = Path(__file__).resolve().parent.parent / "data"


class Settings(BaseSettings):
    # Must be file-backed for SQLite, see check_database_url
    DATABASE_URL: str = "sqlite+aiosqlite:///./query_executor.db"
    SQL_ECHO: bool = False

    HOST: str = "0.0.0.0"
    PORT: int = 8000

    # Dataset the stored queries run against
    DATASET_CSV_PATH: Path = DATA_DIR / "titanic.csv"
    LOAD_DATASET_ON_STARTUP: bool = True
    RUN_MIGRATIONS_ON_STARTUP: bool = True

    # Background execution pool
    ASYNC_MIN_WORKERS: int = 5
    ASYNC_MAX_WORKERS: int = 10
    ASYNC_QUEUE_CAPACITY: int = 25

    LOG_LEVEL: str = "INFO"

    # This tells Pydantic to read from the .env file
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    @field_validator("DATABASE_URL")
    @classmethod
    def check_database_url(cls, value: str) -> str:
        # An in-memory SQLite database lives on one shared connection, and
        # query execution switches that connection to read-only while it runs
        url = make_url(value)
        if url.get_backend_name() == "sqlite":
            in_memory = (
                url.database in (None, "", ":memory:")
                or url.query.get("mode") == "memory"
            )
            if in_memory:
                raise ValueError("DATABASE_URL must point to a SQLite file, not an in-memory database")
        return value


# Create a single instance of the settings to use everywhere
settings = Settings()
