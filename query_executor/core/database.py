from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession
from sqlalchemy.orm import DeclarativeBase
from query_executor.core.config import settings

engine = create_async_engine(settings.DATABASE_URL, echo=settings.SQL_ECHO)

# Sessions outlive their commits so returned ORM objects stay readable
AsyncSessionLocal = async_sessionmaker(
    bind=engine, class_=AsyncSession, expire_on_commit=False
)


# Request-scoped session for the endpoints
async def get_db():
    async with AsyncSessionLocal() as session:
        yield session


# All the models are "stored" in the Base class will be processed by the Engine
class Base(DeclarativeBase):
    pass
