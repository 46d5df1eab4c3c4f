from sqlalchemy import (
    Column,
    Integer,
    String,
    Numeric,
    TIMESTAMP,
    Text,
)
from sqlalchemy.sql import func

from query_executor.core.database import Base


# =========================
# Stored query
# =========================
class StoredQuery(Base):
    """
    A registered SQL query. The text never changes once stored.
    """

    __tablename__ = "stored_queries"

    id = Column(Integer, primary_key=True, autoincrement=True)

    query = Column(Text, nullable=False)

    created_at = Column(
        TIMESTAMP(timezone=True),
        nullable=False,
        server_default=func.now(),
    )


# =========================
# Passenger (READ-ONLY DATASET)
# =========================
class Passenger(Base):
    """
    One row of the Titanic passenger list.
    Filled once from CSV at startup, then only ever read by stored queries.
    Column names follow the CSV header so queries can use them as-is.
    """

    __tablename__ = "passengers"

    PassengerId = Column(Integer, primary_key=True, autoincrement=False)

    Survived = Column(Integer)
    Pclass = Column(Integer)
    Name = Column(String(255))
    Sex = Column(String(10))
    Age = Column(Numeric(5, 2), nullable=True)
    SibSp = Column(Integer)
    Parch = Column(Integer)
    Ticket = Column(String(50))
    Fare = Column(Numeric(10, 4), nullable=True)
    Cabin = Column(String(50), nullable=True)
    Embarked = Column(String(10), nullable=True)
