"""
DATASET MODULE - Load the Titanic passenger list that queries run against

Data Flow:
    titanic.csv -> read_passenger_csv() -> to_passenger_row() -> passengers table

The table is only filled when it is empty, so restarting the service against
the same database does not duplicate rows.
"""

import csv
import logging
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any, Dict, List, Optional

from sqlalchemy import func, insert, select
from sqlalchemy.ext.asyncio import AsyncEngine

from query_executor.core import models

logger = logging.getLogger(__name__)

CSV_COLUMNS = [
    "PassengerId",
    "Survived",
    "Pclass",
    "Name",
    "Sex",
    "Age",
    "SibSp",
    "Parch",
    "Ticket",
    "Fare",
    "Cabin",
    "Embarked",
]


def parse_integer(value: str) -> int:
    """Unparseable integers become 0."""
    try:
        return int(value.strip())
    except (ValueError, AttributeError):
        return 0


def parse_decimal(value: Optional[str]) -> Optional[Decimal]:
    """Empty cells become NULL."""
    if value is None or not value.strip():
        return None
    try:
        return Decimal(value.strip())
    except InvalidOperation:
        return None


def parse_text(value: Optional[str]) -> Optional[str]:
    if value is None or value == "":
        return None
    return value


def read_passenger_csv(csv_path: Path) -> List[List[str]]:
    """
    Read the dataset CSV, skipping the header row and blank lines.

    Args:
        csv_path: Path to a CSV with the standard Titanic header

    Returns:
        List of raw records (list of cell strings)
    """
    with open(csv_path, newline="", encoding="utf-8") as csv_file:
        reader = csv.reader(csv_file)
        next(reader, None)
        records = [record for record in reader if any(cell.strip() for cell in record)]

    logger.info(f"Read {len(records)} passenger records from {csv_path}")
    return records


def to_passenger_row(record: List[str]) -> Dict[str, Any]:
    """
    Convert one CSV record to column values for the passengers table.

    Cabin and Embarked may be missing entirely on short rows.
    """
    cells = record + [""] * (len(CSV_COLUMNS) - len(record))
    return {
        "PassengerId": parse_integer(cells[0]),
        "Survived": parse_integer(cells[1]),
        "Pclass": parse_integer(cells[2]),
        "Name": cells[3],
        "Sex": cells[4],
        "Age": parse_decimal(cells[5]),
        "SibSp": parse_integer(cells[6]),
        "Parch": parse_integer(cells[7]),
        "Ticket": cells[8],
        "Fare": parse_decimal(cells[9]),
        "Cabin": parse_text(cells[10]),
        "Embarked": parse_text(cells[11]),
    }


async def load_dataset(engine: AsyncEngine, csv_path: Path) -> int:
    """
    Create the passengers table if needed and fill it from CSV.

    Args:
        engine: Engine of the database stored queries run against
        csv_path: Dataset CSV

    Returns:
        Number of rows inserted (0 when the table already had data)
    """
    async with engine.begin() as conn:
        await conn.run_sync(models.Passenger.__table__.create, checkfirst=True)

        existing = await conn.scalar(select(func.count()).select_from(models.Passenger))
        if existing:
            logger.info(f"Passengers table already holds {existing} rows, skipping load")
            return 0

        rows = [to_passenger_row(record) for record in read_passenger_csv(csv_path)]
        if rows:
            await conn.execute(insert(models.Passenger), rows)

    logger.info(f"Loaded {len(rows)} passenger records")
    return len(rows)
