"""Create stored_queries and passengers tables.

Revision ID: 0001
Revises:
Create Date: 2026-10-19 00:00:00.000000
"""

from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op

revision: str = "0001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "stored_queries",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("query", sa.Text(), nullable=False),
        sa.Column(
            "created_at",
            sa.TIMESTAMP(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
    )
    op.create_table(
        "passengers",
        sa.Column("PassengerId", sa.Integer(), primary_key=True, autoincrement=False),
        sa.Column("Survived", sa.Integer()),
        sa.Column("Pclass", sa.Integer()),
        sa.Column("Name", sa.String(255)),
        sa.Column("Sex", sa.String(10)),
        sa.Column("Age", sa.Numeric(5, 2), nullable=True),
        sa.Column("SibSp", sa.Integer()),
        sa.Column("Parch", sa.Integer()),
        sa.Column("Ticket", sa.String(50)),
        sa.Column("Fare", sa.Numeric(10, 4), nullable=True),
        sa.Column("Cabin", sa.String(50), nullable=True),
        sa.Column("Embarked", sa.String(10), nullable=True),
    )


def downgrade() -> None:
    op.drop_table("passengers")
    op.drop_table("stored_queries")
