"""create counter event log and aggregate tables

Revision ID: 20261017_counter_initial
Revises:
Create Date: 2026-10-17
"""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa
from sqlalchemy import inspect

# revision identifiers, used by Alembic.
revision = "20261017_counter_initial"
down_revision = None
branch_labels = None
depends_on = None


def _has_table(name: str) -> bool:
    return name in inspect(op.get_bind()).get_table_names()


def upgrade():
    # The app also ensures these tables on startup, so either may run first.
    if not _has_table("counter"):
        op.create_table(
            "counter",
            sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
            sa.Column("count", sa.Integer(), nullable=False),
            sa.Column("created_at", sa.DateTime(), nullable=False),
        )

    if not _has_table("counter_aggregate"):
        op.create_table(
            "counter_aggregate",
            sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
            sa.Column("counts", sa.Integer(), nullable=False),
            sa.Column("created_at", sa.DateTime(), nullable=False),
        )
        op.create_index(
            "ix_counter_aggregate_created_at", "counter_aggregate", ["created_at"]
        )


def downgrade():
    op.drop_index("ix_counter_aggregate_created_at", table_name="counter_aggregate")
    op.drop_table("counter_aggregate")
    op.drop_table("counter")
