"""Counter event log and aggregate snapshot models."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy.orm import Mapped, mapped_column

from tally.core.utils.timestamps import utcnow
from tally.extensions import db


class CounterEvent(db.Model):
    """
    One increment action.

    Rows are append-only: they are never updated or deleted, and ``count`` is
    a quantity (1 for a single press of the button).
    """

    __tablename__ = "counter"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    count: Mapped[int] = mapped_column(nullable=False, default=1)
    created_at: Mapped[datetime] = mapped_column(nullable=False, default=utcnow)


class CounterAggregate(db.Model):
    """Total of all visible CounterEvent.count values at one aggregation run."""

    __tablename__ = "counter_aggregate"
    __table_args__ = (db.Index("ix_counter_aggregate_created_at", "created_at"),)

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    counts: Mapped[int] = mapped_column(nullable=False)
    created_at: Mapped[datetime] = mapped_column(nullable=False, default=utcnow)
