"""Idempotent creation of the counter tables."""

from __future__ import annotations

import logging

from sqlalchemy.engine import Engine
from sqlalchemy.schema import CreateIndex, CreateTable

from tally.core.storage import Deadline, transaction_scope
from tally.counter.models import CounterAggregate, CounterEvent

logger = logging.getLogger(__name__)

DEFAULT_SCHEMA_TIMEOUT = 60.0

COUNTER_TABLES = (CounterEvent.__table__, CounterAggregate.__table__)


def ensure_schema(engine: Engine, *, timeout: float = DEFAULT_SCHEMA_TIMEOUT) -> None:
    """
    Create the event log and aggregate tables if they are missing.

    Runs as one serializable transaction with IF NOT EXISTS semantics, so it is
    safe on every start and leaves nothing half-created when it fails.
    """
    deadline = Deadline(timeout)
    with transaction_scope(engine, deadline) as conn:
        for table in COUNTER_TABLES:
            conn.execute(CreateTable(table, if_not_exists=True))
            for index in sorted(table.indexes, key=lambda ix: ix.name or ""):
                conn.execute(CreateIndex(index, if_not_exists=True))
    logger.info("Counter schema ready (%s)", ", ".join(t.name for t in COUNTER_TABLES))
