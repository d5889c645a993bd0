"""Aggregator and aggregate reader."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from sqlalchemy import insert, select
from sqlalchemy.engine import Engine

from tally.core.events.event_bus import DomainEvent, EventBus
from tally.core.storage import Deadline, transaction_scope
from tally.core.storage.errors import STAGE_EXECUTE
from tally.core.utils.timestamps import EPOCH, as_utc, utcnow
from tally.counter.events import COUNTER_AGGREGATE_COMPUTED
from tally.counter.models import CounterAggregate, CounterEvent

logger = logging.getLogger(__name__)

DEFAULT_AGGREGATION_TIMEOUT = 30.0
DEFAULT_READ_TIMEOUT = 15.0

# Rows summed between deadline checks while scanning the event log.
SCAN_BATCH_SIZE = 500


@dataclass(frozen=True)
class AggregateSnapshot:
    counts: int
    created_at: datetime


@dataclass(frozen=True)
class LatestAggregate:
    counts: int
    last_time: datetime
    found: bool


def compute_aggregate(
    engine: Engine,
    *,
    timeout: float = DEFAULT_AGGREGATION_TIMEOUT,
    bus: Optional[EventBus] = None,
) -> AggregateSnapshot:
    """
    Sum every event and append a snapshot, all in one serializable transaction.

    The total covers the events visible when the transaction starts; events
    committed concurrently may be missed until the next run.
    """
    deadline = Deadline(timeout)
    events = CounterEvent.__table__
    aggregates = CounterAggregate.__table__

    with transaction_scope(engine, deadline) as conn:
        counts = 0
        result = conn.execute(select(events.c.count))
        for batch in result.scalars().partitions(SCAN_BATCH_SIZE):
            deadline.check(STAGE_EXECUTE)
            counts += sum(int(value) for value in batch)

        created_at = utcnow()
        conn.execute(insert(aggregates).values(counts=counts, created_at=created_at))

    snapshot = AggregateSnapshot(counts=counts, created_at=created_at)
    logger.info("Aggregate created, with counts: %d", snapshot.counts)
    if bus is not None:
        event = DomainEvent(
            event_type=COUNTER_AGGREGATE_COMPUTED,
            payload={"counts": snapshot.counts, "created_at": snapshot.created_at.isoformat()},
        )
        try:
            bus.publish(event)
        except Exception:
            logger.exception("Aggregate committed but a subscriber failed")
    return snapshot


def get_latest_aggregate(
    engine: Engine, *, timeout: float = DEFAULT_READ_TIMEOUT
) -> LatestAggregate:
    """Return the newest snapshot, or zero counts at EPOCH when none exists."""
    deadline = Deadline(timeout)
    aggregates = CounterAggregate.__table__
    stmt = (
        select(aggregates.c.counts, aggregates.c.created_at)
        .order_by(aggregates.c.created_at.desc(), aggregates.c.id.desc())
        .limit(1)
    )
    with transaction_scope(engine, deadline, serializable=False) as conn:
        row = conn.execute(stmt).first()

    if row is None:
        return LatestAggregate(counts=0, last_time=EPOCH, found=False)
    return LatestAggregate(counts=int(row.counts), last_time=as_utc(row.created_at), found=True)
