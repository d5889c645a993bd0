"""Event store: append one counter event per increment."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from sqlalchemy import insert
from sqlalchemy.engine import Engine

from tally.core.events.event_bus import DomainEvent, EventBus
from tally.core.storage import Deadline, transaction_scope
from tally.core.utils.timestamps import utcnow
from tally.counter.events import COUNTER_EVENT_RECORDED
from tally.counter.models import CounterEvent

logger = logging.getLogger(__name__)

DEFAULT_RECORD_TIMEOUT = 15.0


@dataclass(frozen=True)
class RecordedEvent:
    id: int
    count: int
    created_at: datetime


def record_event(
    engine: Engine,
    *,
    count: int = 1,
    timeout: float = DEFAULT_RECORD_TIMEOUT,
    bus: Optional[EventBus] = None,
) -> RecordedEvent:
    """
    Insert one event in a serializable transaction and commit it.

    Storage failures raise StorageError and nothing is written. After the
    commit, ``counter.event.recorded`` is published on ``bus`` so the
    aggregation worker can schedule a run; the caller never waits on it.
    """
    if count < 1:
        raise ValueError("count must be a positive integer")

    deadline = Deadline(timeout)
    table = CounterEvent.__table__
    with transaction_scope(engine, deadline) as conn:
        created_at = utcnow()
        result = conn.execute(insert(table).values(count=count, created_at=created_at))
        event_id = result.inserted_primary_key[0]

    recorded = RecordedEvent(id=event_id, count=count, created_at=created_at)
    logger.debug("Recorded counter event %s (count=%s)", recorded.id, recorded.count)
    if bus is not None:
        _publish_recorded(bus, recorded)
    return recorded


def _publish_recorded(bus: EventBus, recorded: RecordedEvent) -> None:
    event = DomainEvent(
        event_type=COUNTER_EVENT_RECORDED,
        payload={
            "event_id": recorded.id,
            "count": recorded.count,
            "created_at": recorded.created_at.isoformat(),
        },
    )
    try:
        bus.publish(event)
    except Exception:
        # The event is already durable; a lost trigger only delays the next aggregate.
        logger.exception("Counter event %s committed but could not be dispatched", recorded.id)
