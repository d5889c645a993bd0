"""Counter services: schema, event store, aggregator and reader."""

from tally.counter.services.aggregate_service import (
    AggregateSnapshot,
    LatestAggregate,
    compute_aggregate,
    get_latest_aggregate,
)
from tally.counter.services.event_service import RecordedEvent, record_event
from tally.counter.services.schema_service import ensure_schema

__all__ = [
    "AggregateSnapshot",
    "LatestAggregate",
    "RecordedEvent",
    "compute_aggregate",
    "ensure_schema",
    "get_latest_aggregate",
    "record_event",
]
