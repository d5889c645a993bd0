"""Counter domain event catalog."""

from __future__ import annotations

COUNTER_EVENT_RECORDED = "counter.event.recorded"
COUNTER_AGGREGATE_COMPUTED = "counter.aggregate.computed"

EVENT_CATALOG = {
    COUNTER_EVENT_RECORDED: {
        "version": "v1",
        "payload": {
            "event_id": "int",
            "count": "int",
            "created_at": "datetime",
        },
    },
    COUNTER_AGGREGATE_COMPUTED: {
        "version": "v1",
        "payload": {
            "counts": "int",
            "created_at": "datetime",
        },
    },
}

__all__ = [
    "EVENT_CATALOG",
    "COUNTER_EVENT_RECORDED",
    "COUNTER_AGGREGATE_COMPUTED",
]
