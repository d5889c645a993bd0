"""Counter domain models."""

from tally.counter.models.counter_models import CounterAggregate, CounterEvent

__all__ = ["CounterAggregate", "CounterEvent"]
