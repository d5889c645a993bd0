"""Aggregation worker runtime and periodic loop."""

from tally.tally_platform.worker.aggregation import AggregationStats, AggregationWorker
from tally.tally_platform.worker.config import AggregationConfig
from tally.tally_platform.worker.run import run_aggregation_loop

__all__ = [
    "AggregationConfig",
    "AggregationStats",
    "AggregationWorker",
    "run_aggregation_loop",
]
