"""CLI entrypoint for periodic aggregation on a timer.

Complements the per-event worker: a standalone process that appends a fresh
snapshot every ``AGGREGATION_INTERVAL_SECONDS`` regardless of traffic.
"""

from __future__ import annotations

import logging
import os
import threading
from typing import Optional

from sqlalchemy.engine import Engine

from tally.core.storage import StorageError
from tally.counter.services.aggregate_service import compute_aggregate
from tally.tally_platform.worker.config import AggregationConfig

logger = logging.getLogger(__name__)


def run_aggregation_loop(
    engine: Engine,
    config: Optional[AggregationConfig] = None,
    stop_event: Optional[threading.Event] = None,
    max_runs: Optional[int] = None,
) -> int:
    """
    Aggregate every ``config.interval_seconds`` until stopped.
    Returns the number of runs attempted.
    """
    cfg = config or AggregationConfig.from_env()
    stop = stop_event or threading.Event()

    logger.info(
        "Starting aggregation loop (interval=%ss, timeout=%ss)",
        cfg.interval_seconds,
        cfg.timeout_seconds,
    )

    runs = 0
    try:
        while not stop.is_set():
            try:
                compute_aggregate(engine, timeout=cfg.timeout_seconds)
            except StorageError:
                logger.exception("Scheduled aggregation failed")
            runs += 1
            if max_runs is not None and runs >= max_runs:
                break
            stop.wait(cfg.interval_seconds)
    except KeyboardInterrupt:
        logger.info("Aggregation loop stopped by user")
    return runs


def main() -> None:
    from tally import create_app
    from tally.extensions import db

    logging.basicConfig(level=os.environ.get("WORKER_LOGLEVEL", "INFO"))
    env = os.environ.get("APP_ENV", "development")
    app = create_app(env)
    try:
        with app.app_context():
            run_aggregation_loop(db.engine, AggregationConfig.from_mapping(app.config))
    finally:
        app.extensions["aggregation_worker"].shutdown(wait=True)


if __name__ == "__main__":
    main()
