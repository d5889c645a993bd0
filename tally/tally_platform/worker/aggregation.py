"""Bounded background worker that runs aggregations after each recorded event."""

from __future__ import annotations

import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import asdict, dataclass
from datetime import datetime
from typing import Any, Callable, Dict, Optional

from sqlalchemy.engine import Engine

from tally.core.events.event_bus import DomainEvent, EventBus
from tally.core.utils.timestamps import format_rfc3339, utcnow
from tally.counter.events import COUNTER_EVENT_RECORDED
from tally.counter.services.aggregate_service import AggregateSnapshot, compute_aggregate
from tally.tally_platform.worker.config import AggregationConfig

logger = logging.getLogger(__name__)

AggregateFn = Callable[..., AggregateSnapshot]


@dataclass
class AggregationStats:
    submitted: int = 0
    coalesced: int = 0
    rejected: int = 0
    succeeded: int = 0
    failed: int = 0
    pending: int = 0
    running: int = 0
    last_counts: Optional[int] = None
    last_success_at: Optional[datetime] = None
    last_error: Optional[str] = None
    last_error_at: Optional[datetime] = None


class AggregationWorker:
    """
    Run aggregations on a fixed-size thread pool.

    A trigger that arrives while a run is queued but not started is folded
    into it when ``coalesce`` is on: the queued run starts after the trigger's
    commit, so it already covers that event. Otherwise at most
    ``max_pending`` runs wait in the queue and further triggers are rejected
    for the same reason. Failures are logged and counted, never raised to
    whoever triggered the run.
    """

    def __init__(
        self,
        engine: Engine,
        config: Optional[AggregationConfig] = None,
        bus: Optional[EventBus] = None,
        aggregate_fn: AggregateFn = compute_aggregate,
    ) -> None:
        self.engine = engine
        self.config = config or AggregationConfig()
        self.bus = bus
        self._aggregate = aggregate_fn
        self._executor = ThreadPoolExecutor(
            max_workers=self.config.max_workers, thread_name_prefix="tally-aggregate"
        )
        self._lock = threading.Lock()
        self._idle = threading.Condition(self._lock)
        self._stats = AggregationStats()
        self._queued: Optional[Future] = None
        self._closed = False

    def attach(self, bus: EventBus) -> None:
        """Subscribe to recorded counter events on ``bus``."""
        self.bus = bus
        bus.subscribe(COUNTER_EVENT_RECORDED, self.handle_event)

    def handle_event(self, event: DomainEvent) -> None:
        self.submit()

    def submit(self) -> Optional[Future]:
        """Schedule an aggregation run without blocking; returns None when rejected."""
        with self._lock:
            if self._closed:
                raise RuntimeError("aggregation worker is shut down")
            if self.config.coalesce and self._stats.pending > 0 and self._queued is not None:
                self._stats.coalesced += 1
                logger.debug("Aggregation trigger folded into the queued run")
                return self._queued
            if self._stats.pending >= self.config.max_pending:
                self._stats.rejected += 1
                logger.warning(
                    "Aggregation trigger rejected: %s run(s) already queued", self._stats.pending
                )
                return None
            # _run needs the lock, so counting after submit cannot race it.
            future = self._executor.submit(self._run)
            self._stats.submitted += 1
            self._stats.pending += 1
            self._queued = future
            return future

    def _run(self) -> Optional[AggregateSnapshot]:
        with self._lock:
            self._stats.pending -= 1
            self._stats.running += 1
        try:
            snapshot = self._aggregate(
                self.engine, timeout=self.config.timeout_seconds, bus=self.bus
            )
        except Exception as exc:
            logger.exception("Aggregation run failed")
            with self._lock:
                self._stats.failed += 1
                self._stats.last_error = str(exc)
                self._stats.last_error_at = utcnow()
            return None
        else:
            with self._lock:
                self._stats.succeeded += 1
                self._stats.last_counts = snapshot.counts
                self._stats.last_success_at = snapshot.created_at
            return snapshot
        finally:
            with self._lock:
                self._stats.running -= 1
                self._idle.notify_all()

    def wait_idle(self, timeout: Optional[float] = None) -> bool:
        """Block until nothing is queued or running; False on timeout."""
        with self._idle:
            return self._idle.wait_for(
                lambda: self._stats.pending == 0 and self._stats.running == 0,
                timeout=timeout,
            )

    def stats(self) -> Dict[str, Any]:
        with self._lock:
            data = asdict(self._stats)
        for key in ("last_success_at", "last_error_at"):
            if data[key] is not None:
                data[key] = format_rfc3339(data[key])
        data["max_workers"] = self.config.max_workers
        data["coalesce"] = self.config.coalesce
        return data

    def shutdown(self, wait: bool = True) -> None:
        with self._lock:
            if self._closed:
                return
            self._closed = True
        if self.bus is not None:
            self.bus.unsubscribe(COUNTER_EVENT_RECORDED, self.handle_event)
        self._executor.shutdown(wait=wait)
        logger.debug("Aggregation worker stopped")
