"""Monotonic deadlines for bounded storage operations."""

from __future__ import annotations

import time
from typing import Callable

from tally.core.storage.errors import DeadlineExceeded


class Deadline:
    """A fixed point in monotonic time after which an operation must abort."""

    def __init__(self, seconds: float, clock: Callable[[], float] = time.monotonic) -> None:
        if seconds <= 0:
            raise ValueError("deadline must be positive")
        self.seconds = seconds
        self._clock = clock
        self.expires_at = clock() + seconds

    @property
    def expired(self) -> bool:
        return self._clock() >= self.expires_at

    def remaining(self) -> float:
        return max(self.expires_at - self._clock(), 0.0)

    def check(self, stage: str) -> None:
        """Raise DeadlineExceeded if the deadline has passed."""
        if self.expired:
            raise DeadlineExceeded(
                f"deadline of {self.seconds:g}s exceeded before {stage}", stage=stage
            )


__all__ = ["Deadline"]
