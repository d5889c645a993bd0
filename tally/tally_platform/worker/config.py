"""Configuration helpers for the aggregation worker."""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Any, Mapping


def _as_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in ("1", "true", "yes")


@dataclass
class AggregationConfig:
    """Runtime knobs for background aggregation."""

    max_workers: int = 1
    max_pending: int = 1
    coalesce: bool = True
    timeout_seconds: float = 30.0
    interval_seconds: float = 60.0

    def __post_init__(self) -> None:
        if self.max_workers < 1:
            raise ValueError("max_workers must be at least 1")
        if self.max_pending < 1:
            raise ValueError("max_pending must be at least 1")

    @classmethod
    def from_env(cls) -> "AggregationConfig":
        """Build config from environment with sensible defaults."""
        return cls(
            max_workers=int(os.environ.get("AGGREGATION_MAX_WORKERS", "1")),
            max_pending=int(os.environ.get("AGGREGATION_MAX_PENDING", "1")),
            coalesce=_as_bool(os.environ.get("AGGREGATION_COALESCE", "true")),
            timeout_seconds=float(os.environ.get("AGGREGATION_TIMEOUT_SECONDS", "30")),
            interval_seconds=float(os.environ.get("AGGREGATION_INTERVAL_SECONDS", "60")),
        )

    @classmethod
    def from_mapping(cls, config: Mapping[str, Any]) -> "AggregationConfig":
        """Build config from a Flask config mapping."""
        return cls(
            max_workers=int(config.get("AGGREGATION_MAX_WORKERS", 1)),
            max_pending=int(config.get("AGGREGATION_MAX_PENDING", 1)),
            coalesce=_as_bool(config.get("AGGREGATION_COALESCE", True)),
            timeout_seconds=float(config.get("AGGREGATION_TIMEOUT_SECONDS", 30)),
            interval_seconds=float(config.get("AGGREGATION_INTERVAL_SECONDS", 60)),
        )
