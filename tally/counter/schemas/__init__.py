"""Counter request/response schemas."""

from tally.counter.schemas.counter_schemas import (
    CounterAddRequest,
    CounterAddResponse,
    CounterListResponse,
    ErrorResponse,
)

__all__ = [
    "CounterAddRequest",
    "CounterAddResponse",
    "CounterListResponse",
    "ErrorResponse",
]
