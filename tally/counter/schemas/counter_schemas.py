"""Counter DTOs and schemas."""

from __future__ import annotations

from datetime import datetime
from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_serializer

from tally.core.utils.timestamps import format_rfc3339


class CounterAddRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    count: int = Field(default=1, ge=1, le=1_000_000)


class CounterAddResponse(BaseModel):
    message: str = "success"


class CounterListResponse(BaseModel):
    counter: int
    last_date: datetime = Field(serialization_alias="lastDate")

    @field_serializer("last_date")
    def _rfc3339(self, value: datetime) -> str:
        return format_rfc3339(value)


class ErrorResponse(BaseModel):
    error: str
    details: Optional[List[Any]] = None
