"""Counter JSON API controllers (thin, schema-validated)."""

from __future__ import annotations

from flask import Blueprint, current_app, jsonify, request
from pydantic import ValidationError

from tally.core.storage import StorageError
from tally.counter import services as counter_services
from tally.counter.schemas import (
    CounterAddRequest,
    CounterAddResponse,
    CounterListResponse,
    ErrorResponse,
)
from tally.extensions import db, limiter

counter_api_bp = Blueprint("counter_api", __name__)


def _error(message: str, status: int = 500, details=None):
    body = ErrorResponse(error=message, details=details).model_dump(exclude_none=True)
    return jsonify(body), status


def _add_rate_limit() -> str:
    return current_app.config.get("ADD_RATE_LIMIT", "60 per minute")


@counter_api_bp.get("/list")
def list_counter():
    try:
        latest = counter_services.get_latest_aggregate(
            db.engine, timeout=current_app.config["READ_TIMEOUT_SECONDS"]
        )
    except StorageError as exc:
        current_app.logger.error("Reading the latest aggregate failed (%s): %s", exc.stage, exc)
        return _error(str(exc))
    resp = CounterListResponse(counter=latest.counts, last_date=latest.last_time)
    return jsonify(resp.model_dump(by_alias=True))


@counter_api_bp.post("/add")
@limiter.limit(_add_rate_limit)
def add_counter():
    payload = request.get_json(silent=True)
    if payload is None:
        payload = {}
    try:
        data = CounterAddRequest.model_validate(payload)
    except ValidationError as exc:
        details = exc.errors(include_url=False, include_context=False, include_input=False)
        return _error("validation_error", 400, details)

    try:
        counter_services.record_event(
            db.engine,
            count=data.count,
            timeout=current_app.config["RECORD_TIMEOUT_SECONDS"],
            bus=current_app.extensions["event_bus"],
        )
    except StorageError as exc:
        current_app.logger.error("Recording a counter event failed (%s): %s", exc.stage, exc)
        return _error(str(exc))
    return jsonify(CounterAddResponse().model_dump())
