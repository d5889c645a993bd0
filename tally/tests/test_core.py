from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

from tally.config import config_by_name, engine_options_from_uri, normalize_database_url
from tally.core.events.event_bus import DomainEvent, EventBus
from tally.core.utils.timestamps import EPOCH, as_utc, format_rfc3339
from tally.counter.schemas import CounterAddRequest, CounterListResponse, ErrorResponse

pytestmark = pytest.mark.unit


def test_event_bus_dispatches_by_type():
    bus = EventBus()
    received = []

    def handler(event):
        received.append(event.event_type)

    bus.subscribe("counter.test", handler)
    bus.publish(DomainEvent(event_type="counter.test", payload={"hello": "world"}))
    bus.publish(DomainEvent(event_type="other.test"))
    bus.unsubscribe("counter.test", handler)
    bus.publish(DomainEvent(event_type="counter.test"))

    assert received == ["counter.test"]


def test_normalize_database_url():
    assert normalize_database_url("./db.sqlite") == "sqlite:///./db.sqlite"
    assert normalize_database_url("postgresql://u:p@db/tally") == "postgresql://u:p@db/tally"


def test_engine_options_by_dialect():
    sqlite_opts = engine_options_from_uri("sqlite:///db.sqlite")
    assert sqlite_opts["connect_args"]["check_same_thread"] is False
    assert sqlite_opts["pool_pre_ping"] is True

    pg_opts = engine_options_from_uri("postgresql://u:p@db/tally")
    assert "connect_timeout" in pg_opts["connect_args"]


def test_config_defaults():
    base = config_by_name["production"]
    assert isinstance(base.PORT, int)
    assert base.RECORD_TIMEOUT_SECONDS > 0
    assert config_by_name["ci"] is config_by_name["testing"]
    assert config_by_name["testing"].RATELIMIT_ENABLED is False


def test_rfc3339_formatting():
    assert format_rfc3339(EPOCH) == "1970-01-01T00:00:00Z"
    naive = datetime(2024, 5, 1, 12, 30, 15, 999999)
    assert format_rfc3339(naive) == "2024-05-01T12:30:15Z"
    offset = datetime(2024, 5, 1, 14, 30, 15, tzinfo=timezone(timedelta(hours=2)))
    assert format_rfc3339(offset) == "2024-05-01T12:30:15Z"
    assert as_utc(naive).tzinfo is timezone.utc


def test_list_response_uses_wire_names():
    body = CounterListResponse(counter=3, last_date=EPOCH).model_dump(by_alias=True)
    assert body == {"counter": 3, "lastDate": "1970-01-01T00:00:00Z"}


def test_add_request_defaults_to_one():
    assert CounterAddRequest.model_validate({}).count == 1
    assert CounterAddRequest.model_validate({"count": 2}).count == 2


def test_error_response_omits_empty_details():
    assert ErrorResponse(error="boom").model_dump(exclude_none=True) == {"error": "boom"}


@pytest.mark.integration
def test_relative_sqlite_path_resolves_against_working_directory(make_app, tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)

    app = make_app(SQLALCHEMY_DATABASE_URI="./db.sqlite")

    assert app.config["SQLALCHEMY_DATABASE_URI"] == f"sqlite:///{Path.cwd() / 'db.sqlite'}"
    assert (tmp_path / "db.sqlite").exists()
