import runpy
import threading

import pytest
from flask import Flask

from tally.counter.services import get_latest_aggregate, record_event
from tally.tally_platform.worker import AggregationConfig
from tally.tally_platform.worker.run import run_aggregation_loop

pytestmark = pytest.mark.integration


def test_ensure_schema_command(app):
    result = app.test_cli_runner().invoke(args=["ensure-schema"])
    assert result.exit_code == 0
    assert "Counter schema ready" in result.output


def test_counter_status_before_any_aggregate(app):
    result = app.test_cli_runner().invoke(args=["counter-status"])
    assert result.exit_code == 0
    assert "Counter: 0 (last aggregated: never)" in result.output


def test_aggregate_command(app, engine):
    record_event(engine)
    record_event(engine)

    runner = app.test_cli_runner()
    result = runner.invoke(args=["aggregate"])
    assert result.exit_code == 0
    assert "Aggregate created: 2" in result.output

    status = runner.invoke(args=["counter-status"])
    assert "Counter: 2" in status.output
    assert "never" not in status.output


def test_aggregate_command_reports_storage_failure(app, engine):
    with engine.begin() as conn:
        conn.exec_driver_sql("DROP TABLE counter")

    result = app.test_cli_runner().invoke(args=["aggregate"])

    assert result.exit_code != 0
    assert "aggregation failed" in result.output


def test_aggregation_loop_runs_until_limit(engine):
    record_event(engine, count=5)

    runs = run_aggregation_loop(
        engine, AggregationConfig(interval_seconds=0.01), max_runs=2
    )

    assert runs == 2
    assert get_latest_aggregate(engine).counts == 5


def test_aggregation_loop_stops_on_event(engine):
    stop = threading.Event()
    stop.set()
    assert run_aggregation_loop(engine, AggregationConfig(), stop_event=stop) == 0


def test_aggregation_loop_survives_failures(engine, caplog):
    with engine.begin() as conn:
        conn.exec_driver_sql("DROP TABLE counter")

    runs = run_aggregation_loop(engine, AggregationConfig(interval_seconds=0.01), max_runs=2)

    assert runs == 2
    assert "Scheduled aggregation failed" in caplog.text


def test_dev_server_entrypoint_disables_debug(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    monkeypatch.delenv("APP_ENV", raising=False)
    calls = {}

    def fake_run(self, host=None, port=None, **options):
        calls.update(options, host=host, port=port)

    monkeypatch.setattr(Flask, "run", fake_run)

    runpy.run_module("tally.wsgi", run_name="__main__")

    assert calls["debug"] is False
    assert calls["threaded"] is True
