import pytest
import sqlalchemy as sa

from tally.core.storage import StatementExecutionError
from tally.counter.services import ensure_schema

pytestmark = pytest.mark.integration


def _table_names(engine):
    return set(sa.inspect(engine).get_table_names())


def test_app_startup_creates_counter_tables(engine):
    assert {"counter", "counter_aggregate"} <= _table_names(engine)
    indexes = {ix["name"] for ix in sa.inspect(engine).get_indexes("counter_aggregate")}
    assert "ix_counter_aggregate_created_at" in indexes


def test_ensure_schema_is_idempotent(engine, count_rows):
    with engine.begin() as conn:
        conn.exec_driver_sql("INSERT INTO counter (count, created_at) VALUES (1, '2024-01-01 00:00:00')")

    ensure_schema(engine)
    ensure_schema(engine)

    assert count_rows("counter") == 1
    columns = [col["name"] for col in sa.inspect(engine).get_columns("counter")]
    assert columns == ["id", "count", "created_at"]


def test_ensure_schema_creates_missing_tables(make_app):
    from tally.extensions import db

    app = make_app(ENSURE_SCHEMA_ON_STARTUP=False)
    with app.app_context():
        engine = db.engine
        assert not {"counter", "counter_aggregate"} & _table_names(engine)

        ensure_schema(engine)

        assert {"counter", "counter_aggregate"} <= _table_names(engine)


def test_failed_schema_setup_leaves_nothing_behind(make_app):
    from tally.extensions import db

    app = make_app(ENSURE_SCHEMA_ON_STARTUP=False)
    with app.app_context():
        engine = db.engine
        # A view occupies the aggregate table's name, so indexing it fails
        with engine.begin() as conn:
            conn.exec_driver_sql("CREATE VIEW counter_aggregate AS SELECT 1 AS counts")

        with pytest.raises(StatementExecutionError):
            ensure_schema(engine)

        assert "counter" not in _table_names(engine)
