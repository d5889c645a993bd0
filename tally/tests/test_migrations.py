from pathlib import Path

import pytest
import sqlalchemy as sa
from alembic import command
from alembic.config import Config as AlembicConfig

pytestmark = pytest.mark.integration

ROOT = Path(__file__).resolve().parents[2]


def _alembic_config(url: str) -> AlembicConfig:
    cfg = AlembicConfig(str(ROOT / "alembic.ini"))
    cfg.set_main_option("script_location", str(ROOT / "tally" / "migrations"))
    cfg.set_main_option("sqlalchemy.url", url)
    return cfg


def test_upgrade_and_downgrade_fresh_database(tmp_path):
    url = f"sqlite:///{tmp_path / 'migrated.db'}"
    cfg = _alembic_config(url)

    command.upgrade(cfg, "head")

    engine = sa.create_engine(url)
    try:
        tables = set(sa.inspect(engine).get_table_names())
        assert {"counter", "counter_aggregate"} <= tables

        command.downgrade(cfg, "base")
        tables = set(sa.inspect(engine).get_table_names())
        assert not {"counter", "counter_aggregate"} & tables
    finally:
        engine.dispose()


def test_upgrade_after_startup_schema(app, database_url, engine):
    """Tables created at startup are adopted by the first migration."""
    command.upgrade(_alembic_config(database_url), "head")

    with engine.connect() as conn:
        version = conn.execute(sa.text("SELECT version_num FROM alembic_version")).scalar_one()
    assert version == "20261017_counter_initial"
