import sys
from pathlib import Path

import pytest
import sqlalchemy as sa

ROOT = Path(__file__).resolve().parents[2]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from tally import create_app
from tally.extensions import db


# ==================== Pytest Markers ====================
def pytest_configure(config):
    """Register custom pytest markers."""
    config.addinivalue_line("markers", "unit: Unit tests (no external dependencies)")
    config.addinivalue_line("markers", "integration: Integration tests (database, API)")
    config.addinivalue_line("markers", "slow: Slow running tests")


@pytest.fixture()
def database_url(tmp_path) -> str:
    """File-backed SQLite so the aggregation thread and the test share one database."""
    return f"sqlite:///{tmp_path / 'tally.db'}"


@pytest.fixture()
def make_app(database_url):
    """Factory for apps bound to the per-test database; all are torn down after the test."""
    created = []

    def _make(**overrides):
        settings = {"SQLALCHEMY_DATABASE_URI": database_url}
        settings.update(overrides)
        new_app = create_app("testing", settings)
        created.append(new_app)
        return new_app

    yield _make

    for created_app in created:
        created_app.extensions["aggregation_worker"].shutdown(wait=True)
        with created_app.app_context():
            db.session.remove()
            db.engine.dispose()


@pytest.fixture()
def app(make_app):
    app = make_app()
    ctx = app.app_context()
    ctx.push()
    try:
        yield app
    finally:
        ctx.pop()


@pytest.fixture()
def client(app):
    return app.test_client()


@pytest.fixture()
def engine(app):
    return db.engine


@pytest.fixture()
def worker(app):
    return app.extensions["aggregation_worker"]


@pytest.fixture()
def count_rows(engine):
    def _count(table_name: str) -> int:
        with engine.connect() as conn:
            return conn.execute(sa.text(f"SELECT COUNT(*) FROM {table_name}")).scalar_one()

    return _count
