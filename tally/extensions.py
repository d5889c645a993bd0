"""Shared extensions for the Tally application."""

from pathlib import Path

from flask_limiter import Limiter
from flask_limiter.util import get_remote_address
from flask_migrate import Migrate
from flask_sqlalchemy import SQLAlchemy

from tally.core.storage.sqlite import configure_engine

# Core persistence and request throttling
db = SQLAlchemy(session_options={"expire_on_commit": False})
migrate = Migrate()
limiter = Limiter(key_func=get_remote_address)


def init_extensions(app) -> None:
    """Initialize all extensions with the Flask app."""
    db.init_app(app)
    migrations_dir = Path(__file__).resolve().parent / "migrations"
    migrate.init_app(app, db, directory=str(migrations_dir))
    limiter.enabled = app.config.get("RATELIMIT_ENABLED", True)
    limiter.storage_uri = app.config.get("RATELIMIT_STORAGE_URI", "memory://")
    limiter.init_app(app)

    with app.app_context():
        configure_engine(db.engine, journal_mode=app.config.get("SQLITE_JOURNAL_MODE"))
