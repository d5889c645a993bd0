"""Tally application factory and bootstrap."""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any, Mapping, Optional

from flask import Flask

from tally.config import engine_options_from_uri, config_by_name, normalize_database_url
from tally.core.events.event_bus import EventBus
from tally.extensions import db, init_extensions


def create_app(
    config_name: Optional[str] = None, overrides: Optional[Mapping[str, Any]] = None
) -> Flask:
    """Create and configure the Tally Flask application.

    The counter schema is ensured before the app is returned; a failure there
    raises, so a process never serves traffic without its tables.
    """
    env_name = (config_name or os.environ.get("APP_ENV") or "development").lower()
    project_root = Path(__file__).resolve().parent.parent
    instance_root = project_root / "instance"

    app = Flask(
        __name__,
        instance_path=str(instance_root),
        instance_relative_config=True,
        static_folder=str(Path(__file__).parent / "static"),
        template_folder=str(Path(__file__).parent / "templates"),
    )
    config_cls = config_by_name.get(env_name, config_by_name["development"])
    app.config.from_object(config_cls)
    if overrides:
        app.config.update(overrides)
        if "SQLALCHEMY_DATABASE_URI" in overrides and "SQLALCHEMY_ENGINE_OPTIONS" not in overrides:
            app.config["SQLALCHEMY_ENGINE_OPTIONS"] = engine_options_from_uri(
                normalize_database_url(app.config["SQLALCHEMY_DATABASE_URI"])
            )

    _configure_logging(app)

    # Normalize sqlite path to absolute to avoid "unable to open database file"
    db_uri = normalize_database_url(app.config["SQLALCHEMY_DATABASE_URI"])
    if db_uri.startswith("sqlite:///"):
        db_path = db_uri.replace("sqlite:///", "", 1)
        if db_path and db_path != ":memory:":
            # Relative paths resolve against the working directory.
            abs_path = Path.cwd() / db_path
            abs_path.parent.mkdir(parents=True, exist_ok=True)
            db_uri = f"sqlite:///{abs_path}"
    app.config["SQLALCHEMY_DATABASE_URI"] = db_uri

    init_extensions(app)
    _register_blueprints(app)
    _register_error_handlers(app)

    # Per-app event bus; the aggregation worker listens for recorded events.
    bus = EventBus()
    app.extensions["event_bus"] = bus
    _start_aggregation_worker(app, bus)

    @app.get("/health")
    def health():
        worker = app.extensions["aggregation_worker"]
        return {"ok": True, "aggregation": worker.stats()}, 200

    from tally.scripts.commands import register_commands

    register_commands(app)

    return app


def _configure_logging(app: Flask) -> None:
    level = app.config.get("LOG_LEVEL", "INFO")
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )
    app.logger.setLevel(level)


def _start_aggregation_worker(app: Flask, bus: EventBus) -> None:
    """Ensure the schema, then attach a bounded aggregation worker to ``bus``."""
    from tally.counter.services import ensure_schema
    from tally.tally_platform.worker import AggregationConfig, AggregationWorker

    with app.app_context():
        engine = db.engine
        if app.config.get("ENSURE_SCHEMA_ON_STARTUP", True):
            app.logger.info("Ensuring counter schema")
            ensure_schema(engine, timeout=app.config["SCHEMA_TIMEOUT_SECONDS"])

    worker = AggregationWorker(engine, AggregationConfig.from_mapping(app.config))
    worker.attach(bus)
    app.extensions["aggregation_worker"] = worker


def _register_blueprints(app: Flask) -> None:
    """Lazy import and register all controllers."""
    from tally.counter.controllers.counter_api import counter_api_bp
    from tally.counter.controllers.counter_pages import counter_pages_bp

    app.register_blueprint(counter_api_bp, url_prefix="/api")
    app.register_blueprint(counter_pages_bp)


def _register_error_handlers(app: Flask) -> None:
    """Basic JSON error responses."""
    from werkzeug.exceptions import HTTPException

    @app.errorhandler(HTTPException)
    def _http_error(exc: HTTPException):
        return {"error": exc.description}, exc.code

    @app.errorhandler(Exception)
    def _generic_error(exc: Exception):
        app.logger.exception("Unhandled error: %s", exc)
        # In debug/testing, surface the exception message to speed up diagnosis
        if app.debug or app.testing:
            return {"error": str(exc)}, 500
        return {"error": "unexpected_error"}, 500
