"""Application configuration for Tally."""

from __future__ import annotations

import os
from typing import Dict, Type

from dotenv import load_dotenv
from sqlalchemy.engine.url import make_url

load_dotenv()


def _truthy(value: str) -> bool:
    return value.strip().lower() in ("1", "true", "yes")


def normalize_database_url(value: str) -> str:
    """Accept either a SQLAlchemy URL or a bare SQLite file path."""
    if "://" in value:
        return value
    return f"sqlite:///{value}"


def engine_options_from_uri(uri: str) -> dict:
    url = make_url(uri)
    # Always keep pool_pre_ping, vary connect_args by dialect.
    if url.get_backend_name() == "sqlite":
        busy_timeout = float(os.environ.get("SQLITE_BUSY_TIMEOUT_SECONDS", "30"))
        return {
            "pool_pre_ping": True,
            "connect_args": {"timeout": busy_timeout, "check_same_thread": False},
        }
    if url.get_backend_name() in {"postgresql", "postgres"}:
        timeout = int(os.environ.get("DB_CONNECT_TIMEOUT_SECONDS", "10"))
        return {"pool_pre_ping": True, "connect_args": {"connect_timeout": timeout}}
    return {"pool_pre_ping": True}


class BaseConfig:
    """Base configuration loaded for all environments."""

    SECRET_KEY = os.environ.get("SECRET_KEY", "change-me")

    HOST = os.environ.get("HOST", "0.0.0.0")  # nosec B104
    PORT = int(os.environ.get("PORT", "80"))
    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO").upper()

    SQLALCHEMY_DATABASE_URI = normalize_database_url(os.environ.get("DATABASE_URL", "./db.sqlite"))
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SQLALCHEMY_ENGINE_OPTIONS = engine_options_from_uri(SQLALCHEMY_DATABASE_URI)
    SQLITE_JOURNAL_MODE = os.environ.get("SQLITE_JOURNAL_MODE", "WAL")

    # Deadlines for the storage operations, in seconds.
    SCHEMA_TIMEOUT_SECONDS = float(os.environ.get("SCHEMA_TIMEOUT_SECONDS", "60"))
    RECORD_TIMEOUT_SECONDS = float(os.environ.get("RECORD_TIMEOUT_SECONDS", "15"))
    READ_TIMEOUT_SECONDS = float(os.environ.get("READ_TIMEOUT_SECONDS", "15"))
    AGGREGATION_TIMEOUT_SECONDS = float(os.environ.get("AGGREGATION_TIMEOUT_SECONDS", "30"))

    ENSURE_SCHEMA_ON_STARTUP = _truthy(os.environ.get("ENSURE_SCHEMA_ON_STARTUP", "true"))

    AGGREGATION_MAX_WORKERS = int(os.environ.get("AGGREGATION_MAX_WORKERS", "1"))
    AGGREGATION_MAX_PENDING = int(os.environ.get("AGGREGATION_MAX_PENDING", "1"))
    AGGREGATION_COALESCE = _truthy(os.environ.get("AGGREGATION_COALESCE", "true"))
    AGGREGATION_INTERVAL_SECONDS = float(os.environ.get("AGGREGATION_INTERVAL_SECONDS", "60"))

    ADD_RATE_LIMIT = os.environ.get("ADD_RATE_LIMIT", "60 per minute")
    RATELIMIT_STORAGE_URI = os.environ.get("REDIS_URL", "memory://")
    RATELIMIT_ENABLED = _truthy(os.environ.get("RATELIMIT_ENABLED", "true"))
    RATELIMIT_HEADERS_ENABLED = True


class DevelopmentConfig(BaseConfig):
    DEBUG = True
    ENV = "development"


class TestingConfig(BaseConfig):
    TESTING = True
    SQLALCHEMY_DATABASE_URI = normalize_database_url(
        os.environ.get("TEST_DATABASE_URL", "sqlite:///instance/test.db")
    )
    SQLALCHEMY_ENGINE_OPTIONS = engine_options_from_uri(SQLALCHEMY_DATABASE_URI)
    RATELIMIT_ENABLED = False
    LOG_LEVEL = "DEBUG"


class ProductionConfig(BaseConfig):
    ENV = "production"


config_by_name: Dict[str, Type[BaseConfig]] = {
    "development": DevelopmentConfig,
    "testing": TestingConfig,
    "production": ProductionConfig,
    # CI pipelines set APP_ENV=ci; map to testing defaults.
    "ci": TestingConfig,
}
