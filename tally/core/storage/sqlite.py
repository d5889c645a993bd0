"""SQLite engine hooks.

pysqlite defers BEGIN until the first DML statement, so DDL and reads run
outside any transaction and its isolation. We turn that off and let
SQLAlchemy's ``begin`` event emit BEGIN explicitly. Write transactions ask
for ``BEGIN IMMEDIATE`` through the ``sqlite_begin_mode`` execution option,
which takes the reserved lock up front: a read-then-write transaction then
waits on the busy timeout instead of failing when another writer is active.
"""

from __future__ import annotations

import logging

from sqlalchemy import event
from sqlalchemy.engine import Connection, Engine

logger = logging.getLogger(__name__)

BEGIN_MODE_OPTION = "sqlite_begin_mode"
BEGIN_MODES = ("DEFERRED", "IMMEDIATE", "EXCLUSIVE")


def configure_engine(engine: Engine, journal_mode: str | None = "WAL") -> None:
    """Install the transaction hooks on a SQLite engine; other dialects are left alone."""
    if engine.dialect.name != "sqlite":
        return
    if event.contains(engine, "begin", _emit_begin):
        return
    if journal_mode and not journal_mode.isalpha():
        raise ValueError(f"invalid sqlite journal mode: {journal_mode!r}")

    def _on_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None
        if journal_mode:
            cursor = dbapi_connection.cursor()
            try:
                cursor.execute(f"PRAGMA journal_mode={journal_mode}")
            finally:
                cursor.close()

    event.listen(engine, "connect", _on_connect)
    event.listen(engine, "begin", _emit_begin)
    logger.debug("Configured sqlite engine %s (journal_mode=%s)", engine.url, journal_mode)


def _emit_begin(conn: Connection) -> None:
    mode = str(conn.get_execution_options().get(BEGIN_MODE_OPTION, "DEFERRED")).upper()
    if mode not in BEGIN_MODES:
        raise ValueError(f"invalid sqlite begin mode: {mode!r}")
    conn.exec_driver_sql(f"BEGIN {mode}")


__all__ = ["BEGIN_MODE_OPTION", "configure_engine"]
