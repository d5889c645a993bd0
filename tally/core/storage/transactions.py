"""Scoped connection + transaction helper with deadlines and error mapping."""

from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Callable, Iterator, Type

from sqlalchemy.engine import Connection, Engine, RootTransaction
from sqlalchemy.exc import SQLAlchemyError

from tally.core.storage.deadline import Deadline
from tally.core.storage.errors import (
    STAGE_BEGIN,
    STAGE_COMMIT,
    STAGE_CONNECT,
    STAGE_EXECUTE,
    CommitError,
    ConnectionAcquisitionError,
    DeadlineExceeded,
    StatementExecutionError,
    StorageError,
    TransactionBeginError,
)
from tally.core.storage.sqlite import BEGIN_MODE_OPTION

logger = logging.getLogger(__name__)

# VM instructions between sqlite progress callbacks.
SQLITE_PROGRESS_STEPS = 1000


def _serializable_options(conn: Connection) -> dict:
    if conn.dialect.name == "sqlite":
        # sqlite transactions are serializable; IMMEDIATE only changes when the write lock is taken.
        return {BEGIN_MODE_OPTION: "IMMEDIATE"}
    return {"isolation_level": "SERIALIZABLE"}


def _arm_deadline(conn: Connection, deadline: Deadline) -> Callable[[], None]:
    """Make the driver give up on running statements and lock waits once the deadline passes."""
    if conn.dialect.name != "sqlite":
        return lambda: None
    raw = conn.connection.dbapi_connection
    # The progress handler does not fire while sqlite waits on a lock.
    previous_busy_ms = raw.execute("PRAGMA busy_timeout").fetchone()[0]
    raw.execute(f"PRAGMA busy_timeout = {max(int(deadline.remaining() * 1000), 1)}")
    raw.set_progress_handler(lambda: 1 if deadline.expired else 0, SQLITE_PROGRESS_STEPS)

    def disarm() -> None:
        raw.set_progress_handler(None, 0)
        raw.execute(f"PRAGMA busy_timeout = {int(previous_busy_ms)}")

    return disarm


def _apply_statement_timeout(conn: Connection, deadline: Deadline) -> None:
    if conn.dialect.name != "postgresql":
        return
    millis = max(int(deadline.remaining() * 1000), 1)
    conn.exec_driver_sql(f"SET LOCAL statement_timeout = {millis}")


def _wrap(
    error_cls: Type[StorageError], exc: SQLAlchemyError, deadline: Deadline, stage: str
) -> StorageError:
    if deadline.expired:
        orig = getattr(exc, "orig", None) or exc
        return DeadlineExceeded(
            f"deadline of {deadline.seconds:g}s exceeded during {stage}: {orig}", stage=stage
        )
    return error_cls.wrap(exc)


def _rollback_quietly(trans: RootTransaction) -> None:
    try:
        trans.rollback()
    except SQLAlchemyError:
        logger.warning("Rollback failed", exc_info=True)


@contextmanager
def transaction_scope(
    engine: Engine, deadline: Deadline, *, serializable: bool = True
) -> Iterator[Connection]:
    """
    Check out a dedicated connection and run the block inside one transaction.

    Commits when the block exits cleanly, rolls back on any error, and always
    returns the connection to the pool. SQLAlchemy errors are re-raised as
    StorageError subclasses named after the failing stage.
    """
    deadline.check(STAGE_CONNECT)
    try:
        conn = engine.connect()
    except SQLAlchemyError as exc:
        raise _wrap(ConnectionAcquisitionError, exc, deadline, STAGE_CONNECT) from exc

    try:
        disarm = _arm_deadline(conn, deadline)
    except BaseException:
        conn.close()
        raise
    try:
        if serializable:
            conn.execution_options(**_serializable_options(conn))
        deadline.check(STAGE_BEGIN)
        try:
            trans = conn.begin()
        except SQLAlchemyError as exc:
            raise _wrap(TransactionBeginError, exc, deadline, STAGE_BEGIN) from exc

        try:
            _apply_statement_timeout(conn, deadline)
            yield conn
            deadline.check(STAGE_COMMIT)
        except SQLAlchemyError as exc:
            _rollback_quietly(trans)
            raise _wrap(StatementExecutionError, exc, deadline, STAGE_EXECUTE) from exc
        except BaseException:
            _rollback_quietly(trans)
            raise

        try:
            trans.commit()
        except SQLAlchemyError as exc:
            _rollback_quietly(trans)
            raise _wrap(CommitError, exc, deadline, STAGE_COMMIT) from exc
        except BaseException:
            _rollback_quietly(trans)
            raise
    finally:
        try:
            disarm()
        finally:
            conn.close()


__all__ = ["SQLITE_PROGRESS_STEPS", "transaction_scope"]
