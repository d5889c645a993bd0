"""Storage error taxonomy shared by the counter services."""

from __future__ import annotations

STAGE_CONNECT = "connect"
STAGE_BEGIN = "begin"
STAGE_EXECUTE = "execute"
STAGE_COMMIT = "commit"


class StorageError(Exception):
    """A storage operation failed at ``stage``; the message is the driver's error text."""

    stage = STAGE_EXECUTE

    def __init__(self, message: str, stage: str | None = None) -> None:
        super().__init__(message)
        if stage is not None:
            self.stage = stage

    @classmethod
    def wrap(cls, exc: BaseException, stage: str | None = None) -> "StorageError":
        """Build an error carrying the underlying DBAPI message when there is one."""
        orig = getattr(exc, "orig", None)
        return cls(str(orig if orig is not None else exc), stage=stage)


class ConnectionAcquisitionError(StorageError):
    stage = STAGE_CONNECT


class TransactionBeginError(StorageError):
    stage = STAGE_BEGIN


class StatementExecutionError(StorageError):
    stage = STAGE_EXECUTE


class CommitError(StorageError):
    stage = STAGE_COMMIT


class DeadlineExceeded(StorageError):
    """The operation's deadline expired before ``stage`` could finish."""


__all__ = [
    "STAGE_BEGIN",
    "STAGE_COMMIT",
    "STAGE_CONNECT",
    "STAGE_EXECUTE",
    "CommitError",
    "ConnectionAcquisitionError",
    "DeadlineExceeded",
    "StatementExecutionError",
    "StorageError",
    "TransactionBeginError",
]
