"""Storage primitives: deadlines, transaction scopes and the error taxonomy."""

from tally.core.storage.deadline import Deadline
from tally.core.storage.errors import (
    CommitError,
    ConnectionAcquisitionError,
    DeadlineExceeded,
    StatementExecutionError,
    StorageError,
    TransactionBeginError,
)
from tally.core.storage.transactions import transaction_scope

__all__ = [
    "CommitError",
    "ConnectionAcquisitionError",
    "Deadline",
    "DeadlineExceeded",
    "StatementExecutionError",
    "StorageError",
    "TransactionBeginError",
    "transaction_scope",
]
