from .classes import (
    CursorIterator,
    Connector,
    Transaction,
    PostgreSQLConnector,
    PostgreSQLPoolConnector,
    PostgreSQLTransaction,
    NOT_STARTED,
    EXHAUSTED,
    scan_row,
)
from .exceptions import (
    DatabaseNotConnected,
    TransactionInProgress,
    OperationTimeoutError,
    NoRowsError,
    CursorIteratorError,
    ConstructionError,
    TransientError,
    FatalError,
    TransactionStartError,
    FetchTimeoutError,
    CursorDeclarationError,
    RowDecodeError,
    UnexpectedRowCountError,
    FetchError,
    RollbackError,
)
from .utils import iter_dataframes, slot_as_record

__all__ = [
    "CursorIterator",
    "Connector",
    "Transaction",
    "PostgreSQLConnector",
    "PostgreSQLPoolConnector",
    "PostgreSQLTransaction",
    "NOT_STARTED",
    "EXHAUSTED",
    "scan_row",
    "iter_dataframes",
    "slot_as_record",
    "DatabaseNotConnected",
    "TransactionInProgress",
    "OperationTimeoutError",
    "NoRowsError",
    "CursorIteratorError",
    "ConstructionError",
    "TransientError",
    "FatalError",
    "TransactionStartError",
    "FetchTimeoutError",
    "CursorDeclarationError",
    "RowDecodeError",
    "UnexpectedRowCountError",
    "FetchError",
    "RollbackError",
]
