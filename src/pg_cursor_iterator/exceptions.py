class DatabaseNotConnected(ConnectionError):
    """Raised when a PostgreSQLConnector attempts to begin a transaction but does not have an active [cxn] attribute."""

    def __init__(self):
        super().__init__('The database is not connected or the connection is not healthy.')


class TransactionInProgress(RuntimeError):
    """Raised when a PostgreSQLConnector is asked to begin a transaction while its connection is still inside another one."""

    def __init__(self):
        super().__init__('The connection already has an open transaction; close the previous iterator first.')


class OperationTimeoutError(TimeoutError):
    """Raised by a Transaction when a single database operation exceeds its deadline."""

    def __init__(self, operation:str, timeout:float|None=None):
        self.operation = operation
        self.timeout = timeout
        pretty_timeout = f" after {timeout:g}s" if timeout is not None else ""
        super().__init__(f'The database operation "{operation}" timed out{pretty_timeout}.')


class NoRowsError(LookupError):
    """Raised by a Transaction to signal that the cursor has no rows left."""

    def __init__(self):
        super().__init__('no rows in result set')


# ---- Errors produced by the CursorIterator ---- #
class CursorIteratorError(Exception):
    """Base class of every error produced by a CursorIterator."""

    retryable:bool = False


class ConstructionError(CursorIteratorError, ValueError):
    """Raised by the CursorIterator constructor when one of the given parameters is invalid."""


class TransientError(CursorIteratorError):
    """A recorded failure that leaves the iterator usable; the next advance() retries the same step."""

    retryable = True

    def __init__(self, message:str, cause:BaseException|None=None):
        self.cause = cause
        super().__init__(f"{message}: {cause}" if cause is not None else message)
        self.__cause__ = cause


class FatalError(CursorIteratorError):
    """A recorded failure after which the iterator is exhausted for good."""

    retryable = False

    def __init__(self, message:str, cause:BaseException|None=None):
        self.cause = cause
        super().__init__(f"{message}: {cause}" if cause is not None else message)
        self.__cause__ = cause


class TransactionStartError(TransientError):
    """The connector failed to begin a transaction."""

    def __init__(self, cause:BaseException):
        super().__init__('unable to start transaction', cause)


class FetchTimeoutError(TransientError):
    """A FETCH did not complete within the per-operation deadline."""

    def __init__(self, cause:BaseException):
        super().__init__('unable to fetch rows in time', cause)


class CursorDeclarationError(FatalError):
    """The DECLARE statement for the server-side cursor failed."""

    def __init__(self, cause:BaseException):
        super().__init__('unable to declare cursor', cause)


class RowDecodeError(FatalError):
    """A fetched row could not be written into its buffer slot."""

    def __init__(self, cause:BaseException):
        super().__init__('unable to scan into values element', cause)


class UnexpectedRowCountError(FatalError):
    """The database returned more rows for a single FETCH than the buffer can hold."""

    def __init__(self, batch_size:int):
        self.batch_size = batch_size
        super().__init__('database returned more rows than expected')


class FetchError(FatalError):
    """Fetching the next batch from the cursor failed."""

    def __init__(self, cause:BaseException):
        super().__init__('unable to fetch rows', cause)


class RollbackError(FatalError):
    """Rolling back the iterator's transaction failed."""

    def __init__(self, cause:BaseException):
        super().__init__('unable to rollback transaction', cause)
