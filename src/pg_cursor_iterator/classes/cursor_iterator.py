from __future__ import annotations

# Standard imports
import logging
import threading
from collections.abc import MutableSequence
from datetime import timedelta
from typing import Any, Generic, Iterator, TypeVar

# Custom utils and objs
from ..utils.general import to_seconds
from ..exceptions import (
    ConstructionError,
    CursorIteratorError,
    TransactionStartError,
    CursorDeclarationError,
    FetchTimeoutError,
    FetchError,
    RowDecodeError,
    UnexpectedRowCountError,
    RollbackError,
    NoRowsError,
)
from .connector import Connector, Transaction
from .iterator_state import IteratorState, NotStarted, Active, Exhausted
from .loggable import Loggable
from .row_decoder import RowDecoder, is_addressable, scan_row


T = TypeVar("T")


# CursorIterator class definition
class CursorIterator(Loggable, Generic[T]):
    """Iterates over a big result set by fetching it batch by batch from a server-side cursor into [values].

    The buffer is reused: after each successful advance() the current row lives in values[value_index()],
    and it is overwritten on the next refill, so copy anything you want to keep.

    Example usage:

        values = [User() for _ in range(1000)]
        with CursorIterator(connector, values, 60, "SELECT * FROM users WHERE role = %s", "Guest") as it:
            while it.advance():
                print(values[it.value_index()].name)
            if it.error() is not None:
                raise it.error()
    """

    connector:Connector                                     # Starts the transaction on first advance()
    values:MutableSequence[T]                               # The caller's buffer; every slot is written in place
    batch_size:int                                          # Number of rows requested per FETCH (len(values))
    max_database_execution_time:float|None                  # Seconds one database round trip may take (None = no deadline)
    query:str                                               # The SELECT the cursor is declared for
    args:tuple                                              # Positional bind parameters for [query]
    cursor_name:str                                         # Name of the server-side cursor
    fetch_query:str                                         # FETCH statement built from [batch_size]


    def __init__(
            self,
            connector:Connector,
            values:MutableSequence[T],
            max_database_execution_time:float|int|timedelta|None,
            query:str,
            *args:Any,
            decoder:RowDecoder|None=None,
            cursor_name:str='curs',
            enable_logging:bool=False,
            log_file_path:str='./cursor_iterator.log',
            logger_name:str='cursor_iterator_logger',
            logger_min_level:int=logging.DEBUG,
            logger_format:str="%(asctime)s - %(levelname)s: %(message)s"
        ):

        # Validate the collaborators and the buffer
        if connector is None:
            raise ConstructionError("connector cannot be nil")
        if values is None:
            raise ConstructionError("values cannot be nil")
        if not isinstance(values, MutableSequence):
            raise ConstructionError("values must be a slice")
        if len(values) <= 0:
            raise ConstructionError("values must have a capacity bigger than 0")

        # Every slot must be writable in place since rows are decoded into it
        for slot in values:
            if not is_addressable(slot):
                raise ConstructionError(f"unable to reference {type(slot).__name__}")

        # Normalize the per-operation deadline
        try:
            timeout:float|None = to_seconds(max_database_execution_time)
        except (TypeError, ValueError) as e:
            raise ConstructionError(f"invalid max_database_execution_time: {e}") from e

        # Set the base attributes
        self.connector = connector
        self.values = values
        self.batch_size = len(values)
        self.max_database_execution_time = timeout
        self.query = query
        self.args = args
        self.cursor_name = cursor_name
        self.fetch_query = f"FETCH {self.batch_size} IN {cursor_name}"
        self._decoder:RowDecoder = decoder if decoder is not None else scan_row

        # Mutable state, guarded by [self._lock]
        self._state:IteratorState = NotStarted()
        self._transaction:Transaction|None = None
        self._error:CursorIteratorError|None = None
        self._lock = threading.Lock()

        # Setup logging if configured
        self._setup_logging(enable_logging, log_file_path, logger_name, logger_min_level, logger_format)


    # ---- Public API ---- #
    def advance(self) -> bool:
        """Returns True if a next value is available in values[value_index()], False otherwise.
        Fetches the next batch when every buffered value has been read.

            NOTE:
                - False either means the cursor is drained or that something failed; check error() to tell them apart
                - A failure with error().retryable == True leaves the iterator usable and the next call retries
        """
        with self._lock:
            match self._state:

                # Terminal: nothing will ever come again
                case Exhausted():
                    return False

                # The first FETCH timed out: retry it on the open transaction
                case NotStarted(declared=True):
                    return self._refill()

                # First call: start the transaction, declare the cursor and fetch the first batch
                case NotStarted():
                    return self._start()

                # Values left in the buffer: no I/O needed
                case Active() as state if state.has_buffered_next():
                    self._state = state.step()
                    return True

                # Hit the end of the batch: fetch the next one
                case Active():
                    return self._refill()


    def value_index(self) -> int:
        """Returns the index of the current value in [values].
        NOTE: returns NOT_STARTED (-2) before the first advance() and EXHAUSTED (-1) once there are no more values."""
        with self._lock:
            return self._state.index


    def error(self) -> CursorIteratorError|None:
        """Returns the last error that appeared during fetching (does not clear it)."""
        with self._lock:
            return self._error


    def close(self) -> CursorIteratorError|None:
        """Closes the iterator and rolls back its transaction; every following advance() returns False.
        Returns the rollback error, if any. Safe to call more than once."""
        with self._lock:
            self._close()
            return self._error


    @property
    def exhausted(self) -> bool:
        with self._lock:
            return isinstance(self._state, Exhausted)


    # ---- Python protocols ---- #
    def __iter__(self) -> Iterator[T]:
        """Yields the current slot after every successful advance().
        NOTE: the yielded slot is overwritten by the next refill, copy it if it has to outlive the loop body."""
        while self.advance():
            yield self.values[self.value_index()]


    def __enter__(self) -> "CursorIterator[T]":
        return self


    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()


    def __repr__(self) -> str:
        return f"<{type(self).__name__} cursor={self.cursor_name!r} batch_size={self.batch_size} state={self._state!r}>"


    # ---- State transitions (callers hold [self._lock]) ---- #
    def _start(self) -> bool:
        """Begins the transaction, declares the cursor and performs the first refill."""

        # Start a transaction
        # NOTE: on failure the iterator stays NotStarted so that the next advance() tries again
        try:
            self._transaction = self.connector.begin(self.max_database_execution_time)
        except Exception as e:
            self._transaction = None
            self._error = TransactionStartError(e)
            self.log_warning('advance()', str(self._error))
            return False
        self.log_debug('advance()', 'Transaction started.')

        # Declare the cursor
        try:
            self._transaction.execute(
                f"DECLARE {self.cursor_name} CURSOR FOR {self.query}",
                self.args,
                timeout=self.max_database_execution_time,
            )
        except Exception as e:
            self._close()
            self._error = CursorDeclarationError(e)
            self.log_error('advance()', self._error)
            return False
        self._state = NotStarted(declared=True)
        self.log_debug('advance()', f'Declared cursor "{self.cursor_name}" for: {self.query}')

        # Fetch the initial rows
        return self._refill()


    def _refill(self) -> bool:
        """Fetches the next batch into [self.values]. Returns True if at least one row was fetched."""

        # Run the FETCH
        try:
            rows = self._transaction.query(self.fetch_query, timeout=self.max_database_execution_time)

        # Cursor is drained
        except NoRowsError:
            return self._finish()

        # Too slow: keep the transaction and the current state so the next advance() retries this fetch
        except TimeoutError as e:
            self._error = FetchTimeoutError(e)
            self.log_warning('advance()', str(self._error))
            return False

        # Anything else is fatal
        except Exception as e:
            return self._fail(FetchError(e))

        # Stream the rows into the buffer
        n:int = 0
        drained:bool = False
        failure:CursorIteratorError|None = None
        try:
            for row in rows:

                # The FETCH size is an upper bound
                if n >= self.batch_size:
                    failure = UnexpectedRowCountError(self.batch_size)
                    break

                try:
                    self._decoder(row, self.values[n])
                except Exception as e:
                    failure = RowDecodeError(e)
                    break
                n += 1

        # Cursor is drained
        except NoRowsError:
            drained = True

        # Handle exceptions raised while streaming
        except Exception as e:
            failure = FetchError(e)

        # Release the row source (e.g. a database cursor) while the transaction still owns the connection
        close = getattr(rows, "close", None)
        if callable(close):
            try:
                close()
            except Exception as e:
                if failure is None: failure = FetchError(e)

        if failure is not None:
            return self._fail(failure)

        # Empty batch or drained signal: no more rows
        if drained or n == 0:
            return self._finish()

        self._state = Active(position=0, filled=n)
        self.log_debug('advance()', f'Fetched {n} rows.')
        return True


    def _finish(self) -> bool:
        """Closes after the cursor ran out of rows. Always returns False."""
        self._close()
        self.log_debug('advance()', 'Cursor drained.')
        return False


    def _fail(self, error:CursorIteratorError) -> bool:
        """Closes and records a fatal error. Always returns False."""
        self._close()
        self._error = error
        self.log_error('advance()', error)
        return False


    def _close(self) -> None:
        """Rolls back the transaction (if open) and marks the iterator exhausted."""

        # Nothing to release: clear the error
        if self._transaction is None:
            self._error = None
            self._state = Exhausted()
            return

        # Rollback (never commit; the cursor only reads)
        try:
            self._transaction.rollback(self.max_database_execution_time)
            self._error = None
        except Exception as e:
            self._error = RollbackError(e)
            self.log_error('close()', self._error)

        # Exhausted regardless of the rollback outcome
        finally:
            self._transaction = None
            self._state = Exhausted()
