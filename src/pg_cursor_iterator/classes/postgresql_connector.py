# Standard imports
import logging
from typing import Any, Callable, Iterator, Mapping, Sequence

# Imports for the DB driver
import psycopg2 as psql
import psycopg2.errors as _psql_errors
import psycopg2.extensions as _psql_ext
from psycopg2.extensions import connection as PSQLConnection
from psycopg2.extensions import cursor as PSQLCursor
from psycopg2.extras import RealDictCursor
from psycopg2.pool import AbstractConnectionPool

# Custom utils and objs
from ..exceptions import DatabaseNotConnected, TransactionInProgress, OperationTimeoutError
from ..utils.general import to_seconds
from .loggable import Loggable


def _timeout_ms(timeout:float|None) -> int:
    """Converts a timeout in seconds to a statement_timeout value (ms); 0 disables the timeout in PostgreSQL."""
    if timeout is None: return 0
    return max(1, int(round(timeout * 1000)))


# PostgreSQLTransaction class definition
class PostgreSQLTransaction(object):
    """A transaction on a psycopg2 connection. Every statement is bounded by a server-side statement_timeout.

        NOTE:
            - psycopg2 opens the transaction implicitly with the first statement (autocommit must be off)
            - A statement cancelled by statement_timeout raises OperationTimeoutError; PostgreSQL marks the
              transaction as aborted afterwards, so a retried statement fails until the transaction is rolled back
    """

    cxn:PSQLConnection                                      # The connection the transaction runs on
    release:Callable[[PSQLConnection], None]|None           # Called with [cxn] once the transaction ended (e.g. pool.putconn)


    def __init__(self, cxn:PSQLConnection, *, release:Callable[[PSQLConnection], None]|None=None):
        self.cxn = cxn
        self.release = release
        self._statement_timeout_ms:int|None = None          # The statement_timeout currently set for the transaction
        self._closed:bool = False


    def _apply_timeout(self, cursor:PSQLCursor, timeout:float|None) -> None:
        """Sets the statement_timeout for the rest of the transaction (only when it changes)."""
        ms:int = _timeout_ms(timeout)
        if ms == self._statement_timeout_ms: return
        cursor.execute("SET LOCAL statement_timeout = %s", (ms,))
        self._statement_timeout_ms = ms


    def _run(self, cursor:PSQLCursor, sql:str, args:Sequence[Any], timeout:float|None) -> None:
        """Executes [sql] on [cursor], mapping a server-side cancellation to OperationTimeoutError."""
        try:
            self._apply_timeout(cursor, timeout)

            # Execute with parameters
            if args:
                cursor.execute(sql, tuple(args))

            # Execute without parameters
            # NOTE: keeps literal % characters in the query intact
            else:
                cursor.execute(sql)

        except _psql_errors.QueryCanceled as e:
            raise OperationTimeoutError(sql.split(None, 1)[0].upper(), timeout) from e


    def start(self, timeout:float|None=None) -> "PostgreSQLTransaction":
        """Opens the transaction on the server by setting its statement_timeout."""
        with self.cxn.cursor() as cursor:
            try:
                self._apply_timeout(cursor, timeout)
            except _psql_errors.QueryCanceled as e:
                raise OperationTimeoutError("BEGIN", timeout) from e
        return self


    def execute(self, sql:str, args:Sequence[Any]=(), timeout:float|None=None) -> int:
        """Executes a statement without a result and returns its rowcount."""
        with self.cxn.cursor() as cursor:
            self._run(cursor, sql, args, timeout)
            return cursor.rowcount


    def query(self, sql:str, args:Sequence[Any]=(), timeout:float|None=None) -> Iterator[Mapping[str, Any]]:
        """Executes a statement and returns its rows (as dicts keyed by column name)."""
        cursor:PSQLCursor = self.cxn.cursor(cursor_factory=RealDictCursor)
        try:
            self._run(cursor, sql, args, timeout)
        except Exception:
            cursor.close()
            raise
        return self._stream(cursor)


    def _stream(self, cursor:PSQLCursor) -> Iterator[Mapping[str, Any]]:
        """Yields the rows of [cursor] and closes it afterwards."""
        try:
            yield from cursor
        finally:
            cursor.close()


    def rollback(self, timeout:float|None=None) -> None:
        """Rolls back the transaction and releases the connection.
        NOTE: psycopg2 offers no deadline for ROLLBACK, so [timeout] is accepted for the Transaction protocol only."""
        if self._closed: return
        try:
            self.cxn.rollback()
        finally:
            self._closed = True
            if self.release is not None:
                self.release(self.cxn)


# PostgreSQLConnector class definition
class PostgreSQLConnector(Loggable):
    """Connector on a single psycopg2 connection. Only one transaction (i.e. one iterator) can be open at a time."""

    host:str|None                                           # Host of the PostgreSQL server
    port:int                                                # Port of the PostgreSQL server; defaults to 5432
    username:str|None                                       # Login user
    database:str|None                                       # Database to connect to
    cxn:PSQLConnection|None                                 # The database connection object


    def __init__(
            self,
            host:str,
            username:str,
            password:str,
            *,
            port:int|None=None,
            database:str|None=None,
            connect_timeout:float|None=None,
            enable_logging:bool=True,
            log_file_path:str='./database_connection.log',
            logger_name:str='database_connection_logger',
            logger_min_level:int=logging.DEBUG,
            logger_format:str="%(asctime)s - %(levelname)s: %(message)s"
        ):

        # Set port if None is given
        if port is None: port = 5432

        # Set the base attributes
        self.host = host
        self.port = port
        self.username = username
        self.password = password
        self.database = database

        # Setup logging if configured
        self._setup_logging(enable_logging, log_file_path, logger_name, logger_min_level, logger_format)

        # Connect
        try:
            kwargs:dict[str, Any] = {}
            if connect_timeout is not None:
                kwargs["connect_timeout"] = max(1, int(to_seconds(connect_timeout)))

            self.cxn = psql.connect(
                dbname=database,
                host=host,
                port=port,
                user=username,
                password=password,
                **kwargs
            )
            self._prepare_connection()

        # Handle exceptions
        except Exception as e:
            self.log_error('__init__()', e)
            self.cxn = None


    @classmethod
    def from_connection(
            cls,
            cxn:PSQLConnection,
            *,
            enable_logging:bool=False,
            log_file_path:str='./database_connection.log',
            logger_name:str='database_connection_logger',
            logger_min_level:int=logging.DEBUG,
            logger_format:str="%(asctime)s - %(levelname)s: %(message)s"
        ) -> "PostgreSQLConnector":
        """Wraps an already open psycopg2 connection (which stays owned by the caller)."""

        # Skip __init__ (it would open a new connection)
        connector:PostgreSQLConnector = cls.__new__(cls)
        connector.host = None
        connector.port = 5432
        connector.username = None
        connector.password = None
        connector.database = None
        connector._setup_logging(enable_logging, log_file_path, logger_name, logger_min_level, logger_format)
        connector.cxn = cxn
        connector._prepare_connection()
        return connector


    def _prepare_connection(self) -> None:
        """Turns autocommit off; cursors (DECLARE) only live inside a transaction block."""
        if self.cxn is not None and self.cxn.autocommit:
            self.cxn.autocommit = False


    # ---- Functions for checking if the database connection is running and healthy ---- #
    def _ensure_cxn(self) -> None:
        """Raises a DatabaseNotConnected exception if the DB is not connected."""
        if not self._check_connection():
            self.log_error('_ensure_cxn()', DatabaseNotConnected())
            raise DatabaseNotConnected()


    def _check_connection(self) -> bool:
        """Returns True if the connection is running and is healthy, False otherwise."""

        # Base case: self.cxn is None
        if self.cxn is None: return False

        # NOTE: TRANSACTION_STATUS_UNKNOWN means the connection to the server is bad
        if getattr(self.cxn, "closed", 1) != 0: return False
        try:
            return self.cxn.get_transaction_status() != _psql_ext.TRANSACTION_STATUS_UNKNOWN
        except Exception:
            return False


    def is_connected(self) -> bool:
        """Public method for checking if the DB is connected and the connection is healthy (does not raise Exceptions)."""
        return self._check_connection()


    # ---- Connector protocol ---- #
    def begin(self, timeout:float|None=None) -> PostgreSQLTransaction:
        """Starts a transaction on the connection; every statement in it is bounded by [timeout] seconds."""

        # Check if the cxn is active
        self._ensure_cxn()

        # Refuse to interleave with a transaction that is still open
        if self.cxn.get_transaction_status() != _psql_ext.TRANSACTION_STATUS_IDLE:
            self.log_error('begin()', TransactionInProgress())
            raise TransactionInProgress()

        # Start the transaction
        try:
            transaction:PostgreSQLTransaction = PostgreSQLTransaction(self.cxn).start(timeout)

        # Handle exceptions
        except Exception as e:
            try:
                self.cxn.rollback()
            except Exception:
                # NOTE: don't mask the original exception
                pass
            self.log_error('begin()', e)
            raise

        self.log_debug('begin()', 'Transaction started.')
        return transaction


    def close(self) -> None:
        """Closes the underlying connection."""
        if self.cxn is None: return
        try:
            self.cxn.close()
        except Exception as e:
            self.log_error('close()', e)
        finally:
            self.cxn = None


# PostgreSQLPoolConnector class definition
class PostgreSQLPoolConnector(Loggable):
    """Connector on a psycopg2 connection pool; each transaction checks a connection out and returns it on rollback."""

    pool:AbstractConnectionPool                             # The pool connections are taken from


    def __init__(
            self,
            pool:AbstractConnectionPool,
            *,
            enable_logging:bool=False,
            log_file_path:str='./database_connection.log',
            logger_name:str='database_connection_logger',
            logger_min_level:int=logging.DEBUG,
            logger_format:str="%(asctime)s - %(levelname)s: %(message)s"
        ):
        self.pool = pool
        self._setup_logging(enable_logging, log_file_path, logger_name, logger_min_level, logger_format)


    def begin(self, timeout:float|None=None) -> PostgreSQLTransaction:
        """Checks a connection out of the pool and starts a transaction on it."""

        # Get a connection
        # NOTE: psycopg2 pools raise PoolError when exhausted
        cxn:PSQLConnection = self.pool.getconn()

        # Start the transaction; give the connection back if that fails
        # NOTE: the autocommit setter raises on a broken connection too
        try:
            if cxn.autocommit:
                cxn.autocommit = False
            transaction:PostgreSQLTransaction = PostgreSQLTransaction(cxn, release=self.pool.putconn).start(timeout)
        except Exception as e:
            try:
                cxn.rollback()
            except Exception:
                # NOTE: don't mask the original exception
                pass
            self.pool.putconn(cxn)
            self.log_error('begin()', e)
            raise

        self.log_debug('begin()', 'Transaction started on a pooled connection.')
        return transaction
