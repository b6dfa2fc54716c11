from .connector import Connector, Transaction, Row
from .iterator_state import NOT_STARTED, EXHAUSTED, NotStarted, Active, Exhausted, IteratorState
from .row_decoder import RowDecoder, scan_row, is_addressable
from .cursor_iterator import CursorIterator
from .postgresql_connector import PostgreSQLConnector, PostgreSQLPoolConnector, PostgreSQLTransaction
