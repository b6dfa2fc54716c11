from __future__ import annotations
from typing import Protocol, Any, Mapping, Sequence, Iterable, runtime_checkable

# NOTE: rows are mappings of column name -> value (e.g. psycopg2 RealDictRow)
Row = Mapping[str, Any]


@runtime_checkable
class Transaction(Protocol):
    """A database transaction as consumed by the CursorIterator. It is never committed."""

    # Statements without a result (DECLARE)
    def execute(
        self,
        sql: str,
        args: Sequence[Any] = (),
        timeout: float | None = None,
    ) -> Any: ...

    # Statements with a result (FETCH)
    # NOTE: raise NoRowsError when the cursor is drained (optional; an empty result works too)
    def query(
        self,
        sql: str,
        args: Sequence[Any] = (),
        timeout: float | None = None,
    ) -> Iterable[Row]: ...

    # Lifecycle
    def rollback(self, timeout: float | None = None) -> None: ...


@runtime_checkable
class Connector(Protocol):
    """Anything that can start a transaction on the target database (a single connection or a pool)."""

    def begin(self, timeout: float | None = None) -> Transaction: ...
