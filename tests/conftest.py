import re

import pytest


USERS = [
    {"id": 1, "name": "Joe"},
    {"id": 2, "name": "Alice"},
    {"id": 3, "name": "Bob"},
    {"id": 4, "name": "Mike"},
    {"id": 5, "name": "Maria"},
]


_FETCH = re.compile(r"^FETCH (\d+) IN (\w+)$")


class FakeTransaction:
    """In-memory transaction implementing DECLARE/FETCH semantics over a list of rows.

    Failures are injected through [failures]: operation name ("execute", "query", "rollback")
    -> list of exceptions, raised (and consumed) one per call.
    """

    def __init__(self, rows, failures=None, extra_rows=0):
        self.rows = rows
        self.failures = failures if failures is not None else {}
        self.extra_rows = extra_rows    # Rows returned on top of the requested FETCH size
        self.statements = []            # (sql, args, timeout) of every call
        self.cursors = {}               # cursor name -> remaining rows
        self.rolled_back = False
        self.committed = False

    def _maybe_fail(self, operation):
        # NOTE: a None entry lets that call succeed
        pending = self.failures.get(operation)
        if pending:
            exc = pending.pop(0)
            if exc is not None: raise exc

    def execute(self, sql, args=(), timeout=None):
        self.statements.append((sql, tuple(args), timeout))
        self._maybe_fail("execute")
        match = re.match(r"^DECLARE (\w+) CURSOR FOR (.*)$", sql, re.S)
        if match:
            self.cursors[match.group(1)] = list(self.rows)

    def query(self, sql, args=(), timeout=None):
        self.statements.append((sql, tuple(args), timeout))
        self._maybe_fail("query")
        size, name = _FETCH.match(sql).groups()
        remaining = self.cursors[name]
        n = int(size) + self.extra_rows
        batch, self.cursors[name] = remaining[:n], remaining[n:]
        return [dict(row) for row in batch]

    def rollback(self, timeout=None):
        self.statements.append(("ROLLBACK", (), timeout))
        self._maybe_fail("rollback")
        self.rolled_back = True

    def commit(self):
        self.committed = True


class FakeConnector:
    """Connector handing out FakeTransactions over [rows]."""

    def __init__(self, rows=(), failures=None, extra_rows=0):
        self.rows = list(rows)
        self.failures = failures if failures is not None else {}
        self.extra_rows = extra_rows
        self.transactions = []
        self.begin_timeouts = []

    def begin(self, timeout=None):
        self.begin_timeouts.append(timeout)
        pending = self.failures.get("begin")
        if pending:
            raise pending.pop(0)
        tx = FakeTransaction(self.rows, self.failures, self.extra_rows)
        self.transactions.append(tx)
        return tx

    @property
    def transaction(self):
        return self.transactions[-1] if self.transactions else None


@pytest.fixture
def users():
    """The five users stored by default."""
    return list(USERS)


@pytest.fixture
def make_connector():
    """Factory fixture for FakeConnectors."""

    # Helper func
    def _make(rows=USERS, **kwargs): return FakeConnector(rows, **kwargs)

    # Return the helper func
    return _make
