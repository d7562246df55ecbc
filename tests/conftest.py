"""Shared fixtures: a file-backed SQLite store with the shop schema."""

import pytest

from stressedout.content import FakerContent
from stressedout.errors import BackendError
from stressedout.schema import setup_database
from stressedout.store import ConnectionPool, SQLiteDialect, StoreClient


@pytest.fixture
def store(tmp_path):
    """Store client over a fresh database with all four tables."""
    dialect = SQLiteDialect(str(tmp_path / "shop.db"))
    client = StoreClient(ConnectionPool(dialect.connect, max_size=8, timeout=5), dialect)
    assert setup_database(client) == []
    yield client
    client.close()


@pytest.fixture
def content():
    """Reproducible content source."""
    return FakerContent(seed=1234)


@pytest.fixture
def count_rows(store):
    """Return a function counting rows of a table."""
    def count(table: str) -> int:
        return store.query_one(f"SELECT COUNT(*) AS count FROM {table}")["count"]
    return count


class RecordingStore:
    """Wraps a StoreClient and records calls; optionally fails bulk inserts."""

    def __init__(self, store, fail_table: str | None = None, fail_on_batch: int = 1):
        self.store = store
        self.fail_table = fail_table
        self.fail_on_batch = fail_on_batch
        self.calls: list[tuple[str, str]] = []
        self._batches: dict[str, int] = {}

    def __getattr__(self, name):
        return getattr(self.store, name)

    def query_one(self, query, params=()):
        self.calls.append(("query_one", query))
        return self.store.query_one(query, params)

    def query_many(self, query, params=()):
        self.calls.append(("query_many", query))
        return self.store.query_many(query, params)

    def exec(self, statement, params=()):
        self.calls.append(("exec", statement))
        return self.store.exec(statement, params)

    def insert(self, entity):
        self.calls.append(("insert", entity.TABLE))
        return self.store.insert(entity)

    def bulk_insert(self, table, columns, rows):
        self.calls.append(("bulk_insert", table))
        self._batches[table] = self._batches.get(table, 0) + 1
        if table == self.fail_table and self._batches[table] >= self.fail_on_batch:
            raise BackendError(f"injected failure on {table}")
        return self.store.bulk_insert(table, columns, rows)

    def writes(self) -> list[tuple[str, str]]:
        return [call for call in self.calls if call[0] in ("insert", "exec", "bulk_insert")]


@pytest.fixture
def recording():
    """Factory wrapping a store in a RecordingStore."""
    return RecordingStore
