"""
Pool-bounded store client.

All datastore access goes through one StoreClient holding a fixed-size
ConnectionPool. Callers block until a connection is free; with a pool timeout
configured they get a BackendError instead of waiting forever. Nothing here
retries.

Two backends share the same client:
    SQLiteDialect    stdlib sqlite3, file database in WAL mode
    PostgresDialect  psycopg2, bulk inserts via execute_values

Queries are written with "?" placeholders and rewritten per dialect.
"""

import logging
import sqlite3
import threading
from contextlib import contextmanager
from datetime import datetime
from decimal import Decimal
from typing import Any, Callable, Iterator, Sequence

import psycopg2
from psycopg2.extras import execute_values

from stressedout.config import BACKEND_SQLITE, Settings
from stressedout.errors import BackendError, ConstraintError, NotFoundError

logger = logging.getLogger(__name__)


# =============================================================================
# SQL Helpers
# =============================================================================

def insert_statement(table: str, columns: Sequence[str]) -> str:
    """INSERT statement with "?" placeholders for one row."""
    placeholders = ", ".join("?" for _ in columns)
    return f"INSERT INTO {table} ({', '.join(columns)}) VALUES ({placeholders})"


def _rows_as_dicts(cursor, rows: list[tuple]) -> list[dict[str, Any]]:
    columns = [description[0] for description in cursor.description]
    return [dict(zip(columns, row)) for row in rows]


# =============================================================================
# Dialects
# =============================================================================

# SQLite has no native decimal or timestamp type; store both as text
sqlite3.register_adapter(Decimal, str)
sqlite3.register_adapter(datetime, lambda value: value.isoformat())


class SQLiteDialect:
    """File-backed SQLite; connections are shared across worker threads."""

    name = BACKEND_SQLITE
    integrity_errors = (sqlite3.IntegrityError,)
    driver_errors = (sqlite3.Error,)

    def __init__(self, path: str, busy_timeout: float = 30.0):
        self.path = path
        self.busy_timeout = busy_timeout

    def connect(self) -> sqlite3.Connection:
        try:
            conn = sqlite3.connect(self.path, timeout=self.busy_timeout, check_same_thread=False)
            conn.execute("PRAGMA journal_mode = WAL")
            conn.execute("PRAGMA synchronous = NORMAL")
            conn.execute("PRAGMA foreign_keys = ON")
        except sqlite3.Error as e:
            raise BackendError(f"cannot open sqlite database {self.path}: {e}") from e
        return conn

    def prepare(self, query: str) -> str:
        return query

    def insert_many(self, cursor, table: str, columns: Sequence[str], rows: Sequence[tuple]) -> None:
        cursor.executemany(insert_statement(table, columns), rows)


class PostgresDialect:
    """PostgreSQL through psycopg2."""

    name = "postgres"
    integrity_errors = (psycopg2.IntegrityError,)
    driver_errors = (psycopg2.Error,)

    def __init__(self, addr: str, user: str, password: str, database: str, connect_timeout: int = 10):
        host, _, port = addr.rpartition(":")
        self.host = host or addr
        self.port = int(port) if host else 5432
        self.user = user
        self.password = password
        self.database = database
        self.connect_timeout = connect_timeout

    def connect(self):
        try:
            return psycopg2.connect(
                host=self.host,
                port=self.port,
                user=self.user,
                password=self.password,
                dbname=self.database,
                connect_timeout=self.connect_timeout,
            )
        except psycopg2.Error as e:
            raise BackendError(f"cannot connect to postgres at {self.host}:{self.port}: {e}") from e

    def prepare(self, query: str) -> str:
        return query.replace("?", "%s")

    def insert_many(self, cursor, table: str, columns: Sequence[str], rows: Sequence[tuple]) -> None:
        # page_size covers the whole batch so it goes out as one statement
        execute_values(
            cursor,
            f"INSERT INTO {table} ({', '.join(columns)}) VALUES %s",
            rows,
            page_size=max(1, len(rows)),
        )


# =============================================================================
# Connection Pool
# =============================================================================

class ConnectionPool:
    """
    Fixed-size pool of reusable connections.

    Connections are opened lazily up to max_size. checkout() blocks while all
    of them are in use; with a timeout it raises BackendError instead.
    Connections that failed with a BackendError are closed, not reused.
    """

    def __init__(self, connect: Callable[[], Any], max_size: int, timeout: float | None = None):
        if max_size < 1:
            raise ValueError(f"max_size must be >= 1, got {max_size}")
        self._connect = connect
        self.max_size = max_size
        self.timeout = timeout
        self._slots = threading.BoundedSemaphore(max_size)
        self._lock = threading.Lock()
        self._idle: list[Any] = []
        self._opened = 0
        self._in_use = 0
        self._closed = False

    @property
    def size(self) -> int:
        """Number of open connections (idle + in use)."""
        return self._opened

    @property
    def in_use(self) -> int:
        return self._in_use

    def checkout(self):
        if self.timeout is None:
            self._slots.acquire()
        elif not self._slots.acquire(timeout=self.timeout):
            logger.warning(f"Connection pool exhausted ({self.max_size} in use, waited {self.timeout}s)")
            raise BackendError(
                f"connection pool exhausted: {self.max_size} connections in use after {self.timeout}s"
            )

        with self._lock:
            if self._closed:
                self._slots.release()
                raise BackendError("connection pool is closed")
            conn = self._idle.pop() if self._idle else None
            self._in_use += 1

        if conn is None:
            try:
                conn = self._connect()
            except BaseException:
                with self._lock:
                    self._in_use -= 1
                self._slots.release()
                raise
            with self._lock:
                self._opened += 1
            logger.debug(f"Opened connection {self._opened}/{self.max_size}")
        return conn

    def release(self, conn, broken: bool = False) -> None:
        with self._lock:
            self._in_use -= 1
            keep = not broken and not self._closed
            if keep:
                self._idle.append(conn)
            else:
                self._opened -= 1
        if not keep:
            _close_quietly(conn)
        self._slots.release()

    @contextmanager
    def connection(self) -> Iterator[Any]:
        """Check out a connection for the duration of the block."""
        conn = self.checkout()
        broken = False
        try:
            yield conn
        except BackendError:
            broken = True
            raise
        finally:
            self.release(conn, broken=broken)

    def close(self) -> None:
        """Close idle connections; in-use ones are closed when released."""
        with self._lock:
            self._closed = True
            idle, self._idle = self._idle, []
            self._opened -= len(idle)
        for conn in idle:
            _close_quietly(conn)


def _close_quietly(conn) -> None:
    try:
        conn.close()
    except Exception as e:
        logger.debug(f"Ignoring error while closing connection: {e}")


# =============================================================================
# Store Client
# =============================================================================

class StoreClient:
    """Query-one, query-many, bulk-insert and exec over a ConnectionPool."""

    def __init__(self, pool: ConnectionPool, dialect):
        self.pool = pool
        self.dialect = dialect

    @classmethod
    def from_settings(cls, settings: Settings) -> "StoreClient":
        """Build the dialect and pool described by settings."""
        if settings.backend == BACKEND_SQLITE:
            dialect = SQLiteDialect(settings.sqlite_path)
        else:
            dialect = PostgresDialect(
                settings.postgres_addr,
                settings.postgres_user,
                settings.postgres_password,
                settings.postgres_db,
            )
        pool = ConnectionPool(dialect.connect, settings.pool_size, settings.pool_timeout)
        logger.info(f"Store client: backend={dialect.name} pool_size={settings.pool_size} "
                    f"pool_timeout={settings.pool_timeout}")
        return cls(pool, dialect)

    def _run(self, operation: str, work: Callable[[Any], Any]) -> Any:
        """Run work(cursor) on a pooled connection and commit, mapping driver errors."""
        with self.pool.connection() as conn:
            try:
                result = work(conn.cursor())
                conn.commit()
                return result
            except self.dialect.integrity_errors as e:
                self._rollback(conn)
                raise ConstraintError(f"{operation}: {e}") from e
            except self.dialect.driver_errors as e:
                self._rollback(conn)
                raise BackendError(f"{operation}: {e}") from e

    def _rollback(self, conn) -> None:
        try:
            conn.rollback()
        except self.dialect.driver_errors as e:
            logger.debug(f"Rollback failed: {e}")

    def query_one(self, query: str, params: Sequence[Any] = ()) -> dict[str, Any]:
        """
        Fetch exactly one row.

        Raises:
            NotFoundError: the query matched no rows
            BackendError: connection, timeout or protocol failure
        """
        def work(cursor):
            cursor.execute(self.dialect.prepare(query), tuple(params))
            row = cursor.fetchone()
            return None if row is None else _rows_as_dicts(cursor, [row])[0]

        row = self._run("query one", work)
        if row is None:
            raise NotFoundError("query returned no rows")
        return row

    def query_many(self, query: str, params: Sequence[Any] = ()) -> list[dict[str, Any]]:
        """Fetch all matching rows; an empty list when nothing matches."""
        def work(cursor):
            cursor.execute(self.dialect.prepare(query), tuple(params))
            return _rows_as_dicts(cursor, cursor.fetchall())

        return self._run("query many", work)

    def bulk_insert(self, table: str, columns: Sequence[str], rows: Sequence[tuple]) -> int:
        """
        Insert a batch of homogeneous rows in one round trip.

        The batch is one transaction: either every row lands or none does.

        Returns:
            Number of rows inserted

        Raises:
            ConstraintError: any row violates a constraint (whole batch rolled back)
            BackendError: connection, timeout or protocol failure
        """
        if not rows:
            return 0
        self._run(
            f"bulk insert into {table}",
            lambda cursor: self.dialect.insert_many(cursor, table, columns, rows),
        )
        return len(rows)

    def exec(self, statement: str, params: Sequence[Any] = ()) -> int:
        """Execute DDL or a single-row write; returns the affected row count."""
        def work(cursor):
            cursor.execute(self.dialect.prepare(statement), tuple(params))
            return cursor.rowcount

        return self._run("exec", work)

    def insert(self, entity) -> None:
        """Insert one model instance (User, Product, Order or Review)."""
        self.exec(insert_statement(entity.TABLE, entity.COLUMNS), entity.to_row())

    def close(self) -> None:
        self.pool.close()
