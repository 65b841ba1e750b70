"""
PostgreSQL client for the billing tables.

psycopg2 with one ThreadedConnectionPool per database URL, shared by every
client instance in the process. Rows come back as plain dicts and UUID
parameters are sent as strings. A bill write touches several tables, so it
runs inside ``transaction()``; single reads and audit inserts use
``execute``.
"""

import logging
import threading
from contextlib import contextmanager
from typing import Any, Dict, Iterator, List, Tuple
from uuid import UUID

import psycopg2
import psycopg2.extras
import psycopg2.pool

logger = logging.getLogger(__name__)

Params = Tuple | Dict | None

_jsonb_registered = False


def _convert(value: Any) -> Any:
    """UUIDs to strings, recursing into lists, tuples and dicts."""
    if isinstance(value, UUID):
        return str(value)
    if isinstance(value, list):
        return [_convert(v) for v in value]
    if isinstance(value, tuple):
        return tuple(_convert(v) for v in value)
    if isinstance(value, dict):
        return {k: _convert(v) for k, v in value.items()}
    return value


def _rows(cursor) -> List[Dict[str, Any]]:
    if not cursor.description:
        return []
    return [dict(row) for row in cursor.fetchall()]


class PostgresClient:
    """
    Pooled PostgreSQL access.

    Usage:
        db = PostgresClient(database_url)

        rows = db.execute("SELECT * FROM bills WHERE patient_id = %s", (patient_id,))

        with db.transaction() as cur:
            cur.execute("UPDATE bills SET ... WHERE id = %s AND version = %s", (...))
            cur.execute("INSERT INTO bill_payments ...", (...))
    """

    _connection_pools: Dict[str, psycopg2.pool.ThreadedConnectionPool] = {}
    _pools_lock = threading.RLock()

    def __init__(self, database_url: str):
        self._database_url = database_url
        self._ensure_connection_pool()

    def _ensure_connection_pool(self) -> psycopg2.pool.ThreadedConnectionPool:
        global _jsonb_registered

        with self._pools_lock:
            pool = self._connection_pools.get(self._database_url)
            if pool is None:
                pool = psycopg2.pool.ThreadedConnectionPool(
                    minconn=2,
                    maxconn=20,
                    dsn=self._database_url,
                    connect_timeout=30,
                )
                if not _jsonb_registered:
                    psycopg2.extras.register_default_jsonb(globally=True)
                    _jsonb_registered = True

                self._connection_pools[self._database_url] = pool
                logger.info("Billing database pool created")
            return pool

    @contextmanager
    def get_connection(self):
        """Borrow a pooled connection for the duration of the block."""
        pool = self._ensure_connection_pool()
        conn = pool.getconn()
        if conn is None:
            raise psycopg2.pool.PoolError("Could not get connection from pool")
        try:
            yield conn
        finally:
            pool.putconn(conn)

    def execute(self, query: str, params: Params = None) -> List[Dict[str, Any]]:
        """Run one statement in its own transaction. Returns rows, or [] if none."""
        with self.get_connection() as conn:
            with conn.cursor(cursor_factory=psycopg2.extras.RealDictCursor) as cur:
                cur.execute(query, _convert(params))
                rows = _rows(cur)
            conn.commit()
        return rows

    def execute_single(self, query: str, params: Params = None) -> Dict[str, Any] | None:
        """First row or None."""
        rows = self.execute(query, params)
        return rows[0] if rows else None

    @contextmanager
    def transaction(self) -> Iterator["TransactionCursor"]:
        """
        Run several statements as one atomic unit.

        Commits when the block exits normally. On any exception the
        transaction is rolled back and the exception re-raised.
        """
        with self.get_connection() as conn:
            try:
                with conn.cursor(cursor_factory=psycopg2.extras.RealDictCursor) as cur:
                    yield TransactionCursor(cur)
                conn.commit()
            except Exception:
                conn.rollback()
                raise

    def close(self) -> None:
        """Close this URL's pool."""
        with self._pools_lock:
            pool = self._connection_pools.pop(self._database_url, None)
            if pool is not None:
                pool.closeall()


class TransactionCursor:
    """Cursor handed out by ``PostgresClient.transaction``."""

    def __init__(self, cursor):
        self._cursor = cursor

    def execute(self, query: str, params: Params = None) -> List[Dict[str, Any]]:
        """Run a statement inside the open transaction. Returns rows, or [] if none."""
        self._cursor.execute(query, _convert(params))
        return _rows(self._cursor)
