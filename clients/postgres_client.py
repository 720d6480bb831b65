"""
PostgreSQL access for the auth tables (users, security_events).

One psycopg2 ThreadedConnectionPool per client. Route handlers run in
FastAPI's threadpool, so each call borrows a connection, runs in its own
transaction and hands the connection back.
"""

import logging
import threading
from contextlib import contextmanager
from typing import Any, Iterator, Mapping, Sequence

import psycopg2
import psycopg2.extras
import psycopg2.pool

logger = logging.getLogger(__name__)

Params = Sequence[Any] | Mapping[str, Any] | None


class PostgresClient:
    """
    Pooled PostgreSQL client returning rows as dicts.

    The pool is opened lazily on first use, so constructing a client never
    touches the network.

    Usage:
        db = PostgresClient(database_url)
        row = db.fetch_one("SELECT * FROM users WHERE id = %s", (user_id,))
        updated = db.execute("UPDATE users SET ... WHERE id = %s", (user_id,))
    """

    def __init__(self, database_url: str, min_connections: int = 1, max_connections: int = 10):
        if min_connections < 1 or max_connections < min_connections:
            raise ValueError(
                f"Invalid pool size: min={min_connections}, max={max_connections}"
            )
        self._database_url = database_url
        self._min_connections = min_connections
        self._max_connections = max_connections
        self._pool: psycopg2.pool.ThreadedConnectionPool | None = None
        self._pool_lock = threading.Lock()

    def _get_pool(self) -> psycopg2.pool.ThreadedConnectionPool:
        with self._pool_lock:
            if self._pool is None:
                self._pool = psycopg2.pool.ThreadedConnectionPool(
                    minconn=self._min_connections,
                    maxconn=self._max_connections,
                    dsn=self._database_url,
                    connect_timeout=10,
                )
                logger.info(
                    f"Postgres pool opened ({self._min_connections}-{self._max_connections} connections)"
                )
            return self._pool

    @contextmanager
    def transaction(self) -> Iterator[psycopg2.extras.RealDictCursor]:
        """
        Cursor inside one transaction: commit on success, rollback on error.

        The connection goes back to the pool either way.
        """
        pool = self._get_pool()
        conn = pool.getconn()
        try:
            with conn.cursor(cursor_factory=psycopg2.extras.RealDictCursor) as cur:
                yield cur
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            pool.putconn(conn)

    def fetch_all(self, query: str, params: Params = None) -> list[dict[str, Any]]:
        with self.transaction() as cur:
            cur.execute(query, params)
            return [dict(row) for row in cur.fetchall()] if cur.description else []

    def fetch_one(self, query: str, params: Params = None) -> dict[str, Any] | None:
        """First row or None. Also used for INSERT ... RETURNING."""
        with self.transaction() as cur:
            cur.execute(query, params)
            if cur.description is None:
                return None
            row = cur.fetchone()
            return dict(row) if row is not None else None

    def execute(self, query: str, params: Params = None) -> int:
        """Run a statement without a result set. Returns the affected row count."""
        with self.transaction() as cur:
            cur.execute(query, params)
            return cur.rowcount

    def ping(self) -> bool:
        """Raises psycopg2.Error if the database is unreachable."""
        with self.transaction() as cur:
            cur.execute("SELECT 1")
        return True

    def close(self) -> None:
        with self._pool_lock:
            if self._pool is not None:
                self._pool.closeall()
                self._pool = None
                logger.info("Postgres pool closed")
