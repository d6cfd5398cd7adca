"""
Database connection pooling for the gateway registry.

Uses psycopg2's ThreadedConnectionPool; request threads borrow a
connection for the duration of one registry call.
"""

from __future__ import annotations

import logging
import os
import threading
from contextlib import contextmanager
from typing import Generator

import psycopg2
from psycopg2.pool import ThreadedConnectionPool

from gateway.config.settings import get_env

logger = logging.getLogger("whatsapp-gateway")

# Pool configuration
DB_POOL_MIN = int(os.environ.get("DB_POOL_MIN", "2"))
DB_POOL_MAX = int(os.environ.get("DB_POOL_MAX", "16"))

# Module-level pool and lock
_pool: ThreadedConnectionPool | None = None
_pool_lock = threading.Lock()


def get_database_url() -> str:
    """Return the PostgreSQL connection string (``DATABASE_URL``).

    Raises:
        ConfigurationError: If it is not configured.
    """
    return get_env("database_url", required=True)


def init_pool() -> None:
    """Initialize the connection pool (idempotent).

    Raises on failure so the application fails fast at startup
    if the database is unreachable.
    """
    global _pool
    if _pool is not None:
        return
    with _pool_lock:
        if _pool is not None:
            return
        _pool = ThreadedConnectionPool(DB_POOL_MIN, DB_POOL_MAX, dsn=get_database_url())
        logger.info(
            "Database connection pool initialized (min=%d, max=%d)",
            DB_POOL_MIN,
            DB_POOL_MAX,
        )


def close_pool() -> None:
    """Close all connections in the pool (idempotent)."""
    global _pool
    if _pool is None:
        return
    with _pool_lock:
        if _pool is None:
            return
        _pool.closeall()
        _pool = None
        logger.info("Database connection pool closed")


def get_pool_stats() -> dict[str, int]:
    """Return current pool statistics (zeros when not initialized)."""
    if _pool is None:
        return {"pool_size": 0, "pool_used": 0}
    used = len(getattr(_pool, "_used", {}))
    idle = len(getattr(_pool, "_pool", []))
    return {"pool_size": used + idle, "pool_used": used}


@contextmanager
def get_db_connection() -> Generator[psycopg2.extensions.connection, None, None]:
    """Context manager for database connections from the pool.

    Yields:
        Database connection

    Note:
        Commits on success, rolls back on exception.
        The connection is always returned to the pool.

    Raises:
        RuntimeError: If the pool has not been initialized.
    """
    if _pool is None:
        raise RuntimeError(
            "Database pool not initialized. Call init_pool() first."
        )
    conn = _pool.getconn()
    try:
        yield conn
        conn.commit()
    except Exception:
        conn.rollback()
        raise
    finally:
        _pool.putconn(conn)
