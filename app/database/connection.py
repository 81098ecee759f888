from collections.abc import Generator
from contextlib import contextmanager
from typing import Any

import psycopg
from psycopg.conninfo import make_conninfo
from psycopg_pool import ConnectionPool

from app.config.settings import Settings

_pool: ConnectionPool | None = None


def init_pool(settings: Settings) -> None:
    """Initialize the global connection pool, sized for the worker threads."""
    global _pool  # noqa: PLW0603
    conninfo = make_conninfo(
        host=settings.db_host,
        port=settings.db_port,
        dbname=settings.db_database,
        user=settings.db_username,
        password=settings.db_password,
        application_name="receipt-ingest-worker",
    )
    # each worker thread may hold one connection while a repository opens another
    max_size = max(4, settings.worker_concurrency * 2 + 2)
    _pool = ConnectionPool(
        conninfo,
        min_size=1,
        max_size=max_size,
        name="receipt-ingest",
        open=True,
        check=ConnectionPool.check_connection,
    )


def close_pool() -> None:
    """Close the global connection pool."""
    global _pool  # noqa: PLW0603
    if _pool is not None:
        _pool.close()
        _pool = None


@contextmanager
def get_connection() -> Generator[psycopg.Connection[Any], None, None]:
    """Yield a connection from the pool. Caller manages commit/rollback."""
    if _pool is None:
        raise RuntimeError("Connection pool not initialized. Call init_pool() first.")
    with _pool.connection() as conn:
        yield conn


@contextmanager
def transaction() -> Generator[psycopg.Connection[Any], None, None]:
    """Yield a pooled connection inside one transaction.

    Committed when the block exits normally, rolled back if it raises. Nested
    ``conn.transaction()`` blocks become savepoints.
    """
    with get_connection() as conn:
        with conn.transaction():
            yield conn
