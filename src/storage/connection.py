"""
PostgreSQL connection pool for the rule content storage, using psycopg3

Every storage component shares one DatabaseConnectionPool. Atomic writes go
through DatabaseConnectionPool.transaction(); simple reads and single-statement
writes use execute_query / execute_command.
"""
import os
import time
from contextlib import contextmanager

import psycopg
from psycopg import OperationalError
from psycopg.conninfo import make_conninfo
from psycopg.rows import dict_row
from psycopg_pool import ConnectionPool
from pydantic import BaseModel

from src.observability.logger import get_logger
from src.storage.errors import DatabaseClosedError

logger = get_logger(__name__)

# Settings field -> environment variable
ENV_VARS = {
    "host": "DB_HOST",
    "port": "DB_PORT",
    "database": "DB_NAME",
    "user": "DB_USER",
    "password": "DB_PASSWORD",
}


class DatabaseSettings(BaseModel):
    """
    Connection settings of the storage database.

    Attributes:
        host: Database host
        port: Database port
        database: Database name
        user: Database user
        password: Database password, always required
        min_size: Minimum pool size
        max_size: Maximum pool size
        timeout: Connect and pool checkout timeout in seconds
    """

    host: str = "localhost"
    port: int = 5432
    database: str = "aggregator"
    user: str = "aggregator"
    password: str
    min_size: int = 2
    max_size: int = 10
    timeout: float = 30.0

    @classmethod
    def from_env(cls, **overrides) -> "DatabaseSettings":
        """
        Build settings from DB_* environment variables.

        Explicit keyword values win over the environment; None means unset.

        Raises:
            ValueError: If no password is given either way
        """
        values = {field: os.environ[env] for field, env in ENV_VARS.items() if os.environ.get(env)}
        values.update({k: v for k, v in overrides.items() if v is not None})

        if not values.get("password"):
            raise ValueError(
                "Database password must be provided. "
                "Set DB_PASSWORD environment variable or pass to constructor."
            )
        return cls(**values)

    @property
    def conninfo(self) -> str:
        return make_conninfo(
            host=self.host,
            port=self.port,
            dbname=self.database,
            user=self.user,
            password=self.password,
            connect_timeout=int(self.timeout),
        )


class DatabaseConnectionPool:
    """
    psycopg3 connection pool shared by the storage components.

    Rows are returned as dictionaries. A pool that was never opened, or was
    closed, raises DatabaseClosedError on use.
    """

    def __init__(self, settings: DatabaseSettings | None = None, **overrides) -> None:
        """
        Args:
            settings: Complete settings; built from the environment if omitted
            **overrides: Individual DatabaseSettings fields (host, port,
                database, user, password, min_size, max_size, timeout)
        """
        self.settings = settings or DatabaseSettings.from_env(**overrides)
        self._pool: ConnectionPool | None = None

    def open(self, max_retries: int = 3, retry_delay: float = 2.0) -> None:
        """
        Open the pool, retrying while the database is unreachable.

        Retries apply to start-up only; storage operations never retry.

        Raises:
            OperationalError: If every attempt failed
        """
        if self._pool is not None:
            return

        settings = self.settings
        for attempt in range(1, max_retries + 1):
            # A pool that failed to start is closed and cannot be reopened
            pool = ConnectionPool(
                conninfo=settings.conninfo,
                min_size=settings.min_size,
                max_size=settings.max_size,
                timeout=settings.timeout,
                kwargs={"row_factory": dict_row},
                open=False,
            )
            try:
                pool.open(wait=True, timeout=settings.timeout)
            except OperationalError as e:
                if attempt == max_retries:
                    raise OperationalError(
                        f"Failed to connect to {settings.host}:{settings.port}/{settings.database} "
                        f"after {max_retries} attempts: {e}"
                    ) from e
                time.sleep(retry_delay)
            else:
                self._pool = pool
                return

    def close(self) -> None:
        if self._pool is not None:
            self._pool.close()
            self._pool = None

    @property
    def is_open(self) -> bool:
        return self._pool is not None

    @contextmanager
    def get_connection(self):
        """
        Borrow a connection from the pool.

        Raises:
            DatabaseClosedError: If the pool is not open
        """
        if self._pool is None:
            raise DatabaseClosedError("Connection pool is not open. Call open() first.")

        with self._pool.connection() as conn:
            yield conn

    @contextmanager
    def transaction(self):
        """
        Run a block inside one explicit transaction.

        Commits when the block completes. Rolls back if the block or the
        commit raised; a rollback that fails as well (e.g. on a dead
        connection) is logged and the original exception re-raised unchanged.

        Yields:
            psycopg.Connection: Connection with an open transaction
        """
        with self.get_connection() as conn:
            try:
                yield conn
                conn.commit()
            except BaseException as e:
                try:
                    conn.rollback()
                except psycopg.Error as rollback_error:
                    logger.warning(
                        f"Rollback failed after {type(e).__name__}: {rollback_error}",
                        extra={"error_message": str(e)},
                    )
                raise

    def execute_query(self, query: str, params: tuple | None = None) -> list[dict]:
        """Run a SELECT and return all rows as dictionaries."""
        with self.get_connection() as conn:
            with conn.cursor() as cur:
                cur.execute(query, params)
                return cur.fetchall()

    def execute_command(self, command: str, params: tuple | None = None) -> int:
        """Run one INSERT/UPDATE/DELETE in its own transaction; returns the rowcount."""
        with self.transaction() as conn:
            with conn.cursor() as cur:
                cur.execute(command, params)
                return cur.rowcount

    def __enter__(self):
        self.open()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False


# Process-wide pool used by long-running services
_global_pool: DatabaseConnectionPool | None = None


def initialize_pool(**kwargs) -> DatabaseConnectionPool:
    """
    Open the process-wide pool, replacing any previous one.

    Args:
        **kwargs: DatabaseConnectionPool arguments
    """
    global _global_pool
    close_pool()
    _global_pool = DatabaseConnectionPool(**kwargs)
    _global_pool.open()
    return _global_pool


def get_pool() -> DatabaseConnectionPool:
    """
    Return the process-wide pool.

    Raises:
        DatabaseClosedError: If initialize_pool() was not called
    """
    if _global_pool is None:
        raise DatabaseClosedError("Database pool not initialized. Call initialize_pool() first.")
    return _global_pool


def close_pool() -> None:
    global _global_pool
    if _global_pool is not None:
        _global_pool.close()
        _global_pool = None
