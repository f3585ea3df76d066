"""
PostgreSQL connection pool management using psycopg3

This module provides a connection pool for efficient database access
with automatic connection lifecycle management.
"""
import os
from contextlib import contextmanager

import psycopg
from psycopg.rows import dict_row
from psycopg_pool import ConnectionPool, PoolTimeout

from urbanflux.core.config import DatabaseConfig
from urbanflux.core.errors import StoreError
from urbanflux.observability.logger import get_logger

logger = get_logger(__name__)


class DatabaseConnectionPool:
    """
    PostgreSQL connection pool manager using psycopg3

    Connections hand out rows as dictionaries. Transactions are committed
    explicitly by callers.
    """

    def __init__(
        self,
        host: str | None = None,
        port: int | None = None,
        database: str | None = None,
        user: str | None = None,
        password: str | None = None,
        min_size: int = 1,
        max_size: int = 5,
        timeout: float = 30.0,
    ) -> None:
        """
        Initialize database connection pool

        Args:
            host: Database host (defaults to env var PGHOST)
            port: Database port (defaults to env var PGPORT)
            database: Database name (defaults to env var PGDATABASE)
            user: Database user (defaults to env var PGUSER)
            password: Database password (defaults to env var PGPASSWORD)
            min_size: Minimum pool size
            max_size: Maximum pool size
            timeout: Connection timeout in seconds
        """
        self.config = DatabaseConfig(
            host=host or os.getenv("PGHOST", "localhost"),
            port=port or int(os.getenv("PGPORT", "5432")),
            database=database or os.getenv("PGDATABASE", "urbanflux"),
            user=user or os.getenv("PGUSER", "urbanflux_user"),
            password=password or os.getenv("PGPASSWORD"),
            max_connections=max_size,
            timeout=timeout,
        )
        self.min_size = min(min_size, max_size)
        self.max_size = max_size
        self.timeout = timeout

        # Raises ConfigError when no password is available
        self.conninfo = self.config.conninfo()

        self._pool: ConnectionPool | None = None

    @classmethod
    def from_config(cls, config: DatabaseConfig) -> "DatabaseConnectionPool":
        return cls(
            host=config.host,
            port=config.port,
            database=config.database,
            user=config.user,
            password=config.password,
            max_size=config.max_connections,
            timeout=config.timeout,
        )

    def open(self) -> None:
        """
        Open the connection pool and wait for the first connection.

        Raises:
            StoreError: If the database cannot be reached
        """
        if self._pool is not None:
            return

        pool = ConnectionPool(
            conninfo=self.conninfo,
            min_size=self.min_size,
            max_size=self.max_size,
            timeout=self.timeout,
            kwargs={"row_factory": dict_row},
            open=False,
        )
        try:
            pool.open(wait=True, timeout=self.timeout)
        except (PoolTimeout, psycopg.OperationalError) as e:
            pool.close()
            raise StoreError(
                f"Failed to connect to database at {self.config.host}:{self.config.port}: {e}"
            ) from e

        self._pool = pool
        logger.info(f"Database connection pool established ({self.config.host}:{self.config.port})")

    def close(self) -> None:
        """Close the connection pool"""
        if self._pool is not None:
            self._pool.close()
            self._pool = None

    @contextmanager
    def get_connection(self):
        """
        Get a connection from the pool

        Yields:
            psycopg.Connection: Database connection

        Raises:
            RuntimeError: If pool is not open
        """
        if self._pool is None:
            raise RuntimeError("Connection pool is not open. Call open() first.")

        with self._pool.connection() as conn:
            yield conn

    def execute_query(self, query: str, params: tuple | dict | None = None) -> list[dict]:
        """
        Execute a SELECT query and return results

        Args:
            query: SQL SELECT query
            params: Query parameters (optional)

        Returns:
            List of dictionaries (one per row)
        """
        with self.get_connection() as conn:
            with conn.cursor() as cur:
                cur.execute(query, params)
                return cur.fetchall()

    def execute_command(self, command: str, params: tuple | dict | None = None) -> int:
        """
        Execute an INSERT/UPDATE/DELETE command

        Args:
            command: SQL command
            params: Command parameters (optional)

        Returns:
            Number of rows affected
        """
        with self.get_connection() as conn:
            with conn.cursor() as cur:
                cur.execute(command, params)
                rowcount = cur.rowcount
            conn.commit()
            return rowcount

    def __enter__(self):
        self.open()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False
