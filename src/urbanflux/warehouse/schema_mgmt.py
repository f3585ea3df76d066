"""
Schema management for the warehouse.

Applies the DDL shipped with the package. Migrations are not versioned:
every statement is idempotent (IF NOT EXISTS).
"""

from pathlib import Path

import psycopg

from urbanflux.core.errors import StoreError
from urbanflux.observability.logger import get_logger

from .connection import DatabaseConnectionPool

logger = get_logger(__name__)

SCHEMA_PATH = Path(__file__).with_name("init_schema.sql")
MANAGED_TABLES = ("service_requests", "etl_watermarks")


def load_schema_sql() -> str:
    return SCHEMA_PATH.read_text(encoding="utf-8")


class SchemaManager:
    """
    Creates and inspects the tables used by the pipeline.
    """

    def __init__(self, pool: DatabaseConnectionPool):
        """
        Initialize schema manager.

        Args:
            pool: Database connection pool
        """
        self.pool = pool

    def initialize(self) -> None:
        """
        Create tables and indexes if they do not exist.

        Raises:
            StoreError: If any DDL statement fails
        """
        logger.info("Initializing database schema")
        try:
            with self.pool.get_connection() as conn:
                with conn.cursor() as cur:
                    cur.execute(load_schema_sql())
                conn.commit()
        except psycopg.Error as e:
            logger.error(f"Schema initialization failed: {e}")
            raise StoreError(f"Schema initialization failed: {e}") from e
        logger.info("Database schema initialized")

    def missing_tables(self) -> list[str]:
        """Managed tables that do not exist yet."""
        rows = self.pool.execute_query(
            """
            SELECT table_name
            FROM information_schema.tables
            WHERE table_schema = current_schema() AND table_name = ANY(%s)
            """,
            (list(MANAGED_TABLES),),
        )
        existing = {row["table_name"] for row in rows}
        return [name for name in MANAGED_TABLES if name not in existing]
