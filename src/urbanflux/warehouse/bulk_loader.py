"""
Idempotent bulk insert of service requests.

Implements multi-row INSERT ... ON CONFLICT DO NOTHING so re-loading the
same records never creates duplicates.
"""

import time

import psycopg

from urbanflux.core.errors import StoreError
from urbanflux.core.models import ServiceRequest
from urbanflux.observability import metrics
from urbanflux.observability.logger import get_logger

from .connection import DatabaseConnectionPool

logger = get_logger(__name__)

INSERT_COLUMNS = (
    "unique_key",
    "created_at",
    "closed_at",
    "complaint_type",
    "descriptor",
    "borough",
    "latitude",
    "longitude",
)

# PostgreSQL accepts at most 65535 bind parameters per statement
MAX_BIND_PARAMETERS = 65535
DEFAULT_BATCH_SIZE = 1000


def _row_params(record: ServiceRequest) -> tuple:
    return (
        record.unique_key,
        record.created_at,
        record.closed_at,
        record.complaint_type,
        record.descriptor,
        record.borough.value if record.borough else None,
        record.latitude,
        record.longitude,
    )


class BulkLoader:
    """
    Writes clean records to the service_requests table.

    Each load() call runs in a single transaction: either every sub-batch
    is committed or none is. Rows whose unique_key already exists are
    skipped and not counted as inserted.
    """

    def __init__(self, pool: DatabaseConnectionPool, batch_size: int = DEFAULT_BATCH_SIZE):
        """
        Initialize bulk loader.

        Args:
            pool: Database connection pool
            batch_size: Rows per INSERT statement
        """
        max_rows = MAX_BIND_PARAMETERS // len(INSERT_COLUMNS)
        if not 1 <= batch_size <= max_rows:
            raise ValueError(f"batch_size must be between 1 and {max_rows}, got {batch_size}")
        self.pool = pool
        self.batch_size = batch_size

    def load(self, records: list[ServiceRequest]) -> int:
        """
        Insert records, skipping keys already present in the store.

        Args:
            records: Clean records in source order

        Returns:
            Number of rows newly inserted

        Raises:
            StoreError: If any statement fails; nothing from this call persists
        """
        if not records:
            return 0

        inserted = 0
        start = time.perf_counter()

        try:
            with self.pool.get_connection() as conn:
                with conn.cursor() as cur:
                    for offset in range(0, len(records), self.batch_size):
                        batch = records[offset:offset + self.batch_size]
                        params = [value for record in batch for value in _row_params(record)]
                        cur.execute(self._insert_sql(len(batch)), params)
                        inserted += cur.rowcount
                conn.commit()
        except psycopg.Error as e:
            metrics.store_errors_total.labels(operation="bulk_insert").inc()
            logger.error(f"Bulk insert of {len(records)} records failed: {e}")
            raise StoreError(f"Bulk insert failed: {e}") from e

        metrics.store_write_duration_seconds.labels(operation="bulk_insert").observe(
            time.perf_counter() - start
        )
        logger.debug(f"Inserted {inserted} of {len(records)} records")
        return inserted

    def count(self) -> int:
        """Total number of records in the store."""
        try:
            result = self.pool.execute_query("SELECT COUNT(*) AS count FROM service_requests")
        except psycopg.Error as e:
            raise StoreError(f"Failed to count service requests: {e}") from e
        return result[0]["count"]

    @staticmethod
    def _insert_sql(row_count: int) -> str:
        placeholders = "(" + ", ".join(["%s"] * len(INSERT_COLUMNS)) + ")"
        return (
            f"INSERT INTO service_requests ({', '.join(INSERT_COLUMNS)}) "
            f"VALUES {', '.join([placeholders] * row_count)} "
            "ON CONFLICT (unique_key) DO NOTHING"
        )
