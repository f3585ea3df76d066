"""
Run tracking and watermarks for incremental loads.

Every pipeline run is registered in the etl_watermarks table when it
starts and updated exactly once when it completes or fails. The most
recently completed run provides the resume point for incremental runs.
"""

from datetime import datetime, timezone
from typing import Any
from uuid import UUID, uuid4

import psycopg

from urbanflux.core.errors import StoreError
from urbanflux.core.models import EtlRun, RunMode, RunStats, RunStatus, Watermark
from urbanflux.observability import metrics
from urbanflux.observability.logger import get_logger

from .connection import DatabaseConnectionPool

logger = get_logger(__name__)

RUN_COLUMNS = """
    run_id, run_mode, dataset_name, status, started_at, completed_at,
    last_created_at, last_unique_key, error_message,
    rows_read, rows_parsed, rows_skipped, rows_validated, rows_inserted,
    rows_duplicated, rows_rejected, parse_errors, validation_errors
"""


def _row_to_run(row: dict[str, Any]) -> EtlRun:
    stats = RunStats(**{name: row[name] or 0 for name in RunStats.model_fields})
    return EtlRun(
        run_id=row["run_id"],
        run_mode=RunMode(row["run_mode"]),
        status=RunStatus(row["status"]),
        dataset_name=row["dataset_name"],
        started_at=row["started_at"],
        completed_at=row["completed_at"],
        last_created_at=row["last_created_at"],
        last_unique_key=row["last_unique_key"],
        stats=stats,
        error_message=row["error_message"],
    )


class RunTracker:
    """
    Persists the lifecycle of ETL runs.

    State machine: running -> completed | failed. Terminal runs are never
    updated again; the UPDATE statements only match rows still running.
    """

    def __init__(self, pool: DatabaseConnectionPool):
        """
        Initialize run tracker.

        Args:
            pool: Database connection pool
        """
        self.pool = pool

    def start(self, mode: RunMode, dataset_name: str | None = None) -> UUID:
        """
        Register a new run in the running state.

        Args:
            mode: full or incremental
            dataset_name: Optional label of the source

        Returns:
            The new run identifier

        Raises:
            StoreError: If the insert fails
        """
        mode = RunMode.parse(mode)
        run_id = uuid4()
        self._execute(
            "start_run",
            """
            INSERT INTO etl_watermarks (run_id, run_mode, dataset_name, status, started_at)
            VALUES (%(run_id)s, %(run_mode)s, %(dataset_name)s, %(status)s, %(started_at)s)
            """,
            {
                "run_id": run_id,
                "run_mode": mode.value,
                "dataset_name": dataset_name,
                "status": RunStatus.RUNNING.value,
                "started_at": datetime.now(timezone.utc),
            },
        )
        logger.info(f"Started ETL run {run_id}", extra={"run_id": str(run_id), "mode": mode.value})
        return run_id

    def complete(
        self,
        run_id: UUID,
        stats: RunStats,
        last_created_at: datetime | None = None,
        last_unique_key: int | None = None,
    ) -> None:
        """
        Mark a run completed and store its final statistics and watermark.

        Args:
            run_id: Run identifier returned by start()
            stats: Final run counters
            last_created_at: Latest created_at loaded by the run
            last_unique_key: unique_key paired with last_created_at

        Raises:
            StoreError: If the update fails or the run is not running
        """
        params = {
            "run_id": run_id,
            "last_created_at": last_created_at,
            "last_unique_key": last_unique_key,
            **stats.model_dump(),
        }
        self._finish(
            run_id,
            RunStatus.COMPLETED,
            """
            last_created_at = %(last_created_at)s,
            last_unique_key = %(last_unique_key)s,
            rows_read = %(rows_read)s,
            rows_parsed = %(rows_parsed)s,
            rows_skipped = %(rows_skipped)s,
            rows_validated = %(rows_validated)s,
            rows_inserted = %(rows_inserted)s,
            rows_duplicated = %(rows_duplicated)s,
            rows_rejected = %(rows_rejected)s,
            parse_errors = %(parse_errors)s,
            validation_errors = %(validation_errors)s
            """,
            params,
        )
        logger.info(
            f"Completed ETL run {run_id}",
            extra={"run_id": str(run_id), **stats.model_dump()},
        )

    def fail(self, run_id: UUID, error_message: str) -> None:
        """
        Mark a run failed.

        Args:
            run_id: Run identifier returned by start()
            error_message: Reason for the failure

        Raises:
            StoreError: If the update fails or the run is not running
        """
        self._finish(
            run_id,
            RunStatus.FAILED,
            "error_message = %(error_message)s",
            {"run_id": run_id, "error_message": error_message},
        )
        logger.warning(f"ETL run {run_id} failed: {error_message}", extra={"run_id": str(run_id)})

    def last_watermark(self) -> Watermark | None:
        """
        Resume point of the most recently completed run.

        Returns:
            Watermark, or None if no run has ever completed
        """
        rows = self._query(
            "last_watermark",
            f"""
            SELECT {RUN_COLUMNS}
            FROM etl_watermarks
            WHERE status = %(status)s
            ORDER BY completed_at DESC
            LIMIT 1
            """,
            {"status": RunStatus.COMPLETED.value},
        )
        return _row_to_run(rows[0]).watermark() if rows else None

    def latest_run(self) -> EtlRun | None:
        """Most recently started run, whatever its status."""
        rows = self._query(
            "latest_run",
            f"SELECT {RUN_COLUMNS} FROM etl_watermarks ORDER BY started_at DESC LIMIT 1",
            {},
        )
        return _row_to_run(rows[0]) if rows else None

    def get_run(self, run_id: UUID) -> EtlRun | None:
        rows = self._query(
            "get_run",
            f"SELECT {RUN_COLUMNS} FROM etl_watermarks WHERE run_id = %(run_id)s",
            {"run_id": run_id},
        )
        return _row_to_run(rows[0]) if rows else None

    def _finish(self, run_id: UUID, target: RunStatus, assignments: str, params: dict) -> None:
        if not RunStatus.RUNNING.can_transition_to(target):
            raise ValueError(f"Cannot finish a run with status {target.value}")

        rowcount = self._execute(
            f"{target.value}_run",
            f"""
            UPDATE etl_watermarks
            SET status = %(target_status)s,
                completed_at = %(completed_at)s,
                {assignments}
            WHERE run_id = %(run_id)s AND status = %(running_status)s
            """,
            {
                **params,
                "target_status": target.value,
                "running_status": RunStatus.RUNNING.value,
                "completed_at": datetime.now(timezone.utc),
            },
        )
        if rowcount == 0:
            raise StoreError(f"Run {run_id} does not exist or is no longer running")

    def _execute(self, operation: str, command: str, params: dict) -> int:
        try:
            return self.pool.execute_command(command, params)
        except psycopg.Error as e:
            metrics.store_errors_total.labels(operation=operation).inc()
            logger.error(f"Run tracker {operation} failed: {e}")
            raise StoreError(f"{operation} failed: {e}") from e

    def _query(self, operation: str, query: str, params: dict) -> list[dict[str, Any]]:
        try:
            return self.pool.execute_query(query, params)
        except psycopg.Error as e:
            metrics.store_errors_total.labels(operation=operation).inc()
            logger.error(f"Run tracker {operation} failed: {e}")
            raise StoreError(f"{operation} failed: {e}") from e
