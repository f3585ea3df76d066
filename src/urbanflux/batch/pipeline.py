"""
ETL pipeline orchestration.

Coordinates the flow: read → watermark filter → deduplicate/validate → load,
with the run registered in the run tracker before the first chunk and
finalised after the last one.
"""

import time
from datetime import datetime, timezone
from pathlib import Path
from typing import Protocol, TextIO
from uuid import UUID

from pydantic import BaseModel, Field

from urbanflux.core.models import RunMode, RunStats, RunStatus, ServiceRequest, Watermark
from urbanflux.batch.readers import ChunkedCsvReader
from urbanflux.batch.transform import TransformProcessor
from urbanflux.batch.writers import BadRowWriter
from urbanflux.observability import metrics
from urbanflux.observability.logger import get_logger, log_operation

logger = get_logger(__name__)


class Loader(Protocol):
    def load(self, records: list[ServiceRequest]) -> int: ...


class Tracker(Protocol):
    def start(self, mode: RunMode, dataset_name: str | None = None) -> UUID: ...

    def complete(
        self,
        run_id: UUID,
        stats: RunStats,
        last_created_at: datetime | None = None,
        last_unique_key: int | None = None,
    ) -> None: ...

    def fail(self, run_id: UUID, error_message: str) -> None: ...

    def last_watermark(self) -> Watermark | None: ...


class RunResult(BaseModel):
    """
    Outcome of one pipeline run.

    Attributes:
        run_id: Identifier assigned by the tracker (None for dry runs)
        mode: Mode the run executed in
        status: Final status
        dry_run: Whether store writes were skipped
        stats: Run totals
        chunks: Number of chunks processed
        last_created_at: Watermark timestamp recorded for the run
        last_unique_key: Watermark key recorded for the run
        bad_rows_path: File holding rejected rows, if any were written
    """

    run_id: UUID | None = None
    mode: RunMode
    status: RunStatus
    dry_run: bool = False
    stats: RunStats = Field(default_factory=RunStats)
    chunks: int = 0
    last_created_at: datetime | None = None
    last_unique_key: int | None = None
    bad_rows_path: str | None = None


class EtlPipeline:
    """
    Runs the extract-transform-load sequence for one source at a time.

    Chunks are processed strictly in source order on the calling thread.
    A fresh TransformProcessor is created for every run so dedup state
    never leaks between runs.
    """

    def __init__(
        self,
        chunk_size: int,
        loader: Loader | None = None,
        tracker: Tracker | None = None,
        delimiter: str = ",",
        bad_rows_dir: str | Path | None = None,
    ):
        """
        Initialize ETL pipeline.

        Args:
            chunk_size: Records per chunk
            loader: Bulk loader (required unless dry-running)
            tracker: Run tracker (required unless dry-running)
            delimiter: CSV field delimiter
            bad_rows_dir: Directory for rejected-row files (disabled if None)
        """
        self.chunk_size = chunk_size
        self.loader = loader
        self.tracker = tracker
        self.delimiter = delimiter
        self.bad_rows_dir = bad_rows_dir

    def run(
        self,
        source: str | Path | TextIO,
        mode: RunMode | str = RunMode.FULL,
        dataset_name: str | None = None,
        dry_run: bool = False,
    ) -> RunResult:
        """
        Process a source end to end.

        Args:
            source: File path, URL or open text stream
            mode: full or incremental
            dataset_name: Label stored with the run (defaults to the source location)
            dry_run: Parse and transform without touching the store

        Returns:
            RunResult with final statistics

        Raises:
            SourceError: If the source cannot be opened or read
            StoreError: If a store write fails (the run is marked failed first)
        """
        mode = RunMode.parse(mode)
        if not dry_run and (self.loader is None or self.tracker is None):
            raise ValueError("A loader and a tracker are required unless dry_run=True")
        if dataset_name is None and isinstance(source, (str, Path)):
            dataset_name = str(source)

        run_id = None if dry_run else self.tracker.start(mode, dataset_name)
        run_label = str(run_id) if run_id else datetime.now(timezone.utc).strftime("dry-run-%Y%m%dT%H%M%S")
        bad_rows = BadRowWriter(self.bad_rows_dir, run_label) if self.bad_rows_dir else None

        logger.info(
            f"Running ETL pipeline ({mode.value}{', dry run' if dry_run else ''})",
            extra={"run_id": run_label, "source": dataset_name, "chunk_size": self.chunk_size},
        )

        reader = ChunkedCsvReader(
            self.chunk_size,
            delimiter=self.delimiter,
            on_reject=bad_rows.write_parse_reject if bad_rows else None,
        )
        processor = TransformProcessor(on_drop=bad_rows.write_transform_drop if bad_rows else None)
        processor.reset()

        totals = RunStats()
        chunks = 0
        high_water: tuple[datetime, int] | None = None

        try:
            watermark = self._resolve_watermark(mode, dry_run)
            if watermark and watermark.last_created_at is not None:
                high_water = (watermark.last_created_at, watermark.last_unique_key or 0)

            for records, chunk_stats in reader.read_chunks(source):
                chunks += 1
                started = time.perf_counter()
                parsed_count = len(records)

                if watermark is not None:
                    fresh = [record for record in records if not watermark.covers(record)]
                    chunk_stats.rows_skipped += len(records) - len(fresh)
                    records = fresh

                clean, chunk_stats = processor.process(records, chunk_stats)

                if clean:
                    newest = max(record.position_key for record in clean)
                    high_water = newest if high_water is None else max(high_water, newest)
                    if not dry_run:
                        with log_operation(f"Loading chunk {chunks}", logger=logger, run_id=run_label):
                            chunk_stats.rows_inserted += self.loader.load(clean)

                totals.merge(chunk_stats)
                metrics.record_chunk(mode.value, chunk_stats, parsed_count, time.perf_counter() - started)
                logger.info(
                    f"Chunk {chunks} processed: {parsed_count} parsed, {len(clean)} clean, "
                    f"{chunk_stats.rows_inserted} inserted",
                    extra={"run_id": run_label, "chunk": chunks},
                )

            totals.merge(reader.trailing_stats)
            metrics.record_rows(mode.value, reader.trailing_stats)

            last_created_at, last_unique_key = high_water if high_water else (None, None)
            if run_id is not None:
                self.tracker.complete(run_id, totals, last_created_at, last_unique_key)
        except Exception as e:
            metrics.record_run_finished(mode.value, RunStatus.FAILED.value)
            if run_id is not None:
                self._mark_failed(run_id, e)
            raise
        finally:
            if bad_rows:
                bad_rows.close()

        metrics.record_run_finished(mode.value, RunStatus.COMPLETED.value)
        logger.info(
            f"ETL run finished: {totals.rows_read} read, {totals.rows_validated} validated, "
            f"{totals.rows_inserted} inserted",
            extra={"run_id": run_label, **totals.model_dump()},
        )

        return RunResult(
            run_id=run_id,
            mode=mode,
            status=RunStatus.COMPLETED,
            dry_run=dry_run,
            stats=totals,
            chunks=chunks,
            last_created_at=last_created_at,
            last_unique_key=last_unique_key,
            bad_rows_path=str(bad_rows.path) if bad_rows and bad_rows.count else None,
        )

    def _resolve_watermark(self, mode: RunMode, dry_run: bool) -> Watermark | None:
        if mode is not RunMode.INCREMENTAL or dry_run:
            return None

        watermark = self.tracker.last_watermark()
        if watermark is None:
            logger.warning("No completed run found; incremental run will process the whole source")
        else:
            logger.info(
                f"Resuming after watermark {watermark.last_created_at} / {watermark.last_unique_key}",
                extra={"watermark_run_id": str(watermark.run_id)},
            )
        return watermark

    def _mark_failed(self, run_id: UUID, error: Exception) -> None:
        try:
            self.tracker.fail(run_id, f"{type(error).__name__}: {error}")
        except Exception as fail_error:
            # The original error is re-raised by the caller
            logger.error(f"Could not mark run {run_id} as failed: {fail_error}")
