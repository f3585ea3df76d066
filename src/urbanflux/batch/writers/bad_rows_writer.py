"""
Bad-row writer for rejected rows.

Appends every row dropped by the reader or the transform stage to a
per-run CSV file so operators can inspect data quality issues offline.
"""

import csv
import json
from pathlib import Path
from typing import TextIO

from urbanflux.core.errors import RowError
from urbanflux.core.models import ServiceRequest
from urbanflux.observability.logger import get_logger

logger = get_logger(__name__)

BAD_ROW_COLUMNS = ["row_number", "stage", "error_type", "error", "raw"]


class BadRowWriter:
    """
    Writes rejected rows to <directory>/bad_rows_<run_id>.csv.

    The file is created on the first rejected row, so clean runs leave
    nothing behind.
    """

    def __init__(self, directory: str | Path, run_id: str):
        """
        Initialize bad-row writer.

        Args:
            directory: Directory the file is created in
            run_id: Run identifier used in the file name
        """
        self.path = Path(directory) / f"bad_rows_{run_id}.csv"
        self.count = 0
        self._stream: TextIO | None = None
        self._writer = None

    def write_parse_reject(self, row_number: int, fields: list[str], error: RowError) -> None:
        """Record a row the reader could not decode."""
        raw = json.dumps(fields)
        self._write([row_number, "parse", error.error_type, str(error), raw])

    def write_transform_drop(self, record: ServiceRequest, reason: str, message: str) -> None:
        """Record a parsed record dropped as duplicate or invalid."""
        self._write(["", "transform", reason, message, record.model_dump_json()])

    def close(self) -> None:
        if self._stream is not None:
            self._stream.close()
            self._stream = None
            self._writer = None
            logger.info(f"Wrote {self.count} bad rows to {self.path}")

    def _write(self, row: list) -> None:
        if self._writer is None:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self._stream = open(self.path, "w", newline="", encoding="utf-8")
            self._writer = csv.writer(self._stream)
            self._writer.writerow(BAD_ROW_COLUMNS)
        self._writer.writerow(row)
        self.count += 1

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False
