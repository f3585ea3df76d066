"""
Chunked CSV reader.

Reads rows one at a time, parses them, and groups parsed records into
bounded chunks so arbitrarily large files stream in constant memory.
"""

import csv
from collections.abc import Callable, Iterator
from pathlib import Path
from typing import TextIO

from urbanflux.core.errors import RowError, SourceError
from urbanflux.core.models import RunStats, ServiceRequest
from urbanflux.observability.logger import get_logger

from .field_parser import ServiceRequestParser
from .source import open_source

logger = get_logger(__name__)

Chunk = tuple[list[ServiceRequest], RunStats]
RejectHandler = Callable[[int, list[str], RowError], None]


def normalize_header(name: str) -> str:
    """'Unique Key' -> 'unique_key'"""
    return "_".join(name.lstrip("\ufeff").strip().lower().split())


class ChunkedCsvReader:
    """
    Streams a CSV source as (records, stats) chunks.

    Each chunk's stats cover exactly the rows consumed while filling it, so
    rows_read == rows_parsed + parse_errors holds per chunk. Rows read after
    the last emitted chunk that produced no records are reported through
    trailing_stats once the iterator is exhausted.
    """

    def __init__(
        self,
        chunk_size: int,
        parser: ServiceRequestParser | None = None,
        delimiter: str = ",",
        on_reject: RejectHandler | None = None,
    ):
        """
        Initialize chunked reader.

        Args:
            chunk_size: Maximum records per chunk
            parser: Row parser (default ServiceRequestParser)
            delimiter: Field delimiter
            on_reject: Called with (row_number, raw_fields, error) for dropped rows
        """
        if chunk_size < 1:
            raise ValueError(f"chunk_size must be >= 1, got {chunk_size}")
        self.chunk_size = chunk_size
        self.parser = parser or ServiceRequestParser()
        self.delimiter = delimiter
        self.on_reject = on_reject
        self.trailing_stats = RunStats()

    def read_chunks(self, source: str | Path | TextIO) -> Iterator[Chunk]:
        """
        Stream chunks from a file path, URL or open text stream.

        Args:
            source: Location to open, or an already-open text stream

        Yields:
            (records, stats) pairs in source order

        Raises:
            SourceError: If the source cannot be opened or read
        """
        self.trailing_stats = RunStats()

        if isinstance(source, (str, Path)):
            with open_source(source) as stream:
                yield from self._read_stream(stream)
        else:
            yield from self._read_stream(source)

    def _read_stream(self, stream: TextIO) -> Iterator[Chunk]:
        reader = csv.reader(stream, delimiter=self.delimiter)

        try:
            header = next(reader, None)
        except (csv.Error, OSError) as e:
            raise SourceError(f"Cannot read CSV header: {e}") from e
        if header is None:
            logger.warning("CSV source is empty")
            return
        columns = [normalize_header(name) for name in header]

        chunk: list[ServiceRequest] = []
        stats = RunStats()
        chunk_count = 0

        while True:
            try:
                fields = next(reader)
            except StopIteration:
                break
            except csv.Error as e:
                stats.rows_read += 1
                self._reject(stats, reader.line_num, [], SourceError(f"CSV decoding error: {e}"))
                continue
            except OSError as e:
                raise SourceError(f"Error reading source at line {reader.line_num}: {e}") from e

            if not fields:
                continue

            stats.rows_read += 1

            if len(fields) != len(columns):
                self._reject(
                    stats,
                    reader.line_num,
                    fields,
                    SourceError(f"expected {len(columns)} fields, found {len(fields)}"),
                )
                continue

            try:
                record = self.parser.parse(dict(zip(columns, fields)))
            except RowError as e:
                self._reject(stats, reader.line_num, fields, e)
                continue

            stats.rows_parsed += 1
            chunk.append(record)

            if len(chunk) >= self.chunk_size:
                chunk_count += 1
                logger.debug(f"Chunk {chunk_count} complete: {len(chunk)} records")
                yield chunk, stats
                chunk, stats = [], RunStats()

        if chunk:
            chunk_count += 1
            logger.debug(f"Final chunk {chunk_count}: {len(chunk)} records")
            yield chunk, stats
        else:
            self.trailing_stats = stats

        logger.info(f"CSV streaming complete: {chunk_count} chunks")

    def _reject(self, stats: RunStats, row_number: int, fields: list[str], error: RowError) -> None:
        stats.parse_errors += 1
        logger.debug(f"Dropping row {row_number}: {error}")
        if self.on_reject:
            self.on_reject(row_number, fields, error)
