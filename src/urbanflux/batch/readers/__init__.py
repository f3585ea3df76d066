"""
Batch data source readers.
"""

from .csv_reader import ChunkedCsvReader, normalize_header
from .field_parser import ServiceRequestParser, parse_datetime
from .source import open_source

__all__ = [
    "ChunkedCsvReader",
    "ServiceRequestParser",
    "normalize_header",
    "open_source",
    "parse_datetime",
]
