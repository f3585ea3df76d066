"""
Batch sinks for rejected rows.
"""

from .bad_rows_writer import BAD_ROW_COLUMNS, BadRowWriter

__all__ = [
    "BAD_ROW_COLUMNS",
    "BadRowWriter",
]
