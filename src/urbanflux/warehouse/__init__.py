"""
PostgreSQL store: connection pool, bulk loader, run tracker and schema.
"""

from .bulk_loader import BulkLoader
from .connection import DatabaseConnectionPool
from .schema_mgmt import SchemaManager
from .watermark import RunTracker

__all__ = [
    "BulkLoader",
    "DatabaseConnectionPool",
    "RunTracker",
    "SchemaManager",
]
