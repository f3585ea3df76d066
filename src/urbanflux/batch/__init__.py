"""
Streaming batch pipeline: readers, transform, sinks and orchestration.
"""

from .pipeline import EtlPipeline, RunResult
from .readers import ChunkedCsvReader, ServiceRequestParser
from .transform import Deduplicator, TransformProcessor
from .writers import BadRowWriter

__all__ = [
    "BadRowWriter",
    "ChunkedCsvReader",
    "Deduplicator",
    "EtlPipeline",
    "RunResult",
    "ServiceRequestParser",
    "TransformProcessor",
]
