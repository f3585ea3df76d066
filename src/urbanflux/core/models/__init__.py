"""
Core data models for the UrbanFlux ETL pipeline.

All models use Pydantic for runtime validation and type safety.
"""

from .etl_run import EtlRun, RunMode, RunStatus, Watermark
from .run_stats import RunStats
from .service_request import Borough, Coordinates, ServiceRequest, in_nyc_bounds
from .validation_result import ValidationResult

__all__ = [
    "Borough",
    "Coordinates",
    "ServiceRequest",
    "in_nyc_bounds",
    "RunStats",
    "RunMode",
    "RunStatus",
    "EtlRun",
    "Watermark",
    "ValidationResult",
]
