"""
Validators for service request domain rules.
"""

from .base_validator import BaseValidator
from .rules import (
    BoroughValidator,
    ClosedAfterCreatedValidator,
    CoordinatesValidator,
    PositiveKeyValidator,
    RequiredTextValidator,
)
from .service_request_validator import ServiceRequestValidator, default_validators

__all__ = [
    "BaseValidator",
    "BoroughValidator",
    "ClosedAfterCreatedValidator",
    "CoordinatesValidator",
    "PositiveKeyValidator",
    "RequiredTextValidator",
    "ServiceRequestValidator",
    "default_validators",
]
