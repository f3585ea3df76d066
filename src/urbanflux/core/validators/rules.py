"""
Domain rules for service requests.
"""

from urbanflux.core.models import Borough, ServiceRequest, in_nyc_bounds

from .base_validator import BaseValidator


class PositiveKeyValidator(BaseValidator):
    """unique_key must be strictly positive."""

    def __init__(self):
        super().__init__("unique_key")

    def validate(self, record: ServiceRequest) -> None:
        if record.unique_key <= 0:
            self.fail(f"must be positive, got {record.unique_key}")

    @property
    def rule_name(self) -> str:
        return "positive_key"


class RequiredTextValidator(BaseValidator):
    """A text field must be present and non-empty after trimming."""

    def validate(self, record: ServiceRequest) -> None:
        value = getattr(record, self.field_name, None)
        if value is None or not str(value).strip():
            self.fail("cannot be empty")

    @property
    def rule_name(self) -> str:
        return "required_text"


class BoroughValidator(BaseValidator):
    """If a borough is present it must be one of the five boroughs."""

    def __init__(self):
        super().__init__("borough")

    def validate(self, record: ServiceRequest) -> None:
        borough = record.borough
        if borough is None:
            return
        if not isinstance(borough, Borough) and Borough.from_str(str(borough)) is None:
            self.fail(f"unknown borough {borough!r}")

    @property
    def rule_name(self) -> str:
        return "borough_member"


class CoordinatesValidator(BaseValidator):
    """If coordinates are present they must lie inside the NYC bounding box."""

    def __init__(self):
        super().__init__("coordinates")

    def validate(self, record: ServiceRequest) -> None:
        coords = record.coordinates
        if coords is None:
            return
        if not in_nyc_bounds(coords.latitude, coords.longitude):
            self.fail(
                f"out of NYC bounds: ({coords.latitude}, {coords.longitude})"
            )

    @property
    def rule_name(self) -> str:
        return "coordinates_in_bounds"


class ClosedAfterCreatedValidator(BaseValidator):
    """closed_at, when set, must not precede created_at."""

    def __init__(self):
        super().__init__("closed_at")

    def validate(self, record: ServiceRequest) -> None:
        if record.closed_at is not None and record.closed_at < record.created_at:
            self.fail(
                f"{record.closed_at.isoformat()} is before created_at "
                f"{record.created_at.isoformat()}"
            )

    @property
    def rule_name(self) -> str:
        return "closed_after_created"
