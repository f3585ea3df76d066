"""
ServiceRequest model and its value types (Borough, Coordinates).
"""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, model_validator

# NYC bounding box (inclusive)
MIN_LATITUDE = 40.4
MAX_LATITUDE = 41.2
MIN_LONGITUDE = -74.3
MAX_LONGITUDE = -73.4


class Borough(str, Enum):
    """The five NYC boroughs. Absence of a borough is modelled as None."""

    BRONX = "BRONX"
    BROOKLYN = "BROOKLYN"
    MANHATTAN = "MANHATTAN"
    QUEENS = "QUEENS"
    STATEN_ISLAND = "STATEN ISLAND"

    @classmethod
    def from_str(cls, value: str | None) -> "Borough | None":
        """
        Parse a borough name case-insensitively.

        Args:
            value: Raw borough text

        Returns:
            Matching Borough, or None for blank/unrecognised text
        """
        if value is None:
            return None
        normalized = " ".join(value.split()).upper()
        try:
            return cls(normalized)
        except ValueError:
            return None


def in_nyc_bounds(latitude: float, longitude: float) -> bool:
    """Check that a point falls inside the NYC bounding box (edges included)."""
    return (
        MIN_LATITUDE <= latitude <= MAX_LATITUDE
        and MIN_LONGITUDE <= longitude <= MAX_LONGITUDE
    )


class Coordinates(BaseModel):
    """
    A latitude/longitude pair guaranteed to lie inside the NYC bounding box.

    Use Coordinates.create() for lenient construction: it returns None
    instead of raising when the point is out of bounds.
    """

    model_config = ConfigDict(frozen=True)

    latitude: float
    longitude: float

    @model_validator(mode="after")
    def check_bounds(self) -> "Coordinates":
        if not in_nyc_bounds(self.latitude, self.longitude):
            raise ValueError(
                f"coordinates out of NYC bounds: ({self.latitude}, {self.longitude})"
            )
        return self

    @classmethod
    def create(cls, latitude: float, longitude: float) -> "Coordinates | None":
        if not in_nyc_bounds(latitude, longitude):
            return None
        return cls(latitude=latitude, longitude=longitude)


class ServiceRequest(BaseModel):
    """
    A single 311 service request.

    Field-level decoding happens in ServiceRequestParser; domain rules
    (positive key, non-empty complaint type, closure ordering) are enforced
    by ServiceRequestValidator in the transform stage.

    Attributes:
        unique_key: Natural key of the request
        created_at: When the request was opened (UTC)
        closed_at: When the request was closed (UTC), if closed
        complaint_type: Complaint category label
        descriptor: Free-text detail of the complaint
        borough: Borough the request belongs to
        coordinates: Location of the incident
    """

    unique_key: int
    created_at: datetime
    closed_at: datetime | None = None
    complaint_type: str
    descriptor: str | None = None
    borough: Borough | None = None
    coordinates: Coordinates | None = None

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "unique_key": 42,
                "created_at": "2025-01-01T10:00:00Z",
                "closed_at": "2025-01-01T12:00:00Z",
                "complaint_type": "Noise - Residential",
                "descriptor": "Loud Music/Party",
                "borough": "MANHATTAN",
                "coordinates": {"latitude": 40.758, "longitude": -73.9855},
            }
        }
    )

    @property
    def latitude(self) -> float | None:
        return self.coordinates.latitude if self.coordinates else None

    @property
    def longitude(self) -> float | None:
        return self.coordinates.longitude if self.coordinates else None

    @property
    def position_key(self) -> tuple[datetime, int]:
        """Ordering key used for watermark comparisons."""
        return (self.created_at, self.unique_key)
