"""
Field parser: turns one raw CSV row into a ServiceRequest.

Required fields are strict (a bad value rejects the row); borough and
coordinates are lenient (a bad value is dropped and the row survives).
"""

import math
import re
from collections.abc import Mapping
from datetime import datetime, timezone

from urbanflux.core.errors import FormatError
from urbanflux.core.models import Borough, Coordinates, ServiceRequest
from urbanflux.core.validators import (
    ClosedAfterCreatedValidator,
    PositiveKeyValidator,
    RequiredTextValidator,
)

# Tried in order, first match wins. All values are interpreted as UTC.
DATETIME_FORMATS = (
    "%Y-%m-%d %H:%M:%S",
    "%m/%d/%Y %I:%M:%S %p",
    "%Y-%m-%dT%H:%M:%S",
    "%Y-%m-%d %H:%M",
)
DATE_FORMAT = "%Y-%m-%d"

INT64_MIN = -(2**63)
INT64_MAX = 2**63 - 1

_INTEGER_RE = re.compile(r"^[+-]?[0-9]+$")


def _clean(value: str | None) -> str | None:
    """Trim a raw value; blank becomes None."""
    if value is None:
        return None
    value = value.strip()
    return value or None


def parse_datetime(value: str, field_name: str | None = None) -> datetime:
    """
    Parse a timestamp in any of the supported formats.

    Args:
        value: Raw timestamp text
        field_name: Column the value came from, for error messages

    Returns:
        Timezone-aware UTC datetime (date-only values map to midnight)

    Raises:
        FormatError: If no format matches
    """
    text = value.strip()

    for fmt in DATETIME_FORMATS:
        try:
            return datetime.strptime(text, fmt).replace(tzinfo=timezone.utc)
        except ValueError:
            continue

    try:
        return datetime.strptime(text, DATE_FORMAT).replace(tzinfo=timezone.utc)
    except ValueError:
        pass

    raise FormatError(f"Unable to parse date: {value!r}", field_name=field_name)


def parse_unique_key(value: str | None) -> int:
    """
    Decode the natural key.

    Raises:
        FormatError: If the value is missing, not an integer, or outside int64
    """
    text = _clean(value)
    if text is None:
        raise FormatError("missing value", field_name="unique_key")
    if not _INTEGER_RE.match(text):
        raise FormatError(f"not an integer: {text!r}", field_name="unique_key")

    key = int(text)
    if not INT64_MIN <= key <= INT64_MAX:
        raise FormatError(f"out of 64-bit range: {text}", field_name="unique_key")
    return key


def parse_float(value: str | None) -> float | None:
    """Decode a finite float, or None if the value is blank or malformed."""
    text = _clean(value)
    if text is None:
        return None
    try:
        number = float(text)
    except ValueError:
        return None
    return number if math.isfinite(number) else None


def parse_coordinates(latitude: str | None, longitude: str | None) -> Coordinates | None:
    lat = parse_float(latitude)
    lon = parse_float(longitude)
    if lat is None or lon is None:
        return None
    return Coordinates.create(lat, lon)


class ServiceRequestParser:
    """
    Converts raw rows (column name -> text) into ServiceRequest records.

    Expected columns: unique_key, created_date, closed_date, complaint_type,
    descriptor, borough, latitude, longitude. Missing columns read as blank.
    """

    def __init__(self):
        self._rules = [
            PositiveKeyValidator(),
            RequiredTextValidator("complaint_type"),
            ClosedAfterCreatedValidator(),
        ]

    def parse(self, row: Mapping[str, str | None]) -> ServiceRequest:
        """
        Parse one raw row.

        Args:
            row: Mapping of normalised column name to raw text

        Returns:
            ServiceRequest with trimmed text fields

        Raises:
            FormatError: If the key or a timestamp cannot be decoded
            SemanticError: If a decoded value violates a domain rule
        """
        unique_key = parse_unique_key(row.get("unique_key"))

        created_text = _clean(row.get("created_date"))
        if created_text is None:
            raise FormatError("missing value", field_name="created_date")
        created_at = parse_datetime(created_text, "created_date")

        closed_text = _clean(row.get("closed_date"))
        closed_at = parse_datetime(closed_text, "closed_date") if closed_text else None

        record = ServiceRequest(
            unique_key=unique_key,
            created_at=created_at,
            closed_at=closed_at,
            complaint_type=_clean(row.get("complaint_type")) or "",
            descriptor=_clean(row.get("descriptor")),
            borough=Borough.from_str(row.get("borough")),
            coordinates=parse_coordinates(row.get("latitude"), row.get("longitude")),
        )

        for rule in self._rules:
            rule.validate(record)

        return record
