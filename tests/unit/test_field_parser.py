"""
Unit tests for the field parser.

Covers timestamp formats, key decoding, lenient location fields and
the domain checks applied while parsing.
"""

from datetime import datetime, timezone

import pytest

from urbanflux.batch.readers import ServiceRequestParser, parse_datetime
from urbanflux.batch.readers.field_parser import parse_coordinates, parse_float, parse_unique_key
from urbanflux.core.errors import FormatError, SemanticError
from urbanflux.core.models import Borough


def raw_row(**overrides):
    row = {
        "unique_key": "1001",
        "created_date": "2024-01-15 08:30:00",
        "closed_date": "",
        "complaint_type": "Noise - Residential",
        "descriptor": "Loud Music/Party",
        "borough": "MANHATTAN",
        "latitude": "40.7580",
        "longitude": "-73.9855",
    }
    row.update(overrides)
    return row


@pytest.mark.unit
class TestParseDatetime:
    """Tests for timestamp decoding"""

    def test_all_formats_agree_on_the_same_instant(self):
        expected = datetime(2024, 3, 5, 14, 7, 9, tzinfo=timezone.utc)

        assert parse_datetime("2024-03-05 14:07:09") == expected
        assert parse_datetime("03/05/2024 02:07:09 PM") == expected
        assert parse_datetime("2024-03-05T14:07:09") == expected

    def test_minute_precision(self):
        assert parse_datetime("2024-03-05 14:07") == datetime(2024, 3, 5, 14, 7, tzinfo=timezone.utc)

    def test_date_only_maps_to_midnight(self):
        assert parse_datetime("2024-03-05") == datetime(2024, 3, 5, tzinfo=timezone.utc)

    def test_result_is_utc_aware(self):
        assert parse_datetime("01/15/2024 08:30:00 AM").tzinfo is timezone.utc

    def test_surrounding_whitespace_ignored(self):
        assert parse_datetime("  2024-03-05  ") == datetime(2024, 3, 5, tzinfo=timezone.utc)

    @pytest.mark.parametrize("value", ["not-a-date", "2024/03/05", "13/45/2024 01:00:00 PM", ""])
    def test_unparseable_raises_format_error(self, value):
        with pytest.raises(FormatError, match="Unable to parse date"):
            parse_datetime(value, "created_date")


@pytest.mark.unit
class TestScalarDecoders:
    """Tests for key and float decoding"""

    def test_key_is_trimmed(self):
        assert parse_unique_key(" 42 ") == 42

    @pytest.mark.parametrize("value", [None, "", "abc", "4.2", "1e3", "\u0664\u0662"])
    def test_non_integer_key(self, value):
        with pytest.raises(FormatError) as exc_info:
            parse_unique_key(value)
        assert exc_info.value.field_name == "unique_key"

    def test_key_outside_int64(self):
        with pytest.raises(FormatError, match="64-bit"):
            parse_unique_key("99999999999999999999")

    @pytest.mark.parametrize("value", [None, "", "north", "nan", "inf", "-inf"])
    def test_float_invalid_is_none(self, value):
        assert parse_float(value) is None

    def test_float_valid(self):
        assert parse_float(" 40.75 ") == 40.75

    def test_coordinates_need_both_values(self):
        assert parse_coordinates("40.7", "") is None
        assert parse_coordinates("", "-73.9") is None

    def test_coordinates_boundary(self):
        assert parse_coordinates("40.4", "-74.3") is not None
        assert parse_coordinates(str(40.4 - 1e-9), "-74.0") is None


@pytest.mark.unit
class TestServiceRequestParser:
    """Tests for full row parsing"""

    def setup_method(self):
        self.parser = ServiceRequestParser()

    def test_parses_clean_row(self):
        record = self.parser.parse(raw_row())

        assert record.unique_key == 1001
        assert record.created_at == datetime(2024, 1, 15, 8, 30, tzinfo=timezone.utc)
        assert record.closed_at is None
        assert record.complaint_type == "Noise - Residential"
        assert record.descriptor == "Loud Music/Party"
        assert record.borough is Borough.MANHATTAN
        assert record.latitude == 40.758

    def test_text_fields_are_trimmed(self):
        record = self.parser.parse(raw_row(complaint_type="  Rodent  ", descriptor="   "))
        assert record.complaint_type == "Rodent"
        assert record.descriptor is None

    def test_unknown_borough_dropped(self):
        record = self.parser.parse(raw_row(borough="Unspecified"))
        assert record.borough is None

    def test_out_of_bounds_coordinates_dropped(self):
        record = self.parser.parse(raw_row(latitude="0", longitude="0"))
        assert record.coordinates is None
        assert record.unique_key == 1001

    def test_missing_columns_read_as_blank(self):
        row = raw_row()
        del row["descriptor"]
        del row["latitude"]
        record = self.parser.parse(row)
        assert record.descriptor is None
        assert record.coordinates is None

    def test_closed_date_parsed(self):
        record = self.parser.parse(raw_row(closed_date="01/15/2024 10:00:00 AM"))
        assert record.closed_at == datetime(2024, 1, 15, 10, tzinfo=timezone.utc)

    def test_missing_created_date(self):
        with pytest.raises(FormatError) as exc_info:
            self.parser.parse(raw_row(created_date=" "))
        assert exc_info.value.field_name == "created_date"

    def test_bad_closed_date(self):
        with pytest.raises(FormatError) as exc_info:
            self.parser.parse(raw_row(closed_date="yesterday"))
        assert exc_info.value.field_name == "closed_date"

    @pytest.mark.parametrize("key", ["0", "-5"])
    def test_non_positive_key_is_semantic(self, key):
        with pytest.raises(SemanticError) as exc_info:
            self.parser.parse(raw_row(unique_key=key))
        assert exc_info.value.error_type == "semantic"

    def test_empty_complaint_type(self):
        with pytest.raises(SemanticError, match="complaint_type"):
            self.parser.parse(raw_row(complaint_type="   "))

    def test_closed_before_created(self):
        with pytest.raises(SemanticError, match="closed_at"):
            self.parser.parse(
                raw_row(created_date="2024-01-16 12:00:00", closed_date="2024-01-15 12:00:00")
            )

    def test_closed_equal_to_created_is_allowed(self):
        record = self.parser.parse(
            raw_row(created_date="2024-01-16 12:00:00", closed_date="2024-01-16 12:00:00")
        )
        assert record.closed_at == record.created_at
