"""
Unit tests for Pydantic domain models.

Covers value types, run bookkeeping models and their invariants.
"""

from datetime import datetime, timezone
from uuid import uuid4

import pytest
from pydantic import ValidationError

from urbanflux.core.models import (
    Borough,
    Coordinates,
    EtlRun,
    RunMode,
    RunStats,
    RunStatus,
    ValidationResult,
    Watermark,
    in_nyc_bounds,
)


@pytest.mark.unit
class TestBorough:
    """Tests for Borough parsing"""

    @pytest.mark.parametrize(
        "raw, expected",
        [
            ("MANHATTAN", Borough.MANHATTAN),
            ("brooklyn", Borough.BROOKLYN),
            ("  Queens ", Borough.QUEENS),
            ("staten   island", Borough.STATEN_ISLAND),
            ("Bronx", Borough.BRONX),
        ],
    )
    def test_recognised_names(self, raw, expected):
        assert Borough.from_str(raw) is expected

    @pytest.mark.parametrize("raw", [None, "", "Unspecified", "NEW JERSEY"])
    def test_unrecognised_names_are_none(self, raw):
        assert Borough.from_str(raw) is None


@pytest.mark.unit
class TestCoordinates:
    """Tests for the NYC bounding box"""

    def test_edges_are_inclusive(self):
        assert in_nyc_bounds(40.4, -74.3)
        assert in_nyc_bounds(41.2, -73.4)

    def test_outside_box(self):
        assert not in_nyc_bounds(40.4 - 1e-9, -74.0)
        assert not in_nyc_bounds(40.7, -73.4 + 1e-9)

    def test_constructor_rejects_out_of_bounds(self):
        with pytest.raises(ValidationError) as exc_info:
            Coordinates(latitude=0.0, longitude=0.0)
        assert "out of NYC bounds" in str(exc_info.value)

    def test_create_is_lenient(self):
        assert Coordinates.create(0.0, 0.0) is None
        coords = Coordinates.create(40.758, -73.9855)
        assert coords.latitude == 40.758

    def test_frozen(self):
        coords = Coordinates(latitude=40.7, longitude=-73.9)
        with pytest.raises(ValidationError):
            coords.latitude = 40.8


@pytest.mark.unit
class TestServiceRequest:
    """Tests for ServiceRequest accessors"""

    def test_location_accessors(self, make_request):
        record = make_request(42)
        assert record.latitude == 40.758
        assert record.longitude == -73.9855

        bare = make_request(43, coordinates=None)
        assert bare.latitude is None
        assert bare.longitude is None

    def test_position_key(self, make_request):
        record = make_request(42)
        assert record.position_key == (record.created_at, 42)


@pytest.mark.unit
class TestRunStats:
    """Tests for counter merging"""

    def test_merge_is_element_wise(self):
        totals = RunStats(rows_read=3, rows_parsed=2, parse_errors=1)
        chunk = RunStats(rows_read=5, rows_parsed=5, rows_validated=4, rows_duplicated=1)

        result = totals.merge(chunk)

        assert result is totals
        assert totals.rows_read == 8
        assert totals.rows_parsed == 7
        assert totals.parse_errors == 1
        assert totals.rows_validated == 4
        assert totals.rows_duplicated == 1

    def test_add_returns_new_instance(self):
        a = RunStats(rows_read=1)
        b = RunStats(rows_read=2, rows_skipped=1)

        c = a + b

        assert c.rows_read == 3
        assert c.rows_skipped == 1
        assert a.rows_read == 1

    def test_negative_counters_rejected(self):
        with pytest.raises(ValidationError):
            RunStats(rows_read=-1)


@pytest.mark.unit
class TestRunModeAndStatus:
    """Tests for run enums"""

    def test_mode_parse(self):
        assert RunMode.parse("full") is RunMode.FULL
        assert RunMode.parse(" Incremental ") is RunMode.INCREMENTAL
        assert RunMode.parse(RunMode.FULL) is RunMode.FULL

    def test_mode_parse_invalid(self):
        with pytest.raises(ValueError, match="Invalid ETL mode"):
            RunMode.parse("partial")

    def test_transitions(self):
        assert RunStatus.RUNNING.can_transition_to(RunStatus.COMPLETED)
        assert RunStatus.RUNNING.can_transition_to(RunStatus.FAILED)
        assert not RunStatus.RUNNING.can_transition_to(RunStatus.RUNNING)
        assert not RunStatus.COMPLETED.can_transition_to(RunStatus.FAILED)
        assert not RunStatus.FAILED.can_transition_to(RunStatus.COMPLETED)

    def test_terminal(self):
        assert not RunStatus.RUNNING.is_terminal
        assert RunStatus.COMPLETED.is_terminal
        assert RunStatus.FAILED.is_terminal


@pytest.mark.unit
class TestWatermark:
    """Tests for watermark coverage"""

    def _watermark(self, last_created_at=None, last_unique_key=None):
        return Watermark(
            run_id=uuid4(),
            last_created_at=last_created_at,
            last_unique_key=last_unique_key,
            run_mode=RunMode.FULL,
        )

    def test_empty_watermark_covers_nothing(self, make_request):
        assert not self._watermark().covers(make_request(1))

    def test_orders_by_timestamp_then_key(self, make_request):
        mark_time = datetime(2024, 1, 15, 8, 30, tzinfo=timezone.utc)
        watermark = self._watermark(mark_time, 100)

        assert watermark.covers(make_request(500, created_at=datetime(2024, 1, 1, tzinfo=timezone.utc)))
        assert watermark.covers(make_request(100, created_at=mark_time))
        assert watermark.covers(make_request(99, created_at=mark_time))
        assert not watermark.covers(make_request(101, created_at=mark_time))
        assert not watermark.covers(make_request(1, created_at=datetime(2024, 2, 1, tzinfo=timezone.utc)))

    def test_run_exposes_watermark(self):
        run_id = uuid4()
        created = datetime(2024, 1, 18, 7, 15, tzinfo=timezone.utc)
        run = EtlRun(
            run_id=run_id,
            run_mode=RunMode.INCREMENTAL,
            status=RunStatus.COMPLETED,
            started_at=datetime.now(timezone.utc),
            last_created_at=created,
            last_unique_key=1010,
        )

        watermark = run.watermark()

        assert watermark.run_id == run_id
        assert watermark.last_created_at == created
        assert watermark.last_unique_key == 1010
        assert watermark.run_mode is RunMode.INCREMENTAL


@pytest.mark.unit
class TestValidationResult:
    """Tests for ValidationResult consistency"""

    def test_passed_with_failures_is_invalid(self):
        with pytest.raises(ValidationError, match="passed=True"):
            ValidationResult(unique_key=1, passed=True, failed_rules=["positive_key"])

    def test_failed_result(self):
        result = ValidationResult(
            unique_key=0,
            passed=False,
            failed_rules=["positive_key"],
            errors=["unique_key: must be positive, got 0"],
        )
        assert not result.passed
