"""
Unit tests for logging and metrics helpers.
"""

import json
import logging

import pytest

from urbanflux.core.models import RunStats
from urbanflux.observability import metrics
from urbanflux.observability.logger import get_logger, log_operation, setup_logging


@pytest.mark.unit
def test_get_logger_is_namespaced():
    assert get_logger("batch.pipeline").name == "urbanflux.batch.pipeline"
    assert get_logger("urbanflux.warehouse").name == "urbanflux.warehouse"


@pytest.mark.unit
def test_json_logging_emits_structured_records(capsys):
    setup_logging("INFO", "json")
    get_logger("tests").info("chunk loaded", extra={"run_id": "abc", "rows": 3})

    line = capsys.readouterr().err.strip().splitlines()[-1]
    payload = json.loads(line)
    assert payload["message"] == "chunk loaded"
    assert payload["level"] == "INFO"
    assert payload["logger"] == "urbanflux.tests"
    assert payload["run_id"] == "abc"
    assert payload["rows"] == 3


@pytest.mark.unit
def test_log_operation_reports_failure(caplog):
    logger = logging.getLogger("log_operation_test")

    with caplog.at_level(logging.INFO, logger="log_operation_test"):
        with pytest.raises(RuntimeError):
            with log_operation("Loading chunk", logger=logger, chunk=1):
                raise RuntimeError("boom")

    assert any(r.getMessage() == "Failed: Loading chunk" for r in caplog.records)


@pytest.mark.unit
def test_record_chunk_counts_outcomes():
    def sample(outcome):
        return metrics.REGISTRY.get_sample_value(
            "urbanflux_rows_total", {"mode": "unit", "outcome": outcome}
        ) or 0.0

    before_read = sample("read")
    before_errors = sample("parse_errors")

    metrics.record_chunk("unit", RunStats(rows_read=4, rows_parsed=3, parse_errors=1), 3, 0.2)

    assert sample("read") == before_read + 4
    assert sample("parse_errors") == before_errors + 1
    assert b"urbanflux_chunks_processed_total" in metrics.generate_metrics()
