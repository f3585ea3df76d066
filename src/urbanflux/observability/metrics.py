"""
Prometheus metrics collection for UrbanFlux

This module provides metrics instrumentation for monitoring
pipeline throughput, data quality, and store health.
"""
import os

from prometheus_client import (
    CollectorRegistry,
    Counter,
    Histogram,
    generate_latest,
)

from urbanflux.core.models import RunStats

# Global registry for metrics
REGISTRY = CollectorRegistry()


# =======================
# PIPELINE METRICS
# =======================

rows_total = Counter(
    name="urbanflux_rows_total",
    documentation="Rows seen by the pipeline, by outcome",
    labelnames=["mode", "outcome"],  # outcome: read, parsed, skipped, validated, inserted, ...
    registry=REGISTRY,
)

chunks_processed_total = Counter(
    name="urbanflux_chunks_processed_total",
    documentation="Total number of chunks transformed and loaded",
    labelnames=["mode"],
    registry=REGISTRY,
)

chunk_size_records = Histogram(
    name="urbanflux_chunk_size_records",
    documentation="Number of parsed records per chunk",
    labelnames=["mode"],
    buckets=[100, 1000, 10000, 50000, 100000, 250000, 500000],
    registry=REGISTRY,
)

chunk_duration_seconds = Histogram(
    name="urbanflux_chunk_duration_seconds",
    documentation="Time spent transforming and loading one chunk",
    labelnames=["mode"],
    buckets=[0.1, 0.5, 1.0, 2.0, 5.0, 10.0, 30.0, 60.0, 120.0],
    registry=REGISTRY,
)

runs_total = Counter(
    name="urbanflux_runs_total",
    documentation="Total number of ETL runs by final status",
    labelnames=["mode", "status"],  # status: completed, failed
    registry=REGISTRY,
)

# =======================
# STORE METRICS
# =======================

store_write_duration_seconds = Histogram(
    name="urbanflux_store_write_duration_seconds",
    documentation="Time spent in bulk insert calls",
    labelnames=["operation"],
    buckets=[0.01, 0.05, 0.1, 0.5, 1.0, 5.0, 10.0, 30.0],
    registry=REGISTRY,
)

store_errors_total = Counter(
    name="urbanflux_store_errors_total",
    documentation="Total number of store operations that failed",
    labelnames=["operation"],
    registry=REGISTRY,
)


# =======================
# HELPER FUNCTIONS
# =======================

def generate_metrics() -> bytes:
    """Generate Prometheus metrics in text format"""
    return generate_latest(REGISTRY)


def start_metrics_server(port: int | None = None) -> None:
    """
    Start HTTP server for Prometheus metrics

    Args:
        port: Port to listen on (defaults to env var METRICS_PORT or 8000)
    """
    from prometheus_client import start_http_server

    metrics_port = port or int(os.getenv("METRICS_PORT", "8000"))
    start_http_server(metrics_port, registry=REGISTRY)


def record_rows(mode: str, stats: RunStats) -> None:
    """Add row counters to rows_total, one sample per non-zero outcome"""
    for outcome, value in stats.model_dump().items():
        if value:
            rows_total.labels(mode=mode, outcome=outcome.removeprefix("rows_")).inc(value)


def record_chunk(mode: str, stats: RunStats, parsed_records: int, duration_seconds: float) -> None:
    """
    Record metrics for one processed chunk.

    Args:
        mode: Run mode label
        stats: Counters contributed by this chunk alone
        parsed_records: Records the reader produced for the chunk
        duration_seconds: Transform + load duration
    """
    record_rows(mode, stats)
    chunks_processed_total.labels(mode=mode).inc()
    chunk_size_records.labels(mode=mode).observe(parsed_records)
    chunk_duration_seconds.labels(mode=mode).observe(duration_seconds)


def record_run_finished(mode: str, status: str) -> None:
    runs_total.labels(mode=mode, status=status).inc()
