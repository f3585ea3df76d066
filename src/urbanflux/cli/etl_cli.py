"""
Command-line interface for the UrbanFlux ETL.

Usage:
    urbanflux run --input <path_or_url> [--mode full|incremental] [--chunk-size N] [--dry-run]
    urbanflux db init
    urbanflux report last-run
"""

import argparse
import json
import sys
from datetime import datetime

from urbanflux.batch.pipeline import EtlPipeline
from urbanflux.core.config import PipelineConfig, load_config
from urbanflux.core.errors import UrbanFluxError
from urbanflux.core.models import EtlRun, RunMode
from urbanflux.observability.logger import get_logger, setup_logging
from urbanflux.observability.metrics import start_metrics_server
from urbanflux.warehouse import BulkLoader, DatabaseConnectionPool, RunTracker, SchemaManager

logger = get_logger(__name__)


def format_timestamp(ts: datetime | None) -> str:
    """Format timestamp for display."""
    return ts.strftime("%Y-%m-%d %H:%M:%S %Z") if ts else "N/A"


def run_command(args, config: PipelineConfig) -> None:
    """
    Execute an ETL run.

    Args:
        args: Command-line arguments
        config: Resolved configuration
    """
    source = args.input or config.etl.input_path
    if not source:
        raise UrbanFluxError("No input given. Pass --input or set ETL_INPUT_PATH.")

    mode = RunMode.parse(args.mode) if args.mode else config.etl.mode
    chunk_size = args.chunk_size or config.etl.chunk_size

    if args.dry_run:
        logger.info("DRY RUN MODE: No data will be written to the database")
        pipeline = EtlPipeline(
            chunk_size=chunk_size,
            delimiter=config.etl.delimiter,
            bad_rows_dir=config.etl.bad_rows_dir,
        )
        result = pipeline.run(source, mode=mode, dry_run=True)
    else:
        with DatabaseConnectionPool.from_config(config.database) as pool:
            pipeline = EtlPipeline(
                chunk_size=chunk_size,
                loader=BulkLoader(pool, batch_size=config.etl.insert_batch_size),
                tracker=RunTracker(pool),
                delimiter=config.etl.delimiter,
                bad_rows_dir=config.etl.bad_rows_dir,
            )
            result = pipeline.run(source, mode=mode)

    stats = result.stats
    print("=" * 60)
    print("RUN COMPLETE" + (" (dry run)" if result.dry_run else ""))
    print("=" * 60)
    print(f"Run ID:            {result.run_id or 'N/A'}")
    print(f"Mode:              {result.mode.value}")
    print(f"Chunks:            {result.chunks}")
    print(f"Rows read:         {stats.rows_read}")
    print(f"Rows parsed:       {stats.rows_parsed}")
    print(f"Rows skipped:      {stats.rows_skipped}")
    print(f"Rows validated:    {stats.rows_validated}")
    print(f"Rows inserted:     {stats.rows_inserted}")
    print(f"Duplicates:        {stats.rows_duplicated}")
    print(f"Rejected:          {stats.rows_rejected}")
    print(f"Parse errors:      {stats.parse_errors}")
    print(f"Watermark:         {format_timestamp(result.last_created_at)} / {result.last_unique_key or 'N/A'}")
    if result.bad_rows_path:
        print(f"Bad rows file:     {result.bad_rows_path}")
    print("=" * 60)


def db_init_command(args, config: PipelineConfig) -> None:
    """Apply the warehouse DDL."""
    with DatabaseConnectionPool.from_config(config.database) as pool:
        manager = SchemaManager(pool)
        manager.initialize()
        missing = manager.missing_tables()

    if missing:
        raise UrbanFluxError(f"Schema initialisation incomplete, missing tables: {', '.join(missing)}")
    print("Schema initialised.")


def print_run(run: EtlRun, as_json: bool = False) -> None:
    if as_json:
        print(json.dumps(run.model_dump(mode="json"), indent=2))
        return

    print("=" * 60)
    print(f"Run ID:       {run.run_id}")
    print(f"Mode:         {run.run_mode.value}")
    print(f"Status:       {run.status.value}")
    print(f"Dataset:      {run.dataset_name or 'N/A'}")
    print(f"Started:      {format_timestamp(run.started_at)}")
    print(f"Completed:    {format_timestamp(run.completed_at)}")
    print(f"Watermark:    {format_timestamp(run.last_created_at)} / {run.last_unique_key or 'N/A'}")
    if run.error_message:
        print(f"Error:        {run.error_message}")
    print("-" * 60)
    for name, value in run.stats.model_dump().items():
        print(f"{name:<20}{value:>12}")
    print("=" * 60)


def report_last_run_command(args, config: PipelineConfig) -> None:
    """Print the most recent run."""
    with DatabaseConnectionPool.from_config(config.database) as pool:
        run = RunTracker(pool).latest_run()

    if run is None:
        print("No runs recorded yet.")
        return
    print_run(run, as_json=args.json)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="urbanflux",
        description="NYC 311 service request ETL",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Full load from a local export
  urbanflux run --input data/311_service_requests.csv --mode full

  # Incremental load straight from a URL, 50k rows per chunk
  urbanflux run --input https://example.org/311.csv --mode incremental --chunk-size 50000

  # Parse and validate only
  urbanflux run --input data/311_service_requests.csv --dry-run

  # Create tables and indexes
  urbanflux db init

  # Show the latest run
  urbanflux report last-run
        """,
    )
    parser.add_argument("--config", help="Path to YAML configuration file")

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # run
    run_parser = subparsers.add_parser("run", help="Run the ETL pipeline")
    run_parser.add_argument("--input", help="Input CSV path or http(s) URL (default: ETL_INPUT_PATH)")
    run_parser.add_argument(
        "--mode",
        choices=[mode.value for mode in RunMode],
        help="Run mode (default: ETL_MODE or full)",
    )
    run_parser.add_argument("--chunk-size", type=int, help="Records per chunk (default: ETL_CHUNK_SIZE or 100000)")
    run_parser.add_argument("--dry-run", action="store_true", help="Parse and validate without writing to the database")
    run_parser.set_defaults(handler=run_command)

    # db
    db_parser = subparsers.add_parser("db", help="Database administration")
    db_subparsers = db_parser.add_subparsers(dest="db_command")
    init_parser = db_subparsers.add_parser("init", help="Create tables and indexes")
    init_parser.set_defaults(handler=db_init_command)

    # report
    report_parser = subparsers.add_parser("report", help="Run reports")
    report_subparsers = report_parser.add_subparsers(dest="report_command")
    last_run_parser = report_subparsers.add_parser("last-run", help="Show the most recent run")
    last_run_parser.add_argument("--json", action="store_true", help="Print the run as JSON")
    last_run_parser.set_defaults(handler=report_last_run_command)

    return parser


def main(argv: list[str] | None = None) -> None:
    """Main CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if not hasattr(args, "handler"):
        parser.print_help()
        sys.exit(1)

    if args.command == "run" and args.chunk_size is not None and args.chunk_size < 1:
        parser.error("--chunk-size must be at least 1")

    try:
        config = load_config(args.config)
    except UrbanFluxError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        sys.exit(1)

    setup_logging(config.logging.level, config.logging.format)
    if config.logging.metrics_port:
        start_metrics_server(config.logging.metrics_port)

    try:
        args.handler(args, config)
    except UrbanFluxError as e:
        logger.error(f"{args.command} failed: {e}", exc_info=True)
        sys.exit(1)
    except Exception as e:
        logger.error(f"Unexpected error during {args.command}: {e}", exc_info=True)
        sys.exit(1)


if __name__ == "__main__":
    main()
