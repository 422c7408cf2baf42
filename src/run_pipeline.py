"""Pipeline CLI Entry Point

Command-line interface for rebuilding search documents from a record
dump. Handles argument parsing, logging configuration, and orchestration
of the pipeline from stored index configurations to per-index documents
files.

Usage:
    python src/run_pipeline.py --config data/indexes.json --input data/records.json --output-dir output
"""

import argparse
import logging
import time
from pathlib import Path

from meili_pipeline import settings
from meili_pipeline.pipeline import run_pipeline


def configure_logging() -> None:
    """Configure logging with both console and file output.

    Sets up:
      - Root logger at DEBUG level
      - Console handler at INFO level for user-facing messages
      - File handler at DEBUG level for detailed troubleshooting
    """
    log_dir = Path("logs")
    log_dir.mkdir(exist_ok=True)
    log_file = log_dir / "pipeline.log"

    # Root logger
    logger = logging.getLogger()
    logger.setLevel(logging.DEBUG)

    formatter = logging.Formatter(
        "%(asctime)s | %(levelname)s | %(name)s | %(message)s"
    )

    # Console handler: high-level INFO+
    console_handler = logging.StreamHandler()
    console_handler.setLevel(logging.INFO)
    console_handler.setFormatter(formatter)

    # File handler: detailed DEBUG+
    file_handler = logging.FileHandler(log_file, encoding="utf-8")
    file_handler.setLevel(logging.DEBUG)
    file_handler.setFormatter(formatter)

    # Clear existing handlers to avoid duplicates if run multiple times
    logger.handlers.clear()
    logger.addHandler(console_handler)
    logger.addHandler(file_handler)


def positive_int(value: str) -> int:
    """argparse type for counts that must be at least 1."""
    try:
        number = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid int value: {value!r}")
    if number < 1:
        raise argparse.ArgumentTypeError(f"must be at least 1, got {number}")
    return number


def main(argv=None) -> int:
    """
    CLI entrypoint for the index rebuild pipeline.

    Parses command-line arguments, runs the pipeline end-to-end,
    and returns a Unix-style exit code (0 on success, non-zero on failure).
    """
    configure_logging()
    logger = logging.getLogger(__name__)

    parser = argparse.ArgumentParser(
        description="Map content records into search documents per index"
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=Path("data/indexes.json"),
        help="Path to the stored index configurations JSON file.",
    )
    parser.add_argument(
        "--input",
        type=Path,
        default=Path("data/records.json"),
        help="Path to the record dump JSON file.",
    )
    parser.add_argument(
        "--output-dir",
        type=Path,
        default=Path("output"),
        help="Directory where documents files will be written.",
    )
    parser.add_argument(
        "--index",
        action="append",
        default=None,
        help="Only rebuild this index handle (repeatable).",
    )
    parser.add_argument(
        "--limit",
        type=int,
        default=None,
        help="Optional limit on number of records to read.",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Map records but don't write any files",
    )
    parser.add_argument(
        "--no-history",
        action="store_true",
        help="Overwrite output files instead of creating timestamped versions",
    )
    parser.add_argument(
        "--batch-size",
        type=positive_int,
        default=settings.BATCH_SIZE,
        help=f"Number of records mapped per batch (default: {settings.BATCH_SIZE})",
    )

    args = parser.parse_args(argv)

    logger.info("=== Starting index rebuild pipeline ===")
    logger.info("Config: %s", args.config)
    logger.info("Input: %s", args.input)
    logger.info("Output directory: %s", args.output_dir)
    logger.info("Indexes: %s", ", ".join(args.index) if args.index else "all")
    logger.info("Limit: %s", args.limit if args.limit else "None (all records)")
    logger.info("Dry_run: %s", args.dry_run)
    logger.info("Keep history: %s", not args.no_history)

    try:
        start_time = time.time()

        total_records, documents_count, output_paths = run_pipeline(
            config_path=args.config,
            input_path=args.input,
            output_dir=args.output_dir,
            handles=args.index,
            limit=args.limit,
            dry_run=args.dry_run,
            keep_history=not args.no_history,
            batch_size=args.batch_size,
        )

        elapsed_time = time.time() - start_time

        logger.info("=" * 70)
        logger.info("Pipeline completed successfully in %.2fs", elapsed_time)
        logger.info("")
        logger.info("Summary:")
        logger.info("  Input:      %s", args.input)
        logger.info("  Records:    %d", total_records)
        logger.info("  Documents:  %d", documents_count)
        logger.info("")
        logger.info("Output files:")
        for name, path in output_paths.items():
            logger.info("  %-24s %s", f"{name}:", path)
        logger.info("=" * 70)

    except Exception as e:
        logger.exception(f"Pipeline failed with an unhandled exception: {e}")
        return 1

    return 0


if __name__ == "__main__":
    raise SystemExit(main())
