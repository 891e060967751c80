"""
Entry point for the app data backfill.

Usage:
    # Environment only
    POSTGRES_URL=postgresql://... IPFS_URL=https://ipfs.io python -m appdata_backfill

    # With config file and overrides
    python -m appdata_backfill --config backfill.yaml --concurrency 16

    # Fetch without inserting
    python -m appdata_backfill --dry-run

Exit status:
    0  Pass completed (individual items may have failed)
    1  Configuration or database error before the pass could run
    130  Interrupted
"""

import argparse
import asyncio
import logging
import sys
from pathlib import Path
from typing import List, Optional

from core.errors import ConfigurationError, PipelineError
from core.logging import generate_run_id, log_exception, setup_logging

from appdata_backfill.backfill import run_backfill
from appdata_backfill.config import BackfillConfig
from appdata_backfill.metrics import start_metrics_server

# Handlers are attached by setup_logging() in main()
logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_ERROR = 1
EXIT_INTERRUPTED = 130


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        prog="appdata_backfill",
        description="Fetch missing app data documents from IPFS and store them in Postgres",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Environment:
    POSTGRES_URL          Postgres connection URL (required)
    IPFS_URL              IPFS gateway base URL (required)
    IPFS_AUTH             Query string appended to gateway requests
    IPFS_TIMEOUT_SECONDS  Per-request timeout (default: 4)
    BACKFILL_CONCURRENCY  Items in flight (default: 32)
        """,
    )

    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="YAML config file with a 'backfill:' section (env vars take precedence)",
    )

    parser.add_argument(
        "--concurrency",
        type=int,
        default=None,
        help="Maximum number of items fetched at once (default: 32)",
    )

    parser.add_argument(
        "--timeout",
        type=float,
        default=None,
        dest="timeout_seconds",
        help="Gateway request timeout in seconds (default: 4)",
    )

    parser.add_argument(
        "--dry-run",
        action="store_true",
        default=None,
        help="Fetch documents but do not insert them",
    )

    parser.add_argument(
        "--metrics-port",
        type=int,
        default=None,
        help="Port for Prometheus metrics server (default: disabled)",
    )

    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default="INFO",
        help="Console logging level (default: INFO)",
    )

    parser.add_argument(
        "--log-dir",
        type=str,
        default=None,
        help="Log directory path (default: from LOG_DIR env var or ./logs)",
    )

    parser.add_argument(
        "--no-json-logs",
        action="store_true",
        help="Write plain text instead of JSON to the log file",
    )

    return parser.parse_args(argv)


def load_config(args: argparse.Namespace) -> BackfillConfig:
    """Build configuration with priority: CLI flags > environment > YAML file."""
    config = BackfillConfig.load(args.config)
    return config.with_overrides(
        concurrency=args.concurrency,
        timeout_seconds=args.timeout_seconds,
        dry_run=args.dry_run,
        metrics_port=args.metrics_port,
        log_dir=args.log_dir,
    )


def main(argv: Optional[List[str]] = None) -> int:
    """Run one backfill pass and return the process exit status."""
    args = parse_args(argv)

    try:
        config = load_config(args)
    except ConfigurationError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return EXIT_ERROR

    setup_logging(
        name="appdata_backfill",
        stage="backfill",
        domain="appdata",
        log_dir=Path(config.log_dir),
        json_format=not args.no_json_logs,
        console_level=getattr(logging, args.log_level),
        run_id=generate_run_id(),
    )

    logger.info(
        "Starting app data backfill",
        extra={
            "url": config.ipfs_url,
            "concurrency": config.concurrency,
            "dry_run": config.dry_run,
        },
    )

    try:
        start_metrics_server(config.metrics_port)
    except OSError as e:
        log_exception(logger, e, "Failed to start metrics server", include_traceback=False)
        return EXIT_ERROR

    try:
        asyncio.run(run_backfill(config))
    except KeyboardInterrupt:
        logger.warning("Interrupted, exiting before the pass completed")
        return EXIT_INTERRUPTED
    except PipelineError as e:
        log_exception(logger, e, "Backfill aborted", include_traceback=False)
        return EXIT_ERROR

    return EXIT_OK


if __name__ == "__main__":
    sys.exit(main())
