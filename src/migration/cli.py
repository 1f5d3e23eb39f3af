import argparse
import asyncio
import json
import logging
import sys
from datetime import datetime
from pathlib import Path
from typing import Optional, Sequence

from dotenv import load_dotenv

from migration.config import MigrationConfig
from migration.errors import MigrationError
from migration.orchestrator import MigrationOrchestrator
from migration.result import all_succeeded

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

logger = logging.getLogger(__name__)


def configure_logging(log_dir: Optional[Path], level: int = logging.INFO) -> Optional[Path]:
    """Log to stderr and, when ``log_dir`` is given, to a per-run log file."""
    handlers: list[logging.Handler] = [logging.StreamHandler()]
    log_file = None
    if log_dir is not None:
        log_dir.mkdir(parents=True, exist_ok=True)
        log_file = log_dir / f"migration_log_{datetime.now().strftime('%Y%m%d_%H%M%S')}.log"
        handlers.append(logging.FileHandler(log_file, encoding="utf-8"))
    logging.basicConfig(level=level, format=LOG_FORMAT, handlers=handlers, force=True)
    return log_file


def _parse_args(argv: Optional[Sequence[str]]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Copy table rows between MySQL databases in foreign-key order"
    )
    parser.add_argument("--env-file", help="Load environment variables from this file first")
    parser.add_argument(
        "--tables", help="Comma-separated tables to migrate (overrides MIGRATION_TABLES)"
    )
    parser.add_argument("--chunk-size", type=int, help="Rows per batch (overrides CHUNK_SIZE)")
    parser.add_argument(
        "--dry-run",
        action=argparse.BooleanOptionalAction,
        default=None,
        help="Inspect and count rows without changing the target (overrides DRY_RUN)",
    )
    parser.add_argument(
        "--truncate",
        action=argparse.BooleanOptionalAction,
        default=None,
        help="Clear each target table after backup (overrides TRUNCATE_TARGET)",
    )
    parser.add_argument(
        "--foreign-key-strategy",
        choices=["disable", "preserve"],
        help="Overrides FOREIGN_KEY_STRATEGY",
    )
    parser.add_argument("--log-dir", default="logs", help="Directory for the run log file")
    parser.add_argument("--no-log-file", action="store_true", help="Only log to stderr")
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")
    return parser.parse_args(argv)


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Run a migration; returns 0 when every table succeeded, else 1."""
    args = _parse_args(argv)
    configure_logging(
        None if args.no_log_file else Path(args.log_dir),
        logging.DEBUG if args.verbose else logging.INFO,
    )
    if args.env_file:
        load_dotenv(args.env_file)
    else:
        load_dotenv()
    tables = [t.strip() for t in args.tables.split(",") if t.strip()] if args.tables else None

    try:
        config = MigrationConfig.from_env().with_overrides(
            tables=tables,
            chunk_size=args.chunk_size,
            dry_run=args.dry_run,
            truncate_target=args.truncate,
            foreign_key_strategy=args.foreign_key_strategy,
        )
        orchestrator = MigrationOrchestrator(config.source, config.target)
        results = asyncio.run(orchestrator.run(config.tables, config.options))
    except MigrationError as e:
        logger.error("Migration failed: %s", e)
        return 1
    except Exception as e:
        logger.error("Migration failed: %s", e, exc_info=True)
        return 1

    report = {table: result.to_report() for table, result in results.items()}
    print("Migration Results:", json.dumps(report, indent=2))
    return 0 if all_succeeded(results) else 1


if __name__ == "__main__":
    sys.exit(main())
