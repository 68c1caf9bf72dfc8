"""CLI command for restoring sidecar metadata into media files."""

import argparse
import logging
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

from pydantic import ValidationError

from takeout_metafix.common import ConfigLoader, ConfigurationError, configure_logging, setup_logging

from .config import MetafixConfig
from .errors import ToolNotFoundError
from .pipeline import RestorePipeline
from .tool_checker import check_required_tools

APP_NAME = "takeout-metafix"

EXIT_OK = 0
EXIT_ITEM_FAILURES = 1
EXIT_CONFIG_ERROR = 2


def apply_overrides(config: MetafixConfig, args: argparse.Namespace) -> MetafixConfig:
    """
    Apply command-line values on top of the loaded configuration.

    Raises:
        ConfigurationError: If an override fails validation
    """
    overrides: Dict[str, Dict[str, Any]] = {
        "logging": {"level": args.log_level},
        "matching": {
            "prefix_match_chars": args.prefix_chars,
            "time_tolerance_seconds": args.time_tolerance,
        },
        "execution": {
            "workers": args.workers,
            "backup_policy": args.backup_policy,
            "no_backup": True if args.no_backup else None,
            "timezone": args.timezone,
        },
        "output": {
            "output_dir": str(args.output_dir) if args.output_dir else None,
            "report_dir": str(args.report_dir) if args.report_dir else None,
        },
    }

    data = config.model_dump()
    for section, values in overrides.items():
        for key, value in values.items():
            if value is not None:
                data[section][key] = value

    try:
        return MetafixConfig.model_validate(data)
    except ValidationError as e:
        raise ConfigurationError(f"Invalid command-line option: {e}", errors=e.errors()) from e


def restore_command(config: MetafixConfig, source: Path, dry_run: bool = False) -> int:
    """Restore metadata for every sidecar under ``source``.

    Returns:
        Exit code: 0 when every item succeeded, 1 when any item failed,
        2 when the run could not start
    """
    logger = logging.getLogger(__package__ or __name__)

    logger.info(
        f"Configuration: {{'source': {str(source)!r}, 'output_dir': {config.output.output_dir!r}, "
        f"'workers': {config.execution.workers}, 'backup_policy': {config.execution.backup_policy!r}, "
        f"'no_backup': {config.execution.no_backup}, 'timezone': {config.execution.timezone!r}, "
        f"'dry_run': {dry_run}}}"
    )

    if not source.is_dir():
        logger.error(f"Source directory does not exist: {{'path': {str(source)!r}}}")
        return EXIT_CONFIG_ERROR

    if not dry_run:
        try:
            check_required_tools(config.execution.exiftool_path)
        except ToolNotFoundError as e:
            logger.error(e.message)
            return EXIT_CONFIG_ERROR

    summary = RestorePipeline(config).run(source, dry_run=dry_run)
    return EXIT_ITEM_FAILURES if summary.has_failures else EXIT_OK


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog=APP_NAME,
        description="Restore Google Takeout sidecar metadata into media files"
    )
    parser.add_argument(
        "source",
        type=Path,
        help="Directory containing the extracted export (media files and .json sidecars)"
    )
    parser.add_argument(
        "--output-dir",
        type=Path,
        help="Copy restored files into a dated YYYY/MM tree here instead of writing in place"
    )
    parser.add_argument(
        "--workers",
        type=int,
        help="Number of concurrent exiftool invocations, 1-32 (overrides config)"
    )
    parser.add_argument(
        "--backup-policy",
        choices=["keep", "delete", "rename"],
        help="What to do with exiftool's *_original backup after an in-place write"
    )
    parser.add_argument(
        "--no-backup",
        action="store_true",
        help="Overwrite originals in place without keeping a backup"
    )
    parser.add_argument(
        "--prefix-chars",
        type=int,
        help="Characters compared by the title prefix stage (minimum 5)"
    )
    parser.add_argument(
        "--time-tolerance",
        type=float,
        help="Maximum seconds between capture time and file mtime for the timestamp stage"
    )
    parser.add_argument(
        "--timezone",
        help="IANA time zone for EXIF dates (default: UTC)"
    )
    parser.add_argument(
        "--report-dir",
        type=Path,
        help="Write results.csv and failure manifests to this directory"
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Resolve and plan only; do not copy or write any file"
    )
    parser.add_argument(
        "--config",
        type=Path,
        help="Path to config file (defaults.toml)"
    )
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        type=str.upper,
        help="Console log level (overrides config)"
    )
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for the restore command."""
    args = build_parser().parse_args(argv)

    try:
        loader = ConfigLoader(
            app_name=APP_NAME,
            config_class=MetafixConfig
        )
        config = apply_overrides(loader.load(defaults_path=args.config), args)
    except ConfigurationError as e:
        setup_logging(level="ERROR")
        logging.getLogger(__package__ or __name__).error(e.message)
        return EXIT_CONFIG_ERROR

    configure_logging(config.logging)

    return restore_command(config, args.source, dry_run=args.dry_run)


if __name__ == "__main__":
    sys.exit(main())
