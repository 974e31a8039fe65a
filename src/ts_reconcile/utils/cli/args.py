"""
Command-line argument parsing for ts-reconcile.

This module builds the argparse parser for the reconcile, validate, batch,
stats and init-config subcommands and returns the parsed values in a typed
container.
"""

import argparse
from pathlib import Path
from typing import NamedTuple

from ...catalog.locations import LocationsMode
from ..core.version import get_version


class ParsedArgs(NamedTuple):
    """Container for parsed command-line arguments."""

    command: str
    old_catalog: Path | None
    scan_file: Path | None
    output: Path | None
    catalogs: list[Path]
    config_file: Path | None
    language: str | None
    locations: LocationsMode | None
    prune: bool
    prune_vanished_after: int | None
    dry_run: bool
    workers: int | None
    fail_fast: bool
    verbose: bool


def _positive_int(value: str) -> int:
    try:
        number = int(value)
    except ValueError as e:
        raise argparse.ArgumentTypeError(f"not an integer: {value!r}") from e
    if number < 1:
        raise argparse.ArgumentTypeError(f"must be at least 1, got {number}")
    return number


def _add_common_options(parser: argparse.ArgumentParser) -> None:
    _ = parser.add_argument(
        "--config",
        dest="config_file",
        type=Path,
        default=None,
        help="Path to a YAML configuration file",
        metavar="PATH",
    )
    _ = parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Enable debug logging",
    )


def _add_reconcile_options(parser: argparse.ArgumentParser) -> None:
    _ = parser.add_argument(
        "--locations",
        choices=[mode.value for mode in LocationsMode],
        default=None,
        help="Location output mode (default: from config, else relative)",
    )
    _ = parser.add_argument(
        "--prune",
        action="store_true",
        help="Drop all obsolete and vanished messages",
    )
    _ = parser.add_argument(
        "--prune-vanished-after",
        type=_positive_int,
        default=None,
        help="Drop vanished messages after N passes",
        metavar="N",
    )
    _ = parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Reconcile and validate without writing any file",
    )


def create_argument_parser() -> argparse.ArgumentParser:
    """
    Create the argument parser for ts-reconcile.

    Returns:
        Configured ArgumentParser instance
    """
    parser = argparse.ArgumentParser(
        prog="ts-reconcile",
        description="Reconcile Qt Linguist TS catalogs with freshly scanned source strings",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  ts-reconcile reconcile i18n/nl_NL.ts scan.json -o i18n/nl_NL.ts
    Update one catalog in place

  ts-reconcile reconcile missing.ts scan.json -o i18n/de_DE.ts --language de-de
    Start a new catalog for a language

  ts-reconcile batch scan.json i18n/*.ts --workers 4
    Update every language catalog in parallel

  ts-reconcile validate i18n/*.ts
    Check catalogs for duplicate keys and inconsistent entries
""",
    )
    _ = parser.add_argument(
        "--version", action="version", version=f"%(prog)s {get_version()}"
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    reconcile_parser = subparsers.add_parser(
        "reconcile", help="Merge scanner output into one catalog"
    )
    _ = reconcile_parser.add_argument("old_catalog", type=Path, help="Existing catalog")
    _ = reconcile_parser.add_argument("scan_file", type=Path, help="Scanner output (JSON)")
    _ = reconcile_parser.add_argument(
        "-o", "--output", type=Path, required=True, help="Where to write the new catalog"
    )
    _ = reconcile_parser.add_argument(
        "--language",
        default=None,
        help="Target language; starts a new catalog when the old one is missing",
    )
    _add_reconcile_options(reconcile_parser)
    _add_common_options(reconcile_parser)

    batch_parser = subparsers.add_parser(
        "batch", help="Merge scanner output into several catalogs in place"
    )
    _ = batch_parser.add_argument("scan_file", type=Path, help="Scanner output (JSON)")
    _ = batch_parser.add_argument(
        "catalogs", type=Path, nargs="+", help="Catalogs to update", metavar="CATALOG"
    )
    _ = batch_parser.add_argument(
        "--workers",
        type=_positive_int,
        default=None,
        help="Catalogs processed in parallel (default: from config)",
        metavar="N",
    )
    _ = batch_parser.add_argument(
        "--fail-fast",
        action="store_true",
        help="Skip remaining catalogs after the first failure",
    )
    _add_reconcile_options(batch_parser)
    _add_common_options(batch_parser)

    validate_parser = subparsers.add_parser("validate", help="Check catalogs")
    _ = validate_parser.add_argument(
        "catalogs", type=Path, nargs="+", help="Catalogs to check", metavar="CATALOG"
    )
    _add_common_options(validate_parser)

    stats_parser = subparsers.add_parser("stats", help="Show per-status counts")
    _ = stats_parser.add_argument(
        "catalogs", type=Path, nargs="+", help="Catalogs to count", metavar="CATALOG"
    )
    _add_common_options(stats_parser)

    init_parser = subparsers.add_parser(
        "init-config", help="Write a documented sample configuration file"
    )
    _ = init_parser.add_argument("output", type=Path, help="Where to write the file")
    _ = init_parser.add_argument(
        "-v", "--verbose", action="store_true", help="Enable debug logging"
    )

    return parser


def parse_arguments(args: list[str] | None = None) -> ParsedArgs:
    """
    Parse command-line arguments.

    Args:
        args: List of arguments to parse (defaults to sys.argv[1:])

    Returns:
        ParsedArgs with every field set; options that do not apply to the
        chosen subcommand are None or False

    Raises:
        SystemExit: If argument parsing fails or --help is requested
    """
    parser = create_argument_parser()
    parsed = parser.parse_args(args)

    command: str = getattr(parsed, "command")
    locations: str | None = getattr(parsed, "locations", None)

    old_catalog: Path | None = getattr(parsed, "old_catalog", None)
    output: Path | None = getattr(parsed, "output", None)
    catalogs: list[Path] = getattr(parsed, "catalogs", None) or []

    return ParsedArgs(
        command=command,
        old_catalog=old_catalog,
        scan_file=getattr(parsed, "scan_file", None),
        output=output,
        catalogs=catalogs,
        config_file=getattr(parsed, "config_file", None),
        language=getattr(parsed, "language", None),
        locations=LocationsMode(locations) if locations is not None else None,
        prune=getattr(parsed, "prune", False),
        prune_vanished_after=getattr(parsed, "prune_vanished_after", None),
        dry_run=getattr(parsed, "dry_run", False),
        workers=getattr(parsed, "workers", None),
        fail_fast=getattr(parsed, "fail_fast", False),
        verbose=getattr(parsed, "verbose", False),
    )
