"""
Command-line entry point for ts-reconcile.

Dispatches the parsed subcommand and maps failures to exit codes:
0 on success, 1 for malformed catalogs, malformed scanner output and
validation errors, 2 for file access failures. Reconciliation warnings
never change the exit code.
"""

from __future__ import annotations

import asyncio
import logging
import logging.handlers
import sys
from pathlib import Path

import yaml
from pydantic import ValidationError

from .catalog.store import read_catalog_file
from .config.manager import ConfigManager
from .config.schema import ReconcilerConfig, normalize_language_tag
from .reconcile.batch import reconcile_catalogs, reconcile_file
from .reconcile.scan_input import ScannedMessage, read_scan_file
from .utils.cli.args import ParsedArgs, parse_arguments
from .utils.core.exceptions import (
    CatalogIOError,
    CatalogToolError,
    CatalogValidationError,
)
from .validation.diagnostics import Diagnostic, Severity, has_errors, validate

logger = logging.getLogger(__name__)

EXIT_SUCCESS = 0
EXIT_FAILURE = 1
EXIT_IO_ERROR = 2

LOG_FILE_NAME = "ts-reconcile.log"


def setup_logging(
    verbose: bool = False, level: str = "INFO", log_folder: Path | None = None
) -> None:
    """
    Configure console logging and, optionally, a rotating log file.

    Can be called again to reconfigure once the configuration is loaded.

    Args:
        verbose: Log at DEBUG regardless of level
        level: Console log level name
        log_folder: Folder for the rotating log file, or None for console only
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(logging.DEBUG)
    root_logger.handlers.clear()

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(logging.DEBUG if verbose else level)
    console_handler.setFormatter(
        logging.Formatter("%(asctime)s - %(levelname)s - %(message)s")
    )
    root_logger.addHandler(console_handler)

    if log_folder is not None:
        _ = log_folder.mkdir(parents=True, exist_ok=True)
        file_handler = logging.handlers.RotatingFileHandler(
            log_folder / LOG_FILE_NAME,
            maxBytes=5 * 1024 * 1024,  # 5MB
            backupCount=5,
            encoding="utf-8",
        )
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(
            logging.Formatter(
                "%(asctime)s - %(name)s - %(levelname)s - %(funcName)s:%(lineno)d - %(message)s"
            )
        )
        root_logger.addHandler(file_handler)


def load_configuration(args: ParsedArgs) -> ReconcilerConfig:
    """
    Load the configuration file, if any, and apply command-line overrides.

    Raises:
        FileNotFoundError: If --config names a missing file
        yaml.YAMLError: If the file is not valid YAML
        ValueError: If the file is not a mapping or a language tag is invalid
        ValidationError: If the file fails schema validation
    """
    if args.config_file is not None:
        config = ConfigManager.load_config(args.config_file)
    else:
        config = ConfigManager.get_default_config()

    if args.locations is not None:
        config.catalog.locations = args.locations
    if args.prune:
        config.reconcile.prune_obsolete = True
    if args.prune_vanished_after is not None:
        config.reconcile.prune_vanished_after = args.prune_vanished_after
    if args.workers is not None:
        config.reconcile.max_workers = args.workers
    return config


def read_candidates(scan_file: Path) -> list[ScannedMessage]:
    records = read_scan_file(scan_file)
    logger.info(f"Read {len(records)} occurrence(s) from {scan_file}")
    return [ScannedMessage.from_record(record) for record in records]


def exit_code_for(error: Exception) -> int:
    """Map a failure to the process exit code."""
    match error:
        case CatalogIOError() | FileNotFoundError():
            return EXIT_IO_ERROR
        case _:
            return EXIT_FAILURE


def _log_validation_failure(error: CatalogValidationError) -> None:
    for diagnostic in error.diagnostics:
        if diagnostic.severity is Severity.ERROR:
            logger.error(str(diagnostic))


def _log_old_catalog_diagnostics(path: Path, diagnostics: list[Diagnostic]) -> None:
    for diagnostic in diagnostics:
        logger.warning(f"{path} (before reconciliation): {diagnostic}")


def run_reconcile(args: ParsedArgs, config: ReconcilerConfig) -> int:
    assert args.old_catalog is not None and args.scan_file is not None
    language = normalize_language_tag(args.language) if args.language else None

    candidates = read_candidates(args.scan_file)
    result = reconcile_file(
        args.old_catalog,
        candidates,
        output_path=args.output,
        config=config,
        language=language,
        dry_run=args.dry_run,
    )

    _log_old_catalog_diagnostics(args.old_catalog, result.pre_diagnostics)
    warnings = [d for d in result.diagnostics if d.severity is Severity.WARNING]
    if warnings:
        logger.info(f"Reconciled catalog has {len(warnings)} validation warning(s)")
        for diagnostic in warnings:
            logger.debug(str(diagnostic))
    print(result.stats)
    return EXIT_SUCCESS


def run_batch(args: ParsedArgs, config: ReconcilerConfig) -> int:
    assert args.scan_file is not None
    candidates = read_candidates(args.scan_file)
    batch = asyncio.run(
        reconcile_catalogs(
            args.catalogs,
            candidates,
            config=config,
            fail_fast=args.fail_fast,
            dry_run=args.dry_run,
        )
    )

    for path, result in batch.results.items():
        _log_old_catalog_diagnostics(path, result.pre_diagnostics)
        print(f"{path}: {result.stats}")
    for path, error in batch.failed_files:
        print(f"{path}: FAILED: {error}")
        if isinstance(error, CatalogValidationError):
            _log_validation_failure(error)
    for path in batch.skipped_files:
        print(f"{path}: skipped")

    if not batch.failed_files:
        return EXIT_SUCCESS
    return max(exit_code_for(error) for _, error in batch.failed_files)


def run_validate(args: ParsedArgs, config: ReconcilerConfig) -> int:
    exit_code = EXIT_SUCCESS
    for path in args.catalogs:
        try:
            catalog = read_catalog_file(
                path,
                duplicate_policy=config.catalog.duplicate_policy,
                strict_monotonic=config.reconcile.strict_monotonic_locations,
            )
        except CatalogToolError as e:
            print(f"{path}: FAILED: {e}")
            exit_code = max(exit_code, exit_code_for(e))
            continue

        diagnostics = validate(catalog)
        for diagnostic in diagnostics:
            print(f"{path}: {diagnostic}")
        if has_errors(diagnostics):
            exit_code = max(exit_code, EXIT_FAILURE)
        else:
            logger.info(f"{path}: OK ({len(diagnostics)} warning(s))")
    return exit_code


def run_stats(args: ParsedArgs, config: ReconcilerConfig) -> int:
    for path in args.catalogs:
        catalog = read_catalog_file(path, duplicate_policy=config.catalog.duplicate_policy)
        print(f"{path} [{catalog.language}]: {catalog.statistics()}")
    return EXIT_SUCCESS


def run_init_config(args: ParsedArgs) -> int:
    assert args.output is not None
    if args.output.exists():
        logger.error(f"Refusing to overwrite existing file: {args.output}")
        return EXIT_FAILURE
    try:
        ConfigManager.create_sample_config(args.output)
    except OSError as e:
        logger.error(f"Failed to write sample configuration: {e}")
        return EXIT_IO_ERROR
    logger.info(f"Wrote sample configuration to {args.output}")
    return EXIT_SUCCESS


def main(argv: list[str] | None = None) -> int:
    """
    Main entry point.

    Args:
        argv: Command-line arguments (defaults to sys.argv[1:])

    Returns:
        Exit code
    """
    args = parse_arguments(argv)
    setup_logging(args.verbose)

    if args.command == "init-config":
        return run_init_config(args)

    try:
        config = load_configuration(args)
    except FileNotFoundError as e:
        logger.error(str(e))
        return EXIT_IO_ERROR
    except (yaml.YAMLError, ValueError, ValidationError) as e:
        logger.error(f"Invalid configuration: {e}")
        return EXIT_FAILURE

    log_folder = Path(config.logging.log_folder) if config.logging.log_folder else None
    setup_logging(args.verbose, config.logging.level, log_folder)

    try:
        match args.command:
            case "reconcile":
                return run_reconcile(args, config)
            case "batch":
                return run_batch(args, config)
            case "validate":
                return run_validate(args, config)
            case "stats":
                return run_stats(args, config)
            case _:
                logger.error(f"Unknown command: {args.command}")
                return EXIT_FAILURE
    except CatalogValidationError as e:
        logger.error(str(e))
        _log_validation_failure(e)
        return EXIT_FAILURE
    except CatalogToolError as e:
        logger.error(e.user_message)
        return exit_code_for(e)
    except ValueError as e:
        # Invalid --language tag
        logger.error(str(e))
        return EXIT_FAILURE
    except KeyboardInterrupt:
        logger.info("Operation cancelled by user")
        return EXIT_FAILURE
