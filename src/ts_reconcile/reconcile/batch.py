"""
Catalog file reconciliation, one file or many.

Each catalog is handled end to end by a single worker: load, reconcile,
validate, atomic save. Workers share only the read-only candidate list, so
several language catalogs can be processed in parallel threads. The
blocking work runs in asyncio.to_thread() with a semaphore bounding the
number of catalogs in flight.
"""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing_extensions import override
from collections.abc import Sequence

from ..catalog.models import Catalog
from ..catalog.store import CatalogStore, read_catalog_file
from ..config.schema import ReconcilerConfig
from ..utils.core.exceptions import CatalogToolError
from .engine import ReconcileResult, ReconciliationEngine
from .scan_input import ScannedMessage

logger = logging.getLogger(__name__)


class BatchResult:
    """Result of a batch reconciliation."""

    def __init__(self) -> None:
        self.reconciled_files: list[Path] = []
        self.skipped_files: list[Path] = []
        self.failed_files: list[tuple[Path, Exception]] = []
        self.results: dict[Path, ReconcileResult] = {}
        self.total_files: int = 0

    @property
    def success_count(self) -> int:
        """Number of successfully reconciled catalogs."""
        return len(self.reconciled_files)

    @property
    def skip_count(self) -> int:
        """Number of catalogs skipped after an earlier failure."""
        return len(self.skipped_files)

    @property
    def failure_count(self) -> int:
        """Number of failed catalogs."""
        return len(self.failed_files)

    @property
    def success_rate(self) -> float:
        """Success rate as a percentage."""
        if self.total_files == 0:
            return 100.0
        return (self.success_count / self.total_files) * 100.0

    @override
    def __str__(self) -> str:
        """String representation of batch results."""
        return (
            f"Reconciliation Results: "
            f"{self.success_count} reconciled, "
            f"{self.skip_count} skipped, "
            f"{self.failure_count} failed "
            f"({self.success_rate:.1f}% success rate)"
        )


def load_or_create_catalog(
    path: Path, config: ReconcilerConfig, language: str | None = None
) -> Catalog:
    """
    Load the catalog at path, or start an empty one.

    An empty catalog is only created when a language is given and the file
    does not exist; otherwise a missing file is an I/O error.

    Raises:
        CatalogIOError: If the file cannot be read
        ParseError: If the file is not a valid catalog
    """
    if language is not None and not path.exists():
        logger.info(f"{path} does not exist, starting a new {language} catalog")
        return Catalog(language, source_language=config.catalog.source_language)

    return read_catalog_file(
        path,
        duplicate_policy=config.catalog.duplicate_policy,
        strict_monotonic=config.reconcile.strict_monotonic_locations,
    )


def reconcile_file(
    old_path: Path,
    scanned: Sequence[ScannedMessage],
    output_path: Path | None = None,
    config: ReconcilerConfig | None = None,
    language: str | None = None,
    dry_run: bool = False,
    engine: ReconciliationEngine | None = None,
) -> ReconcileResult:
    """
    Reconcile one catalog file against scanned candidates.

    The output file is only replaced after the new catalog has been fully
    built and validated; nothing is written on any error path.

    Args:
        old_path: Existing catalog
        scanned: Candidates in scan order
        output_path: Where to write the result (default: old_path)
        config: Configuration (default: built-in defaults)
        language: Target language for a new catalog if old_path is missing
        dry_run: Reconcile and validate without writing
        engine: Engine to use (default: one built from config)

    Returns:
        The reconciliation result

    Raises:
        CatalogIOError: If reading or writing fails
        ParseError: If the old catalog is malformed
        CatalogValidationError: If the reconciled catalog has errors
    """
    config = config or ReconcilerConfig()
    engine = engine or ReconciliationEngine.from_config(config)
    output_path = output_path or old_path

    old = load_or_create_catalog(old_path, config, language)
    result = engine.reconcile(old, scanned)
    result.raise_for_errors()

    if dry_run:
        logger.info(f"Dry run: not writing {output_path}")
        return result

    store = CatalogStore(result.catalog, config.catalog.locations)
    store.save(output_path)
    return result


async def reconcile_catalogs(
    paths: Sequence[Path],
    scanned: Sequence[ScannedMessage],
    config: ReconcilerConfig | None = None,
    max_workers: int | None = None,
    fail_fast: bool = False,
    dry_run: bool = False,
) -> BatchResult:
    """
    Reconcile several catalogs in place, in parallel.

    Args:
        paths: Catalog files, one per language
        scanned: Candidates in scan order, shared by all catalogs
        config: Configuration (default: built-in defaults)
        max_workers: Catalogs processed at once (default: from config)
        fail_fast: Skip catalogs not yet started once one has failed
        dry_run: Reconcile and validate without writing

    Returns:
        BatchResult with per-file outcomes in input order
    """
    config = config or ReconcilerConfig()
    workers = max_workers or config.reconcile.max_workers
    engine = ReconciliationEngine.from_config(config)
    semaphore = asyncio.Semaphore(workers)
    failed = asyncio.Event()

    outcomes: list[ReconcileResult | Exception | None] = [None] * len(paths)

    async def worker(index: int, path: Path) -> None:
        async with semaphore:
            if fail_fast and failed.is_set():
                logger.info(f"Skipping {path} after an earlier failure")
                return
            try:
                outcomes[index] = await asyncio.to_thread(
                    reconcile_file,
                    path,
                    scanned,
                    config=config,
                    dry_run=dry_run,
                    engine=engine,
                )
            except CatalogToolError as e:
                logger.error(f"Failed to reconcile {path}: {e}")
                outcomes[index] = e
                failed.set()

    logger.info(f"Reconciling {len(paths)} catalog(s) with {workers} worker(s)")
    _ = await asyncio.gather(*(worker(i, path) for i, path in enumerate(paths)))

    batch = BatchResult()
    batch.total_files = len(paths)
    for path, outcome in zip(paths, outcomes):
        match outcome:
            case ReconcileResult():
                batch.reconciled_files.append(path)
                batch.results[path] = outcome
            case Exception():
                batch.failed_files.append((path, outcome))
            case None:
                batch.skipped_files.append(path)

    logger.info(str(batch))
    return batch
