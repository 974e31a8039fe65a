"""Tests for file-level and batch reconciliation."""

from __future__ import annotations

from pathlib import Path

import pytest

from ts_reconcile.catalog.keys import normalize
from ts_reconcile.catalog.models import MessageStatus
from ts_reconcile.catalog.store import read_catalog_file
from ts_reconcile.config.schema import ReconcilerConfig
from ts_reconcile.reconcile.batch import (
    BatchResult,
    reconcile_catalogs,
    reconcile_file,
)
from ts_reconcile.reconcile.scan_input import ScannedMessage
from ts_reconcile.utils.core.exceptions import (
    CatalogIOError,
    CatalogValidationError,
    ParseError,
)
from ts_reconcile.validation.diagnostics import DELTA_CHAIN_GAP
from tests.utils.catalog_helpers import candidate


class TestReconcileFile:
    """Test cases for reconcile_file."""

    def test_in_place(
        self, sample_catalog_file: Path, sample_scan: list[ScannedMessage]
    ) -> None:
        """Test reconciling a catalog file in place."""
        result = reconcile_file(sample_catalog_file, sample_scan)
        assert result.stats.matched == 5

        reloaded = read_catalog_file(sample_catalog_file)
        assert reloaded.scan_digest == result.catalog.scan_digest
        old_label = reloaded.find(normalize("annotation_dialog", "Old label"))
        assert old_label is not None
        assert old_label.status is MessageStatus.VANISHED

    def test_dry_run_writes_nothing(
        self, tmp_path: Path, sample_catalog_file: Path, sample_scan: list[ScannedMessage]
    ) -> None:
        """Test that a dry run leaves the file system alone."""
        before = sample_catalog_file.read_bytes()
        out = tmp_path / "out.ts"
        _ = reconcile_file(sample_catalog_file, sample_scan, out, dry_run=True)
        assert sample_catalog_file.read_bytes() == before
        assert not out.exists()

    def test_new_catalog_for_language(self, tmp_path: Path) -> None:
        """Test starting a catalog when the old file is missing."""
        config = ReconcilerConfig()
        config.catalog.source_language = "en_US"
        out = tmp_path / "de_DE.ts"
        _ = reconcile_file(
            tmp_path / "missing.ts",
            [candidate("Ctx", "Save", ("a.cc", 1))],
            out,
            config=config,
            language="de_DE",
        )
        text = out.read_text(encoding="utf-8")
        assert '<TS version="2.1" language="de_DE" sourcelanguage="en_US">' in text

    def test_missing_old_without_language(self, tmp_path: Path) -> None:
        """Test that a missing catalog is an I/O error without a language."""
        with pytest.raises(CatalogIOError):
            _ = reconcile_file(tmp_path / "missing.ts", [])

    def test_validation_error_blocks_write(self, tmp_path: Path) -> None:
        """Test that nothing is written when the result fails validation."""
        path = tmp_path / "bad.ts"
        content = (
            '<?xml version="1.0" encoding="utf-8"?>\n<!DOCTYPE TS>\n'
            '<TS version="2.1" language="nl_NL">\n<context>\n    <name>Ctx</name>\n'
            "    <message>\n        <source>Save</source>\n"
            "        <translation></translation>\n    </message>\n</context>\n</TS>\n"
        )
        _ = path.write_text(content, encoding="utf-8")

        with pytest.raises(CatalogValidationError):
            _ = reconcile_file(path, [candidate("Ctx", "Save", ("a.cc", 1))])
        assert path.read_text(encoding="utf-8") == content

    def test_old_catalog_diagnostics(
        self, negative_delta_file: Path, negative_delta_scan: list[ScannedMessage]
    ) -> None:
        """Test that problems in the catalog on disk are reported on the result."""
        result = reconcile_file(negative_delta_file, negative_delta_scan, dry_run=True)

        assert DELTA_CHAIN_GAP in [d.code for d in result.pre_diagnostics]
        assert result.diagnostics == []


class TestReconcileCatalogs:
    """Test cases for the parallel batch worker."""

    @pytest.mark.asyncio
    async def test_all_succeed(
        self, tmp_path: Path, sample_ts: bytes, sample_scan: list[ScannedMessage]
    ) -> None:
        """Test reconciling several catalogs in parallel."""
        paths: list[Path] = []
        for language in ("nl_NL", "tr_TR", "uk_UA"):
            path = tmp_path / f"{language}.ts"
            _ = path.write_bytes(sample_ts)
            paths.append(path)

        batch = await reconcile_catalogs(paths, sample_scan, max_workers=2)

        assert isinstance(batch, BatchResult)
        assert batch.success_count == 3
        assert batch.failure_count == 0
        assert batch.success_rate == 100.0
        assert list(batch.results) == paths

    @pytest.mark.asyncio
    async def test_failure_is_isolated(
        self, tmp_path: Path, sample_ts: bytes, sample_scan: list[ScannedMessage]
    ) -> None:
        """Test that one broken catalog does not stop the others."""
        good = tmp_path / "nl_NL.ts"
        _ = good.write_bytes(sample_ts)
        broken = tmp_path / "tr_TR.ts"
        _ = broken.write_text("<TS>", encoding="utf-8")

        batch = await reconcile_catalogs([broken, good], sample_scan)

        assert batch.reconciled_files == [good]
        assert len(batch.failed_files) == 1
        failed_path, error = batch.failed_files[0]
        assert failed_path == broken
        assert isinstance(error, ParseError)
        assert "1 reconciled" in str(batch)

    @pytest.mark.asyncio
    async def test_fail_fast_skips_remaining(
        self, tmp_path: Path, sample_ts: bytes, sample_scan: list[ScannedMessage]
    ) -> None:
        """Test that fail_fast skips catalogs not started yet."""
        missing = tmp_path / "missing.ts"
        later = tmp_path / "nl_NL.ts"
        _ = later.write_bytes(sample_ts)
        before = later.read_bytes()

        batch = await reconcile_catalogs(
            [missing, later], sample_scan, max_workers=1, fail_fast=True
        )

        assert batch.failure_count == 1
        assert batch.skipped_files == [later]
        assert later.read_bytes() == before
