"""Tests for loading, serializing and editing catalogs."""

from __future__ import annotations

import stat
from pathlib import Path
from unittest.mock import patch

import pytest

from ts_reconcile.catalog.keys import normalize
from ts_reconcile.catalog.locations import LocationsMode
from ts_reconcile.catalog.models import Catalog, Message, MessageStatus, Occurrence
from ts_reconcile.catalog.store import (
    CatalogStore,
    DuplicatePolicy,
    load_catalog,
    read_catalog_file,
    serialize_catalog,
    write_catalog_file,
)
from ts_reconcile.utils.core.exceptions import (
    CatalogIOError,
    InvalidEditError,
    ParseError,
    ParseErrorKind,
    UnknownKeyError,
)
from tests.utils.catalog_helpers import catalog_with, make_message

HEADER = '<?xml version="1.0" encoding="utf-8"?>\n<!DOCTYPE TS>\n'

DUPLICATE_TS = (
    HEADER
    + """<TS version="2.1" language="nl_NL">
<context>
    <name>QObject</name>
    <message>
        <location filename="a.cc" line="+1"/>
        <source>Save</source>
        <translation type="unfinished"></translation>
    </message>
    <message>
        <location line="+5"/>
        <source>Save</source>
        <translation>Opslaan</translation>
    </message>
</context>
</TS>
"""
).encode("utf-8")


class TestLoadCatalog:
    """Test cases for load_catalog."""

    def test_loads_sample(self, sample_catalog: Catalog) -> None:
        """Test the structure of the loaded sample catalog."""
        assert sample_catalog.language == "nl_NL"
        assert [c.name for c in sample_catalog.contexts] == [
            "QObject",
            "annotation_dialog",
        ]
        assert len(sample_catalog) == 6

    def test_decodes_locations(self, sample_catalog: Catalog) -> None:
        """Test that delta chains are resolved across contexts."""
        bold = sample_catalog.find(normalize("QObject", "b", "short form for bold"))
        assert bold is not None
        assert bold.occurrences == [Occurrence("../src/settings-dialog.cc", 1024)]

        text = sample_catalog.find(normalize("annotation_dialog", "Text"))
        assert text is not None
        assert text.occurrences == [
            Occurrence("../graphics/annotation-dialog.ui", 23),
            Occurrence("../graphics/ui-annotation-dialog.h", 473),
        ]

    def test_statuses(self, sample_catalog: Catalog) -> None:
        """Test translation type mapping."""
        stats = sample_catalog.statistics()
        assert (stats.finished, stats.unfinished, stats.obsolete) == (4, 1, 1)

    def test_duplicate_rejected_by_default(self) -> None:
        """Test that duplicate keys fail the load."""
        with pytest.raises(ParseError) as exc_info:
            _ = load_catalog(DUPLICATE_TS)
        assert exc_info.value.kind is ParseErrorKind.DUPLICATE_KEY
        assert exc_info.value.key == normalize("QObject", "Save")

    def test_duplicate_merged(self) -> None:
        """Test that MERGE folds the duplicate into the first message."""
        catalog = load_catalog(DUPLICATE_TS, DuplicatePolicy.MERGE)
        assert len(catalog) == 1
        message = catalog.find(normalize("QObject", "Save"))
        assert message is not None
        assert message.translation == "Opslaan"
        assert message.status is MessageStatus.FINISHED
        assert message.occurrences == [Occurrence("a.cc", 1), Occurrence("a.cc", 6)]

    def test_duplicate_kept(self) -> None:
        """Test that KEEP loads both messages."""
        catalog = load_catalog(DUPLICATE_TS, DuplicatePolicy.KEEP)
        assert len(catalog) == 2

    def test_bad_delta(self) -> None:
        """Test that a relative location without any file is a BAD_DELTA error."""
        data = (
            HEADER
            + '<TS version="2.1" language="nl_NL"><context><name>C</name>'
            + '<message><location line="+3"/><source>x</source>'
            + "<translation>y</translation></message></context></TS>"
        ).encode("utf-8")
        with pytest.raises(ParseError) as exc_info:
            _ = load_catalog(data)
        assert exc_info.value.kind is ParseErrorKind.BAD_DELTA

    def test_malformed_xml(self) -> None:
        """Test that broken XML is a MALFORMED_STRUCTURE error."""
        with pytest.raises(ParseError) as exc_info:
            _ = load_catalog(b"<TS><context><name>C</name></TS>")
        assert exc_info.value.kind is ParseErrorKind.MALFORMED_STRUCTURE

    def test_location_issues_collected(self) -> None:
        """Test that lines below 1 are recorded on the catalog."""
        data = (
            HEADER
            + '<TS version="2.1" language="nl_NL"><context><name>C</name>'
            + '<message><location filename="a.cc" line="-2"/><source>x</source>'
            + "<translation>y</translation></message></context></TS>"
        ).encode("utf-8")
        catalog = load_catalog(data)
        assert len(catalog.location_issues) == 1
        assert catalog.location_issues[0].key == normalize("C", "x")


class TestSerializeCatalog:
    """Test cases for serialize_catalog."""

    def test_byte_stable(self, sample_ts: bytes, sample_catalog: Catalog) -> None:
        """Test that an lupdate-formatted file is reproduced byte for byte."""
        assert serialize_catalog(sample_catalog) == sample_ts

    def test_deterministic(self, sample_catalog: Catalog) -> None:
        """Test that serializing twice gives identical bytes."""
        assert serialize_catalog(sample_catalog) == serialize_catalog(sample_catalog)

    def test_deltas_recomputed(self, sample_catalog: Catalog) -> None:
        """Test that moved occurrences produce fresh deltas."""
        bold = sample_catalog.find(normalize("QObject", "b", "short form for bold"))
        assert bold is not None
        bold.occurrences = [Occurrence("../src/settings-dialog.cc", 1030)]
        output = serialize_catalog(sample_catalog).decode("utf-8")
        assert '<location line="+14"/>' in output
        assert '<location line="-5"/>' in output

    def test_only_obsolete_round_trip(self) -> None:
        """Test that a catalog of obsolete messages survives a round trip."""
        catalog = catalog_with(
            make_message("Ctx", "One", "Een", MessageStatus.OBSOLETE),
            make_message("Ctx", "Two", "Twee", MessageStatus.OBSOLETE),
            make_message("Other", "Three", "Drie", MessageStatus.VANISHED, vanished_passes=2),
        )
        data = serialize_catalog(catalog)
        assert b"<location" not in data

        reloaded = load_catalog(data)
        assert [(m.key, m.status, m.translation) for m in reloaded.messages()] == [
            (m.key, m.status, m.translation) for m in catalog.messages()
        ]
        three = reloaded.find(normalize("Other", "Three"))
        assert three is not None
        assert three.vanished_passes == 2

    def test_locations_none(self, sample_catalog: Catalog) -> None:
        """Test that none mode writes no location elements."""
        assert b"<location" not in serialize_catalog(sample_catalog, LocationsMode.NONE)

    def test_new_written_as_unfinished(self) -> None:
        """Test that new messages are stored as unfinished."""
        catalog = catalog_with(
            make_message("Ctx", "Fresh", status=MessageStatus.NEW, sites=[("a.cc", 3)])
        )
        output = serialize_catalog(catalog).decode("utf-8")
        assert '<translation type="unfinished"></translation>' in output


class TestCatalogFiles:
    """Test cases for file reading and atomic writing."""

    def test_read_missing_file(self, tmp_path: Path) -> None:
        """Test that a missing file is an I/O error."""
        with pytest.raises(CatalogIOError):
            _ = read_catalog_file(tmp_path / "missing.ts")

    def test_write_and_read(self, tmp_path: Path, sample_catalog: Catalog) -> None:
        """Test writing a catalog and loading it back."""
        path = tmp_path / "out.ts"
        write_catalog_file(sample_catalog, path)
        assert read_catalog_file(path).statistics() == sample_catalog.statistics()
        assert list(tmp_path.glob(".out.ts.*.tmp")) == []

    def test_failed_write_keeps_old_file(
        self, tmp_path: Path, sample_catalog: Catalog
    ) -> None:
        """Test that the target is untouched and the temp file removed on failure."""
        path = tmp_path / "out.ts"
        _ = path.write_text("original", encoding="utf-8")

        with patch("pathlib.Path.replace", side_effect=OSError("disk full")):
            with pytest.raises(CatalogIOError):
                write_catalog_file(sample_catalog, path)

        assert path.read_text(encoding="utf-8") == "original"
        assert list(tmp_path.glob(".out.ts.*.tmp")) == []

    def test_write_keeps_permissions(
        self, tmp_path: Path, sample_catalog: Catalog
    ) -> None:
        """Test that replacing a catalog keeps its file mode."""
        path = tmp_path / "out.ts"
        write_catalog_file(sample_catalog, path)
        path.chmod(0o640)

        write_catalog_file(sample_catalog, path)

        assert stat.S_IMODE(path.stat().st_mode) == 0o640


class TestApplyTranslationEdit:
    """Test cases for CatalogStore.apply_translation_edit."""

    def test_finish_translation(self, sample_catalog: Catalog) -> None:
        """Test filling in an unfinished translation."""
        store = CatalogStore(sample_catalog)
        key = normalize("QObject", "i", "short form for italic")
        message = store.apply_translation_edit(key, "s", MessageStatus.FINISHED)
        assert message.translation == "s"
        assert message.status is MessageStatus.FINISHED
        assert b"<translation>s</translation>" in store.serialize()

    def test_keep_status(self, sample_catalog: Catalog) -> None:
        """Test that omitting the status keeps the current one."""
        store = CatalogStore(sample_catalog)
        key = normalize("QObject", "b", "short form for bold")
        message = store.apply_translation_edit(key, "vet")
        assert message.status is MessageStatus.FINISHED

    def test_unknown_key(self, sample_catalog: Catalog) -> None:
        """Test editing a key that does not exist."""
        store = CatalogStore(sample_catalog)
        with pytest.raises(UnknownKeyError):
            _ = store.apply_translation_edit(normalize("QObject", "nope"), "x")

    def test_finished_requires_text(self, sample_catalog: Catalog) -> None:
        """Test that an empty translation cannot be marked finished."""
        store = CatalogStore(sample_catalog)
        key = normalize("QObject", "b", "short form for bold")
        with pytest.raises(InvalidEditError):
            _ = store.apply_translation_edit(key, "")

    def test_cannot_set_retired_status(self, sample_catalog: Catalog) -> None:
        """Test that edits cannot obsolete a message."""
        store = CatalogStore(sample_catalog)
        key = normalize("QObject", "b", "short form for bold")
        with pytest.raises(InvalidEditError):
            _ = store.apply_translation_edit(key, "d", MessageStatus.OBSOLETE)

    def test_cannot_revive_obsolete(self, sample_catalog: Catalog) -> None:
        """Test that edits cannot change the status of an obsolete message."""
        store = CatalogStore(sample_catalog)
        key = normalize("annotation_dialog", "Old label")
        with pytest.raises(InvalidEditError):
            _ = store.apply_translation_edit(key, "x", MessageStatus.FINISHED)

    def test_numerus_forms(self) -> None:
        """Test editing the plural forms of a numerus message."""
        message = make_message(
            "Ctx", "%n file(s)", status=MessageStatus.UNFINISHED, sites=[("a.cc", 1)]
        )
        message.numerus = True
        store = CatalogStore(catalog_with(message))
        _ = store.apply_translation_edit(
            message.key, ["%n bestand", "%n bestanden"], MessageStatus.FINISHED
        )
        output = store.serialize().decode("utf-8")
        assert '<message numerus="yes">' in output
        assert "<numerusform>%n bestanden</numerusform>" in output
        assert store.catalog.lookup_plural("Ctx", "%n file(s)") == [
            "%n bestand",
            "%n bestanden",
        ]

    def test_list_for_singular_message(self, sample_catalog: Catalog) -> None:
        """Test that plural forms are rejected for ordinary messages."""
        store = CatalogStore(sample_catalog)
        key = normalize("annotation_dialog", "Text")
        with pytest.raises(InvalidEditError):
            _ = store.apply_translation_edit(key, ["a", "b"])

    def test_save_round_trip(self, tmp_path: Path, sample_catalog_file: Path) -> None:
        """Test open, edit and save through the store."""
        store = CatalogStore.open(sample_catalog_file)
        key = normalize("QObject", "i", "short form for italic")
        _ = store.apply_translation_edit(key, "s", MessageStatus.FINISHED)
        out = tmp_path / "edited.ts"
        store.save(out)

        reloaded = read_catalog_file(out)
        assert reloaded.lookup("QObject", "i", "short form for italic") == "s"
        edited = reloaded.find(key)
        assert isinstance(edited, Message)
        assert edited.status is MessageStatus.FINISHED
