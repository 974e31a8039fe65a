"""
Global test configuration fixtures for ts-reconcile tests.

Provides a small Dutch catalog in lupdate's exact output format, the scanner
output that matches it, and configuration objects for the CLI and batch
tests.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Generator
from pathlib import Path

import pytest

from ts_reconcile.catalog.models import Catalog
from ts_reconcile.catalog.store import load_catalog
from ts_reconcile.config.schema import ReconcilerConfig
from ts_reconcile.reconcile.scan_input import ScannedMessage, ScanRecord

SAMPLE_TS = """\
<?xml version="1.0" encoding="utf-8"?>
<!DOCTYPE TS>
<TS version="2.1" language="nl_NL">
<context>
    <name>QObject</name>
    <message>
        <location filename="../src/settings-dialog.cc" line="+1016"/>
        <source>Difference to the default size</source>
        <translation>Verschil met standaardgrootte</translation>
    </message>
    <message>
        <location line="+8"/>
        <source>b</source>
        <comment>short form for bold</comment>
        <translation>d</translation>
    </message>
    <message>
        <location line="+1"/>
        <source>i</source>
        <comment>short form for italic</comment>
        <translation type="unfinished"></translation>
    </message>
</context>
<context>
    <name>annotation_dialog</name>
    <message>
        <location filename="../graphics/annotation-dialog.ui" line="+17"/>
        <location filename="../graphics/ui-annotation-dialog.h" line="+472"/>
        <source>Annotation</source>
        <translation>Annotatie</translation>
    </message>
    <message>
        <location line="+6"/>
        <location filename="../graphics/ui-annotation-dialog.h" line="+1"/>
        <source>Text</source>
        <translation>Tekst</translation>
    </message>
    <message>
        <source>Old label</source>
        <translation type="obsolete">Oud label</translation>
    </message>
</context>
</TS>
"""

SAMPLE_SCAN: list[dict[str, object]] = [
    {
        "context": "QObject",
        "source": "Difference to the default size",
        "file": "../src/settings-dialog.cc",
        "line": 1016,
    },
    {
        "context": "QObject",
        "source": "b",
        "comment": "short form for bold",
        "file": "../src/settings-dialog.cc",
        "line": 1024,
    },
    {
        "context": "QObject",
        "source": "i",
        "comment": "short form for italic",
        "file": "../src/settings-dialog.cc",
        "line": 1025,
    },
    {
        "context": "annotation_dialog",
        "source": "Annotation",
        "file": "../graphics/annotation-dialog.ui",
        "line": 17,
    },
    {
        "context": "annotation_dialog",
        "source": "Annotation",
        "file": "../graphics/ui-annotation-dialog.h",
        "line": 472,
    },
    {
        "context": "annotation_dialog",
        "source": "Text",
        "file": "../graphics/annotation-dialog.ui",
        "line": 23,
    },
    {
        "context": "annotation_dialog",
        "source": "Text",
        "file": "../graphics/ui-annotation-dialog.h",
        "line": 473,
    },
]


@pytest.fixture(autouse=True)
def restore_root_logging() -> Generator[None, None, None]:
    """Undo handler changes made by setup_logging() in CLI tests."""
    root_logger = logging.getLogger()
    handlers = list(root_logger.handlers)
    level = root_logger.level
    yield
    root_logger.handlers[:] = handlers
    root_logger.setLevel(level)


@pytest.fixture
def sample_ts() -> bytes:
    """The sample catalog as raw bytes."""
    return SAMPLE_TS.encode("utf-8")


@pytest.fixture
def sample_catalog(sample_ts: bytes) -> Catalog:
    """The sample catalog, loaded."""
    return load_catalog(sample_ts)


@pytest.fixture
def sample_scan() -> list[ScannedMessage]:
    """Candidates matching every live message of the sample catalog."""
    return [
        ScannedMessage.from_record(ScanRecord.model_validate(record))
        for record in SAMPLE_SCAN
    ]


@pytest.fixture
def sample_scan_file(tmp_path: Path) -> Path:
    """The sample scan written as a JSON file."""
    path = tmp_path / "scan.json"
    _ = path.write_text(json.dumps(SAMPLE_SCAN), encoding="utf-8")
    return path


@pytest.fixture
def sample_catalog_file(tmp_path: Path, sample_ts: bytes) -> Path:
    """The sample catalog written to disk."""
    path = tmp_path / "nl_NL.ts"
    _ = path.write_bytes(sample_ts)
    return path


@pytest.fixture
def base_config() -> ReconcilerConfig:
    """Default configuration."""
    return ReconcilerConfig()


# Second message decodes to line -10 in a.cc
NEGATIVE_DELTA_TS = """\
<?xml version="1.0" encoding="utf-8"?>
<!DOCTYPE TS>
<TS version="2.1" language="nl_NL">
<context>
    <name>Ctx</name>
    <message>
        <location filename="a.cc" line="+10"/>
        <source>One</source>
        <translation>Een</translation>
    </message>
    <message>
        <location line="-20"/>
        <source>Two</source>
        <translation>Twee</translation>
    </message>
</context>
</TS>
"""

NEGATIVE_DELTA_SCAN: list[dict[str, object]] = [
    {"context": "Ctx", "source": "One", "file": "a.cc", "line": 10},
    {"context": "Ctx", "source": "Two", "file": "a.cc", "line": 30},
]


@pytest.fixture
def negative_delta_file(tmp_path: Path) -> Path:
    """A catalog whose delta chain runs below line 1."""
    path = tmp_path / "gap.ts"
    _ = path.write_text(NEGATIVE_DELTA_TS, encoding="utf-8")
    return path


@pytest.fixture
def negative_delta_scan() -> list[ScannedMessage]:
    """A scan that places both messages of the negative-delta catalog correctly."""
    return [
        ScannedMessage.from_record(ScanRecord.model_validate(record))
        for record in NEGATIVE_DELTA_SCAN
    ]
