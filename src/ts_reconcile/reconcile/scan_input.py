"""
Scanner output handling.

The source scanner produces one record per occurrence of a translatable
string, in file traversal order. This module validates that stream and folds
it into the ordered candidate list the reconciliation engine consumes.
"""

from __future__ import annotations

import hashlib
import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Annotated, ClassVar
from collections.abc import Iterable, Sequence

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from ..catalog.keys import MessageKey, find_ambiguous_keys, normalize
from ..catalog.models import Occurrence
from ..utils.core.exceptions import CatalogIOError, ReconciliationWarning, ScanInputError

logger = logging.getLogger(__name__)


class ScanRecord(BaseModel):
    """One occurrence of a translatable string reported by the scanner."""

    model_config: ClassVar[ConfigDict] = ConfigDict(frozen=True, extra="ignore")

    context: str = Field(..., description="Owning context (class or component)")
    source: str = Field(..., min_length=1, description="Source text as extracted")
    comment: str | None = Field(
        default=None, description="Disambiguating comment, if any"
    )
    file: str = Field(..., min_length=1, description="Source file path")
    line: Annotated[int, Field(strict=True, ge=1)] = Field(
        ..., description="Absolute line number of the occurrence"
    )
    extracomment: str | None = Field(
        default=None, description="Developer note for translators"
    )
    numerus: Annotated[bool, Field(strict=True)] = Field(
        default=False, description="Whether the string takes plural forms"
    )

    @field_validator("comment", "extracomment")
    @classmethod
    def empty_as_missing(cls, v: str | None) -> str | None:
        """Treat empty comments the same as absent ones."""
        return v or None

    @property
    def key(self) -> MessageKey:
        return normalize(self.context, self.source, self.comment)

    @property
    def occurrence(self) -> Occurrence:
        return Occurrence(self.file, self.line)


@dataclass
class ScannedMessage:
    """A candidate message: one key with all its occurrences from the scan."""

    key: MessageKey
    occurrences: list[Occurrence] = field(default_factory=list)
    extra_comment: str | None = None
    numerus: bool = False

    @classmethod
    def from_record(cls, record: ScanRecord) -> ScannedMessage:
        return cls(
            key=record.key,
            occurrences=[record.occurrence],
            extra_comment=record.extracomment,
            numerus=record.numerus,
        )


def parse_scan(data: bytes) -> list[ScanRecord]:
    """
    Parse scanner output.

    Accepts a JSON array of occurrence objects, or an object with an
    "occurrences" array.

    Args:
        data: Raw JSON bytes

    Returns:
        Validated records in scan order

    Raises:
        ScanInputError: If the JSON is invalid or any record fails validation
    """
    try:
        raw: object = json.loads(data)
    except ValueError as e:
        raise ScanInputError(f"Scan output is not valid JSON: {e}") from e

    match raw:
        case list():
            items: list[object] = raw
        case {"occurrences": list() as occurrences}:
            items = occurrences
        case _:
            raise ScanInputError(
                "Scan output must be a JSON array or an object with an "
                f"'occurrences' array, got {type(raw).__name__}"
            )

    records: list[ScanRecord] = []
    for index, item in enumerate(items):
        try:
            records.append(ScanRecord.model_validate(item))
        except ValidationError as e:
            raise ScanInputError(
                f"Invalid scan record #{index}: {e}", record_index=index
            ) from e

    logger.debug(f"Parsed {len(records)} scan record(s)")
    return records


def read_scan_file(path: Path) -> list[ScanRecord]:
    """
    Read and parse a scanner output file.

    Raises:
        CatalogIOError: If the file cannot be read
        ScanInputError: If the content is malformed
    """
    try:
        with path.open("rb") as f:
            data = f.read()
    except OSError as e:
        raise CatalogIOError(f"Failed to read scan output {path}: {e}", path=path) from e
    return parse_scan(data)


def merge_candidates(
    candidates: Iterable[ScannedMessage],
) -> tuple[list[ScannedMessage], list[ReconciliationWarning]]:
    """
    Merge candidates sharing a key, keeping first-seen order.

    Occurrences are concatenated in scan order with exact duplicate sites
    dropped. When two candidates disagree on their developer comment or
    plural flag, the first one wins and a warning is recorded.

    Returns:
        Merged candidates and the warnings raised while merging
    """
    merged: dict[MessageKey, ScannedMessage] = {}
    warnings: list[ReconciliationWarning] = []

    for candidate in candidates:
        existing = merged.get(candidate.key)
        if existing is None:
            merged[candidate.key] = ScannedMessage(
                key=candidate.key,
                occurrences=list(dict.fromkeys(candidate.occurrences)),
                extra_comment=candidate.extra_comment,
                numerus=candidate.numerus,
            )
            continue

        for occurrence in candidate.occurrences:
            if occurrence in existing.occurrences:
                logger.debug(f"Dropping repeated occurrence {occurrence} of {candidate.key}")
            else:
                existing.occurrences.append(occurrence)

        if candidate.extra_comment is not None:
            if existing.extra_comment is None:
                existing.extra_comment = candidate.extra_comment
            elif existing.extra_comment != candidate.extra_comment:
                warnings.append(
                    ReconciliationWarning(
                        f"Conflicting developer comments for {candidate.key}: "
                        f"keeping {existing.extra_comment!r}, "
                        f"ignoring {candidate.extra_comment!r}",
                        key=candidate.key,
                    )
                )

        if candidate.numerus != existing.numerus:
            warnings.append(
                ReconciliationWarning(
                    f"Conflicting plural flag for {candidate.key}: keeping "
                    f"numerus={existing.numerus}",
                    key=candidate.key,
                )
            )

    result = list(merged.values())
    warnings.extend(find_ambiguous_comments(c.key for c in result))
    return result, warnings


def find_ambiguous_comments(
    keys: Iterable[MessageKey],
) -> list[ReconciliationWarning]:
    """
    Report source texts used both with and without a disambiguating comment
    in the same context.
    """
    return [
        ReconciliationWarning(
            f"{key.context} / \"{key.source_text}\" is used both with and "
            "without a disambiguating comment",
            key=key,
        )
        for key in find_ambiguous_keys(keys)
    ]


def group_occurrences(
    records: Iterable[ScanRecord],
) -> tuple[list[ScannedMessage], list[ReconciliationWarning]]:
    """Fold the scanner's occurrence stream into ordered candidates."""
    return merge_candidates(ScannedMessage.from_record(r) for r in records)


def scan_digest(candidates: Sequence[ScannedMessage]) -> str:
    """
    Fingerprint a candidate list.

    Two scans with the same keys, occurrences, developer comments and plural
    flags in the same order produce the same digest.
    """
    payload = [
        [
            c.key.context,
            c.key.source_text,
            c.key.comment_text,
            [[o.file_path, o.line] for o in c.occurrences],
            c.extra_comment,
            c.numerus,
        ]
        for c in candidates
    ]
    encoded = json.dumps(payload, ensure_ascii=False, separators=(",", ":"))
    return hashlib.sha256(encoded.encode("utf-8")).hexdigest()
