"""
Catalog store: loading, serializing and editing translation catalogs.

Serialization is deterministic: the same catalog state always produces the
same bytes. Location deltas are always recomputed from the final message
order on the way out; stored deltas are only read, never trusted for
writing.
"""

from __future__ import annotations

import logging
import shutil
import tempfile
from enum import Enum
from pathlib import Path

from ..utils.core.exceptions import (
    CatalogIOError,
    InvalidEditError,
    ParseError,
    ParseErrorKind,
    UnknownKeyError,
)
from .keys import MessageKey
from .locations import (
    DecoderState,
    LocationDecodeError,
    LocationRecord,
    LocationsMode,
    decode_message_locations,
    encode_message_locations,
)
from .models import Catalog, Message, MessageStatus
from .ts_format import parse_ts, render_ts

logger = logging.getLogger(__name__)


class DuplicatePolicy(Enum):
    """What to do with two messages sharing a key in one context."""

    REJECT = "reject"  # Fail the load with ParseError(DUPLICATE_KEY)
    MERGE = "merge"  # Keep the first, fold the later one into it
    KEEP = "keep"  # Keep both, for inspection by validation


def merge_duplicate(existing: Message, duplicate: Message) -> None:
    """Fold a duplicate message into the first one with the same key."""
    for occurrence in duplicate.occurrences:
        _ = existing.add_occurrence(occurrence)
    if not existing.has_translation and duplicate.has_translation:
        existing.translation = duplicate.translation
        existing.numerus_forms = list(duplicate.numerus_forms)
        existing.status = duplicate.status


def load_catalog(
    data: bytes,
    duplicate_policy: DuplicatePolicy = DuplicatePolicy.REJECT,
    strict_monotonic: bool = False,
) -> Catalog:
    """
    Load a catalog from TS bytes.

    Args:
        data: Raw TS document
        duplicate_policy: Handling of duplicate keys within a context
        strict_monotonic: Also flag negative line deltas as location issues

    Returns:
        The loaded catalog; suspicious but decodable locations are listed in
        catalog.location_issues

    Raises:
        ParseError: MALFORMED_STRUCTURE for broken XML or missing elements,
            DUPLICATE_KEY for duplicate keys under the REJECT policy,
            BAD_DELTA for location records that cannot be decoded
    """
    parsed = parse_ts(data)
    catalog = Catalog(
        language=parsed.language,
        source_language=parsed.source_language,
        version=parsed.version,
    )
    catalog.extras = dict(parsed.extras)
    catalog.scan_digest = parsed.scan_digest

    state = DecoderState()
    for parsed_context in parsed.contexts:
        context = catalog.ensure_context(parsed_context.name)
        for parsed_message in parsed_context.messages:
            message = parsed_message.message
            try:
                occurrences, issues, state = decode_message_locations(
                    parsed_message.locations, state, message.key, strict_monotonic
                )
            except LocationDecodeError as e:
                raise ParseError(ParseErrorKind.BAD_DELTA, str(e), key=message.key) from e
            message.occurrences = occurrences
            catalog.location_issues.extend(issues)

            existing = context.find(message.key)
            if existing is None or duplicate_policy is DuplicatePolicy.KEEP:
                context.append(message)
            elif duplicate_policy is DuplicatePolicy.MERGE:
                logger.warning(f"Merging duplicate catalog entry {message.key}")
                merge_duplicate(existing, message)
            else:
                raise ParseError(
                    ParseErrorKind.DUPLICATE_KEY,
                    f"Duplicate message {message.key}",
                    key=message.key,
                )

    for issue in catalog.location_issues:
        logger.debug(f"Location issue for {issue.key}: {issue.reason}")

    return catalog


def serialize_catalog(
    catalog: Catalog, locations: LocationsMode = LocationsMode.RELATIVE
) -> bytes:
    """
    Serialize a catalog to TS bytes.

    Obsolete and vanished messages are written without locations and do not
    take part in the delta chain.

    Args:
        catalog: Catalog to write
        locations: Location output mode

    Returns:
        UTF-8 encoded TS document
    """
    encoded: list[list[LocationRecord]] = []
    state = DecoderState()
    for message in catalog.messages():
        if not message.is_live:
            encoded.append([])
            continue
        records, state = encode_message_locations(message.occurrences, state, locations)
        encoded.append(records)

    return render_ts(catalog, encoded).encode("utf-8")


def read_catalog_file(
    path: Path,
    duplicate_policy: DuplicatePolicy = DuplicatePolicy.REJECT,
    strict_monotonic: bool = False,
) -> Catalog:
    """
    Read and load a catalog file.

    Raises:
        CatalogIOError: If the file cannot be read
        ParseError: If the content is not a valid catalog
    """
    try:
        with path.open("rb") as f:
            data = f.read()
    except OSError as e:
        raise CatalogIOError(f"Failed to read catalog {path}: {e}", path=path) from e

    logger.debug(f"Read {len(data)} bytes from {path}")
    return load_catalog(data, duplicate_policy, strict_monotonic)


def write_catalog_file(
    catalog: Catalog,
    path: Path,
    locations: LocationsMode = LocationsMode.RELATIVE,
) -> None:
    """
    Write a catalog with an atomic replace.

    The new content is fully serialized and written to a temporary file in
    the target directory first; the existing file is only replaced once that
    succeeded.

    Raises:
        CatalogIOError: If writing or replacing fails
    """
    content = serialize_catalog(catalog, locations)

    temp_file = None
    try:
        with tempfile.NamedTemporaryFile(
            mode="wb",
            dir=path.parent,
            prefix=f".{path.name}.",
            suffix=".tmp",
            delete=False,
        ) as temp_file:
            _ = temp_file.write(content)
            temp_file.flush()
            temp_path = Path(temp_file.name)

        # Keep the permissions of the catalog being replaced
        if path.exists():
            shutil.copymode(path, temp_path)
        _ = temp_path.replace(path)

    except OSError as e:
        if temp_file and Path(temp_file.name).exists():
            Path(temp_file.name).unlink(missing_ok=True)
        raise CatalogIOError(f"Failed to write catalog {path}: {e}", path=path) from e

    logger.debug(f"Wrote {len(content)} bytes to {path}")


class CatalogStore:
    """
    Owner of one catalog for its whole lifetime in a worker.

    Wraps the load/serialize functions and provides the single mutation path
    available outside reconciliation: translation edits.
    """

    def __init__(
        self,
        catalog: Catalog,
        locations: LocationsMode = LocationsMode.RELATIVE,
    ) -> None:
        self.catalog: Catalog = catalog
        self.locations: LocationsMode = locations

    @classmethod
    def open(
        cls,
        path: Path,
        duplicate_policy: DuplicatePolicy = DuplicatePolicy.REJECT,
        locations: LocationsMode = LocationsMode.RELATIVE,
        strict_monotonic: bool = False,
    ) -> CatalogStore:
        """Load the catalog at path into a new store."""
        catalog = read_catalog_file(path, duplicate_policy, strict_monotonic)
        logger.info(f"Loaded {catalog!r} from {path}")
        return cls(catalog, locations)

    def serialize(self) -> bytes:
        return serialize_catalog(self.catalog, self.locations)

    def save(self, path: Path) -> None:
        """Atomically write the catalog to path."""
        write_catalog_file(self.catalog, path, self.locations)
        logger.info(f"Saved {self.catalog!r} to {path}")

    def apply_translation_edit(
        self,
        key: MessageKey,
        new_text: str | list[str],
        new_status: MessageStatus | None = None,
    ) -> Message:
        """
        Change the translation of one message.

        Args:
            key: Key of the message to edit
            new_text: New translation; a list of plural forms for numerus
                messages
            new_status: FINISHED or UNFINISHED, or None to keep the status

        Returns:
            The edited message

        Raises:
            UnknownKeyError: If no message has the key
            InvalidEditError: If the edit would break a catalog invariant
        """
        message = self.catalog.find(key)
        if message is None:
            raise UnknownKeyError(key)

        if new_status not in (None, MessageStatus.FINISHED, MessageStatus.UNFINISHED):
            raise InvalidEditError(
                f"Status {new_status.value} cannot be set by an edit", key=key
            )
        if new_status is not None and not message.is_live:
            raise InvalidEditError(
                f"Cannot change the status of {message.status.value} message {key}",
                key=key,
            )

        if message.numerus:
            forms = list(new_text) if isinstance(new_text, list) else [new_text]
            has_text = any(forms)
        else:
            if isinstance(new_text, list):
                raise InvalidEditError(f"{key} is not a numerus message", key=key)
            forms = []
            has_text = bool(new_text)

        status = new_status if new_status is not None else message.status
        if status is MessageStatus.FINISHED and not has_text:
            raise InvalidEditError(
                f"Cannot mark {key} finished with an empty translation", key=key
            )

        if message.numerus:
            message.numerus_forms = forms
        else:
            message.translation = new_text
        message.status = status
        logger.debug(f"Edited {key}: status {status.value}")
        return message
