"""
Location delta codec.

Catalog files record source locations relative to the previously written
location rather than as absolute line numbers, which keeps diffs small when
code moves by a few lines. The encoding follows lupdate's relative mode:

- every file has its own line cursor, starting at 0 and shared across the
  whole catalog (all contexts, all messages, in serialization order);
- a record names its file only when it differs from the current file;
- at the start of each message the current file falls back to the first
  file of the previous located message.

The codec state is an explicit immutable DecoderState threaded through the
encode and decode loops, so two catalogs never share cursor state.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import Enum
from collections.abc import Iterable, Mapping, Sequence

from .keys import MessageKey
from .models import LocationIssue, Occurrence


class LocationsMode(Enum):
    """How location records are written."""

    RELATIVE = "relative"
    ABSOLUTE = "absolute"
    NONE = "none"


class LocationDecodeError(ValueError):
    """A location record cannot be turned back into an occurrence."""


@dataclass(frozen=True)
class LocationRecord:
    """A location as stored on disk: optional file name plus line text."""

    line: str
    filename: str | None = None

    @property
    def is_relative(self) -> bool:
        return self.line[:1] in ("+", "-")


@dataclass(frozen=True)
class DecoderState:
    """Cursor state shared by the encoder and the decoder."""

    current_file: str | None = None
    message_file: str | None = None
    cursors: Mapping[str, int] = field(default_factory=dict)

    def cursor(self, file_path: str) -> int:
        """Last line recorded for a file, 0 if the file was never seen."""
        return self.cursors.get(file_path, 0)

    def begin_message(self) -> DecoderState:
        return replace(self, current_file=self.message_file)

    def advance(self, file_path: str, line: int) -> DecoderState:
        cursors = dict(self.cursors)
        cursors[file_path] = line
        return replace(self, current_file=file_path, cursors=cursors)

    def end_message(self, primary_file: str | None) -> DecoderState:
        if primary_file is None:
            return self
        return replace(self, message_file=primary_file)


def format_delta(delta: int) -> str:
    """Render a signed line delta, always with an explicit sign."""
    if delta >= 0:
        return f"+{delta}"
    return str(delta)


def encode_message_locations(
    occurrences: Sequence[Occurrence],
    state: DecoderState,
    mode: LocationsMode = LocationsMode.RELATIVE,
) -> tuple[list[LocationRecord], DecoderState]:
    """
    Encode the occurrences of one message.

    Args:
        occurrences: Occurrences in stored order
        state: Codec state after the previous message
        mode: Relative, absolute or no locations

    Returns:
        The location records and the state to pass to the next message
    """
    if mode is LocationsMode.NONE or not occurrences:
        return [], state

    records: list[LocationRecord] = []
    state = state.begin_message()
    for occurrence in occurrences:
        file_path, line = occurrence
        if mode is LocationsMode.ABSOLUTE:
            records.append(LocationRecord(line=str(line), filename=file_path))
        else:
            filename = file_path if file_path != state.current_file else None
            delta = line - state.cursor(file_path)
            records.append(LocationRecord(line=format_delta(delta), filename=filename))
        state = state.advance(file_path, line)

    return records, state.end_message(occurrences[0].file_path)


def decode_message_locations(
    records: Sequence[LocationRecord],
    state: DecoderState,
    key: MessageKey,
    strict_monotonic: bool = False,
) -> tuple[list[Occurrence], list[LocationIssue], DecoderState]:
    """
    Decode the location records of one message.

    Decoding is tolerant of suspicious but decodable records: lines that end
    up below 1, and (with strict_monotonic) negative deltas, are returned as
    issues alongside the occurrences.

    Args:
        records: Location records in file order
        state: Codec state after the previous message
        key: Key of the message being decoded, for issue reports
        strict_monotonic: Flag negative relative deltas as issues

    Returns:
        Decoded occurrences, issues found, and the state for the next message

    Raises:
        LocationDecodeError: If a record has no file to resolve against or its
            line is not an integer
    """
    if not records:
        return [], [], state

    occurrences: list[Occurrence] = []
    issues: list[LocationIssue] = []
    state = state.begin_message()

    for record in records:
        file_path = record.filename or state.current_file
        if file_path is None:
            raise LocationDecodeError(
                f"Location {record.line!r} for {key} refers to no file: "
                "no file has been opened yet"
            )

        try:
            value = int(record.line)
        except ValueError as e:
            raise LocationDecodeError(
                f"Location line {record.line!r} for {key} is not an integer"
            ) from e

        if record.is_relative:
            line = state.cursor(file_path) + value
            if strict_monotonic and value < 0:
                issues.append(
                    LocationIssue(
                        key,
                        Occurrence(file_path, line),
                        f"non-monotonic delta {record.line} in {file_path}",
                    )
                )
        else:
            line = value

        occurrence = Occurrence(file_path, line)
        if line < 1:
            issues.append(
                LocationIssue(key, occurrence, f"line {line} in {file_path} is below 1")
            )

        occurrences.append(occurrence)
        state = state.advance(file_path, line)

    return occurrences, issues, state.end_message(occurrences[0].file_path)


def encode_locations(
    messages: Iterable[Sequence[Occurrence]],
    mode: LocationsMode = LocationsMode.RELATIVE,
) -> list[list[LocationRecord]]:
    """Encode the occurrence lists of several messages in catalog order."""
    state = DecoderState()
    encoded: list[list[LocationRecord]] = []
    for occurrences in messages:
        records, state = encode_message_locations(occurrences, state, mode)
        encoded.append(records)
    return encoded


def decode_locations(
    messages: Iterable[tuple[MessageKey, Sequence[LocationRecord]]],
    strict_monotonic: bool = False,
) -> tuple[list[list[Occurrence]], list[LocationIssue]]:
    """Decode the location records of several messages in catalog order."""
    state = DecoderState()
    decoded: list[list[Occurrence]] = []
    issues: list[LocationIssue] = []
    for key, records in messages:
        occurrences, found, state = decode_message_locations(
            records, state, key, strict_monotonic
        )
        decoded.append(occurrences)
        issues.extend(found)
    return decoded, issues
