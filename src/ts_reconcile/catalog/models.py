"""
In-memory catalog model: catalogs own ordered contexts, contexts own ordered
messages.

Ordering is significant everywhere in this module. Message order inside a
context and occurrence order inside a message drive the location delta
encoding, so every container here preserves insertion order.
"""

from __future__ import annotations

import copy
from dataclasses import dataclass, field
from enum import Enum
from typing import NamedTuple

from typing_extensions import override
from collections.abc import Iterator

from .keys import NO_COMMENT, Disambiguation, MessageKey, normalize


class MessageStatus(Enum):
    """Translation progress of a message."""

    NEW = "new"  # Found in the scan, absent from the previous catalog
    UNFINISHED = "unfinished"
    FINISHED = "finished"
    OBSOLETE = "obsolete"  # Missing from the latest scan
    VANISHED = "vanished"  # Missing from at least two consecutive scans

    @property
    def is_live(self) -> bool:
        """Whether messages with this status are still present in source."""
        return self not in (MessageStatus.OBSOLETE, MessageStatus.VANISHED)


class Occurrence(NamedTuple):
    """A source-code site where a message was found."""

    file_path: str
    line: int


@dataclass(frozen=True)
class LocationIssue:
    """A suspicious location record found while decoding a catalog."""

    key: MessageKey
    occurrence: Occurrence
    reason: str


@dataclass
class Message:
    """One translatable unit of a catalog."""

    context: str
    source_text: str
    comment: Disambiguation = NO_COMMENT
    translation: str = ""
    status: MessageStatus = MessageStatus.NEW
    occurrences: list[Occurrence] = field(default_factory=list)
    old_source_text: str | None = None
    extra_comment: str | None = None
    translator_comment: str | None = None
    numerus: bool = False
    numerus_forms: list[str] = field(default_factory=list)
    vanished_passes: int = 0
    extras: dict[str, str] = field(default_factory=dict)

    @property
    def key(self) -> MessageKey:
        """Identity key (context, source text, comment)."""
        return MessageKey(self.context, self.source_text, self.comment)

    @property
    def is_live(self) -> bool:
        """Whether the message was found by the latest scan."""
        return self.status.is_live

    @property
    def has_translation(self) -> bool:
        """Whether any translation text is present."""
        if self.numerus:
            return any(self.numerus_forms)
        return bool(self.translation)

    @property
    def primary_file(self) -> str | None:
        """File of the first occurrence, if any."""
        if self.occurrences:
            return self.occurrences[0].file_path
        return None

    def add_occurrence(self, occurrence: Occurrence) -> bool:
        """
        Append an occurrence unless the exact same site is already recorded.

        Returns:
            True if the occurrence was added
        """
        if occurrence in self.occurrences:
            return False
        self.occurrences.append(occurrence)
        return True


class Context:
    """A named group of messages, usually one class or UI component."""

    def __init__(self, name: str, messages: list[Message] | None = None) -> None:
        self.name: str = name
        self._messages: list[Message] = []
        self._index: dict[MessageKey, Message] = {}
        for message in messages or []:
            self.append(message)

    @property
    def messages(self) -> list[Message]:
        """Messages in catalog order (read-only view)."""
        return list(self._messages)

    def append(self, message: Message) -> None:
        """
        Append a message at the end of the context.

        Duplicate keys are accepted here so that validation can report them;
        lookups resolve to the first message with a given key.
        """
        if message.context != self.name:
            raise ValueError(
                f"Message context {message.context!r} does not match {self.name!r}"
            )
        self._messages.append(message)
        _ = self._index.setdefault(message.key, message)

    def remove(self, message: Message) -> None:
        """Remove a message (identity match) from the context."""
        self._messages = [m for m in self._messages if m is not message]
        self._rebuild_index()

    def find(self, key: MessageKey) -> Message | None:
        """Return the first message with the given key."""
        return self._index.get(key)

    def live_messages(self) -> list[Message]:
        return [m for m in self._messages if m.is_live]

    def retired_messages(self) -> list[Message]:
        """Obsolete and vanished messages."""
        return [m for m in self._messages if not m.is_live]

    def _rebuild_index(self) -> None:
        self._index = {}
        for message in self._messages:
            _ = self._index.setdefault(message.key, message)

    def __iter__(self) -> Iterator[Message]:
        return iter(list(self._messages))

    def __len__(self) -> int:
        return len(self._messages)

    @override
    def __repr__(self) -> str:
        return f"Context(name={self.name!r}, messages={len(self._messages)})"


@dataclass
class CatalogStatistics:
    """Per-status message counts for one catalog."""

    new: int = 0
    unfinished: int = 0
    finished: int = 0
    obsolete: int = 0
    vanished: int = 0

    @property
    def live(self) -> int:
        """Number of messages present in source."""
        return self.new + self.unfinished + self.finished

    @property
    def total(self) -> int:
        return self.live + self.obsolete + self.vanished

    @property
    def completion(self) -> float:
        """Finished live messages as a percentage."""
        if self.live == 0:
            return 100.0
        return (self.finished / self.live) * 100.0

    @override
    def __str__(self) -> str:
        return (
            f"{self.finished} finished, "
            f"{self.unfinished} unfinished, "
            f"{self.new} new, "
            f"{self.obsolete} obsolete, "
            f"{self.vanished} vanished "
            f"({self.completion:.1f}% complete)"
        )


class Catalog:
    """
    A translation catalog for one target language.

    Holds an ordered mapping of context name to Context plus the catalog-level
    metadata that round-trips through the TS file (language tags, format
    version, extra elements).
    """

    def __init__(
        self,
        language: str,
        source_language: str | None = None,
        version: str = "2.1",
    ) -> None:
        self.language: str = language
        self.source_language: str | None = source_language
        self.version: str = version
        self.extras: dict[str, str] = {}
        self.scan_digest: str | None = None
        self.location_issues: list[LocationIssue] = []
        self._contexts: dict[str, Context] = {}

    @property
    def contexts(self) -> list[Context]:
        """Contexts in catalog order."""
        return list(self._contexts.values())

    def get_context(self, name: str) -> Context | None:
        return self._contexts.get(name)

    def ensure_context(self, name: str) -> Context:
        """Return the named context, creating it at the end if missing."""
        context = self._contexts.get(name)
        if context is None:
            context = Context(name)
            self._contexts[name] = context
        return context

    def add_context(self, context: Context) -> None:
        if context.name in self._contexts:
            raise ValueError(f"Context {context.name!r} already exists")
        self._contexts[context.name] = context

    def add_message(self, message: Message) -> None:
        """Append a message to its context, creating the context if needed."""
        self.ensure_context(message.context).append(message)

    def messages(self) -> Iterator[Message]:
        """All messages in catalog order."""
        for context in self.contexts:
            yield from context

    def find(self, key: MessageKey) -> Message | None:
        context = self._contexts.get(key.context)
        if context is None:
            return None
        return context.find(key)

    def remove_empty_contexts(self) -> int:
        """
        Drop contexts without messages.

        Returns:
            Number of contexts removed
        """
        empty = [name for name, ctx in self._contexts.items() if len(ctx) == 0]
        for name in empty:
            del self._contexts[name]
        return len(empty)

    def sort_contexts(self) -> None:
        """Order contexts by name, the way lupdate writes them."""
        self._contexts = dict(sorted(self._contexts.items()))

    def lookup(
        self,
        context: str,
        source_text: str,
        comment: str | None = None,
        include_unfinished: bool = True,
    ) -> str | None:
        """
        Resolve a runtime translation.

        Args:
            context: Context name
            source_text: Source text as used in code
            comment: Disambiguating comment, if the call site passes one; an
                empty string means no comment
            include_unfinished: Also return translations not yet marked finished

        Returns:
            The translation, or None when there is nothing usable
        """
        message = self.find(normalize(context, source_text, comment or None))
        if message is None or not message.is_live or not message.has_translation:
            return None
        if not include_unfinished and message.status is not MessageStatus.FINISHED:
            return None
        if message.numerus:
            return message.numerus_forms[0] if message.numerus_forms else None
        return message.translation

    def lookup_plural(
        self, context: str, source_text: str, comment: str | None = None
    ) -> list[str]:
        """Return all plural forms of a numerus message (empty if none)."""
        message = self.find(normalize(context, source_text, comment or None))
        if message is None or not message.is_live or not message.numerus:
            return []
        return list(message.numerus_forms)

    def statistics(self) -> CatalogStatistics:
        stats = CatalogStatistics()
        for message in self.messages():
            match message.status:
                case MessageStatus.NEW:
                    stats.new += 1
                case MessageStatus.UNFINISHED:
                    stats.unfinished += 1
                case MessageStatus.FINISHED:
                    stats.finished += 1
                case MessageStatus.OBSOLETE:
                    stats.obsolete += 1
                case MessageStatus.VANISHED:
                    stats.vanished += 1
        return stats

    def copy(self) -> "Catalog":
        """Deep copy, so a reconciliation never mutates its input."""
        return copy.deepcopy(self)

    def __len__(self) -> int:
        return sum(len(ctx) for ctx in self._contexts.values())

    @override
    def __repr__(self) -> str:
        return (
            f"Catalog(language={self.language!r}, "
            f"contexts={len(self._contexts)}, messages={len(self)})"
        )
