"""
Message identity for translation catalogs.

A message is identified by its context, its exact source text and an optional
disambiguating comment. Matching is exact on all three parts; there is no
fuzzy matching, so an edited source string always shows up as one new and one
obsolete message.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import ClassVar

from typing_extensions import override
from collections.abc import Iterable


class NoComment:
    """Marker for a message without a disambiguating comment."""

    _instance: ClassVar["NoComment | None"] = None

    def __new__(cls) -> "NoComment":
        """Ensure only one instance of NoComment exists."""
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    @override
    def __repr__(self) -> str:
        return "NO_COMMENT"

    def __bool__(self) -> bool:
        return False


NO_COMMENT = NoComment()


@dataclass(frozen=True, order=True)
class Comment:
    """Disambiguating comment text, e.g. "short form for bold"."""

    text: str

    @override
    def __str__(self) -> str:
        return self.text


Disambiguation = NoComment | Comment


@dataclass(frozen=True)
class MessageKey:
    """Identity of a translatable message within a catalog."""

    context: str
    source_text: str
    comment: Disambiguation = NO_COMMENT

    @property
    def comment_text(self) -> str | None:
        """The comment as plain text, or None when there is no comment."""
        if isinstance(self.comment, Comment):
            return self.comment.text
        return None

    @override
    def __str__(self) -> str:
        label = f'{self.context} / "{self.source_text}"'
        if isinstance(self.comment, Comment):
            label += f" [{self.comment.text}]"
        return label


def make_comment(comment: str | None) -> Disambiguation:
    """
    Wrap an optional comment string in the tagged comment type.

    Args:
        comment: Comment text, or None for no comment

    Returns:
        NO_COMMENT for None, otherwise a Comment holding the exact text
    """
    if comment is None:
        return NO_COMMENT
    return Comment(comment)


def normalize(
    context: str, source_text: str, comment: str | Disambiguation | None = None
) -> MessageKey:
    """
    Build the identity key for one message occurrence.

    Two occurrences collapse into one message iff their keys are equal.

    Args:
        context: Owning context name (e.g. a class or UI component)
        source_text: Source-language text exactly as extracted
        comment: Optional disambiguation, as text or an already tagged value

    Returns:
        The MessageKey for the occurrence
    """
    if isinstance(comment, (NoComment, Comment)):
        return MessageKey(context, source_text, comment)
    return MessageKey(context, source_text, make_comment(comment))


def find_ambiguous_keys(keys: Iterable[MessageKey]) -> list[MessageKey]:
    """
    Find commented keys whose source text is also used without a comment.

    Such pairs usually mean a call site forgot its disambiguation, so the
    two uses end up as separate messages.

    Returns:
        The first commented key of every ambiguous (context, source text)
        pair, in input order
    """
    plain: set[tuple[str, str]] = set()
    commented: dict[tuple[str, str], MessageKey] = {}
    for key in keys:
        pair = (key.context, key.source_text)
        if isinstance(key.comment, Comment):
            _ = commented.setdefault(pair, key)
        else:
            plain.add(pair)
    return [key for pair, key in commented.items() if pair in plain]
