"""
Qt Linguist TS (version 2.1) reading and writing.

Reading uses ElementTree and produces Message objects plus the raw location
records of every message; turning those records into occurrences is the
store's job, since it needs the codec state of the whole file. Writing is
done by hand so the output matches lupdate byte for byte: four-space
indentation, lupdate's entity escaping, a trailing newline.
"""

from __future__ import annotations

import logging
import xml.etree.ElementTree as ET
from dataclasses import dataclass, field
from collections.abc import Sequence

from ..utils.core.exceptions import ParseError, ParseErrorKind
from .keys import make_comment
from .locations import LocationRecord
from .models import Catalog, Message, MessageStatus

logger = logging.getLogger(__name__)

TS_VERSION = "2.1"
EXTRA_PREFIX = "extra-"
SCAN_DIGEST_EXTRA = "scan-digest"
VANISHED_PASSES_EXTRA = "vanished-passes"

_STATUS_BY_TYPE: dict[str | None, MessageStatus] = {
    None: MessageStatus.FINISHED,
    "unfinished": MessageStatus.UNFINISHED,
    "obsolete": MessageStatus.OBSOLETE,
    "vanished": MessageStatus.VANISHED,
}

_TYPE_BY_STATUS: dict[MessageStatus, str | None] = {
    MessageStatus.FINISHED: None,
    MessageStatus.UNFINISHED: "unfinished",
    MessageStatus.NEW: "unfinished",
    MessageStatus.OBSOLETE: "obsolete",
    MessageStatus.VANISHED: "vanished",
}


@dataclass
class ParsedMessage:
    """A message as read from disk, before its locations are decoded."""

    message: Message
    locations: list[LocationRecord] = field(default_factory=list)


@dataclass
class ParsedContext:
    name: str
    messages: list[ParsedMessage] = field(default_factory=list)


@dataclass
class ParsedCatalog:
    """Header data and contexts of a TS document."""

    language: str
    source_language: str | None
    version: str
    extras: dict[str, str] = field(default_factory=dict)
    scan_digest: str | None = None
    contexts: list[ParsedContext] = field(default_factory=list)


def protect(text: str) -> str:
    """
    Escape text for TS output the way lupdate does.

    Markup characters and both quote characters become entities. Control
    characters other than tab, LF and CR cannot appear in XML at all and are
    written as <byte value="xNN"/> elements; CR becomes a character
    reference so it survives the XML parser's line-end normalization.
    """
    result: list[str] = []
    for char in text:
        match char:
            case "&":
                result.append("&amp;")
            case "<":
                result.append("&lt;")
            case ">":
                result.append("&gt;")
            case '"':
                result.append("&quot;")
            case "'":
                result.append("&apos;")
            case "\r":
                result.append("&#xd;")
            case _ if ord(char) < 0x20 and char not in "\t\n":
                result.append(f'<byte value="x{ord(char):x}"/>')
            case _:
                result.append(char)
    return "".join(result)


def _malformed(message: str) -> ParseError:
    return ParseError(ParseErrorKind.MALFORMED_STRUCTURE, message)


def _byte_value(element: ET.Element) -> str:
    value = element.get("value", "")
    try:
        if value[:1] in ("x", "X"):
            return chr(int(value[1:], 16))
        return chr(int(value))
    except ValueError as e:
        raise _malformed(f"Invalid <byte> value {value!r}") from e


def _text_of(element: ET.Element) -> str:
    """Element text with embedded <byte> elements decoded."""
    parts = [element.text or ""]
    for child in element:
        if child.tag == "byte":
            parts.append(_byte_value(child))
        parts.append(child.tail or "")
    return "".join(parts)


def _optional_text(element: ET.Element, tag: str) -> str | None:
    child = element.find(tag)
    if child is None:
        return None
    return _text_of(child) or None


def _parse_message(element: ET.Element, context_name: str) -> ParsedMessage:
    source = element.find("source")
    if source is None:
        raise _malformed(f"Message in context {context_name!r} has no <source>")

    message = Message(
        context=context_name,
        source_text=_text_of(source),
        comment=make_comment(_optional_text(element, "comment")),
        old_source_text=_optional_text(element, "oldsource"),
        extra_comment=_optional_text(element, "extracomment"),
        translator_comment=_optional_text(element, "translatorcomment"),
        numerus=element.get("numerus") == "yes",
    )

    translation = element.find("translation")
    if translation is None:
        message.status = MessageStatus.UNFINISHED
    else:
        type_attr = translation.get("type")
        if type_attr not in _STATUS_BY_TYPE:
            raise _malformed(
                f"Unknown translation type {type_attr!r} for {message.key}"
            )
        message.status = _STATUS_BY_TYPE[type_attr]
        if message.numerus:
            message.numerus_forms = [
                _text_of(form) for form in translation.findall("numerusform")
            ]
        else:
            message.translation = _text_of(translation)

    for child in element:
        if not child.tag.startswith(EXTRA_PREFIX):
            continue
        name = child.tag[len(EXTRA_PREFIX):]
        if name == VANISHED_PASSES_EXTRA:
            try:
                message.vanished_passes = int(child.text or "0")
            except ValueError as e:
                raise _malformed(
                    f"Invalid vanished pass count {child.text!r} for {message.key}"
                ) from e
        else:
            message.extras[name] = _text_of(child)

    locations = [
        LocationRecord(line=loc.get("line", ""), filename=loc.get("filename"))
        for loc in element.findall("location")
    ]
    return ParsedMessage(message, locations)


def parse_ts(data: bytes) -> ParsedCatalog:
    """
    Parse TS document bytes.

    Args:
        data: Raw file content

    Returns:
        The parsed catalog with undecoded location records

    Raises:
        ParseError: With kind MALFORMED_STRUCTURE for XML syntax errors,
            unbalanced elements or missing required elements
    """
    try:
        root = ET.fromstring(data)
    except ET.ParseError as e:
        raise _malformed(f"Invalid catalog XML: {e}") from e

    if root.tag != "TS":
        raise _malformed(f"Expected <TS> root element, found <{root.tag}>")

    parsed = ParsedCatalog(
        language=root.get("language", ""),
        source_language=root.get("sourcelanguage"),
        version=root.get("version", TS_VERSION),
    )

    for child in root:
        if child.tag.startswith(EXTRA_PREFIX):
            name = child.tag[len(EXTRA_PREFIX):]
            if name == SCAN_DIGEST_EXTRA:
                parsed.scan_digest = child.text or None
            else:
                parsed.extras[name] = _text_of(child)
        elif child.tag == "context":
            name_element = child.find("name")
            if name_element is None:
                raise _malformed("Context without <name>")
            context = ParsedContext(_text_of(name_element))
            for message_element in child.findall("message"):
                context.messages.append(_parse_message(message_element, context.name))
            parsed.contexts.append(context)
        elif child.tag == "message":
            raise _malformed("Message outside of any <context>")
        else:
            logger.debug(f"Ignoring unsupported TS element <{child.tag}>")

    return parsed


def _write_extras(lines: list[str], extras: dict[str, str], indent: str) -> None:
    for name, value in extras.items():
        tag = f"{EXTRA_PREFIX}{name}"
        lines.append(f"{indent}<{tag}>{protect(value)}</{tag}>")


def _write_translation(lines: list[str], message: Message) -> None:
    type_attr = _TYPE_BY_STATUS[message.status]
    opening = "<translation"
    if type_attr is not None:
        opening += f' type="{type_attr}"'
    opening += ">"

    if message.numerus and message.numerus_forms:
        lines.append(f"        {opening}")
        for form in message.numerus_forms:
            lines.append(f"            <numerusform>{protect(form)}</numerusform>")
        lines.append("        </translation>")
    else:
        text = "" if message.numerus else message.translation
        lines.append(f"        {opening}{protect(text)}</translation>")


def _write_message(
    lines: list[str], message: Message, locations: Sequence[LocationRecord]
) -> None:
    lines.append('    <message numerus="yes">' if message.numerus else "    <message>")

    for record in locations:
        if record.filename is not None:
            lines.append(
                f'        <location filename="{protect(record.filename)}" '
                f'line="{record.line}"/>'
            )
        else:
            lines.append(f'        <location line="{record.line}"/>')

    lines.append(f"        <source>{protect(message.source_text)}</source>")
    if message.old_source_text is not None:
        lines.append(f"        <oldsource>{protect(message.old_source_text)}</oldsource>")
    if message.key.comment_text is not None:
        lines.append(f"        <comment>{protect(message.key.comment_text)}</comment>")
    if message.extra_comment is not None:
        lines.append(
            f"        <extracomment>{protect(message.extra_comment)}</extracomment>"
        )
    if message.translator_comment is not None:
        lines.append(
            "        <translatorcomment>"
            f"{protect(message.translator_comment)}</translatorcomment>"
        )

    _write_translation(lines, message)

    extras = dict(message.extras)
    if message.vanished_passes > 0:
        extras[VANISHED_PASSES_EXTRA] = str(message.vanished_passes)
    _write_extras(lines, extras, "        ")

    lines.append("    </message>")


def render_ts(catalog: Catalog, locations: Sequence[Sequence[LocationRecord]]) -> str:
    """
    Render a catalog as TS text.

    Args:
        catalog: Catalog to render
        locations: Encoded location records, one entry per message in
            catalog order

    Returns:
        The complete document, newline terminated
    """
    lines: list[str] = [
        '<?xml version="1.0" encoding="utf-8"?>',
        "<!DOCTYPE TS>",
    ]

    header = f'<TS version="{protect(catalog.version)}" language="{protect(catalog.language)}"'
    if catalog.source_language:
        header += f' sourcelanguage="{protect(catalog.source_language)}"'
    lines.append(header + ">")

    extras = dict(catalog.extras)
    if catalog.scan_digest:
        extras[SCAN_DIGEST_EXTRA] = catalog.scan_digest
    _write_extras(lines, extras, "")

    index = 0
    for context in catalog.contexts:
        lines.append("<context>")
        lines.append(f"    <name>{protect(context.name)}</name>")
        for message in context:
            _write_message(lines, message, locations[index])
            index += 1
        lines.append("</context>")

    lines.append("</TS>")
    return "\n".join(lines) + "\n"
