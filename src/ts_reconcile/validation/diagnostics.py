"""
Catalog consistency checks.

validate() is a pure function from a catalog to a list of diagnostics; it
never modifies the catalog and never raises. Callers decide what to do with
errors: the CLI refuses to write a catalog with error diagnostics, and
ensure_valid() turns them into a CatalogValidationError.
"""

from __future__ import annotations

import logging
from collections import Counter
from dataclasses import dataclass
from enum import Enum
from typing_extensions import override
from collections.abc import Iterable

from ..catalog.keys import MessageKey, find_ambiguous_keys
from ..catalog.models import Catalog, MessageStatus
from ..utils.core.exceptions import CatalogValidationError

logger = logging.getLogger(__name__)

DUPLICATE_KEY = "duplicate-key"
FINISHED_WITHOUT_TRANSLATION = "finished-without-translation"
MISSING_OCCURRENCES = "missing-occurrences"
DELTA_CHAIN_GAP = "delta-chain-gap"
AMBIGUOUS_COMMENT = "ambiguous-comment"
OBSOLETE_WITH_OCCURRENCES = "obsolete-with-occurrences"


class Severity(Enum):
    ERROR = "error"
    WARNING = "warning"


@dataclass(frozen=True)
class Diagnostic:
    """A single finding, pointing at the offending message."""

    severity: Severity
    code: str
    key: MessageKey | None
    message: str

    @override
    def __str__(self) -> str:
        where = f" {self.key}:" if self.key is not None else ""
        return f"{self.severity.value} [{self.code}]{where} {self.message}"


def _check_duplicates(catalog: Catalog) -> list[Diagnostic]:
    diagnostics: list[Diagnostic] = []
    for context in catalog.contexts:
        counts = Counter(message.key for message in context)
        for key, count in counts.items():
            if count > 1:
                diagnostics.append(
                    Diagnostic(
                        Severity.ERROR,
                        DUPLICATE_KEY,
                        key,
                        f"appears {count} times in context {context.name!r}",
                    )
                )
    return diagnostics


def _check_messages(catalog: Catalog) -> list[Diagnostic]:
    diagnostics: list[Diagnostic] = []
    for message in catalog.messages():
        if message.status is MessageStatus.FINISHED and not message.has_translation:
            diagnostics.append(
                Diagnostic(
                    Severity.ERROR,
                    FINISHED_WITHOUT_TRANSLATION,
                    message.key,
                    "is marked finished but has no translation",
                )
            )

        if message.is_live and not message.occurrences:
            diagnostics.append(
                Diagnostic(
                    Severity.WARNING,
                    MISSING_OCCURRENCES,
                    message.key,
                    f"is {message.status.value} but has no source occurrences",
                )
            )
        elif not message.is_live and message.occurrences:
            diagnostics.append(
                Diagnostic(
                    Severity.WARNING,
                    OBSOLETE_WITH_OCCURRENCES,
                    message.key,
                    f"is {message.status.value} but still lists "
                    f"{len(message.occurrences)} occurrence(s)",
                )
            )
    return diagnostics


def validate(catalog: Catalog) -> list[Diagnostic]:
    """
    Check a catalog for invariant violations.

    Errors: duplicate keys within a context, finished messages without a
    translation. Warnings: live messages without occurrences, retired
    messages that still have occurrences, location records that decoded to
    suspicious lines, and source texts used both with and without a
    disambiguating comment.

    Args:
        catalog: Catalog to check

    Returns:
        Diagnostics, errors before warnings, each group in catalog order
    """
    diagnostics = _check_duplicates(catalog) + _check_messages(catalog)

    for issue in catalog.location_issues:
        diagnostics.append(
            Diagnostic(Severity.WARNING, DELTA_CHAIN_GAP, issue.key, issue.reason)
        )

    live_keys = (m.key for m in catalog.messages() if m.is_live)
    for key in find_ambiguous_keys(live_keys):
        diagnostics.append(
            Diagnostic(
                Severity.WARNING,
                AMBIGUOUS_COMMENT,
                key,
                "source text is also used without a disambiguating comment",
            )
        )

    diagnostics.sort(key=lambda d: d.severity is not Severity.ERROR)
    logger.debug(f"Validation of {catalog!r} produced {len(diagnostics)} diagnostic(s)")
    return diagnostics


def has_errors(diagnostics: Iterable[Diagnostic]) -> bool:
    return any(d.severity is Severity.ERROR for d in diagnostics)


def ensure_valid(catalog: Catalog) -> list[Diagnostic]:
    """
    Validate a catalog and raise on errors.

    Returns:
        The (warning-only) diagnostics when the catalog is valid

    Raises:
        CatalogValidationError: If any error diagnostic is found; the
            diagnostics and the catalog are attached
    """
    diagnostics = validate(catalog)
    if has_errors(diagnostics):
        count = sum(1 for d in diagnostics if d.severity is Severity.ERROR)
        raise CatalogValidationError(
            f"Catalog {catalog.language or '<unknown>'} has {count} validation error(s)",
            diagnostics=diagnostics,
            catalog=catalog,
        )
    return diagnostics
