"""
Reconciliation engine.

Merges a freshly scanned candidate list into an existing catalog:

1. index the old catalog by key;
2. walk the candidates in scan order, carrying over translation and status
   on a hit and creating a new message on a miss;
3. retire every old message the scan did not consume (obsolete the first
   time, vanished afterwards);
4. order live messages by scan order and append retired ones at the end of
   their context.

Location deltas are not touched here; they are recomputed from the final
order when the catalog is serialized.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from typing_extensions import override
from collections.abc import Sequence

from ..catalog.keys import MessageKey
from ..catalog.models import Catalog, Message, MessageStatus
from ..catalog.store import merge_duplicate
from ..utils.core.exceptions import CatalogValidationError, ReconciliationWarning
from ..validation.diagnostics import Diagnostic, Severity, has_errors, validate
from .scan_input import ScannedMessage, merge_candidates, scan_digest

if TYPE_CHECKING:
    from ..config.schema import ReconcilerConfig

logger = logging.getLogger(__name__)


@dataclass
class ReconcileStats:
    """Counters describing one reconciliation pass."""

    found: int = 0
    new: int = 0
    matched: int = 0
    revived: int = 0
    obsoleted: int = 0
    vanished: int = 0
    pruned: int = 0

    @override
    def __str__(self) -> str:
        return (
            f"Found {self.found} source text(s) "
            f"({self.new} new, {self.matched} already existing, "
            f"{self.revived} revived); "
            f"{self.obsoleted} became obsolete, {self.vanished} vanished, "
            f"{self.pruned} pruned"
        )


@dataclass
class ReconcileResult:
    """
    Outcome of a reconciliation pass.

    diagnostics describe the new catalog and gate the write; pre_diagnostics
    describe the old catalog as loaded and are informational.
    """

    catalog: Catalog
    warnings: list[ReconciliationWarning] = field(default_factory=list)
    stats: ReconcileStats = field(default_factory=ReconcileStats)
    diagnostics: list[Diagnostic] = field(default_factory=list)
    pre_diagnostics: list[Diagnostic] = field(default_factory=list)

    @property
    def has_errors(self) -> bool:
        return has_errors(self.diagnostics)

    def raise_for_errors(self) -> None:
        """
        Raise if post-merge validation found errors.

        The result catalog stays attached to the exception for inspection.

        Raises:
            CatalogValidationError: If any error diagnostic is present
        """
        if not self.has_errors:
            return
        errors = [d for d in self.diagnostics if d.severity is Severity.ERROR]
        raise CatalogValidationError(
            f"Reconciled catalog failed validation with {len(errors)} error(s)",
            diagnostics=self.diagnostics,
            catalog=self.catalog,
        )


def prune(
    catalog: Catalog, vanished_after: int | None = None, everything: bool = False
) -> int:
    """
    Remove retired messages from a catalog in place.

    Args:
        catalog: Catalog to prune
        vanished_after: Remove vanished messages that have spent at least
            this many passes in vanished status
        everything: Remove all obsolete and vanished messages regardless of
            their pass count

    Returns:
        Number of messages removed
    """
    removed = 0
    for context in catalog.contexts:
        for message in context.retired_messages():
            expired = (
                vanished_after is not None
                and message.status is MessageStatus.VANISHED
                and message.vanished_passes >= vanished_after
            )
            if everything or expired:
                logger.debug(f"Pruning {message.status.value} message {message.key}")
                context.remove(message)
                removed += 1

    dropped = catalog.remove_empty_contexts()
    if dropped:
        logger.debug(f"Dropped {dropped} empty context(s)")
    return removed


class ReconciliationEngine:
    """Merges scanned candidates into existing catalogs."""

    def __init__(
        self,
        sort_contexts: bool = False,
        prune_vanished_after: int | None = None,
        prune_obsolete: bool = False,
    ) -> None:
        """
        Initialize the engine.

        Args:
            sort_contexts: Order contexts by name instead of by scan order
            prune_vanished_after: Drop vanished messages after this many passes
            prune_obsolete: Drop every obsolete and vanished message right away
        """
        if prune_vanished_after is not None and prune_vanished_after < 1:
            raise ValueError("prune_vanished_after must be at least 1")
        self.sort_contexts: bool = sort_contexts
        self.prune_vanished_after: int | None = prune_vanished_after
        self.prune_obsolete: bool = prune_obsolete

    @classmethod
    def from_config(cls, config: ReconcilerConfig) -> ReconciliationEngine:
        return cls(
            sort_contexts=config.catalog.sort_contexts,
            prune_vanished_after=config.reconcile.prune_vanished_after,
            prune_obsolete=config.reconcile.prune_obsolete,
        )

    def _index_old(
        self, old: Catalog, warnings: list[ReconciliationWarning]
    ) -> dict[MessageKey, Message]:
        """Copy the old messages into a key lookup, folding duplicate keys."""
        lookup: dict[MessageKey, Message] = {}
        for message in old.copy().messages():
            existing = lookup.get(message.key)
            if existing is None:
                lookup[message.key] = message
                continue

            warnings.append(
                ReconciliationWarning(
                    f"Old catalog has duplicate entries for {message.key}; "
                    "merged into the first one",
                    key=message.key,
                )
            )
            merge_duplicate(existing, message)
        return lookup

    def _carry_over(
        self,
        previous: Message,
        candidate: ScannedMessage,
        stats: ReconcileStats,
        warnings: list[ReconciliationWarning],
    ) -> Message:
        message = previous
        if previous.is_live:
            stats.matched += 1
        else:
            logger.debug(f"Reviving {previous.status.value} message {previous.key}")
            message.status = MessageStatus.UNFINISHED
            message.vanished_passes = 0
            stats.revived += 1

        message.occurrences = list(candidate.occurrences)
        message.extra_comment = candidate.extra_comment

        if candidate.numerus != message.numerus:
            warnings.append(
                ReconciliationWarning(
                    f"Plural flag of {candidate.key} changed in source; keeping "
                    f"the catalog's numerus={message.numerus}",
                    key=candidate.key,
                )
            )
        return message

    def _retire(
        self, message: Message, repeated_scan: bool, stats: ReconcileStats
    ) -> None:
        message.occurrences = []
        if repeated_scan and not message.is_live:
            # Same scan as last time: absence does not count as another pass
            return

        if message.status is MessageStatus.OBSOLETE:
            message.status = MessageStatus.VANISHED
            message.vanished_passes = 1
            stats.vanished += 1
        elif message.status is MessageStatus.VANISHED:
            message.vanished_passes += 1
            stats.vanished += 1
        else:
            logger.debug(f"{message.key} is no longer in source")
            message.status = MessageStatus.OBSOLETE
            message.vanished_passes = 0
            stats.obsoleted += 1

    def reconcile(
        self, old: Catalog, scanned: Sequence[ScannedMessage]
    ) -> ReconcileResult:
        """
        Merge scanned candidates into a catalog.

        The old catalog is never modified.

        Args:
            old: Previously translated catalog
            scanned: Candidates in scan order; candidates sharing a key are
                merged, first-seen values winning

        Returns:
            The new catalog with warnings, counters, and the validation
            diagnostics of both the old catalog and the result
        """
        pre_diagnostics = validate(old)
        for diagnostic in pre_diagnostics:
            logger.debug(f"Old catalog: {diagnostic}")

        candidates, warnings = merge_candidates(scanned)
        digest = scan_digest(candidates)
        repeated_scan = old.scan_digest == digest
        if repeated_scan:
            logger.debug("Scan is identical to the one last applied")

        result = Catalog(old.language, old.source_language, old.version)
        result.extras = dict(old.extras)
        result.scan_digest = digest
        stats = ReconcileStats(found=len(candidates))

        lookup = self._index_old(old, warnings)
        consumed: set[MessageKey] = set()

        for candidate in candidates:
            previous = lookup.get(candidate.key)
            if previous is not None:
                message = self._carry_over(previous, candidate, stats, warnings)
                consumed.add(candidate.key)
            else:
                message = Message(
                    context=candidate.key.context,
                    source_text=candidate.key.source_text,
                    comment=candidate.key.comment,
                    status=MessageStatus.NEW,
                    occurrences=list(candidate.occurrences),
                    extra_comment=candidate.extra_comment,
                    numerus=candidate.numerus,
                )
                stats.new += 1
            result.add_message(message)

        for key, message in lookup.items():
            if key in consumed:
                continue
            self._retire(message, repeated_scan, stats)
            result.add_message(message)

        if self.sort_contexts:
            result.sort_contexts()

        if self.prune_obsolete or self.prune_vanished_after is not None:
            stats.pruned = prune(
                result,
                vanished_after=self.prune_vanished_after,
                everything=self.prune_obsolete,
            )

        for warning in warnings:
            logger.warning(str(warning))
        logger.info(str(stats))

        return ReconcileResult(
            catalog=result,
            warnings=warnings,
            stats=stats,
            diagnostics=validate(result),
            pre_diagnostics=pre_diagnostics,
        )


def reconcile(
    old: Catalog,
    scanned: Sequence[ScannedMessage],
    sort_contexts: bool = False,
    prune_vanished_after: int | None = None,
    prune_obsolete: bool = False,
) -> ReconcileResult:
    """Reconcile with a one-off engine; see ReconciliationEngine.reconcile."""
    engine = ReconciliationEngine(
        sort_contexts=sort_contexts,
        prune_vanished_after=prune_vanished_after,
        prune_obsolete=prune_obsolete,
    )
    return engine.reconcile(old, scanned)
