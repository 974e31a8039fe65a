"""
Catalog validation for ts-reconcile.

Consistency checks that run before and after reconciliation.
"""

from .diagnostics import (
    AMBIGUOUS_COMMENT,
    DELTA_CHAIN_GAP,
    DUPLICATE_KEY,
    FINISHED_WITHOUT_TRANSLATION,
    MISSING_OCCURRENCES,
    OBSOLETE_WITH_OCCURRENCES,
    Diagnostic,
    Severity,
    ensure_valid,
    has_errors,
    validate,
)

__all__ = [
    "AMBIGUOUS_COMMENT",
    "DELTA_CHAIN_GAP",
    "DUPLICATE_KEY",
    "FINISHED_WITHOUT_TRANSLATION",
    "MISSING_OCCURRENCES",
    "OBSOLETE_WITH_OCCURRENCES",
    "Diagnostic",
    "Severity",
    "ensure_valid",
    "has_errors",
    "validate",
]
