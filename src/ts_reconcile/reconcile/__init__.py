"""
Reconciliation package for ts-reconcile.

Scanner input handling, the reconciliation engine and the batch worker.
"""

from .batch import (
    BatchResult,
    load_or_create_catalog,
    reconcile_catalogs,
    reconcile_file,
)
from .engine import (
    ReconcileResult,
    ReconcileStats,
    ReconciliationEngine,
    prune,
    reconcile,
)
from .scan_input import (
    ScannedMessage,
    ScanRecord,
    group_occurrences,
    merge_candidates,
    parse_scan,
    read_scan_file,
    scan_digest,
)

__all__ = [
    "BatchResult",
    "load_or_create_catalog",
    "reconcile_catalogs",
    "reconcile_file",
    "ReconcileResult",
    "ReconcileStats",
    "ReconciliationEngine",
    "prune",
    "reconcile",
    "ScannedMessage",
    "ScanRecord",
    "group_occurrences",
    "merge_candidates",
    "parse_scan",
    "read_scan_file",
    "scan_digest",
]
