"""
Exception classes for ts-reconcile.

This module contains the error taxonomy shared by the catalog store, the
reconciliation engine and the CLI. It has no runtime imports from the rest of the
package.
"""

from __future__ import annotations

from enum import Enum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from ...catalog.keys import MessageKey
    from ...catalog.models import Catalog
    from ...validation.diagnostics import Diagnostic


class ErrorSeverity(Enum):
    """Error severity levels for classification and handling."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class ErrorCategory(Enum):
    """Categories of errors for appropriate handling strategies."""

    PARSE = "parse"
    SCAN_INPUT = "scan_input"
    RECONCILIATION = "reconciliation"
    VALIDATION = "validation"
    IO = "io"
    EDIT = "edit"
    UNKNOWN = "unknown"


class CatalogToolError(Exception):
    """Base exception class for ts-reconcile specific errors."""

    def __init__(
        self,
        message: str,
        category: ErrorCategory = ErrorCategory.UNKNOWN,
        severity: ErrorSeverity = ErrorSeverity.MEDIUM,
        user_message: str | None = None,
        context: object | None = None,
        recoverable: bool = True,
    ) -> None:
        super().__init__(message)
        self.category: ErrorCategory = category
        self.severity: ErrorSeverity = severity
        self.user_message: str = user_message or message
        self.context: object | None = context
        self.recoverable: bool = recoverable


class ParseErrorKind(Enum):
    """Reasons a catalog file could not be loaded."""

    MALFORMED_STRUCTURE = "malformed_structure"
    DUPLICATE_KEY = "duplicate_key"
    BAD_DELTA = "bad_delta"


class ParseError(CatalogToolError):
    """A catalog file on disk is malformed and cannot be trusted."""

    def __init__(
        self,
        kind: ParseErrorKind,
        message: str,
        key: MessageKey | None = None,
        context: object | None = None,
    ) -> None:
        super().__init__(
            message,
            category=ErrorCategory.PARSE,
            severity=ErrorSeverity.HIGH,
            context=context,
            recoverable=False,
        )
        self.kind: ParseErrorKind = kind
        self.key: MessageKey | None = key


class ScanInputError(CatalogToolError):
    """The scanner output is malformed."""

    def __init__(
        self,
        message: str,
        record_index: int | None = None,
        context: object | None = None,
    ) -> None:
        super().__init__(
            message,
            category=ErrorCategory.SCAN_INPUT,
            severity=ErrorSeverity.HIGH,
            context=context,
            recoverable=False,
        )
        self.record_index: int | None = record_index


class ReconciliationWarning(CatalogToolError):
    """
    Non-fatal ambiguity found while reconciling.

    These are accumulated by the engine and returned with the result rather
    than raised.
    """

    def __init__(
        self,
        message: str,
        key: MessageKey | None = None,
        context: object | None = None,
    ) -> None:
        super().__init__(
            message,
            category=ErrorCategory.RECONCILIATION,
            severity=ErrorSeverity.LOW,
            context=context,
            recoverable=True,
        )
        self.key: MessageKey | None = key


class CatalogValidationError(CatalogToolError):
    """A catalog violates an invariant; writing it is blocked."""

    def __init__(
        self,
        message: str,
        diagnostics: list[Diagnostic],
        catalog: Catalog | None = None,
    ) -> None:
        super().__init__(
            message,
            category=ErrorCategory.VALIDATION,
            severity=ErrorSeverity.HIGH,
            context=catalog,
            recoverable=False,
        )
        self.diagnostics: list[Diagnostic] = diagnostics
        self.catalog: Catalog | None = catalog


class CatalogIOError(CatalogToolError):
    """Reading or writing a catalog or scan file failed."""

    def __init__(
        self,
        message: str,
        path: object | None = None,
    ) -> None:
        super().__init__(
            message,
            category=ErrorCategory.IO,
            severity=ErrorSeverity.HIGH,
            context=path,
            recoverable=False,
        )
        self.path: object | None = path


class UnknownKeyError(CatalogToolError):
    """A translation edit referenced a key that is not in the catalog."""

    def __init__(self, key: MessageKey) -> None:
        super().__init__(
            f"No message with key {key}",
            category=ErrorCategory.EDIT,
            severity=ErrorSeverity.MEDIUM,
            context=key,
        )
        self.key: MessageKey = key


class InvalidEditError(CatalogToolError):
    """A translation edit would break a catalog invariant."""

    def __init__(self, message: str, key: MessageKey | None = None) -> None:
        super().__init__(
            message,
            category=ErrorCategory.EDIT,
            severity=ErrorSeverity.MEDIUM,
            context=key,
        )
        self.key: MessageKey | None = key
