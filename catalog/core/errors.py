"""Catalog error taxonomy.

Every error carries a short stable code for operational traceability plus a
human-readable message. Repositories raise these; the reconciler captures
them into its SyncOutcome; the API turns them into error payloads.
"""

from enum import Enum
from typing import Any


class ErrorCategory(str, Enum):
    """Categories of errors for routing and handling."""

    VALIDATION = "validation"
    NOT_FOUND = "not_found"
    CONFLICT = "conflict"
    SOURCE = "source"


class CatalogError(Exception):
    """Base exception for all catalog errors."""

    default_code = "CATALOG_ERROR"
    category = ErrorCategory.VALIDATION
    retryable = False

    def __init__(
        self,
        message: str,
        code: str | None = None,
        **context: Any,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.code = code or self.default_code
        self.context = context

    def to_dict(self) -> dict[str, Any]:
        """Serialize for logging and API responses."""
        return {
            "error_type": self.__class__.__name__,
            "code": self.code,
            "category": self.category.value,
            "message": self.message,
            "retryable": self.retryable,
            "context": {k: str(v) if v is not None else None for k, v in self.context.items()},
        }

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__}(code='{self.code}', message='{self.message}')>"


class ValidationError(CatalogError):
    """Input failed validation (missing field, bad reference, bad filter)."""

    default_code = "CATALOG_VALIDATION"
    category = ErrorCategory.VALIDATION


class UnknownFilterError(ValidationError):
    default_code = "CATALOG_UNKNOWN_FILTER"


class UnsupportedLocaleError(ValidationError):
    default_code = "LOCALE_UNSUPPORTED"


class UnresolvedReferenceError(ValidationError):
    """A sync row names a mandatory parent that does not exist.

    Aborts the whole reconciliation run.
    """

    default_code = "SYNC_UNRESOLVED_REFERENCE"


class NotFoundError(CatalogError):
    default_code = "CATALOG_NOT_FOUND"
    category = ErrorCategory.NOT_FOUND


class ConflictError(CatalogError):
    default_code = "CATALOG_DUPLICATE_KEY"
    category = ErrorCategory.CONFLICT


class SourceUnavailableError(CatalogError):
    """The external sheet source could not be read."""

    default_code = "SOURCE_UNAVAILABLE"
    category = ErrorCategory.SOURCE
    retryable = True
