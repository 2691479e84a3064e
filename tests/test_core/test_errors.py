"""Tests for the catalog error taxonomy."""

from catalog.core.errors import (
    CatalogError,
    ConflictError,
    ErrorCategory,
    NotFoundError,
    SourceUnavailableError,
    UnknownFilterError,
    UnresolvedReferenceError,
    ValidationError,
)


class TestCatalogErrors:
    def test_default_codes(self):
        assert ValidationError("x").code == "CATALOG_VALIDATION"
        assert UnknownFilterError("x").code == "CATALOG_UNKNOWN_FILTER"
        assert UnresolvedReferenceError("x").code == "SYNC_UNRESOLVED_REFERENCE"
        assert NotFoundError("x").code == "CATALOG_NOT_FOUND"
        assert ConflictError("x").code == "CATALOG_DUPLICATE_KEY"
        assert SourceUnavailableError("x").code == "SOURCE_UNAVAILABLE"

    def test_explicit_code_overrides_default(self):
        error = ConflictError("dup", code="CATALOG_DUPLICATE_ID", id="abc")
        assert error.code == "CATALOG_DUPLICATE_ID"
        assert error.context == {"id": "abc"}

    def test_categories(self):
        assert UnresolvedReferenceError("x").category is ErrorCategory.VALIDATION
        assert NotFoundError("x").category is ErrorCategory.NOT_FOUND
        assert ConflictError("x").category is ErrorCategory.CONFLICT
        assert SourceUnavailableError("x").retryable is True
        assert ValidationError("x").retryable is False

    def test_hierarchy(self):
        assert issubclass(UnresolvedReferenceError, ValidationError)
        assert issubclass(UnknownFilterError, CatalogError)

    def test_to_dict(self):
        error = ValidationError("Fruit category is required", code="CATALOG_MISSING_FIELD", field="category")

        data = error.to_dict()

        assert data == {
            "error_type": "ValidationError",
            "code": "CATALOG_MISSING_FIELD",
            "category": "validation",
            "message": "Fruit category is required",
            "retryable": False,
            "context": {"field": "category"},
        }
        assert str(error) == "Fruit category is required"
