"""Tests for sync request/response schemas."""

import pytest
from pydantic import ValidationError

from catalog.core.errors import SourceUnavailableError
from catalog.schemas.common import ErrorResponse
from catalog.schemas.sync import SyncRequest, SyncResponse
from catalog.sync import SyncOutcome, SyncResult


class TestSyncRequest:
    """Test SyncRequest validation."""

    def test_defaults(self):
        request = SyncRequest()

        assert request.entities is None
        assert request.start_row == 0

    def test_known_entities(self):
        request = SyncRequest(entities=["prices", "harvests"], start_row=12)

        assert request.entities == ["prices", "harvests"]
        assert request.start_row == 12

    def test_unknown_entity_rejected(self):
        with pytest.raises(ValidationError) as exc_info:
            SyncRequest(entities=["fruits", "colors"])

        assert "colors" in str(exc_info.value)

    def test_negative_start_row_rejected(self):
        with pytest.raises(ValidationError):
            SyncRequest(start_row=-2)

    def test_extra_fields_forbidden(self):
        with pytest.raises(ValidationError):
            SyncRequest(dry_run=True)


class TestSyncResponse:
    """Test SyncResponse.from_outcomes."""

    def test_all_successful(self):
        outcomes = [
            SyncOutcome(entity="fruit_categories", result=SyncResult(added=1)),
            SyncOutcome(entity="fruits", result=SyncResult(updated=2, skipped=1)),
        ]

        response = SyncResponse.from_outcomes(outcomes, duration_ms=40)

        assert response.success is True
        assert list(response.results) == ["fruit_categories", "fruits"]
        assert response.results["fruits"].skipped == 1
        assert response.failed_entity is None
        assert response.checkpoint is None
        assert response.duration_ms == 40

    def test_failure(self):
        outcomes = [
            SyncOutcome(
                entity="prices",
                result=SyncResult(added=3),
                error=SourceUnavailableError("Sheets API returned 503"),
                checkpoint=None,
            )
        ]

        response = SyncResponse.from_outcomes(outcomes, duration_ms=5)

        assert response.success is False
        assert response.failed_entity == "prices"
        assert response.error == "Sheets API returned 503"
        assert response.error_code == "SOURCE_UNAVAILABLE"
        assert response.results["prices"].added == 3

    def test_empty(self):
        response = SyncResponse.from_outcomes([], duration_ms=0)

        assert response.success is True
        assert response.results == {}


class TestErrorResponse:
    def test_extra_fields_forbidden(self):
        with pytest.raises(ValidationError):
            ErrorResponse(error="x", error_type="ValueError", trace="...")
