"""Tests for the /tasks/sync endpoint."""

from unittest.mock import AsyncMock, patch

import pytest
from httpx import AsyncClient

from catalog.core.context import CatalogContext
from catalog.core.errors import SourceUnavailableError, UnresolvedReferenceError
from catalog.sync import SyncOutcome, SyncResult


class TestCloudTasksValidation:
    """Tests for Cloud Tasks header validation."""

    @pytest.fixture
    def cloud_tasks_headers(self) -> dict:
        return {
            "X-CloudTasks-TaskName": "sync-task-123",
            "X-CloudTasks-QueueName": "catalog-sync",
        }

    @pytest.mark.asyncio
    async def test_rejects_requests_without_headers_in_prod(self, client: AsyncClient, ctx: CatalogContext):
        ctx.settings = ctx.settings.model_copy(update={"environment": "prod", "cloudtasks_strict_validation": True})

        response = await client.post("/tasks/sync", json={})

        assert response.status_code == 403
        assert "Cloud Tasks" in response.json()["detail"]

    @pytest.mark.asyncio
    async def test_accepts_headers_in_prod(
        self, client: AsyncClient, ctx: CatalogContext, cloud_tasks_headers: dict
    ):
        ctx.settings = ctx.settings.model_copy(update={"environment": "prod", "cloudtasks_strict_validation": True})

        with patch("catalog.api.routes.tasks.sync_catalog", new=AsyncMock(return_value=[])):
            response = await client.post("/tasks/sync", json={}, headers=cloud_tasks_headers)

        assert response.status_code == 200

    @pytest.mark.asyncio
    async def test_lenient_validation_allows_missing_headers(self, client: AsyncClient, ctx: CatalogContext):
        ctx.settings = ctx.settings.model_copy(
            update={"environment": "staging", "cloudtasks_strict_validation": False}
        )

        with patch("catalog.api.routes.tasks.sync_catalog", new=AsyncMock(return_value=[])):
            response = await client.post("/tasks/sync", json={})

        assert response.status_code == 200


class TestSyncEndpoint:
    """Tests for request handling and the response shape."""

    @pytest.mark.asyncio
    async def test_success_response(self, client: AsyncClient, ctx: CatalogContext):
        outcomes = [
            SyncOutcome(entity="fruit_categories", result=SyncResult(added=2), checkpoint=1),
            SyncOutcome(entity="fruits", result=SyncResult(updated=3, deleted=1), checkpoint=3),
        ]
        mock_sync = AsyncMock(return_value=outcomes)

        with patch("catalog.api.routes.tasks.sync_catalog", new=mock_sync):
            response = await client.post("/tasks/sync", json={"entities": ["fruits", "fruit_categories"]})

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["results"]["fruit_categories"] == {"added": 2, "updated": 0, "deleted": 0, "skipped": 0}
        assert body["results"]["fruits"]["deleted"] == 1
        assert body["failed_entity"] is None
        mock_sync.assert_awaited_once_with(ctx, entities=["fruits", "fruit_categories"], start_row=0)

    @pytest.mark.asyncio
    async def test_failed_run_reports_checkpoint(self, client: AsyncClient):
        outcomes = [
            SyncOutcome(entity="fruit_categories", result=SyncResult(updated=2)),
            SyncOutcome(
                entity="fruits",
                result=SyncResult(added=4),
                error=UnresolvedReferenceError("fruit row references unknown category: 'Berries'"),
                checkpoint=6,
            ),
        ]

        with patch("catalog.api.routes.tasks.sync_catalog", new=AsyncMock(return_value=outcomes)):
            response = await client.post("/tasks/sync", json={"start_row": 0})

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is False
        assert body["failed_entity"] == "fruits"
        assert body["error_code"] == "SYNC_UNRESOLVED_REFERENCE"
        assert body["checkpoint"] == 6
        assert body["results"]["fruits"]["added"] == 4

    @pytest.mark.asyncio
    async def test_start_row_is_forwarded(self, client: AsyncClient, ctx: CatalogContext):
        mock_sync = AsyncMock(return_value=[])

        with patch("catalog.api.routes.tasks.sync_catalog", new=mock_sync):
            await client.post("/tasks/sync", json={"entities": ["products"], "start_row": 7})

        mock_sync.assert_awaited_once_with(ctx, entities=["products"], start_row=7)

    @pytest.mark.asyncio
    async def test_rejects_unknown_entity(self, client: AsyncClient):
        response = await client.post("/tasks/sync", json={"entities": ["colors"]})

        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_rejects_negative_start_row(self, client: AsyncClient):
        response = await client.post("/tasks/sync", json={"start_row": -1})

        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_rejects_unknown_fields(self, client: AsyncClient):
        response = await client.post("/tasks/sync", json={"dry_run": True})

        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_catalog_error_maps_to_status(self, client: AsyncClient):
        error = SourceUnavailableError("Sheets API returned 503", status_code=503)

        with patch("catalog.api.routes.tasks.sync_catalog", new=AsyncMock(side_effect=error)):
            response = await client.post("/tasks/sync", json={})

        assert response.status_code == 503
        body = response.json()
        assert body["success"] is False
        assert body["error_type"] == "SourceUnavailableError"
        assert body["error_code"] == "SOURCE_UNAVAILABLE"
        assert body["detail"] == {"status_code": "503"}


class TestRootEndpoint:
    @pytest.mark.asyncio
    async def test_root(self, client: AsyncClient):
        response = await client.get("/")

        assert response.status_code == 200
        assert response.json()["service"] == "Fruit Catalog Sync Worker"
