"""API request and response schemas."""

from catalog.schemas.common import ErrorResponse, HealthResponse
from catalog.schemas.sync import EntityCounts, SyncRequest, SyncResponse

__all__ = ["EntityCounts", "ErrorResponse", "HealthResponse", "SyncRequest", "SyncResponse"]
