"""Google Sheets source.

Reads whole columns through the Sheets v4 values:batchGet endpoint, one
range per layout field, and hands back a SourceSnapshot. Uses an API key
for public spreadsheets, otherwise a bearer token from google-auth
(service account file or application default credentials).
"""

import asyncio
from typing import Any

import google.auth
import google.auth.transport.requests
import httpx
from google.auth.exceptions import GoogleAuthError
from google.oauth2 import service_account

from catalog.config import Settings
from catalog.core.errors import SourceUnavailableError
from catalog.infra.logging import get_logger
from catalog.infra.retry import RetryConfig, retry_async
from catalog.sources.layout import SheetLayout
from catalog.sources.snapshot import SourceSnapshot

logger = get_logger(__name__)

SHEETS_SCOPES = ["https://www.googleapis.com/auth/spreadsheets.readonly"]


def is_transient(error: Exception) -> bool:
    """Transport failures, throttling and server errors are worth retrying."""
    if isinstance(error, httpx.TransportError):
        return True
    if isinstance(error, httpx.HTTPStatusError):
        status = error.response.status_code
        return status == 429 or status >= 500
    return False


class SheetsClient:
    """HTTP client for the Sheets values API."""

    def __init__(
        self,
        base_url: str,
        api_key: str | None = None,
        credentials_file: str | None = None,
        timeout: float = 30.0,
        retry: RetryConfig | None = None,
    ) -> None:
        """Initialize the Sheets client.

        Args:
            base_url: API root, e.g. https://sheets.googleapis.com/v4
            api_key: Key for public spreadsheets; disables OAuth when set
            credentials_file: Service account JSON; ADC is used when None
            timeout: Request timeout in seconds
            retry: Attempt bound and backoff for transient failures
        """
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.credentials_file = credentials_file
        self.timeout = timeout
        self.retry = retry or RetryConfig()
        self._client: httpx.AsyncClient | None = None
        self._credentials: Any = None

    @classmethod
    def from_settings(cls, settings: Settings) -> "SheetsClient":
        return cls(
            base_url=settings.sheets_api_url,
            api_key=settings.sheets_api_key,
            credentials_file=settings.google_credentials_file,
            timeout=settings.sheets_timeout,
            retry=RetryConfig(
                max_attempts=settings.sheets_max_attempts,
                base_delay=settings.sheets_backoff_seconds,
            ),
        )

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(base_url=self.base_url, timeout=self.timeout)
        return self._client

    async def close(self) -> None:
        """Close HTTP client."""
        if self._client:
            await self._client.aclose()
            self._client = None

    def _load_credentials(self) -> Any:
        if self.credentials_file:
            return service_account.Credentials.from_service_account_file(
                self.credentials_file, scopes=SHEETS_SCOPES
            )
        credentials, _ = google.auth.default(scopes=SHEETS_SCOPES)
        return credentials

    async def _auth_headers(self) -> dict[str, str]:
        """Bearer header, refreshing the token off the event loop when stale."""
        if self.api_key:
            return {}
        if self._credentials is None:
            self._credentials = await asyncio.to_thread(self._load_credentials)
        if not self._credentials.valid:
            request = google.auth.transport.requests.Request()
            await asyncio.to_thread(self._credentials.refresh, request)
        return {"Authorization": f"Bearer {self._credentials.token}"}

    async def batch_get(self, spreadsheet_id: str, ranges: list[str]) -> list[list[Any]]:
        """Fetch ranges column-major.

        Args:
            spreadsheet_id: Spreadsheet to read
            ranges: A1 ranges, one column each

        Returns:
            One value list per requested range, in request order

        Raises:
            SourceUnavailableError: Source unreachable after all attempts,
                rejected the request, or no spreadsheet id was configured
        """
        if not spreadsheet_id:
            raise SourceUnavailableError("Spreadsheet id is not configured", ranges=ranges)

        params: list[tuple[str, str]] = [("ranges", r) for r in ranges]
        params += [
            ("majorDimension", "COLUMNS"),
            ("valueRenderOption", "UNFORMATTED_VALUE"),
            ("dateTimeRenderOption", "SERIAL_NUMBER"),
        ]
        if self.api_key:
            params.append(("key", self.api_key))

        async def request() -> dict[str, Any]:
            client = await self._get_client()
            response = await client.get(
                f"/spreadsheets/{spreadsheet_id}/values:batchGet",
                params=params,
                headers=await self._auth_headers(),
            )
            response.raise_for_status()
            return response.json()

        try:
            body = await retry_async(
                request,
                self.retry,
                should_retry=is_transient,
                description="sheets_batch_get",
            )
        except httpx.HTTPStatusError as e:
            raise SourceUnavailableError(
                f"Sheets API returned {e.response.status_code}",
                spreadsheet_id=spreadsheet_id,
                status_code=e.response.status_code,
                response_text=e.response.text[:500],
            ) from e
        except (httpx.HTTPError, GoogleAuthError) as e:
            raise SourceUnavailableError(
                f"Sheets API unreachable: {e}",
                spreadsheet_id=spreadsheet_id,
            ) from e

        value_ranges = body.get("valueRanges") or []
        columns: list[list[Any]] = []
        for index in range(len(ranges)):
            values = value_ranges[index].get("values") if index < len(value_ranges) else None
            columns.append(list(values[0]) if values else [])

        logger.debug(
            "Sheets ranges fetched",
            spreadsheet_id=spreadsheet_id,
            ranges=len(ranges),
            rows=max((len(c) for c in columns), default=0),
        )
        return columns


class GoogleSheetSource:
    """SheetSource backed by the Sheets API."""

    def __init__(self, client: SheetsClient) -> None:
        self.client = client

    async def fetch(self, layout: SheetLayout) -> SourceSnapshot:
        columns = await self.client.batch_get(layout.spreadsheet_id, layout.ranges())
        snapshot = SourceSnapshot.from_columns(layout.fields, columns)
        logger.info("Sheet fetched", sheet=layout.sheet, rows=len(snapshot))
        return snapshot

    async def close(self) -> None:
        await self.client.close()
