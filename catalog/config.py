"""Worker settings, read from the environment and an optional .env file.

Secrets (db_password, sheets_api_key) are injected from Secret Manager
as environment variables on Cloud Run.

`get_settings()` is meant for process bootstrap only (the FastAPI lifespan
and the scripts). Everything else receives its settings through
`CatalogContext`.
"""

from functools import lru_cache
from typing import Literal

from pydantic import Field, computed_field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Catalog worker settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # =========================================================================
    # Application
    # =========================================================================
    environment: Literal["prod", "staging", "dev"] = Field(
        default="dev",
        description="Environment name",
    )
    debug: bool = Field(
        default=False,
        description="Echo SQL statements",
    )

    # =========================================================================
    # Database
    # =========================================================================
    db_driver: str = Field(
        default="postgresql+asyncpg",
        description="SQLAlchemy async driver (postgresql+asyncpg, sqlite+aiosqlite)",
    )
    db_user: str = Field(
        default="catalog_app",
        description="Database user",
    )
    db_password: str = Field(
        default="",
        description="Database password",
    )
    db_name: str = Field(
        default="catalog",
        description="Database name",
    )
    db_host: str = Field(
        default="localhost",
        description="Database host",
    )
    db_port: int = Field(
        default=5432,
        description="Database port",
    )
    db_pool_size: int = Field(
        default=5,
        description="Pooled connections per worker (ignored for SQLite)",
    )
    db_pool_max_overflow: int = Field(
        default=10,
        description="Extra connections allowed when the pool is exhausted",
    )
    database_url_override: str | None = Field(
        default=None,
        description="Full database URL, bypasses the db_* fields when set",
    )

    @computed_field  # type: ignore[prop-decorator]
    @property
    def database_url(self) -> str:
        """Build the async database URL.

        An explicit override wins. SQLite drivers get a file path built
        from db_name, everything else a TCP connection.
        """
        if self.database_url_override:
            return self.database_url_override
        if self.db_driver.startswith("sqlite"):
            return f"{self.db_driver}:///{self.db_name}"
        return (
            f"{self.db_driver}://{self.db_user}:{self.db_password}"
            f"@{self.db_host}:{self.db_port}/{self.db_name}"
        )

    # =========================================================================
    # Cache / Pub-Sub (Redis)
    # =========================================================================
    redis_url: str = Field(
        default="redis://localhost:6379/0",
        description="Redis URL used for the view cache and change events",
    )
    cache_key_prefix: str = Field(
        default="",
        description="Prefix prepended to every cache key",
    )
    cache_ttl_seconds: int | None = Field(
        default=None,
        description="Optional expiry for cached views (None keeps them until invalidated)",
    )
    use_memory_cache: bool = Field(
        default=False,
        description="Use in-process cache and event bus instead of Redis (for development)",
    )

    # =========================================================================
    # Catalog
    # =========================================================================
    default_locale: str = Field(
        default="en",
        description="Locale used when a caller does not pass one",
    )
    supported_locales: list[str] = Field(
        default_factory=lambda: ["es", "en"],
        description="Two-letter locale codes with stored name variants",
    )
    default_page_size: int = Field(
        default=20,
        ge=1,
        description="Page size for list queries without an explicit num",
    )

    @field_validator("supported_locales")
    @classmethod
    def validate_locales(cls, v: list[str]) -> list[str]:
        """Locale codes must be two lowercase letters."""
        for code in v:
            if len(code) != 2 or not code.isalpha() or not code.islower():
                raise ValueError(f"Invalid locale code: {code}")
        return v

    # =========================================================================
    # Google Sheets source
    # =========================================================================
    sheets_api_url: str = Field(
        default="https://sheets.googleapis.com/v4",
        description="Google Sheets API base URL",
    )
    sheets_api_key: str | None = Field(
        default=None,
        description="API key for public spreadsheets",
    )
    google_credentials_file: str | None = Field(
        default=None,
        description="Service account JSON file (falls back to application default credentials)",
    )
    sheets_timeout: float = Field(
        default=30.0,
        description="Sheets request timeout in seconds",
    )
    sheets_max_attempts: int = Field(
        default=3,
        ge=1,
        description="Max attempts per Sheets request",
    )
    sheets_backoff_seconds: float = Field(
        default=1.0,
        description="Base delay for exponential backoff between Sheets attempts",
    )
    catalog_spreadsheet_id: str = Field(
        default="",
        description="Spreadsheet with the Datos, Fruta, Presentacion and Producto sheets",
    )
    prices_spreadsheet_id: str = Field(
        default="",
        description="Spreadsheet with the Available prices sheet",
    )
    harvest_spreadsheet_id: str = Field(
        default="",
        description="Spreadsheet with the Fruit Summary harvest sheet",
    )

    # =========================================================================
    # Cloud Tasks
    # =========================================================================
    cloudtasks_strict_validation: bool = Field(
        default=True,
        description="Reject task requests without Cloud Tasks headers outside dev",
    )

    # =========================================================================
    # Logging
    # =========================================================================
    log_level: str = Field(
        default="INFO",
        description="Log level (DEBUG, INFO, WARNING, ERROR)",
    )
    log_json: bool = Field(
        default=True,
        description="Emit JSON lines outside dev",
    )


@lru_cache
def get_settings() -> Settings:
    """Process-wide Settings, built once."""
    return Settings()
