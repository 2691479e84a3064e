"""Response bodies shared by the health and task routes."""

from typing import Any

from pydantic import BaseModel, Field


class ErrorResponse(BaseModel):
    """Body returned by the exception handlers in ``catalog.main``."""

    success: bool = Field(default=False)
    error: str = Field(description="Human readable message")
    error_type: str = Field(description="Exception class name")
    error_code: str | None = Field(default=None, description="CatalogError code, e.g. SOURCE_UNAVAILABLE")
    detail: dict[str, Any] | None = Field(default=None, description="Error context such as the offending id")

    model_config = {"extra": "forbid"}


class HealthResponse(BaseModel):
    status: str = Field(description="healthy or degraded")
    version: str = Field(description="catalog package version")
    environment: str = Field(description="dev, staging or prod")
    checks: dict[str, bool] = Field(default_factory=dict, description="Result per dependency check")

    model_config = {"extra": "forbid"}
