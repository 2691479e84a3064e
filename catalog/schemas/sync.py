"""Schemas for the catalog sync task endpoint."""

from pydantic import BaseModel, Field, field_validator

from catalog.sync.reconciler import SyncOutcome
from catalog.sync.service import SYNC_ORDER


class SyncRequest(BaseModel):
    """Sync task payload, sent by Cloud Scheduler / Cloud Tasks or the CLI."""

    entities: list[str] | None = Field(
        default=None,
        description="Entities to reconcile, run in dependency order (all when omitted)",
    )
    start_row: int = Field(
        default=0,
        ge=0,
        description="Resume the first entity from this row (previous checkpoint + 1)",
    )

    model_config = {"extra": "forbid"}

    @field_validator("entities")
    @classmethod
    def validate_entities(cls, v: list[str] | None) -> list[str] | None:
        """Entity names must be known sync handlers."""
        if v is None:
            return v
        unknown = [name for name in v if name not in SYNC_ORDER]
        if unknown:
            raise ValueError(f"Unknown entities: {', '.join(unknown)}")
        return v


class EntityCounts(BaseModel):
    """Counts of one entity run."""

    added: int = 0
    updated: int = 0
    deleted: int = 0
    skipped: int = 0


class SyncResponse(BaseModel):
    """Result of a sync task.

    On failure the counts of the failed entity are partial and checkpoint
    is the last converged row of that entity.
    """

    success: bool = Field(description="Whether every requested entity converged")
    results: dict[str, EntityCounts] = Field(
        default_factory=dict,
        description="Counts per entity, in run order",
    )
    failed_entity: str | None = Field(default=None, description="Entity whose run aborted")
    error: str | None = Field(default=None, description="Error message if failed")
    error_code: str | None = Field(default=None, description="Stable error code if failed")
    checkpoint: int | None = Field(default=None, description="Last converged row of the failed entity")
    duration_ms: int = Field(default=0, description="Total duration in milliseconds")

    @classmethod
    def from_outcomes(cls, outcomes: list[SyncOutcome], duration_ms: int) -> "SyncResponse":
        failed = next((o for o in outcomes if not o.ok), None)
        return cls(
            success=failed is None,
            results={o.entity: EntityCounts(**o.result.to_dict()) for o in outcomes},
            failed_entity=failed.entity if failed else None,
            error=failed.error.message if failed and failed.error else None,
            error_code=failed.error.code if failed and failed.error else None,
            checkpoint=failed.checkpoint if failed else None,
            duration_ms=duration_ms,
        )
