"""Health check endpoints for Cloud Run health checks and monitoring."""

from fastapi import APIRouter

from catalog import __version__
from catalog.api.deps import Context
from catalog.infra.database import verify_db_connection
from catalog.infra.logging import get_logger
from catalog.schemas.common import HealthResponse

router = APIRouter()
logger = get_logger(__name__)


@router.get("/health", response_model=HealthResponse)
async def health(ctx: Context) -> HealthResponse:
    """Basic health check.

    Returns 200 if service is running.
    Used by the Cloud Run startup check.
    """
    return HealthResponse(
        status="healthy",
        version=__version__,
        environment=ctx.settings.environment,
        checks={},
    )


@router.get("/health/ready", response_model=HealthResponse)
async def health_ready(ctx: Context) -> HealthResponse:
    """Readiness check.

    Verifies the database and the cache answer. Used by Cloud Run to
    decide whether the service can accept traffic.
    """
    checks: dict[str, bool] = {"database": await verify_db_connection(ctx.session_factory)}

    try:
        checks["cache"] = await ctx.cache.ping()
    except Exception as e:
        logger.warning("Cache health check failed", error=str(e))
        checks["cache"] = False

    all_healthy = all(checks.values())

    return HealthResponse(
        status="healthy" if all_healthy else "degraded",
        version=__version__,
        environment=ctx.settings.environment,
        checks=checks,
    )


@router.get("/health/live", response_model=HealthResponse)
async def health_live(ctx: Context) -> HealthResponse:
    """Liveness check. Used by the Cloud Run liveness check."""
    return HealthResponse(
        status="healthy",
        version=__version__,
        environment=ctx.settings.environment,
        checks={"alive": True},
    )
