"""ASGI entry point of the catalog sync worker.

Cloud Scheduler enqueues sync tasks, Cloud Tasks delivers them to
``/tasks/sync`` and the worker reconciles the store with the spreadsheets.
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from catalog import __version__
from catalog.api.routes.health import router as health_router
from catalog.api.routes.tasks import router as tasks_router
from catalog.config import get_settings
from catalog.core.context import CatalogContext
from catalog.core.errors import CatalogError, ErrorCategory
from catalog.infra.database import create_schema, verify_db_connection
from catalog.infra.logging import get_logger, setup_logging
from catalog.schemas.common import ErrorResponse

settings = get_settings()

# before any module logger emits
setup_logging(settings)
logger = get_logger(__name__)

ERROR_STATUS = {
    ErrorCategory.VALIDATION: 422,
    ErrorCategory.NOT_FOUND: 404,
    ErrorCategory.CONFLICT: 409,
    ErrorCategory.SOURCE: 503,
}


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Own the CatalogContext unless a test already installed one.

    Startup:
    - build the context (engine, cache, event bus)
    - create tables in dev
    - check the database, logging instead of failing

    Shutdown:
    - close whatever the lifespan created
    """
    logger.info(
        "Catalog worker starting",
        environment=settings.environment,
        version=__version__,
    )

    ctx = getattr(app.state, "catalog", None)
    owns_context = ctx is None
    if ctx is None:
        ctx = CatalogContext.create(settings)
        app.state.catalog = ctx

    if settings.environment == "dev" and ctx.engine is not None:
        try:
            await create_schema(ctx.engine)
        except Exception as e:
            logger.warning("Schema creation failed", error=str(e))

    db_ok = await verify_db_connection(ctx.session_factory)
    if not db_ok:
        logger.warning("Database unreachable at startup", driver=settings.db_driver)

    yield

    logger.info("Catalog worker shutting down")
    if owns_context:
        await ctx.close()
        app.state.catalog = None
    logger.info("Catalog worker stopped")


app = FastAPI(
    title="Fruit Catalog Sync Worker",
    description="Reconciles the bilingual fruit catalog with its Google Sheets source",
    version=__version__,
    lifespan=lifespan,
    docs_url="/docs" if settings.environment == "dev" else None,
    redoc_url=None,
)

# local tooling only
if settings.environment == "dev":
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )


@app.middleware("http")
async def log_requests(request: Request, call_next):
    """Log Cloud Tasks requests with their queue context."""
    task_name = request.headers.get("X-CloudTasks-TaskName", "")
    if task_name:
        logger.info(
            "Cloud Tasks request received",
            task_name=task_name,
            queue_name=request.headers.get("X-CloudTasks-QueueName", ""),
            retry_count=request.headers.get("X-CloudTasks-TaskRetryCount", "0"),
            path=request.url.path,
        )

    return await call_next(request)


# =============================================================================
# Exception Handlers
# =============================================================================


@app.exception_handler(CatalogError)
async def catalog_exception_handler(request: Request, exc: CatalogError) -> JSONResponse:
    """Turn catalog errors into structured responses with their code."""
    status_code = ERROR_STATUS.get(exc.category, 400)
    logger.warning(
        "Catalog error",
        path=request.url.path,
        status_code=status_code,
        **exc.to_dict(),
    )
    body = ErrorResponse(
        error=exc.message,
        error_type=type(exc).__name__,
        error_code=exc.code,
        detail=exc.to_dict()["context"] or None,
    )
    return JSONResponse(status_code=status_code, content=body.model_dump())


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Handle uncaught exceptions.

    A 500 makes Cloud Tasks redeliver the sync.
    """
    logger.error(
        "Unhandled exception",
        error=str(exc),
        error_type=type(exc).__name__,
        path=request.url.path,
        exc_info=True,
    )
    body = ErrorResponse(error="Internal server error", error_type=type(exc).__name__)
    return JSONResponse(status_code=500, content=body.model_dump())


# =============================================================================
# Include Routers
# =============================================================================

app.include_router(health_router, tags=["Health"])
app.include_router(tasks_router, prefix="/tasks", tags=["Tasks"])


@app.get("/")
async def root() -> dict:
    """Service name, version and environment."""
    return {
        "service": "Fruit Catalog Sync Worker",
        "version": __version__,
        "environment": settings.environment,
    }
