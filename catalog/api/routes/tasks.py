"""Task endpoints.

Receives sync tasks from Cloud Tasks (or the run_sync script) and runs a
catalog reconciliation against the configured spreadsheets.
"""

import time

from fastapi import APIRouter

from catalog.api.deps import CloudTasksRequest, Context
from catalog.infra.logging import get_logger
from catalog.schemas.sync import SyncRequest, SyncResponse
from catalog.sync.service import sync_catalog

router = APIRouter()
logger = get_logger(__name__)


@router.post(
    "/sync",
    response_model=SyncResponse,
    summary="Reconcile the catalog with the spreadsheets",
)
async def sync_task(
    request: SyncRequest,
    ctx: Context,
    _: CloudTasksRequest,
) -> SyncResponse:
    """Run a sync and report counts per entity.

    A failed run still answers 200 with success=false: the store is
    partially converged and rerunning (optionally from the checkpoint)
    is the recovery path, so Cloud Tasks should not retry blindly.
    """
    start_time = time.time()

    logger.info(
        "Sync request received",
        entities=request.entities or "all",
        start_row=request.start_row,
    )

    outcomes = await sync_catalog(ctx, entities=request.entities, start_row=request.start_row)
    duration_ms = int((time.time() - start_time) * 1000)
    response = SyncResponse.from_outcomes(outcomes, duration_ms)

    if response.success:
        logger.info(
            "Sync completed SUCCESSFULLY",
            entities=list(response.results),
            duration_ms=duration_ms,
        )
    else:
        logger.error(
            "Sync FAILED",
            failed_entity=response.failed_entity,
            error_code=response.error_code,
            checkpoint=response.checkpoint,
            duration_ms=duration_ms,
        )
    return response
