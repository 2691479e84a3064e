"""FastAPI dependencies for the worker routes."""

from typing import Annotated

from fastapi import Depends, Header, HTTPException, Request, status

from catalog.core.context import CatalogContext
from catalog.infra.logging import get_logger

logger = get_logger(__name__)


def get_context(request: Request) -> CatalogContext:
    """CatalogContext stored on app.state at startup."""
    return request.app.state.catalog


Context = Annotated[CatalogContext, Depends(get_context)]


def validate_cloud_tasks_request(
    ctx: Context,
    x_cloudtasks_taskname: Annotated[str | None, Header(alias="X-CloudTasks-TaskName")] = None,
    x_cloudtasks_queuename: Annotated[str | None, Header(alias="X-CloudTasks-QueueName")] = None,
) -> bool:
    """Gate sync triggers on the headers Cloud Tasks attaches.

    Dev accepts anything so syncs can be started by hand. Elsewhere a
    missing task name is a 403 while ``cloudtasks_strict_validation`` is on;
    the Cloud Run invoker role still authenticates the caller.

    Raises:
        HTTPException: 403 when strict validation rejects the request
    """
    settings = ctx.settings
    task = {"task_name": x_cloudtasks_taskname, "queue_name": x_cloudtasks_queuename}

    if settings.environment == "dev":
        if x_cloudtasks_taskname:
            logger.debug("Sync trigger from Cloud Tasks (dev)", **task)
        return True

    if not x_cloudtasks_taskname and settings.cloudtasks_strict_validation:
        logger.warning(
            "Sync trigger rejected without Cloud Tasks headers",
            environment=settings.environment,
            has_queue_name=x_cloudtasks_queuename is not None,
        )
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Missing required Cloud Tasks headers",
        )

    logger.info("Sync trigger accepted", environment=settings.environment, **task)
    return True


CloudTasksRequest = Annotated[bool, Depends(validate_cloud_tasks_request)]
