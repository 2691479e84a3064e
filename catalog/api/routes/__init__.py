"""API routes module."""

from catalog.api.routes.health import router as health_router
from catalog.api.routes.tasks import router as tasks_router

__all__ = ["health_router", "tasks_router"]
