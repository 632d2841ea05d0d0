"""
Health check endpoint.
"""

from fastapi import APIRouter
from loguru import logger
from pydantic import BaseModel
from datetime import datetime
from typing import Optional

from app.utils.workspace_service import get_workspace_service
from app.utils.config import get_settings
from app.utils.errors import WorkspaceError
from domains.workspace.manager import is_workspace_initialized

router = APIRouter()


class HealthResponse(BaseModel):
    """Health check response model."""
    status: str
    timestamp: datetime
    workspace_root: str
    workspace_initialized: bool
    watcher_running: bool
    watcher_error: Optional[str] = None
    version: str


@router.get("/health", response_model=HealthResponse)
async def health_check():
    """
    Health check endpoint.

    Verifies:
    - API is running
    - Workspace directories exist
    - File watcher is running (when enabled)
    """
    settings = get_settings()
    service = get_workspace_service()
    initialized = False

    try:
        initialized = is_workspace_initialized(service.root, service.resolver)
    except WorkspaceError as e:
        logger.warning(f"Workspace check failed: {e.formatted_message()}")

    watcher_error = None
    if service.watcher is not None and service.watcher.last_failure is not None:
        watcher_error = service.watcher.last_failure.message

    healthy = initialized and (service.watcher_running or not settings.watch_enabled)

    return HealthResponse(
        status="healthy" if healthy else "degraded",
        timestamp=datetime.now(),
        workspace_root=service.root,
        workspace_initialized=initialized,
        watcher_running=service.watcher_running,
        watcher_error=watcher_error,
        version=settings.api_version
    )
