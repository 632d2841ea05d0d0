"""
Watcher event endpoints.

Exposes the most recent debounced workspace changes.
"""

from typing import Optional

from fastapi import APIRouter, Query

from app.models.schemas import RecentEventsResponse, WatchEventCategory
from app.utils.workspace_service import get_workspace_service

router = APIRouter()


@router.get("/recent", response_model=RecentEventsResponse)
async def get_recent_events(
    category: Optional[WatchEventCategory] = None,
    limit: int = Query(default=50, ge=1, le=1000),
):
    """
    Get recent watcher events, oldest first.

    Args:
        category: Only events of this category
        limit: Maximum number of events (newest kept)

    Returns:
        Recent events and watcher status
    """
    service = get_workspace_service()
    events = service.recent_events.snapshot(category=category, limit=limit)

    return RecentEventsResponse(
        events=events,
        total=len(events),
        watcher_running=service.watcher_running,
    )
