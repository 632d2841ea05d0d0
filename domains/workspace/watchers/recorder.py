"""Bounded in-memory log of dispatched watch events."""

from collections import deque
from typing import Deque, List, Optional

from app.models.schemas import WatchEvent, WatchEventCategory


class RecentEvents:
    """Keeps the last ``limit`` WatchEvents; register as an "all" handler."""

    def __init__(self, limit: int = 200):
        self._events: Deque[WatchEvent] = deque(maxlen=limit)

    def __call__(self, event: WatchEvent) -> None:
        self._events.append(event)

    def __len__(self) -> int:
        return len(self._events)

    def snapshot(
        self,
        category: Optional[WatchEventCategory] = None,
        limit: Optional[int] = None,
    ) -> List[WatchEvent]:
        """Recorded events, oldest first, optionally filtered and truncated to the newest ``limit``."""
        events = [e for e in self._events if category is None or e.category == category]
        if limit is not None:
            events = events[-limit:] if limit > 0 else []
        return events

    def clear(self) -> None:
        self._events.clear()
