"""
Process-wide workspace service.

Bundles the path resolver, archive engine, change watcher and recent-event
buffer for the configured workspace root, so API routes and the application
lifespan share one instance.
"""

from typing import Optional

from loguru import logger

from app.utils.config import Settings, get_settings
from domains.workspace.archive import ArchiveEngine, get_archive_engine
from domains.workspace.paths import PathResolver, get_path_resolver
from domains.workspace.watchers.filesystem import ChangeWatcher, create_workspace_watcher
from domains.workspace.watchers.recorder import RecentEvents


class WorkspaceService:
    """Resolver, archive engine and watcher for one workspace root."""

    def __init__(
        self,
        root: Optional[str] = None,
        settings: Optional[Settings] = None,
        resolver: Optional[PathResolver] = None,
        engine: Optional[ArchiveEngine] = None,
    ):
        """Initialize workspace service."""
        self.settings = settings or get_settings()
        self.root = str(root or self.settings.get_workspace_root())
        self.resolver = resolver or get_path_resolver()
        self.engine = engine or get_archive_engine()
        self.recent_events = RecentEvents(self.settings.recent_events_limit)
        self.watcher: Optional[ChangeWatcher] = None

    @property
    def watcher_running(self) -> bool:
        return self.watcher is not None and self.watcher.running

    def start_watching(self) -> ChangeWatcher:
        """
        Start the workspace watcher (requires a running event loop).

        Raises:
            AlreadyRunningError: If the watcher is already running
            WorkspaceError: If the watched directories cannot be subscribed
        """
        if self.watcher is None:
            self.watcher = create_workspace_watcher(self.root, resolver=self.resolver)
            self.watcher.on("all", self.recent_events)
        self.watcher.start()
        return self.watcher

    def stop_watching(self) -> None:
        """Stop the watcher if it was started."""
        if self.watcher is not None:
            self.watcher.stop()


# Global service instance
_service: Optional[WorkspaceService] = None


def get_workspace_service() -> WorkspaceService:
    """Get global workspace service instance."""
    global _service
    if _service is None:
        _service = WorkspaceService()
        logger.info(f"Workspace service bound to {_service.root}")
    return _service


def close_workspace_service():
    """Stop and drop the global workspace service."""
    global _service
    if _service:
        _service.stop_watching()
        _service = None
