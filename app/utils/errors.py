"""
Error types for Algo Workspace.

Every domain error carries a short code and a context dict (operation name
plus whatever paths/slugs were involved) so API handlers and scripts can
report failures without re-deriving where they happened.
"""

import platform
from datetime import datetime, timezone
from typing import Any, Dict, Optional


class WorkspaceError(Exception):
    """Base class for workspace failures."""

    code = "WORKSPACE_ERROR"

    def __init__(self, message: str, context: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.context = context or {}

    def formatted_message(self) -> str:
        """Message prefixed with the error code and followed by its context."""
        message = f"{self.code}: {self.message}"
        details = {k: v for k, v in self.context.items() if k not in ("timestamp", "platform")}
        if details:
            rendered = ", ".join(f"{key}: {value}" for key, value in details.items())
            message += f" ({rendered})"
        return message


class ValidationError(WorkspaceError):
    """Malformed or unsafe input. Raised before any I/O."""

    code = "VALIDATION_ERROR"


class NotFoundError(WorkspaceError):
    """Expected source directory is absent."""

    code = "NOT_FOUND"


class CollisionError(WorkspaceError):
    """Destination exists and the collision policy is ``error``."""

    code = "COLLISION"


class ExhaustedError(WorkspaceError):
    """No unused timestamp suffix was found within the attempt budget."""

    code = "EXHAUSTED"


class AlreadyRunningError(WorkspaceError):
    """``start()`` was called on a running watcher."""

    code = "ALREADY_RUNNING"


class WatcherFailure(WorkspaceError):
    """The underlying filesystem subscription failed while running."""

    code = "WATCHER_FAILURE"


def create_error_context(operation: str, **details: Any) -> Dict[str, Any]:
    """
    Build the context attached to a WorkspaceError.

    Args:
        operation: Name of the operation that failed
        **details: Extra fields (slug, paths, original error message, ...)

    Returns:
        Context dict
    """
    return {
        "operation": operation,
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "platform": platform.system().lower(),
        **details,
    }


def format_error(error: BaseException) -> str:
    """Render any exception for display."""
    if isinstance(error, WorkspaceError):
        return error.formatted_message()
    return f"UNKNOWN_ERROR: {error}"
