"""
Workspace Domain

Manages the local workspace of problem directories:
- paths.py - Validated, cached resolution of workspace and problem paths
- manager.py - Workspace initialization and validation
- archive.py - Archive/restore between problems/ and completed/
- watchers/ - Debounced file change notifications
"""

__all__ = ["paths", "manager", "archive", "watchers"]
