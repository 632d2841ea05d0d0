#!/usr/bin/env python3
"""
Initialize an Algo Workspace directory structure.

Creates the root plus problems/, completed/, templates/ and config/, then
verifies the result and reports what is already there.

Usage:
    python scripts/init_workspace.py [ROOT]
"""

import os
import sys
from pathlib import Path

from loguru import logger

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from app.utils.config import get_settings
from app.utils.errors import WorkspaceError
from domains.workspace.archive import get_archive_engine
from domains.workspace.manager import init_workspace, missing_directories, validate_workspace
from domains.workspace.paths import get_path_resolver


def report_workspace(root: str):
    """Log the workspace layout and its contents."""
    resolver = get_path_resolver()
    layout = resolver.resolve_workspace_layout(root)

    logger.info("=== Layout ===")
    for name in ("problems", "completed", "templates", "config"):
        logger.info(f"  {name}: {getattr(layout, name)}")

    active = []
    if os.path.isdir(layout.problems):
        active = sorted(entry.name for entry in os.scandir(layout.problems) if entry.is_dir())
    archived = get_archive_engine().list_archived(root)

    logger.info("=== Problems ===")
    logger.info(f"  Active: {len(active)}")
    logger.info(f"  Archived: {len(archived)}")


def main(argv=None):
    """Main initialization function."""
    argv = sys.argv[1:] if argv is None else argv
    settings = get_settings()
    root = argv[0] if argv else str(settings.get_workspace_root())

    logger.info(f"Initializing workspace at {root}...")

    try:
        layout = init_workspace(root)
        missing = missing_directories(layout)
        if missing:
            logger.warning(f"Still missing after init: {', '.join(missing)}")

        validate_workspace(root)
        report_workspace(root)

        logger.success("✓ Workspace initialization completed successfully!")
        return 0

    except WorkspaceError as e:
        logger.error(f"Workspace initialization failed: {e.formatted_message()}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
