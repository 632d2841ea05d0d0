"""
Workspace initialization and validation.

Creates the fixed directory structure under a workspace root and checks
that an existing root has it.
"""

import json
import os
from pathlib import Path
from typing import Any, List, Optional

from loguru import logger
from pydantic import ValidationError as ModelValidationError

from app.models.schemas import ProblemLocation, ProblemMetadata, WorkspaceLayout
from app.utils.errors import WorkspaceError, create_error_context
from domains.workspace.paths import PathResolver, get_path_resolver


def init_workspace(root: Any, resolver: Optional[PathResolver] = None) -> WorkspaceLayout:
    """
    Create the workspace root and its four subdirectories.

    Safe to call multiple times; existing directories are left alone.

    Args:
        root: Workspace root, relative or absolute
        resolver: Path resolver (shared resolver by default)

    Returns:
        The resolved WorkspaceLayout

    Raises:
        ValidationError: If root is invalid
        WorkspaceError: If a directory cannot be created
    """
    layout = (resolver or get_path_resolver()).resolve_workspace_layout(root)

    for directory in layout.directories():
        try:
            Path(directory).mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise WorkspaceError(
                f"Failed to initialize workspace: {exc}",
                create_error_context("init_workspace", root=layout.root, directory=directory, error=str(exc)),
            ) from exc

    logger.success(f"Workspace initialized at {layout.root}")
    return layout


def missing_directories(layout: WorkspaceLayout) -> List[str]:
    """Names of workspace directories that don't exist yet."""
    named = {
        "root": layout.root,
        "problems": layout.problems,
        "completed": layout.completed,
        "templates": layout.templates,
        "config": layout.config,
    }
    return [name for name, path in named.items() if not os.path.exists(path)]


def is_workspace_initialized(root: Any, resolver: Optional[PathResolver] = None) -> bool:
    """
    Check if all workspace directories exist.

    Raises:
        ValidationError: If root is invalid
    """
    layout = (resolver or get_path_resolver()).resolve_workspace_layout(root)
    return not missing_directories(layout)


def validate_workspace(root: Any, resolver: Optional[PathResolver] = None) -> WorkspaceLayout:
    """
    Verify the workspace structure exists and is made of directories.

    Raises:
        ValidationError: If root is invalid
        WorkspaceError: If directories are missing or not directories
    """
    layout = (resolver or get_path_resolver()).resolve_workspace_layout(root)

    missing = missing_directories(layout)
    if missing:
        raise WorkspaceError(
            f"Workspace is not properly initialized. Missing directories: {', '.join(missing)}",
            create_error_context("validate_workspace", root=layout.root, missing_directories=missing),
        )

    for directory in layout.directories():
        if not os.path.isdir(directory):
            raise WorkspaceError(
                f"Workspace path exists but is not a directory: {directory}",
                create_error_context("validate_workspace", root=layout.root, invalid_path=directory),
            )
        if not os.access(directory, os.R_OK | os.W_OK | os.X_OK):
            raise WorkspaceError(
                f"Cannot access workspace directory: {directory}",
                create_error_context("validate_workspace", root=layout.root, invalid_path=directory),
            )

    return layout


def read_problem_metadata(location: ProblemLocation) -> Optional[ProblemMetadata]:
    """
    Load ``.problem.json`` for a problem.

    Returns:
        Parsed metadata, or None if the file is missing or malformed
    """
    try:
        with open(location.metadata_file, encoding="utf-8") as f:
            raw = json.load(f)
    except FileNotFoundError:
        return None
    except (OSError, json.JSONDecodeError) as e:
        logger.warning(f"Unreadable metadata file {location.metadata_file}: {e}")
        return None

    try:
        return ProblemMetadata.model_validate(raw)
    except ModelValidationError as e:
        logger.warning(f"Invalid metadata in {location.metadata_file}: {e}")
        return None
