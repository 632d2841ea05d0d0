"""
Workspace structure endpoints.

Includes:
- Resolved layout of the configured workspace
- Workspace initialization
- Problem path resolution (with metadata when present)
"""

import os
from typing import Optional

from fastapi import APIRouter
from loguru import logger

from app.models.schemas import (
    Area,
    ProblemDetails,
    SupportedLanguage,
    WorkspaceLayout,
)
from app.utils.workspace_service import get_workspace_service
from domains.workspace.manager import init_workspace, read_problem_metadata

router = APIRouter()


@router.get("/layout", response_model=WorkspaceLayout)
async def get_layout():
    """
    Get absolute paths of the workspace directories.

    Returns:
        Workspace layout
    """
    service = get_workspace_service()
    return service.resolver.resolve_workspace_layout(service.root)


@router.post("/init", response_model=WorkspaceLayout)
async def initialize_workspace():
    """
    Create any missing workspace directories.

    Returns:
        Workspace layout
    """
    service = get_workspace_service()
    logger.info(f"Workspace init requested for {service.root}")
    return init_workspace(service.root, service.resolver)


@router.get("/problems/{slug}", response_model=ProblemDetails)
async def get_problem_paths(
    slug: str,
    language: Optional[SupportedLanguage] = None,
    area: Area = Area.ACTIVE,
):
    """
    Resolve the directory and files of a problem.

    Args:
        slug: Problem slug (may carry a collision suffix for archived problems)
        language: Language (defaults to the configured default language)
        area: active or archived

    Returns:
        Paths, whether the directory exists, and parsed metadata if any
    """
    service = get_workspace_service()
    location = service.resolver.location(
        service.root,
        slug,
        language or service.settings.default_language,
        area,
    )
    exists = os.path.isdir(location.dir)

    return ProblemDetails(
        location=location,
        exists=exists,
        metadata=read_problem_metadata(location) if exists else None,
    )
