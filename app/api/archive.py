"""
Archive endpoints.

Moves problems between problems/ and completed/ and reports what is archived.
"""

from typing import Optional

from fastapi import APIRouter
from loguru import logger

from app.models.schemas import (
    ArchiveRequest,
    ArchiveResult,
    ArchivedProblems,
    SupportedLanguage,
)
from app.utils.workspace_service import get_workspace_service

router = APIRouter()


@router.post("/problems/{slug}/archive", response_model=ArchiveResult)
async def archive_problem(slug: str, request: Optional[ArchiveRequest] = None):
    """
    Archive an active problem.

    Args:
        slug: Active problem slug
        request: Language and collision policy overrides

    Returns:
        Archive result with the final destination
    """
    service = get_workspace_service()
    request = request or ArchiveRequest()
    logger.info(f"Archive requested: {slug}")

    return service.engine.archive(
        service.root,
        slug,
        request.language or service.settings.default_language,
        on_collision=request.on_collision,
    )


@router.post("/archive/{slug}/restore", response_model=ArchiveResult)
async def restore_problem(slug: str, request: Optional[ArchiveRequest] = None):
    """
    Restore an archived problem to the active area.

    Args:
        slug: Archived slug, including any collision suffix

    Returns:
        Archive result with the final destination
    """
    service = get_workspace_service()
    request = request or ArchiveRequest()
    logger.info(f"Restore requested: {slug}")

    return service.engine.restore(
        service.root,
        slug,
        request.language or service.settings.default_language,
        on_collision=request.on_collision,
    )


@router.get("/archive", response_model=ArchivedProblems)
async def list_archived_problems():
    """
    List archived problems.

    Returns:
        Sorted archived slugs
    """
    service = get_workspace_service()
    slugs = service.engine.list_archived(service.root)
    return ArchivedProblems(slugs=slugs, total=len(slugs))


@router.get("/archive/{slug}")
async def get_archived_problem(slug: str, language: Optional[SupportedLanguage] = None):
    """
    Check whether a problem is archived.

    Returns:
        Slug and archived flag
    """
    service = get_workspace_service()
    archived = service.engine.is_archived(
        service.root,
        slug,
        language or service.settings.default_language,
    )
    return {"slug": slug, "archived": archived}
