"""
Archive and restore operations for problem directories.

Moves a problem directory between the active area (``problems/``) and the
archived area (``completed/``). When the destination is taken the configured
collision policy decides: fail, overwrite, or append a ``-YYYYMMDD-HHMMSS``
suffix to the base slug.

Moves are whole-directory: a same-filesystem rename, or a copy followed by
removal of the source when the areas sit on different devices.
"""

import errno
import os
import shutil
import time
from typing import Any, Callable, List, Optional

from loguru import logger

from app.models.schemas import Area, ArchiveResult, CollisionPolicy, SupportedLanguage
from app.utils.config import get_settings
from app.utils.errors import (
    CollisionError,
    ExhaustedError,
    NotFoundError,
    WorkspaceError,
    create_error_context,
)
from app.utils.helpers import generate_timestamp_suffix, strip_collision_suffix
from domains.workspace.paths import PathResolver, get_path_resolver

DEFAULT_MAX_ATTEMPTS = 100
DEFAULT_RETRY_DELAY = 0.001  # seconds


def move_directory(source: str, destination: str) -> None:
    """
    Move ``source`` to ``destination`` as a unit.

    ``destination`` must not exist. A destination that appears while the
    move is in progress is never replaced or removed.

    Raises:
        WorkspaceError: If the move fails; the source is left in place
    """
    # rename() silently replaces an empty directory on POSIX
    if os.path.lexists(destination):
        raise WorkspaceError(
            f"Failed to move directory: destination already exists: {destination}",
            create_error_context("move_directory", source=source, destination=destination),
        )

    try:
        os.rename(source, destination)
        return
    except OSError as exc:
        if exc.errno != errno.EXDEV:
            raise WorkspaceError(
                f"Failed to move directory: {exc}",
                create_error_context("move_directory", source=source, destination=destination, error=str(exc)),
            ) from exc

    # Different devices: claim the destination, copy the tree, then drop the source
    logger.debug(f"Cross-device move, copying {source} -> {destination}")
    try:
        os.mkdir(destination)
    except OSError as exc:
        raise WorkspaceError(
            f"Failed to move directory: {exc}",
            create_error_context("move_directory", source=source, destination=destination, error=str(exc)),
        ) from exc

    try:
        shutil.copytree(source, destination, symlinks=True, dirs_exist_ok=True)
    except (OSError, shutil.Error) as exc:
        # Only reached once this call created the destination
        shutil.rmtree(destination, ignore_errors=True)
        raise WorkspaceError(
            f"Failed to move directory: {exc}",
            create_error_context("move_directory", source=source, destination=destination, error=str(exc)),
        ) from exc

    try:
        shutil.rmtree(source)
    except OSError as exc:
        raise WorkspaceError(
            f"Copied directory but failed to remove source: {exc}",
            create_error_context("move_directory", source=source, destination=destination, error=str(exc)),
        ) from exc


class ArchiveEngine:
    """Moves problems between the active and archived areas."""

    def __init__(
        self,
        resolver: Optional[PathResolver] = None,
        *,
        default_policy: CollisionPolicy = CollisionPolicy.TIMESTAMP,
        suffix_factory: Callable[[], str] = generate_timestamp_suffix,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        retry_delay: float = DEFAULT_RETRY_DELAY,
        sleep: Callable[[float], None] = time.sleep,
    ):
        """
        Initialize archive engine.

        Args:
            resolver: Path resolver (shared resolver by default)
            default_policy: Collision policy used when a call doesn't pass one
            suffix_factory: Returns a fresh ``YYYYMMDD-HHMMSS`` suffix per call
            max_attempts: Timestamp attempts before giving up
            retry_delay: Pause between attempts, only to move the clock forward
            sleep: Sleep function (replaced in tests)
        """
        self.resolver = resolver or get_path_resolver()
        self.default_policy = CollisionPolicy(default_policy)
        self.suffix_factory = suffix_factory
        self.max_attempts = max_attempts
        self.retry_delay = retry_delay
        self.sleep = sleep

    def archive(
        self,
        root: Any,
        slug: str,
        language: Any,
        on_collision: Optional[CollisionPolicy] = None,
    ) -> ArchiveResult:
        """
        Move ``problems/<slug>`` into ``completed/``.

        Returns:
            ArchiveResult with the final destination

        Raises:
            ValidationError: Invalid root, slug or language
            NotFoundError: No active problem with this slug
            CollisionError: Destination exists under the ``error`` policy
            ExhaustedError: No free timestamp suffix found
            WorkspaceError: Filesystem failure during the move
        """
        return self._relocate("archive", root, slug, language, Area.ACTIVE, on_collision)

    def restore(
        self,
        root: Any,
        slug: str,
        language: Any,
        on_collision: Optional[CollisionPolicy] = None,
    ) -> ArchiveResult:
        """
        Move ``completed/<slug>`` back into ``problems/``.

        ``slug`` may carry a collision suffix; it locates the archived
        directory as given, and the destination uses the slug with the
        suffix removed.

        Raises:
            Same as ``archive``.
        """
        return self._relocate("restore", root, slug, language, Area.ARCHIVED, on_collision)

    def list_archived(self, root: Any) -> List[str]:
        """
        List directory names under ``completed/``, sorted.

        Returns:
            Archived slugs (with collision suffixes where present); empty if
            the area does not exist
        """
        layout = self.resolver.resolve_workspace_layout(root)
        if not os.path.isdir(layout.completed):
            return []

        try:
            with os.scandir(layout.completed) as entries:
                names = [entry.name for entry in entries if entry.is_dir()]
        except FileNotFoundError:
            return []
        except OSError as exc:
            raise WorkspaceError(
                f"Failed to list archived problems: {exc}",
                create_error_context("list_archived", completed_path=layout.completed, error=str(exc)),
            ) from exc
        return sorted(names)

    def is_archived(self, root: Any, slug: str, language: Any = SupportedLanguage.TYPESCRIPT) -> bool:
        """Check whether ``completed/<slug>`` exists. Any error reads as False."""
        try:
            location = self.resolver.location(root, slug, language, Area.ARCHIVED)
            return os.path.isdir(location.dir)
        except Exception as e:
            logger.debug(f"is_archived({slug}) treated as missing: {e}")
            return False

    # Helper routines -----------------------------------------------------------------

    def _relocate(
        self,
        operation: str,
        root: Any,
        slug: str,
        language: Any,
        source_area: Area,
        on_collision: Optional[CollisionPolicy],
    ) -> ArchiveResult:
        policy = CollisionPolicy(on_collision) if on_collision is not None else self.default_policy
        target_area = Area.ARCHIVED if source_area == Area.ACTIVE else Area.ACTIVE

        source = self.resolver.location(root, slug, language, source_area)
        base_slug = strip_collision_suffix(slug) if source_area == Area.ARCHIVED else slug
        destination = self.resolver.location(root, base_slug, language, target_area)

        try:
            if not os.path.isdir(source.dir):
                label = "Problem" if source_area == Area.ACTIVE else "Archived problem"
                raise NotFoundError(
                    f"{label} not found: {slug}",
                    create_error_context(operation, slug=slug, source_path=source.dir),
                )

            final_destination = destination.dir
            collision_handled = False

            if os.path.lexists(destination.dir):
                final_destination, collision_handled = self._resolve_collision(
                    operation, policy, root, base_slug, language, target_area, destination.dir
                )

            try:
                move_directory(source.dir, final_destination)
            except WorkspaceError as exc:
                raise WorkspaceError(
                    f"Failed to {operation} problem: {exc.message}",
                    create_error_context(
                        operation,
                        slug=slug,
                        language=source.language.value,
                        source_path=source.dir,
                        destination_path=final_destination,
                        error=exc.message,
                    ),
                ) from exc

        except WorkspaceError:
            raise
        except OSError as exc:
            raise WorkspaceError(
                f"Failed to {operation} problem: {exc}",
                create_error_context(
                    operation,
                    slug=slug,
                    language=source.language.value,
                    source_path=source.dir,
                    destination_path=destination.dir,
                    error=str(exc),
                ),
            ) from exc

        logger.info(f"{operation.capitalize()}d {slug}: {source.dir} -> {final_destination}")
        return ArchiveResult(
            success=True,
            source=source.dir,
            destination=final_destination,
            collision_handled=collision_handled,
        )

    def _resolve_collision(
        self,
        operation: str,
        policy: CollisionPolicy,
        root: Any,
        base_slug: str,
        language: Any,
        target_area: Area,
        existing: str,
    ) -> tuple[str, bool]:
        """Return (destination, collision_handled) for a taken destination."""
        if policy == CollisionPolicy.ERROR:
            raise CollisionError(
                f"Destination already exists: {base_slug}",
                create_error_context(operation, slug=base_slug, destination_path=existing),
            )

        if policy == CollisionPolicy.OVERWRITE:
            logger.warning(f"Overwriting existing {target_area.value} problem: {existing}")
            if os.path.isdir(existing) and not os.path.islink(existing):
                shutil.rmtree(existing)
            else:
                os.remove(existing)
            return existing, False

        for attempt in range(self.max_attempts):
            candidate_slug = f"{base_slug}-{self.suffix_factory()}"
            candidate = self.resolver.location(root, candidate_slug, language, target_area)
            if not os.path.lexists(candidate.dir):
                logger.info(f"Destination taken, using {candidate_slug}")
                return candidate.dir, True
            logger.debug(f"Suffix collision on attempt {attempt + 1}: {candidate_slug}")
            self.sleep(self.retry_delay)

        raise ExhaustedError(
            f"Could not find unique timestamp suffix after {self.max_attempts} attempts",
            create_error_context(operation, slug=base_slug, destination_path=existing),
        )


def get_archive_engine() -> ArchiveEngine:
    """Build an archive engine configured from settings."""
    settings = get_settings()
    return ArchiveEngine(
        get_path_resolver(),
        default_policy=CollisionPolicy(settings.collision_policy),
        max_attempts=settings.archive_max_attempts,
        retry_delay=settings.get_retry_delay_seconds(),
    )
