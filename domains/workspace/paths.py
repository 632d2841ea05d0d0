"""
Workspace path resolution.

Maps logical workspace concepts (root, area, slug, language) to concrete
filesystem paths. All inputs are validated before any path is built; the
slug check is what keeps problem directories inside their area.

Layout:
    <root>/problems/<slug>/     active problems
    <root>/completed/<slug>/    archived problems (slug may carry -YYYYMMDD-HHMMSS)
    <root>/templates/
    <root>/config/
"""

import os
import re
from functools import lru_cache
from typing import Any, Dict, Optional

from loguru import logger

from app.models.schemas import (
    Area,
    ProblemLocation,
    SupportedLanguage,
    WorkspaceLayout,
    WorkspacePathConfig,
)
from app.utils.config import get_settings
from app.utils.errors import ValidationError, create_error_context
from app.utils.helpers import fspath_or_none, strip_collision_suffix

# Fixed subdirectory names
PROBLEMS_DIR = "problems"
COMPLETED_DIR = "completed"
TEMPLATES_DIR = "templates"
CONFIG_DIR = "config"

README_FILE = "README.md"
METADATA_FILE = ".problem.json"

MAX_SLUG_LENGTH = 100
SLUG_PATTERN = re.compile(r"^[a-z0-9]+(-[a-z0-9]+)*$")

FILE_EXTENSIONS = {
    SupportedLanguage.TYPESCRIPT: ".ts",
    SupportedLanguage.JAVASCRIPT: ".js",
    SupportedLanguage.PYTHON: ".py",
    SupportedLanguage.JAVA: ".java",
    SupportedLanguage.CPP: ".cpp",
    SupportedLanguage.RUST: ".rs",
    SupportedLanguage.GO: ".go",
}


def solution_file_name(language: SupportedLanguage) -> str:
    """Solution file name for ``language`` (Java needs the class name)."""
    ext = FILE_EXTENSIONS[language]
    if language == SupportedLanguage.JAVA:
        return f"Solution{ext}"
    return f"solution{ext}"


def test_file_name(language: SupportedLanguage) -> str:
    """Test file name following each language's convention."""
    ext = FILE_EXTENSIONS[language]
    if language == SupportedLanguage.PYTHON:
        return f"test_solution{ext}"
    if language == SupportedLanguage.JAVA:
        return f"SolutionTest{ext}"
    if language == SupportedLanguage.RUST:
        return f"tests{ext}"
    # go requires the _test suffix; ts/js/cpp follow the same convention
    return f"solution_test{ext}"


# =====================================================
# Validation
# =====================================================

def validate_root(root: Any) -> str:
    """
    Validate a workspace root and return it as a string.

    Args:
        root: Candidate root (str or os.PathLike)

    Returns:
        The root as given, converted to str

    Raises:
        ValidationError: If root is not a path, empty, contains a null byte,
            or still contains a ``..`` segment after normalization
    """
    raw = fspath_or_none(root)
    if raw is None:
        raise ValidationError(
            "Workspace root must be a string path",
            create_error_context("validate_root", root_type=type(root).__name__),
        )
    if not raw.strip():
        raise ValidationError(
            "Workspace root cannot be empty",
            create_error_context("validate_root", root=raw),
        )
    if "\x00" in raw:
        raise ValidationError(
            "Workspace root contains a null byte",
            create_error_context("validate_root", root=raw.replace("\x00", "\\0")),
        )
    normalized = os.path.normpath(raw)
    if ".." in normalized.replace("\\", "/").split("/"):
        raise ValidationError(
            "Workspace root must not traverse upwards ('..')",
            create_error_context("validate_root", root=raw),
        )
    return raw


def validate_slug(slug: Any) -> str:
    """
    Validate a problem slug.

    The base slug (collision suffix removed) must be lowercase kebab-case
    and at most 100 characters, so any valid slug can still be archived
    with a ``-YYYYMMDD-HHMMSS`` suffix.

    Raises:
        ValidationError: If slug is not a safe kebab-case token
    """
    if not isinstance(slug, str):
        raise ValidationError(
            "Slug must be a string",
            create_error_context("validate_slug", slug_type=type(slug).__name__),
        )
    if not slug:
        raise ValidationError("Slug cannot be empty", create_error_context("validate_slug"))
    if "\x00" in slug or "/" in slug or "\\" in slug or ".." in slug:
        raise ValidationError(
            "Slug must not contain path separators, '..' or null bytes",
            create_error_context("validate_slug", slug=slug.replace("\x00", "\\0")),
        )
    if not SLUG_PATTERN.match(slug):
        raise ValidationError(
            "Slug must be kebab-case (lowercase letters, digits and single hyphens)",
            create_error_context("validate_slug", slug=slug),
        )
    if len(strip_collision_suffix(slug)) > MAX_SLUG_LENGTH:
        raise ValidationError(
            f"Slug must be no more than {MAX_SLUG_LENGTH} characters",
            create_error_context("validate_slug", slug=slug, length=len(slug)),
        )
    return slug


def validate_language(language: Any) -> SupportedLanguage:
    """Coerce ``language`` to a SupportedLanguage or raise ValidationError."""
    try:
        return SupportedLanguage(language)
    except ValueError:
        supported = ", ".join(lang.value for lang in SupportedLanguage)
        raise ValidationError(
            f"Unsupported language: {language!r} (expected one of: {supported})",
            create_error_context("validate_language", language=str(language)),
        ) from None


# =====================================================
# Cache
# =====================================================

class LayoutCache:
    """
    Bounded map of absolute root -> WorkspaceLayout.

    When ``max_entries`` is reached the oldest half (by insertion order) is
    dropped in one pass before the new entry is stored.
    """

    def __init__(self, max_entries: int = 100):
        if max_entries < 1:
            raise ValueError("max_entries must be at least 1")
        self.max_entries = max_entries
        self._entries: Dict[str, WorkspaceLayout] = {}

    def get(self, key: str) -> Optional[WorkspaceLayout]:
        return self._entries.get(key)

    def put(self, key: str, layout: WorkspaceLayout) -> None:
        if key not in self._entries and len(self._entries) >= self.max_entries:
            self._evict_oldest_half()
        self._entries[key] = layout

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: object) -> bool:
        return key in self._entries

    def _evict_oldest_half(self) -> None:
        evict_count = max(1, len(self._entries) // 2)
        for key in list(self._entries)[:evict_count]:
            del self._entries[key]
        logger.debug(f"Layout cache evicted {evict_count} entries")


# =====================================================
# Resolver
# =====================================================

class PathResolver:
    """Resolves and validates workspace and problem paths."""

    def __init__(self, cache: Optional[LayoutCache] = None):
        """
        Initialize path resolver.

        Args:
            cache: Layout cache to use; a private 100-entry cache by default
        """
        self.cache = cache if cache is not None else LayoutCache()

    def resolve_workspace_layout(self, root: Any) -> WorkspaceLayout:
        """
        Resolve the workspace directory structure for ``root``.

        Args:
            root: Workspace root, relative or absolute

        Returns:
            WorkspaceLayout with absolute paths

        Raises:
            ValidationError: If root is invalid
        """
        raw = validate_root(root)
        abs_root = os.path.abspath(os.path.expanduser(raw))

        cached = self.cache.get(abs_root)
        if cached is not None:
            return cached

        layout = WorkspaceLayout(
            root=abs_root,
            problems=os.path.join(abs_root, PROBLEMS_DIR),
            completed=os.path.join(abs_root, COMPLETED_DIR),
            templates=os.path.join(abs_root, TEMPLATES_DIR),
            config=os.path.join(abs_root, CONFIG_DIR),
        )
        self.cache.put(abs_root, layout)
        return layout

    def resolve_problem_location(
        self,
        config: WorkspacePathConfig,
        slug: str,
        area: Area = Area.ACTIVE,
    ) -> ProblemLocation:
        """
        Resolve the directory and files of a problem.

        Args:
            config: Workspace root and language
            slug: Problem slug (may carry a collision suffix)
            area: Active or archived area

        Returns:
            ProblemLocation with absolute paths

        Raises:
            ValidationError: If the root, slug or language is invalid
        """
        language = validate_language(config.language)
        validate_slug(slug)
        area = Area(area)
        layout = self.resolve_workspace_layout(config.root)

        problem_dir = os.path.join(layout.area_dir(area), slug)
        return ProblemLocation(
            area=area,
            slug=slug,
            language=language,
            dir=problem_dir,
            solution_file=os.path.join(problem_dir, solution_file_name(language)),
            test_file=os.path.join(problem_dir, test_file_name(language)),
            readme_file=os.path.join(problem_dir, README_FILE),
            metadata_file=os.path.join(problem_dir, METADATA_FILE),
        )

    def location(
        self,
        root: Any,
        slug: str,
        language: Any,
        area: Area = Area.ACTIVE,
    ) -> ProblemLocation:
        """Shorthand for ``resolve_problem_location`` from loose arguments."""
        language = validate_language(language)
        config = WorkspacePathConfig(root=validate_root(root), language=language)
        return self.resolve_problem_location(config, slug, area)

    def is_within(self, root: Any, path: Any) -> bool:
        """
        Check whether ``path`` lies inside ``root``.

        Both sides are ``~``-expanded, made absolute and normalized; containment requires a
        separator boundary, so ``/ws-other`` is not inside ``/ws``.

        Raises:
            ValidationError: If root itself is invalid (never for ``path``)
        """
        abs_root = os.path.normpath(os.path.abspath(os.path.expanduser(validate_root(root))))

        raw_path = fspath_or_none(path)
        if raw_path is None or not raw_path or "\x00" in raw_path:
            return False
        try:
            abs_path = os.path.normpath(os.path.abspath(os.path.expanduser(raw_path)))
        except (OSError, ValueError):
            return False

        if abs_path == abs_root:
            return True
        prefix = abs_root if abs_root.endswith(os.sep) else abs_root + os.sep
        return abs_path.startswith(prefix)


@lru_cache()
def get_path_resolver() -> PathResolver:
    """Get the shared resolver, sized from settings."""
    settings = get_settings()
    return PathResolver(LayoutCache(settings.path_cache_size))
