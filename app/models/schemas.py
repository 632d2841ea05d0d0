"""
Pydantic models for Algo Workspace.

Shared data models across the application.
"""

from datetime import datetime
from enum import Enum
from typing import List, Optional
from pydantic import BaseModel, ConfigDict, Field


# =====================================================
# Enumerations
# =====================================================

class SupportedLanguage(str, Enum):
    """Languages a problem can be solved in."""
    TYPESCRIPT = "typescript"
    JAVASCRIPT = "javascript"
    PYTHON = "python"
    JAVA = "java"
    CPP = "cpp"
    RUST = "rust"
    GO = "go"


class Area(str, Enum):
    """Workspace area a problem directory lives in."""
    ACTIVE = "active"  # <root>/problems
    ARCHIVED = "archived"  # <root>/completed


class CollisionPolicy(str, Enum):
    """What to do when an archive/restore destination already exists."""
    TIMESTAMP = "timestamp"
    OVERWRITE = "overwrite"
    ERROR = "error"


class WatchEventKind(str, Enum):
    """Kind of filesystem change."""
    CREATE = "create"
    MODIFY = "modify"
    REMOVE = "remove"
    UNCLASSIFIED = "unclassified"


class WatchEventCategory(str, Enum):
    """Semantic category of a workspace change."""
    PROBLEM_CHANGED = "problem-changed"
    TEMPLATE_CHANGED = "template-changed"
    OTHER = "other"


# =====================================================
# Workspace Models
# =====================================================

class WorkspaceLayout(BaseModel):
    """Absolute paths of the workspace root and its fixed subdirectories."""
    model_config = ConfigDict(frozen=True)

    root: str
    problems: str
    completed: str
    templates: str
    config: str

    def area_dir(self, area: Area) -> str:
        """Directory holding problems of the given area."""
        return self.problems if area == Area.ACTIVE else self.completed

    def directories(self) -> List[str]:
        """Root followed by the four subdirectories, in creation order."""
        return [self.root, self.problems, self.completed, self.templates, self.config]


class WorkspacePathConfig(BaseModel):
    """Root + language pair used to resolve problem paths."""
    root: str
    language: SupportedLanguage


class ProblemLocation(BaseModel):
    """A problem directory and its four canonical files."""
    model_config = ConfigDict(frozen=True)

    area: Area
    slug: str
    language: SupportedLanguage
    dir: str
    solution_file: str
    test_file: str
    readme_file: str
    metadata_file: str


class ProblemMetadata(BaseModel):
    """Contents of ``.problem.json``, written by the file generator."""
    model_config = ConfigDict(populate_by_name=True)

    problem_id: str = Field(alias="problemId")
    slug: str
    language: SupportedLanguage
    generated_at: datetime = Field(alias="generatedAt")
    template_style: str = Field(alias="templateStyle")
    last_modified: datetime = Field(alias="lastModified")


# =====================================================
# Archive Models
# =====================================================

class ArchiveResult(BaseModel):
    """Outcome of a single archive or restore call."""
    success: bool
    source: str
    destination: str
    collision_handled: bool = False
    error: Optional[str] = None


class ArchiveRequest(BaseModel):
    """Body of archive/restore requests."""
    language: Optional[SupportedLanguage] = None
    on_collision: Optional[CollisionPolicy] = None


class ArchivedProblems(BaseModel):
    """Listing of the completed area."""
    slugs: List[str] = []
    total: int = 0


# =====================================================
# Watcher Models
# =====================================================

class WatchEvent(BaseModel):
    """Debounced, categorized filesystem change."""
    model_config = ConfigDict(frozen=True)

    kind: WatchEventKind
    path: str
    category: WatchEventCategory
    timestamp: datetime


class RecentEventsResponse(BaseModel):
    """Most recent watcher events, newest last."""
    events: List[WatchEvent] = []
    total: int = 0
    watcher_running: bool = False


# =====================================================
# Response Models
# =====================================================

class ProblemDetails(BaseModel):
    """Resolved paths for a problem, plus its metadata when present."""
    location: ProblemLocation
    exists: bool
    metadata: Optional[ProblemMetadata] = None
