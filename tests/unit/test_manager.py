import json

import pytest

from app.utils.errors import ValidationError, WorkspaceError
from domains.workspace.manager import (
    init_workspace,
    is_workspace_initialized,
    missing_directories,
    read_problem_metadata,
    validate_workspace,
)
from domains.workspace.paths import LayoutCache, PathResolver


@pytest.fixture
def resolver():
    return PathResolver(LayoutCache())


def test_init_creates_structure(tmp_path, resolver):
    root = tmp_path / "ws"

    layout = init_workspace(str(root), resolver)

    for name in ("problems", "completed", "templates", "config"):
        assert (root / name).is_dir()
    assert layout.root == str(root)
    assert is_workspace_initialized(str(root), resolver)


def test_init_is_idempotent(tmp_path, resolver):
    root = tmp_path / "ws"
    init_workspace(str(root), resolver)
    (root / "problems" / "two-sum").mkdir()

    init_workspace(str(root), resolver)

    assert (root / "problems" / "two-sum").is_dir()


def test_init_rejects_invalid_root(resolver):
    with pytest.raises(ValidationError):
        init_workspace("", resolver)


def test_init_wraps_filesystem_errors(tmp_path, resolver):
    blocker = tmp_path / "ws"
    blocker.write_text("not a directory")

    with pytest.raises(WorkspaceError) as exc_info:
        init_workspace(str(blocker), resolver)

    assert exc_info.value.context["operation"] == "init_workspace"


def test_missing_directories_reported(tmp_path, resolver):
    root = tmp_path / "ws"
    (root / "problems").mkdir(parents=True)
    layout = resolver.resolve_workspace_layout(str(root))

    assert missing_directories(layout) == ["completed", "templates", "config"]
    assert not is_workspace_initialized(str(root), resolver)

    with pytest.raises(WorkspaceError) as exc_info:
        validate_workspace(str(root), resolver)
    assert "completed, templates, config" in exc_info.value.message


def test_validate_rejects_file_in_place_of_directory(tmp_path, resolver):
    root = tmp_path / "ws"
    init_workspace(str(root), resolver)
    (root / "config").rmdir()
    (root / "config").write_text("oops")

    with pytest.raises(WorkspaceError) as exc_info:
        validate_workspace(str(root), resolver)
    assert "not a directory" in exc_info.value.message


def test_validate_returns_layout(tmp_path, resolver):
    root = tmp_path / "ws"
    init_workspace(str(root), resolver)

    assert validate_workspace(str(root), resolver).problems == str(root / "problems")


def test_read_problem_metadata(tmp_path, resolver):
    root = tmp_path / "ws"
    init_workspace(str(root), resolver)
    location = resolver.location(str(root), "two-sum", "python")

    assert read_problem_metadata(location) is None

    (root / "problems" / "two-sum").mkdir()
    (root / "problems" / "two-sum" / ".problem.json").write_text(
        json.dumps(
            {
                "problemId": "1",
                "slug": "two-sum",
                "language": "python",
                "generatedAt": "2024-01-15T09:30:00Z",
                "templateStyle": "default",
                "lastModified": "2024-01-15T10:00:00Z",
            }
        )
    )

    metadata = read_problem_metadata(location)
    assert metadata is not None
    assert metadata.problem_id == "1"
    assert metadata.template_style == "default"


@pytest.mark.parametrize("content", ["{not json", json.dumps({"slug": "two-sum"})])
def test_read_problem_metadata_tolerates_bad_files(tmp_path, resolver, content):
    root = tmp_path / "ws"
    problem_dir = root / "problems" / "two-sum"
    problem_dir.mkdir(parents=True)
    (problem_dir / ".problem.json").write_text(content)

    location = resolver.location(str(root), "two-sum", "python")

    assert read_problem_metadata(location) is None
