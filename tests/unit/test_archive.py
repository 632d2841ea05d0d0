import errno
import os
from itertools import count

import pytest

from app.models.schemas import CollisionPolicy
from app.utils.errors import (
    CollisionError,
    ExhaustedError,
    NotFoundError,
    ValidationError,
    WorkspaceError,
)
from domains.workspace import archive as archive_module
from domains.workspace.archive import ArchiveEngine, move_directory
from domains.workspace.manager import init_workspace
from domains.workspace.paths import LayoutCache, PathResolver


def make_problem(root, slug, files=None, area="problems"):
    problem_dir = root / area / slug
    problem_dir.mkdir(parents=True)
    for name, content in (files or {"solution.py": "def solve():\n    return 42\n"}).items():
        (problem_dir / name).write_bytes(content.encode() if isinstance(content, str) else content)
    return problem_dir


def snapshot_tree(path):
    """Relative file path -> bytes for every file under ``path``."""
    result = {}
    for dirpath, _, filenames in os.walk(path):
        for name in filenames:
            full = os.path.join(dirpath, name)
            with open(full, "rb") as f:
                result[os.path.relpath(full, path)] = f.read()
    return result


def sequential_suffixes():
    counter = count(1)
    return lambda: f"20240101-12000{next(counter)}"


@pytest.fixture
def workspace(tmp_path):
    root = tmp_path / "ws"
    init_workspace(str(root), PathResolver(LayoutCache()))
    return root


@pytest.fixture
def engine():
    return ArchiveEngine(
        PathResolver(LayoutCache()),
        suffix_factory=sequential_suffixes(),
        sleep=lambda _: None,
    )


def test_archive_then_restore_preserves_contents(workspace, engine):
    files = {
        "solution.py": "def two_sum(nums, target):\n    pass\n",
        "test_solution.py": "def test_it():\n    assert True\n",
        "README.md": "# Two Sum\n",
        ".problem.json": '{"slug": "two-sum"}',
        "data.bin": b"\x00\x01\x02\xff",
    }
    original = make_problem(workspace, "two-sum", files)
    before = snapshot_tree(original)

    archived = engine.archive(str(workspace), "two-sum", "python")

    assert archived.success
    assert archived.destination == str(workspace / "completed" / "two-sum")
    assert not archived.collision_handled
    assert not original.exists()

    restored = engine.restore(str(workspace), "two-sum", "python")

    assert restored.destination == str(original)
    assert snapshot_tree(original) == before
    assert not (workspace / "completed" / "two-sum").exists()


def test_archive_missing_problem_changes_nothing(workspace, engine):
    before = sorted(p.relative_to(workspace) for p in workspace.rglob("*"))

    with pytest.raises(NotFoundError) as exc_info:
        engine.archive(str(workspace), "missing-problem", "python")

    assert exc_info.value.message == "Problem not found: missing-problem"
    assert exc_info.value.context["operation"] == "archive"
    assert sorted(p.relative_to(workspace) for p in workspace.rglob("*")) == before


def test_restore_missing_problem(workspace, engine):
    with pytest.raises(NotFoundError) as exc_info:
        engine.restore(str(workspace), "missing-problem", "python")

    assert exc_info.value.message == "Archived problem not found: missing-problem"


def test_invalid_slug_rejected_before_io(workspace, engine):
    with pytest.raises(ValidationError):
        engine.archive(str(workspace), "../escape", "python")


def test_repeated_archives_get_timestamp_suffixes(workspace, engine):
    for _ in range(3):
        make_problem(workspace, "two-sum")
        engine.archive(str(workspace), "two-sum", "python")

    assert engine.list_archived(str(workspace)) == [
        "two-sum",
        "two-sum-20240101-120001",
        "two-sum-20240101-120002",
    ]


def test_collision_result_reports_suffix(workspace, engine):
    make_problem(workspace, "two-sum", area="completed")
    make_problem(workspace, "two-sum")

    result = engine.archive(str(workspace), "two-sum", "python")

    assert result.collision_handled
    assert result.destination == str(workspace / "completed" / "two-sum-20240101-120001")


def test_restore_strips_collision_suffix(workspace, engine):
    make_problem(workspace, "two-sum-20240101-120000", area="completed")

    result = engine.restore(str(workspace), "two-sum-20240101-120000", "python")

    assert result.destination == str(workspace / "problems" / "two-sum")
    assert (workspace / "problems" / "two-sum" / "solution.py").exists()


def test_error_policy_raises_without_side_effects(workspace, engine):
    make_problem(workspace, "two-sum", {"solution.py": "archived"}, area="completed")
    make_problem(workspace, "two-sum", {"solution.py": "active"})

    with pytest.raises(CollisionError):
        engine.archive(str(workspace), "two-sum", "python", on_collision=CollisionPolicy.ERROR)

    assert (workspace / "problems" / "two-sum" / "solution.py").read_text() == "active"
    assert (workspace / "completed" / "two-sum" / "solution.py").read_text() == "archived"


def test_overwrite_policy_replaces_destination(workspace, engine):
    make_problem(workspace, "two-sum", {"old.py": "archived"}, area="completed")
    make_problem(workspace, "two-sum", {"solution.py": "active"})

    result = engine.archive(str(workspace), "two-sum", "python", on_collision="overwrite")

    assert result.destination == str(workspace / "completed" / "two-sum")
    assert not result.collision_handled
    assert not (workspace / "completed" / "two-sum" / "old.py").exists()
    assert (workspace / "completed" / "two-sum" / "solution.py").read_text() == "active"


def test_default_policy_comes_from_engine(workspace):
    engine = ArchiveEngine(PathResolver(LayoutCache()), default_policy=CollisionPolicy.ERROR)
    make_problem(workspace, "two-sum", area="completed")
    make_problem(workspace, "two-sum")

    with pytest.raises(CollisionError):
        engine.archive(str(workspace), "two-sum", "python")


def test_exhausted_when_suffix_never_changes(workspace):
    sleeps = []
    engine = ArchiveEngine(
        PathResolver(LayoutCache()),
        suffix_factory=lambda: "20240101-120000",
        max_attempts=5,
        sleep=sleeps.append,
        retry_delay=0.001,
    )
    make_problem(workspace, "two-sum", area="completed")
    make_problem(workspace, "two-sum-20240101-120000", area="completed")
    make_problem(workspace, "two-sum")

    with pytest.raises(ExhaustedError):
        engine.archive(str(workspace), "two-sum", "python")

    assert sleeps == [0.001] * 5
    assert (workspace / "problems" / "two-sum").exists()


def test_list_archived_handles_missing_area(tmp_path, engine):
    assert engine.list_archived(str(tmp_path / "nowhere")) == []


def test_list_archived_ignores_files(workspace, engine):
    make_problem(workspace, "b-problem", area="completed")
    make_problem(workspace, "a-problem", area="completed")
    (workspace / "completed" / "notes.txt").write_text("x")

    assert engine.list_archived(str(workspace)) == ["a-problem", "b-problem"]


def test_is_archived_is_lenient(workspace, engine):
    make_problem(workspace, "two-sum", area="completed")

    assert engine.is_archived(str(workspace), "two-sum", "python")
    assert not engine.is_archived(str(workspace), "three-sum", "python")
    assert not engine.is_archived(str(workspace), "../etc", "python")
    assert not engine.is_archived("", "two-sum", "python")
    assert not engine.is_archived(str(workspace), "two-sum", "cobol")


def test_move_directory_cross_device_fallback(tmp_path, monkeypatch):
    source = tmp_path / "src"
    source.mkdir()
    (source / "solution.py").write_text("print('hi')")
    destination = tmp_path / "dst"

    def fake_rename(src, dst):
        raise OSError(errno.EXDEV, "Invalid cross-device link")

    monkeypatch.setattr(archive_module.os, "rename", fake_rename)
    move_directory(str(source), str(destination))

    assert not source.exists()
    assert (destination / "solution.py").read_text() == "print('hi')"


def test_move_directory_cross_device_keeps_destination_created_by_another_caller(tmp_path, monkeypatch):
    source = tmp_path / "src"
    source.mkdir()
    (source / "solution.py").write_text("mine")
    destination = tmp_path / "dst"

    def racing_rename(src, dst):
        # another archive call lands on the destination first
        os.mkdir(dst)
        with open(os.path.join(dst, "solution.py"), "w") as f:
            f.write("racer's data")
        raise OSError(errno.EXDEV, "Invalid cross-device link")

    monkeypatch.setattr(archive_module.os, "rename", racing_rename)

    with pytest.raises(WorkspaceError):
        move_directory(str(source), str(destination))

    assert (destination / "solution.py").read_text() == "racer's data"
    assert (source / "solution.py").read_text() == "mine"


def test_move_directory_cross_device_refuses_existing_destination(tmp_path, monkeypatch):
    source = tmp_path / "src"
    source.mkdir()
    (source / "solution.py").write_text("mine")
    destination = tmp_path / "dst"
    destination.mkdir()
    (destination / "solution.py").write_text("racer's data")

    def fake_rename(src, dst):
        raise OSError(errno.EXDEV, "Invalid cross-device link")

    monkeypatch.setattr(archive_module.os, "rename", fake_rename)

    with pytest.raises(WorkspaceError):
        move_directory(str(source), str(destination))

    assert (destination / "solution.py").read_text() == "racer's data"
    assert (source / "solution.py").read_text() == "mine"


def test_move_directory_cross_device_cleans_up_own_partial_copy(tmp_path, monkeypatch):
    source = tmp_path / "src"
    source.mkdir()
    (source / "solution.py").write_text("mine")
    destination = tmp_path / "dst"

    def fake_rename(src, dst):
        raise OSError(errno.EXDEV, "Invalid cross-device link")

    def failing_copytree(src, dst, **kwargs):
        with open(os.path.join(dst, "partial.py"), "w") as f:
            f.write("half")
        raise OSError(errno.ENOSPC, "No space left on device")

    monkeypatch.setattr(archive_module.os, "rename", fake_rename)
    monkeypatch.setattr(archive_module.shutil, "copytree", failing_copytree)

    with pytest.raises(WorkspaceError):
        move_directory(str(source), str(destination))

    assert not destination.exists()
    assert (source / "solution.py").read_text() == "mine"


def test_move_directory_does_not_replace_empty_destination(tmp_path):
    source = tmp_path / "src"
    source.mkdir()
    (source / "solution.py").write_text("mine")
    destination = tmp_path / "dst"
    destination.mkdir()

    with pytest.raises(WorkspaceError):
        move_directory(str(source), str(destination))

    assert list(destination.iterdir()) == []
    assert (source / "solution.py").read_text() == "mine"


def test_move_failure_reports_archive_context(workspace, engine, monkeypatch):
    make_problem(workspace, "two-sum")

    def failing_move(source, destination):
        raise WorkspaceError("Failed to move directory: disk on fire")

    monkeypatch.setattr(archive_module, "move_directory", failing_move)

    with pytest.raises(WorkspaceError) as exc_info:
        engine.archive(str(workspace), "two-sum", "python")

    context = exc_info.value.context
    assert context["operation"] == "archive"
    assert context["slug"] == "two-sum"
    assert context["destination_path"] == str(workspace / "completed" / "two-sum")
    assert "disk on fire" in exc_info.value.message
    assert isinstance(exc_info.value.__cause__, WorkspaceError)


def test_move_directory_wraps_other_errors(tmp_path):
    with pytest.raises(WorkspaceError) as exc_info:
        move_directory(str(tmp_path / "missing"), str(tmp_path / "dst"))

    assert exc_info.value.context["operation"] == "move_directory"


if __name__ == "__main__":  # pragma: no cover
    pytest.main([__file__])
