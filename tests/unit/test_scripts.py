import pytest

from app.utils.config import get_settings
from domains.workspace.paths import get_path_resolver


@pytest.fixture
def workspace_root(tmp_path, monkeypatch):
    root = tmp_path / "ws"
    monkeypatch.setenv("WORKSPACE_ROOT", str(root))
    get_settings.cache_clear()
    get_path_resolver.cache_clear()
    yield root
    get_settings.cache_clear()
    get_path_resolver.cache_clear()


def test_init_workspace_script(workspace_root):
    from scripts.init_workspace import main

    assert main([]) == 0
    assert (workspace_root / "templates").is_dir()


def test_init_workspace_script_rejects_bad_root(workspace_root):
    from scripts.init_workspace import main

    assert main(["../outside"]) == 1


def test_archive_script_round_trip(workspace_root, capsys):
    from scripts.archive_problem import main
    from scripts.init_workspace import main as init_main

    init_main([])
    (workspace_root / "problems" / "two-sum").mkdir()

    assert main(["archive", "two-sum", "--language", "python"]) == 0
    capsys.readouterr()
    assert main(["list"]) == 0
    assert "two-sum" in capsys.readouterr().out.splitlines()

    assert main(["restore", "two-sum"]) == 0
    assert (workspace_root / "problems" / "two-sum").is_dir()


def test_archive_script_reports_missing_problem(workspace_root):
    from scripts.archive_problem import main

    assert main(["archive", "missing-problem"]) == 1
