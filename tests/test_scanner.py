# tests/test_scanner.py
import os
from pathlib import Path

import pytest

from flatscribe.core.scanner import ProjectScanner


@pytest.fixture
def tree(tmp_path):
    """
    src/main.py
    src/pkg/mod.py
    .git/HEAD        - pruned
    """
    (tmp_path / "src" / "pkg").mkdir(parents=True)
    (tmp_path / "src" / "main.py").write_text("print('main')")
    (tmp_path / "src" / "pkg" / "mod.py").write_text("x = 1")
    (tmp_path / ".git").mkdir()
    (tmp_path / ".git" / "HEAD").write_text("ref: refs/heads/main")
    return tmp_path


def test_scan_lists_regular_files_as_posix_paths(tree):
    assert sorted(ProjectScanner(tree).scan()) == ["src/main.py", "src/pkg/mod.py"]


def test_git_directory_is_pruned(tree):
    found = ProjectScanner(tree).scan()
    assert not [p for p in found if p.startswith(".git/")]


def test_symlinks_are_not_followed(tree, tmp_path_factory):
    outside = tmp_path_factory.mktemp("outside")
    (outside / "secret.txt").write_text("secret")
    (tree / "linked_dir").symlink_to(outside, target_is_directory=True)
    (tree / "linked_file.py").symlink_to(tree / "src" / "main.py")

    found = ProjectScanner(tree).scan()

    assert sorted(found) == ["src/main.py", "src/pkg/mod.py"]


def test_unreadable_directory_is_skipped(tree, monkeypatch):
    (tree / "locked").mkdir()
    (tree / "locked" / "hidden.py").write_text("hidden")
    real_scandir = os.scandir

    def guarded_scandir(path="."):
        if Path(path).name == "locked":
            raise PermissionError(13, "Permission denied", str(path))
        return real_scandir(path)

    monkeypatch.setattr(os, "scandir", guarded_scandir)
    scanner = ProjectScanner(tree)
    found = scanner.scan()

    assert sorted(found) == ["src/main.py", "src/pkg/mod.py"]
    assert len(scanner.skipped) == 1
    assert "locked" in str(scanner.skipped[0])


@pytest.mark.skipif(not hasattr(os, "geteuid") or os.geteuid() == 0,
                    reason="permission bits do not apply to root")
def test_chmod_000_directory_is_skipped(tree):
    locked = tree / "locked"
    locked.mkdir()
    (locked / "hidden.py").write_text("hidden")
    locked.chmod(0)
    try:
        scanner = ProjectScanner(tree)
        found = scanner.scan()
    finally:
        locked.chmod(0o755)

    assert "locked/hidden.py" not in found
    assert "src/main.py" in found
    assert len(scanner.skipped) == 1
