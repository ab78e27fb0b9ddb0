# tests/test_cli.py
import sys
import pytest
from unittest.mock import patch

from flatscribe.cli import main, parse_args


@pytest.fixture
def sample_project(tmp_path):
    src_dir = tmp_path / "src"
    src_dir.mkdir()
    (src_dir / "main.py").write_text("def hello():\n  print('hello')")
    (src_dir / "utils.py").write_text("# This is a utility")

    logs_dir = tmp_path / "logs"
    logs_dir.mkdir()
    (logs_dir / "app.log").write_text("ERROR: ...")

    (tmp_path / "README.md").write_text("# My Project")
    (tmp_path / ".gitignore").write_text("src/utils.py\n")
    return tmp_path


# --- Test 1: argument handling ---

def test_parse_args_defaults_to_generate(tmp_path):
    args = parse_args([str(tmp_path), "-o", "out.md"])
    assert args.command == "generate"
    assert args.root_dir == str(tmp_path)
    assert args.output == "out.md"


def test_parse_args_keeps_verbose_flag_in_front():
    args = parse_args(["-v"])
    assert args.command == "generate"
    assert args.verbose


def test_invalid_directory_exits(tmp_path, capsys):
    with patch.object(sys, 'argv', ["flatscribe", "generate", str(tmp_path / "missing")]):
        with pytest.raises(SystemExit) as exc:
            main()
    assert exc.value.code == 1
    assert "Invalid directory" in capsys.readouterr().err


# --- Test 2: the full end-to-end run ---

def test_end_to_end_run(sample_project, capsys):
    test_args = ["flatscribe", str(sample_project), "--output", "test_snapshot.md"]

    with patch.object(sys, 'argv', test_args):
        main()

    output_file = sample_project / "test_snapshot.md"
    assert output_file.exists()

    content = output_file.read_text(encoding="utf-8")

    # Check that the correct files are included
    assert "### `src/main.py`" in content
    assert "def hello():" in content
    assert "### `README.md`" in content
    assert "# My Project" in content

    # Check that the ignored files are NOT included
    assert "logs/app.log" not in content
    assert "### `src/utils.py`" not in content

    out = capsys.readouterr().out
    assert "Top 10 Largest Files" in out
    assert "Total files: 3" in out
    assert "Success!" in out
    assert "test_snapshot.md" in (sample_project / ".gitignore").read_text()


def test_snapshot_prints_selection(sample_project, capsys):
    main(["snapshot", "README.md", "--root", str(sample_project)])

    out = capsys.readouterr().out
    assert out.startswith("# Project Snapshot\n")
    assert "### `README.md`" in out
    assert "src/main.py" not in out
    assert not (sample_project / "PROJECT_STRUCTURE.md").exists()


def test_init_writes_config_once(tmp_path, capsys):
    main(["init", str(tmp_path)])
    config_file = tmp_path / ".flatscribe.yaml"
    assert config_file.exists()
    assert "output_file" in config_file.read_text(encoding="utf-8")
    assert ".flatscribe.yaml" in (tmp_path / ".gitignore").read_text(encoding="utf-8")

    main(["init", str(tmp_path)])
    assert "already exists" in capsys.readouterr().out


def test_init_config_is_picked_up_by_generate(tmp_path):
    (tmp_path / "a.py").write_text("a = 1\n")
    main(["init", str(tmp_path)])
    main(["generate", str(tmp_path)])
    content = (tmp_path / "PROJECT_STRUCTURE.md").read_text(encoding="utf-8")
    assert "### `a.py`" in content
