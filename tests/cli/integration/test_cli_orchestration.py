"""CLI orchestration integration tests."""

from __future__ import annotations

import json
import sys
from pathlib import Path

import pytest
from bmocha.cli import main


@pytest.fixture(autouse=True)
def _project(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    monkeypatch.chdir(tmp_path)
    monkeypatch.setattr(sys, "path", list(sys.path))
    return tmp_path


def _write(path: Path, text: str) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")
    return path


def test_default_test_directory_runs_and_exit_code_counts_failures(tmp_path: Path, capsys) -> None:
    _write(tmp_path / "test" / "test_math.py", "def test_ok():\n    pass\n")
    _write(tmp_path / "test" / "test_text.py", "def test_bad():\n    assert 'a' == 'b'\n")

    exit_code = main(["--reporter", "json"])
    document = json.loads(capsys.readouterr().out)

    assert exit_code == 1
    assert [test["fullTitle"] for test in document["tests"]] == [
        "test_math test_ok",
        "test_text test_bad",
    ]


def test_required_module_from_src_is_importable_by_tests(
    tmp_path: Path, capsys, monkeypatch: pytest.MonkeyPatch
) -> None:
    monkeypatch.setenv("BMOCHA_FIXTURE_READY", "0")
    _write(tmp_path / "src" / "bmocha_fixture_helpers.py", "VALUE = 42\n")
    _write(
        tmp_path / "setup_env.py",
        "import os\n\nos.environ['BMOCHA_FIXTURE_READY'] = '1'\n",
    )
    _write(
        tmp_path / "test.py",
        "import os\n\nimport bmocha_fixture_helpers\n\n\n"
        "def test_helper_value():\n    assert bmocha_fixture_helpers.VALUE == 42\n\n\n"
        "def test_required_module_ran():\n    assert os.environ['BMOCHA_FIXTURE_READY'] == '1'\n",
    )

    try:
        exit_code = main(["-r", "setup_env", "-C"])
    finally:
        sys.modules.pop("bmocha_fixture_helpers", None)

    assert exit_code == 0
    assert "2 passing" in capsys.readouterr().out


def test_exclude_and_file_flags_shape_the_run(tmp_path: Path, capsys) -> None:
    _write(tmp_path / "suite" / "test_kept.py", "def test_kept():\n    pass\n")
    _write(tmp_path / "suite" / "test_skipped.py", "def test_skipped():\n    assert False\n")
    _write(tmp_path / "extra.py", "def test_extra():\n    pass\n")

    exit_code = main(
        ["-R", "json", "--exclude", "test_skipped.py", "--file", "extra.py", "suite"]
    )
    document = json.loads(capsys.readouterr().out)

    assert exit_code == 0
    assert [test["title"] for test in document["tests"]] == ["test_extra", "test_kept"]
