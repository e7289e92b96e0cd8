"""Bounded traversal of test paths on disk."""

from __future__ import annotations

import logging
import math
import os
import stat
from collections.abc import Collection, Iterable, Sequence
from pathlib import Path

TEST_FILE_SUFFIX = ".py"
DEFAULT_TEST_DIRECTORY = "test"
DEFAULT_TEST_FILE = f"test{TEST_FILE_SUFFIX}"

logger = logging.getLogger(__name__)


def resolve_test_files(  # pylint: disable=too-many-arguments
    file_arguments: Sequence[str],
    extra_files: Sequence[str] = (),
    *,
    excludes: Collection[str] = frozenset(),
    recurse: bool = False,
    sort: bool = False,
    cwd: Path | None = None,
) -> tuple[Path, ...]:
    """Expand file arguments into the ordered set of test files to run.

    `--file` entries come first, followed by positional arguments. When both
    are empty the default test directory or file is probed instead.
    """
    base = cwd or Path.cwd()
    paths = [_absolute(base, entry) for entry in extra_files]
    paths.extend(_absolute(base, entry) for entry in file_arguments)

    if not paths:
        paths = [_absolute(base, entry) for entry in probe_default_paths(base)]

    files = [path for path in flatten(paths, recurse) if path.name not in excludes]

    if sort:
        files.sort(key=str)

    logger.debug("resolved %d test file(s)", len(files))
    return tuple(files)


def probe_default_paths(cwd: Path) -> list[str]:
    """Return the default test path when no files were given on the command line."""
    if _is_directory(cwd / DEFAULT_TEST_DIRECTORY):
        return [DEFAULT_TEST_DIRECTORY]
    if path_exists(cwd / DEFAULT_TEST_FILE):
        return [DEFAULT_TEST_FILE]
    return []


def flatten(paths: Iterable[Path], recurse: bool) -> list[Path]:
    """Expand directories into their test files.

    Without `recurse` only the direct children of a directory are considered.
    Anything that is not a `.py` file is skipped.
    """
    depth = math.inf if recurse else 1
    files: list[Path] = []
    for path in paths:
        _collect(Path(path), depth, files)
    return files


def _collect(path: Path, depth: float, files: list[Path]) -> None:
    mode = _stat_mode(path)
    if mode is None:
        return

    if stat.S_ISDIR(mode):
        if depth <= 0:
            return
        for name in sorted(os.listdir(path)):
            _collect(path / name, depth - 1, files)
        return

    if stat.S_ISREG(mode) and path.suffix == TEST_FILE_SUFFIX:
        files.append(path)


def path_exists(path: Path) -> bool:
    """Return whether `path` exists; stat failures other than not-found propagate."""
    return _stat_mode(path) is not None


def _is_directory(path: Path) -> bool:
    mode = _stat_mode(path)
    return mode is not None and stat.S_ISDIR(mode)


def _stat_mode(path: Path) -> int | None:
    try:
        return os.stat(path).st_mode
    except (FileNotFoundError, NotADirectoryError):
        return None


def _absolute(base: Path, entry: str) -> Path:
    return Path(os.path.normpath(base / entry))
