"""Test file discovery exports."""

from .file_resolver import (
    DEFAULT_TEST_DIRECTORY,
    DEFAULT_TEST_FILE,
    TEST_FILE_SUFFIX,
    flatten,
    path_exists,
    probe_default_paths,
    resolve_test_files,
)

__all__ = [
    "DEFAULT_TEST_DIRECTORY",
    "DEFAULT_TEST_FILE",
    "TEST_FILE_SUFFIX",
    "flatten",
    "path_exists",
    "probe_default_paths",
    "resolve_test_files",
]
