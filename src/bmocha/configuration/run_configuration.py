"""Run configuration entities."""

from __future__ import annotations

import re
from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum

DEFAULT_SLOW_MS = 75
DEFAULT_TIMEOUT_MS = 2000
UNRESOLVED_PORT = -1


class ReporterKind(str, Enum):
    """Output formats understood by the engine."""

    SPEC = "spec"
    JSON = "json"
    JSON_STREAM = "json-stream"


@dataclass(frozen=True)
class RunConfiguration:  # pylint: disable=too-many-instance-attributes
    """Immutable result of scanning the command line."""

    colors: bool | None = None
    bail: bool = False
    grep: re.Pattern[str] | None = None
    fgrep: str | None = None
    invert: bool = False
    slow_ms: int = DEFAULT_SLOW_MS
    timeout_ms: int = DEFAULT_TIMEOUT_MS
    timeouts_enabled: bool = True
    retries: int = 0
    reporter: ReporterKind = ReporterKind.SPEC
    reporter_options: Mapping[str, str | bool] = field(default_factory=dict)
    sort_files: bool = False
    recurse: bool = False
    exit_after_run: bool = False
    console: bool = False
    listen: bool = False
    port: int = UNRESOLVED_PORT
    open_browser: bool = False
    browser_command: str | None = None
    required_modules: tuple[str, ...] = ()
    file_arguments: tuple[str, ...] = ()
    extra_files: tuple[str, ...] = ()
    excluded_basenames: frozenset[str] = frozenset()
