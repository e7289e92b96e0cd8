"""Sequential command-line scanner producing a run configuration."""

from __future__ import annotations

import math
import re
from collections.abc import Sequence
from enum import Enum
from pathlib import Path
from typing import Any

from bmocha import __version__
from bmocha.discovery.file_resolver import path_exists
from bmocha.errors import UsageError

from .run_configuration import ReporterKind, RunConfiguration

MAX_PORT = 65535
_UINT32_MODULUS = 2**32
_RADIX_LITERAL = re.compile(r"^0([xob])([0-9a-f]+)$", re.IGNORECASE)
_DECIMAL_LITERAL = re.compile(r"^[+-]?(\d+\.?\d*|\.\d+)(e[+-]?\d+)?$", re.IGNORECASE)
_INFINITY_LITERAL = re.compile(r"^[+-]?Infinity$")
_RADIX_BASES = {"x": 16, "o": 8, "b": 2}

REPORTER_DESCRIPTIONS = {
    ReporterKind.SPEC: "hierarchical spec list",
    ReporterKind.JSON: "single JSON document written when the run ends",
    ReporterKind.JSON_STREAM: "newline delimited JSON events",
}

HELP_TEXT = """\
Usage: bmocha [options] [files]

Options:
  -V, --version             output the version number
  -c, --colors              force enabling of colors
  -C, --no-colors           force disabling of colors
  -O, --reporter-options    reporter-specific options (key=value,key2)
  -R, --reporter <name>     specify the reporter to use (default: spec)
  -S, --sort                sort test files
  -b, --bail                bail after first test failure
  -g, --grep <pattern>      only run tests matching <pattern>
  -f, --fgrep <string>      only run tests containing <string>
  -i, --invert              inverts --grep and --fgrep matches
  -r, --require <name>      require the given module before running
  -s, --slow <ms>           "slow" test threshold in milliseconds (default: 75)
  -t, --timeout <ms>        set test-case timeout in milliseconds (default: 2000)
  --no-timeouts             disables timeouts
  --exit                    force shutdown of the event loop after the run
  --recursive               include sub directories
  --reporters               display available reporters
  --retries <times>         set numbers of time to retry a failed test case
  --file <file>             include a file to be ran during the suite
  --exclude <file>          a file to ignore
  -l, --listen              serve tests for a browser
  -p, --port <port>         port to listen on (implies --listen)
  -o, --open                open the browser after listening (implies --listen)
  -m, --cmd <cmd>           command used to open the browser (implies --open)
  -z, --console             use the browser console for output
  -h, --help                output usage information
"""


class InformationRequest(str, Enum):
    """Terminal flags that print information instead of running tests."""

    VERSION = "version"
    HELP = "help"
    REPORTERS = "reporters"


_INFORMATION_FLAGS = {
    "-V": InformationRequest.VERSION,
    "--version": InformationRequest.VERSION,
    "-h": InformationRequest.HELP,
    "--help": InformationRequest.HELP,
    "--reporters": InformationRequest.REPORTERS,
}

_SWITCHES = {
    "-c": (("colors", True),),
    "--colors": (("colors", True),),
    "-C": (("colors", False),),
    "--no-colors": (("colors", False),),
    "-S": (("sort_files", True),),
    "--sort": (("sort_files", True),),
    "-b": (("bail", True),),
    "--bail": (("bail", True),),
    "-i": (("invert", True),),
    "--invert": (("invert", True),),
    "--no-timeouts": (("timeouts_enabled", False),),
    "--exit": (("exit_after_run", True),),
    "--recursive": (("recurse", True),),
    "-l": (("listen", True),),
    "--listen": (("listen", True),),
    "-z": (("console", True),),
    "--console": (("console", True),),
    "-o": (("open_browser", True), ("listen", True)),
    "--open": (("open_browser", True), ("listen", True)),
}

_VALUE_FLAGS = {
    "-O": "reporter_options",
    "--reporter-options": "reporter_options",
    "-R": "reporter",
    "--reporter": "reporter",
    "-g": "grep",
    "--grep": "grep",
    "-f": "fgrep",
    "--fgrep": "fgrep",
    "-r": "require",
    "--require": "require",
    "-s": "slow",
    "--slow": "slow",
    "-t": "timeout",
    "--timeout": "timeout",
    "--retries": "retries",
    "--file": "file",
    "--exclude": "exclude",
    "-p": "port",
    "--port": "port",
    "-m": "cmd",
    "--cmd": "cmd",
}


def build_configuration(
    argv: Sequence[str], *, cwd: Path | None = None
) -> RunConfiguration | InformationRequest:
    """Scan `argv` left to right and build the run configuration.

    Args:
      argv: Raw arguments without the program name.
      cwd: Directory used to resolve `--require` paths.

    Returns:
      The populated configuration, or the information request for the first
      terminal flag encountered.

    Raises:
      UsageError: If a flag is unknown, lacks its value, or has an invalid value.
    """
    base = cwd or Path.cwd()
    settings: dict[str, Any] = {
        "reporter_options": {},
        "required_modules": [],
        "file_arguments": [],
        "extra_files": [],
        "excluded_basenames": set(),
    }

    index = 0
    while index < len(argv):
        token = argv[index]

        if token in _INFORMATION_FLAGS:
            return _INFORMATION_FLAGS[token]

        if token in _SWITCHES:
            settings.update(_SWITCHES[token])
            index += 1
            continue

        if token in _VALUE_FLAGS:
            kind = _VALUE_FLAGS[token]
            value = argv[index + 1] if index + 1 < len(argv) else ""
            if not value:
                raise UsageError(f"Invalid option for: {token}.")
            _apply_value(settings, kind, value, base)
            index += 2
            continue

        if token.startswith("-"):
            raise UsageError(f"Invalid argument: {token}.")

        settings["file_arguments"].append(token)
        index += 1

    return RunConfiguration(
        **{
            **settings,
            "reporter_options": dict(settings["reporter_options"]),
            "required_modules": tuple(settings["required_modules"]),
            "file_arguments": tuple(settings["file_arguments"]),
            "extra_files": tuple(settings["extra_files"]),
            "excluded_basenames": frozenset(settings["excluded_basenames"]),
        }
    )


def _apply_value(  # pylint: disable=too-many-branches
    settings: dict[str, Any], kind: str, value: str, base: Path
) -> None:
    if kind == "reporter_options":
        settings["reporter_options"].update(_parse_reporter_options(value))
    elif kind == "reporter":
        try:
            settings["reporter"] = ReporterKind(value)
        except ValueError as exc:
            raise UsageError(f"Invalid reporter: '{value}'.") from exc
    elif kind == "grep":
        try:
            settings["grep"] = re.compile(value)
        except re.error as exc:
            raise UsageError(f"Invalid grep pattern: '{value}'.") from exc
    elif kind == "fgrep":
        settings["fgrep"] = value
    elif kind == "require":
        settings["required_modules"].append(_resolve_required_module(value, base))
    elif kind == "slow":
        settings["slow_ms"] = coerce_uint32(value)
    elif kind == "timeout":
        settings["timeout_ms"] = coerce_uint32(value)
    elif kind == "retries":
        settings["retries"] = coerce_uint32(value)
    elif kind == "file":
        settings["extra_files"].append(value)
    elif kind == "exclude":
        settings["excluded_basenames"].add(value)
    elif kind == "port":
        port = coerce_uint32(value)
        if port > MAX_PORT:
            raise UsageError(f"Invalid port: {port}.")
        settings["port"] = port
        settings["listen"] = True
    elif kind == "cmd":
        settings["browser_command"] = value
        settings["open_browser"] = True
        settings["listen"] = True
    else:  # pragma: no cover - table and dispatch are kept in sync
        raise ValueError(f"unhandled option kind {kind}")


def _parse_reporter_options(value: str) -> dict[str, str | bool]:
    options: dict[str, str | bool] = {}
    for token in value.split(","):
        if not token:
            continue
        parts = token.split("=")
        if len(parts) > 2 or not parts:
            raise UsageError(f"Invalid reporter option: '{token}'.")
        if len(parts) == 2:
            options[parts[0]] = parts[1]
        else:
            options[parts[0]] = True
    return options


def _resolve_required_module(name: str, base: Path) -> str:
    for candidate in (base / name, base / f"{name}.py"):
        if path_exists(candidate):
            return str(candidate.resolve())
    return name


def coerce_uint32(text: str) -> int:
    """Coerce numeric text to an unsigned 32-bit integer.

    Non-numeric text coerces to 0 and out-of-range values wrap, so `-1`
    becomes 4294967295.
    """
    stripped = text.strip()
    if not stripped:
        return 0
    radix = _RADIX_LITERAL.match(stripped)
    if radix:
        try:
            return int(radix.group(2), _RADIX_BASES[radix.group(1).lower()]) % _UINT32_MODULUS
        except ValueError:
            return 0
    if _INFINITY_LITERAL.match(stripped) or not _DECIMAL_LITERAL.match(stripped):
        return 0
    number = float(stripped)
    if not math.isfinite(number):
        return 0
    return math.trunc(number) % _UINT32_MODULUS


def render_information(request: InformationRequest) -> str:
    """Render the output for a terminal information flag."""
    if request is InformationRequest.VERSION:
        return __version__
    if request is InformationRequest.HELP:
        return HELP_TEXT.rstrip("\n")
    lines = [""]
    for kind, description in REPORTER_DESCRIPTIONS.items():
        lines.append(f"    {kind.value:<12} - {description}")
    lines.append("")
    return "\n".join(lines)
