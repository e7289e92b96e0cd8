"""Reporters rendering run progress and results."""

from __future__ import annotations

import json
from collections.abc import Mapping, Sequence
from typing import Any, Protocol, TextIO

import click

from bmocha.configuration.run_configuration import ReporterKind

from .run_results import CaseResult, CaseState, RunStats

_TRUTHY_OPTION_VALUES = frozenset({"true", "1", "yes", "on"})


class Reporter(Protocol):
    """Receives engine events in run order."""

    def start(self, total: int) -> None: ...

    def suite_start(self, title: str) -> None: ...

    def case_end(self, result: CaseResult) -> None: ...

    def end(self, stats: RunStats, results: Sequence[CaseResult]) -> None: ...


def create_reporter(
    kind: ReporterKind,
    options: Mapping[str, str | bool] | None = None,
    *,
    stream: TextIO | None = None,
    colors: bool | None = None,
    windows: bool = False,
) -> Reporter:
    """Build the reporter for `kind`."""
    resolved_options = dict(options or {})
    if kind is ReporterKind.SPEC:
        return SpecReporter(stream=stream, colors=colors, windows=windows)
    if kind is ReporterKind.JSON:
        return JSONReporter(stream=stream, options=resolved_options)
    if kind is ReporterKind.JSON_STREAM:
        return JSONStreamReporter(stream=stream)
    raise ValueError(f"unknown reporter {kind}")


class SpecReporter:
    """Hierarchical human-readable output."""

    def __init__(
        self, *, stream: TextIO | None = None, colors: bool | None = None, windows: bool = False
    ) -> None:
        self._stream = stream
        self._colors = colors
        self._ok_symbol = "√" if windows else "✓"
        self._error_symbol = "×" if windows else "✖"
        self._failures: list[CaseResult] = []

    def start(self, total: int) -> None:
        del total

    def suite_start(self, title: str) -> None:
        self._echo("")
        self._echo(f"  {title}")

    def case_end(self, result: CaseResult) -> None:
        if result.state is CaseState.PASSED:
            line = f"    {self._style(self._ok_symbol, fg='green')} {result.title}"
            if result.slow:
                line += self._style(f" ({result.duration_ms}ms)", fg="red")
            self._echo(line)
            return
        self._failures.append(result)
        self._echo(self._style(f"    {len(self._failures)}) {result.title}", fg="red"))

    def end(self, stats: RunStats, results: Sequence[CaseResult]) -> None:
        del results
        self._echo("")
        passing = f"  {stats.passes} passing"
        self._echo(self._style(passing, fg="green") + f" ({stats.duration_ms}ms)")
        if stats.failures:
            self._echo(self._style(f"  {self._error_symbol} {stats.failures} failing", fg="red"))
        self._echo("")
        for number, failure in enumerate(self._failures, start=1):
            self._echo(f"  {number}) {failure.full_title}:")
            self._echo(self._style(f"     {failure.error_message}", fg="red"))
            for line in (failure.error_stack or "").splitlines():
                self._echo(f"     {line}")
            self._echo("")

    def _style(self, text: str, **styles: Any) -> str:
        if not self._use_colors():
            return text
        return click.style(text, **styles)

    def _use_colors(self) -> bool:
        if self._colors is not None:
            return self._colors
        stream = self._stream or click.get_text_stream("stdout")
        return stream.isatty()

    def _echo(self, line: str) -> None:
        click.echo(line, file=self._stream, color=self._use_colors())


class JSONReporter:
    """Single JSON document written at the end of the run."""

    def __init__(
        self, *, stream: TextIO | None = None, options: Mapping[str, str | bool] | None = None
    ) -> None:
        self._stream = stream
        self._pretty = _enabled((options or {}).get("pretty", False))

    def start(self, total: int) -> None:
        del total

    def suite_start(self, title: str) -> None:
        del title

    def case_end(self, result: CaseResult) -> None:
        del result

    def end(self, stats: RunStats, results: Sequence[CaseResult]) -> None:
        document = {
            "stats": stats.as_dict(),
            "tests": [_clean(result) for result in results],
            "pending": [],
            "failures": [_clean(result) for result in results if result.state is CaseState.FAILED],
            "passes": [_clean(result) for result in results if result.state is CaseState.PASSED],
        }
        click.echo(json.dumps(document, indent=2 if self._pretty else None), file=self._stream)


class JSONStreamReporter:
    """One JSON event per line."""

    def __init__(self, *, stream: TextIO | None = None) -> None:
        self._stream = stream

    def start(self, total: int) -> None:
        self._write(["start", {"total": total}])

    def suite_start(self, title: str) -> None:
        del title

    def case_end(self, result: CaseResult) -> None:
        event = "pass" if result.state is CaseState.PASSED else "fail"
        self._write([event, _clean(result)])

    def end(self, stats: RunStats, results: Sequence[CaseResult]) -> None:
        del results
        self._write(["end", stats.as_dict()])

    def _write(self, event: list[object]) -> None:
        click.echo(json.dumps(event), file=self._stream)


def _enabled(value: str | bool) -> bool:
    if isinstance(value, bool):
        return value
    return value.strip().lower() in _TRUTHY_OPTION_VALUES


def _clean(result: CaseResult) -> dict[str, object]:
    error: dict[str, object] = {}
    if result.state is CaseState.FAILED:
        error = {"message": result.error_message, "stack": result.error_stack}
    return {
        "title": result.title,
        "fullTitle": result.full_title,
        "file": result.file,
        "duration": result.duration_ms,
        "currentRetry": result.current_retry,
        "err": error,
    }
