"""In-process engine running test functions from loaded modules."""

from __future__ import annotations

import asyncio
import inspect
import logging
import re
import sys
import time
import traceback
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass
from datetime import UTC, datetime
from pathlib import Path
from types import ModuleType
from typing import Any, TextIO

from bmocha.configuration.run_configuration import (
    DEFAULT_SLOW_MS,
    DEFAULT_TIMEOUT_MS,
    ReporterKind,
)

from .reporters import Reporter, create_reporter
from .run_results import CaseResult, CaseState, RunStats

TEST_NAME_PREFIX = "test"

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RunnableCase:
    """One test function collected from a module."""

    title: str
    full_title: str
    file: str
    function: Callable[[], Any]


@dataclass(frozen=True)
class FileSuite:
    """Test functions collected from one loaded file."""

    title: str
    file: str
    cases: tuple[RunnableCase, ...]


class LocalEngine:  # pylint: disable=too-many-instance-attributes
    """Flat test engine: every top-level `test*` function of a module is one test."""

    def __init__(self, *, stream: TextIO | None = None) -> None:
        self.colors: bool | None = None
        self.bail = False
        self.grep: re.Pattern[str] | None = None
        self.fgrep: str | None = None
        self.invert = False
        self.slow = DEFAULT_SLOW_MS
        self.timeout = DEFAULT_TIMEOUT_MS
        self.timeouts = True
        self.retries = 0
        self.console = False
        self.is_windows_host = sys.platform == "win32"
        self._stream = stream
        self._reporter: Reporter | None = None

    def configure_reporting(
        self, kind: ReporterKind, options: Mapping[str, str | bool]
    ) -> None:
        self._reporter = create_reporter(
            kind,
            options,
            stream=self._stream,
            colors=self.colors,
            windows=self.is_windows_host,
        )

    async def run(self, loaders: Sequence[Callable[[], ModuleType]]) -> int:
        """Load every file, run the selected tests and return the failure count."""
        reporter = self._reporter or create_reporter(
            ReporterKind.SPEC,
            {},
            stream=self._stream,
            colors=self.colors,
            windows=self.is_windows_host,
        )
        suites = [self._collect(loader()) for loader in loaders]
        total = sum(len(suite.cases) for suite in suites)

        started_at = datetime.now(UTC)
        started = time.perf_counter()
        results: list[CaseResult] = []
        reporter.start(total)

        for suite in suites:
            if not suite.cases:
                continue
            reporter.suite_start(suite.title)
            if await self._run_suite(suite, reporter, results):
                break

        failures = sum(1 for result in results if not result.passed)
        stats = RunStats(
            suites=sum(1 for suite in suites if suite.cases),
            tests=len(results),
            passes=len(results) - failures,
            failures=failures,
            start=started_at.isoformat(),
            end=datetime.now(UTC).isoformat(),
            duration_ms=_elapsed_ms(started),
        )
        reporter.end(stats, results)
        return failures

    async def _run_suite(
        self, suite: FileSuite, reporter: Reporter, results: list[CaseResult]
    ) -> bool:
        """Run one suite; return True when the run should bail."""
        for case in suite.cases:
            result = await self._run_case(case)
            results.append(result)
            reporter.case_end(result)
            if self.bail and not result.passed:
                return True
        return False

    def _collect(self, module: ModuleType) -> FileSuite:
        file = str(getattr(module, "__file__", "") or module.__name__)
        title = Path(file).stem if file.endswith(".py") else module.__name__
        cases = []
        for name, value in vars(module).items():
            if not name.startswith(TEST_NAME_PREFIX) or not callable(value):
                continue
            if getattr(value, "__module__", None) != module.__name__:
                continue
            full_title = f"{title} {name}"
            if self._selected(full_title):
                cases.append(RunnableCase(name, full_title, file, value))
        logger.debug("collected %d test(s) from %s", len(cases), file)
        return FileSuite(title=title, file=file, cases=tuple(cases))

    def _selected(self, full_title: str) -> bool:
        if self.grep is not None:
            matched = self.grep.search(full_title) is not None
        elif self.fgrep is not None:
            matched = self.fgrep in full_title
        else:
            return True
        return matched != self.invert

    async def _run_case(self, case: RunnableCase) -> CaseResult:
        attempt = 0
        while True:
            started = time.perf_counter()
            error = await self._invoke(case)
            duration_ms = _elapsed_ms(started)
            if error is None:
                return CaseResult(
                    title=case.title,
                    full_title=case.full_title,
                    file=case.file,
                    state=CaseState.PASSED,
                    duration_ms=duration_ms,
                    slow=duration_ms > self.slow,
                    current_retry=attempt,
                )
            if attempt >= self.retries:
                return CaseResult(
                    title=case.title,
                    full_title=case.full_title,
                    file=case.file,
                    state=CaseState.FAILED,
                    duration_ms=duration_ms,
                    current_retry=attempt,
                    error_message=f"{type(error).__name__}: {error}",
                    error_stack=_format_stack(error),
                )
            attempt += 1

    async def _invoke(self, case: RunnableCase) -> BaseException | None:
        try:
            outcome = case.function()
            if inspect.isawaitable(outcome):
                if self.timeouts and self.timeout > 0:
                    await asyncio.wait_for(outcome, self.timeout / 1000)
                else:
                    await outcome
        except asyncio.TimeoutError:
            return TimeoutError(f"Timeout of {self.timeout}ms exceeded.")
        except Exception as exc:  # pylint: disable=broad-exception-caught
            return exc
        return None


def _elapsed_ms(started: float) -> int:
    return int((time.perf_counter() - started) * 1000)


def _format_stack(error: BaseException) -> str:
    return "".join(traceback.format_exception(type(error), error, error.__traceback__)).rstrip()
