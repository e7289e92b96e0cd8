"""Top-level asynchronous sequence and exit-code funnel."""

from __future__ import annotations

import asyncio
import logging
import os
import sys
import traceback
from collections.abc import Callable, Sequence
from pathlib import Path
from typing import Any

import click

from bmocha.configuration import InformationRequest, build_configuration, render_information
from bmocha.discovery import resolve_test_files
from bmocha.engine import LocalEngine
from bmocha.errors import UsageError
from bmocha.launching import KeepAlive, dispatch, open_browser
from bmocha.launching.launch_dispatcher import BrowserOpener, Engine, ServerFactory
from bmocha.server import DevServer

FATAL_ERROR_LABEL = "An error occurred outside of the test suite:"
UNHANDLED_REJECTION_LABEL = "Unhandled rejection:"

Terminator = Callable[[int], None]

logger = logging.getLogger(__name__)


def terminate_process(code: int) -> None:
    """Exit right away without running pending loop work."""
    sys.stdout.flush()
    sys.stderr.flush()
    os._exit(code)  # pylint: disable=protected-access


class ProcessLifecycle:  # pylint: disable=too-few-public-methods
    """Parse, resolve, dispatch and turn the result into an exit code.

    `run` returns the exit code when the process should exit after the event
    loop drains. Immediate exits go through `terminate`.
    """

    def __init__(
        self,
        *,
        engine_factory: Callable[[], Engine] = LocalEngine,
        server_factory: ServerFactory = DevServer,
        browser_opener: BrowserOpener = open_browser,
        terminate: Terminator = terminate_process,
        cwd: Path | None = None,
    ) -> None:
        self._engine_factory = engine_factory
        self._server_factory = server_factory
        self._browser_opener = browser_opener
        self._terminate = terminate
        self._cwd = cwd

    async def run(self, argv: Sequence[str]) -> int:
        install_unhandled_rejection_handler(asyncio.get_running_loop(), self._terminate)
        cwd = self._cwd or Path.cwd()

        try:
            request = build_configuration(argv, cwd=cwd)
            if isinstance(request, InformationRequest):
                click.echo(render_information(request))
                return 0
            configuration = request
            files = resolve_test_files(
                configuration.file_arguments,
                configuration.extra_files,
                excludes=configuration.excluded_basenames,
                recurse=configuration.recurse,
                sort=configuration.sort_files,
                cwd=cwd,
            )
            outcome = await dispatch(
                configuration,
                files,
                engine=self._engine_factory(),
                server_factory=self._server_factory,
                browser_opener=self._browser_opener,
                cwd=cwd,
            )
        except UsageError as exc:
            click.echo(str(exc), err=True)
            return 1
        except Exception as exc:  # pylint: disable=broad-exception-caught
            _report(FATAL_ERROR_LABEL, exc)
            self._terminate(1)
            return 1

        if isinstance(outcome, KeepAlive):
            await _hold_open()
            return 0

        if configuration.exit_after_run:
            self._terminate(outcome.code)
            return outcome.code

        await _drain_pending_work()
        return outcome.code


def install_unhandled_rejection_handler(
    loop: asyncio.AbstractEventLoop, terminate: Terminator = terminate_process
) -> None:
    """Treat any exception reaching the event loop as fatal."""

    def _handle(_loop: asyncio.AbstractEventLoop, context: dict[str, Any]) -> None:
        error = context.get("exception")
        _report(UNHANDLED_REJECTION_LABEL, error, context.get("message"))
        terminate(1)

    loop.set_exception_handler(_handle)


def run_lifecycle(argv: Sequence[str], lifecycle: ProcessLifecycle | None = None) -> int:
    """Run the full sequence on a fresh event loop."""
    return asyncio.run((lifecycle or ProcessLifecycle()).run(argv))


async def _hold_open() -> None:
    await asyncio.Event().wait()


async def _drain_pending_work() -> None:
    """Return once no other task is pending and no timer callback is scheduled."""
    loop = asyncio.get_running_loop()
    current = asyncio.current_task()
    while True:
        pending = [task for task in asyncio.all_tasks() if task is not current and not task.done()]
        if pending:
            logger.debug("waiting for %d pending task(s)", len(pending))
            await asyncio.wait(pending)
            continue
        timers = _scheduled_timers(loop)
        if not timers:
            return
        logger.debug("waiting for %d scheduled timer(s)", len(timers))
        await asyncio.sleep(max(0.0, min(timer.when() for timer in timers) - loop.time()))


def _scheduled_timers(loop: asyncio.AbstractEventLoop) -> list[asyncio.TimerHandle]:
    # Base event loops keep their timer heap in `_scheduled`; other loops report none.
    scheduled = getattr(loop, "_scheduled", ())
    return [timer for timer in scheduled if not timer.cancelled()]


def _report(label: str, error: BaseException | None, message: str | None = None) -> None:
    click.echo(label, err=True)
    if error is None:
        click.echo(message or "unknown error", err=True)
        return
    click.echo(
        "".join(traceback.format_exception(type(error), error, error.__traceback__)).rstrip(),
        err=True,
    )
