"""Local-run versus serve-for-browser dispatch."""

from __future__ import annotations

import logging
import re
import sys
from collections.abc import Callable, Mapping, Sequence
from pathlib import Path
from typing import Protocol

import click

from bmocha.configuration.run_configuration import (
    UNRESOLVED_PORT,
    ReporterKind,
    RunConfiguration,
)
from bmocha.server.dev_server import DevServer, ListenAddress

from .browser_launcher import open_browser
from .dispatch_outcomes import DispatchOutcome, Exit, KeepAlive
from .module_registry import Loader, ModuleRegistry, extend_module_search_path, require_modules

DEFAULT_LISTEN_PORT = 8080
EPHEMERAL_PORT = 0
LOOPBACK_HOST = "127.0.0.1"

logger = logging.getLogger(__name__)


class Engine(Protocol):  # pylint: disable=too-few-public-methods
    """Test execution engine driven by the dispatcher."""

    colors: bool | None
    bail: bool
    grep: re.Pattern[str] | None
    fgrep: str | None
    invert: bool
    slow: int
    timeout: int
    timeouts: bool
    retries: int
    console: bool
    is_windows_host: bool

    def configure_reporting(
        self, kind: ReporterKind, options: Mapping[str, str | bool]
    ) -> None: ...

    async def run(self, loaders: Sequence[Loader]) -> int: ...


class Server(Protocol):
    """Browser-facing server started in listen mode."""

    def on_error(self, callback: Callable[[BaseException], None]) -> None: ...

    async def listen(self, port: int, host: str) -> ListenAddress: ...


ServerFactory = Callable[[Engine, Sequence[Path], Sequence[str]], Server]
BrowserOpener = Callable[[str, str | None], None]


def resolve_listen_port(configuration: RunConfiguration) -> int:
    """Return the port to bind in listen mode."""
    if configuration.port == UNRESOLVED_PORT:
        return EPHEMERAL_PORT if configuration.open_browser else DEFAULT_LISTEN_PORT
    return configuration.port


def apply_run_configuration(engine: Engine, configuration: RunConfiguration) -> None:
    """Copy run settings onto the engine's mutable fields."""
    engine.colors = configuration.colors
    engine.bail = configuration.bail
    engine.grep = configuration.grep
    engine.fgrep = configuration.fgrep
    engine.invert = configuration.invert
    engine.slow = configuration.slow_ms
    engine.timeout = configuration.timeout_ms
    engine.timeouts = configuration.timeouts_enabled
    engine.retries = configuration.retries
    engine.console = configuration.console
    engine.is_windows_host = sys.platform == "win32"


async def dispatch(  # pylint: disable=too-many-arguments
    configuration: RunConfiguration,
    files: Sequence[Path],
    *,
    engine: Engine,
    server_factory: ServerFactory | None = None,
    browser_opener: BrowserOpener | None = None,
    registry: ModuleRegistry | None = None,
    cwd: Path | None = None,
) -> DispatchOutcome:
    """Run the discovered files locally or serve them for a browser."""
    apply_run_configuration(engine, configuration)

    if configuration.listen:
        return await _serve(
            configuration,
            files,
            engine=engine,
            server_factory=server_factory or DevServer,
            browser_opener=browser_opener or open_browser,
        )

    return await _run_locally(
        configuration,
        files,
        engine=engine,
        registry=registry or ModuleRegistry(),
        cwd=cwd or Path.cwd(),
    )


async def _serve(
    configuration: RunConfiguration,
    files: Sequence[Path],
    *,
    engine: Engine,
    server_factory: ServerFactory,
    browser_opener: BrowserOpener,
) -> DispatchOutcome:
    port = resolve_listen_port(configuration)
    server = server_factory(engine, files, configuration.required_modules)
    address = await server.listen(port, LOOPBACK_HOST)
    url = f"http://localhost:{address.port}/"

    server.on_error(_log_server_error)
    click.echo(f"Server listening at: {url}")
    logger.debug("bound %s:%d (requested %d)", address.host, address.port, port)

    if configuration.open_browser:
        browser_opener(url, configuration.browser_command)

    return KeepAlive()


async def _run_locally(
    configuration: RunConfiguration,
    files: Sequence[Path],
    *,
    engine: Engine,
    registry: ModuleRegistry,
    cwd: Path,
) -> DispatchOutcome:
    extend_module_search_path(cwd)
    require_modules(configuration.required_modules, registry)

    loaders = [registry.loader_for(path) for path in files]
    engine.configure_reporting(configuration.reporter, configuration.reporter_options)
    code = await engine.run(loaders)
    return Exit(code)


def _log_server_error(error: BaseException) -> None:
    logger.error("server error: %s", error, exc_info=error)
