"""Launch dispatcher tests."""

from __future__ import annotations

import asyncio
import logging
import re
import sys
from collections.abc import Callable, Mapping, Sequence
from pathlib import Path
from types import ModuleType

import pytest
from bmocha.configuration.run_configuration import ReporterKind, RunConfiguration
from bmocha.launching.dispatch_outcomes import Exit, KeepAlive
from bmocha.launching.launch_dispatcher import (
    DEFAULT_LISTEN_PORT,
    LOOPBACK_HOST,
    dispatch,
    resolve_listen_port,
)
from bmocha.launching.module_registry import ModuleRegistry
from bmocha.server.dev_server import ListenAddress

BOUND_PORT = 43210


class _FakeEngine:  # pylint: disable=too-many-instance-attributes
    def __init__(self, result: int = 0) -> None:
        self.colors: bool | None = None
        self.bail = False
        self.grep: re.Pattern[str] | None = None
        self.fgrep: str | None = None
        self.invert = False
        self.slow = 0
        self.timeout = 0
        self.timeouts = True
        self.retries = 0
        self.console = False
        self.is_windows_host = False
        self.result = result
        self.reporting: tuple[ReporterKind, Mapping[str, str | bool]] | None = None
        self.loaded: list[ModuleType] = []

    def configure_reporting(self, kind: ReporterKind, options: Mapping[str, str | bool]) -> None:
        self.reporting = (kind, options)

    async def run(self, loaders: Sequence[Callable[[], ModuleType]]) -> int:
        self.loaded = [loader() for loader in loaders]
        return self.result


class _FakeServer:
    instances: list[_FakeServer] = []

    def __init__(self, engine: object, files: Sequence[Path], requires: Sequence[str]) -> None:
        self.engine = engine
        self.files = list(files)
        self.requires = list(requires)
        self.listened: tuple[int, str] | None = None
        self.observers: list[Callable[[BaseException], None]] = []
        _FakeServer.instances.append(self)

    def on_error(self, callback: Callable[[BaseException], None]) -> None:
        self.observers.append(callback)

    async def listen(self, port: int, host: str) -> ListenAddress:
        self.listened = (port, host)
        return ListenAddress(host=host, port=port or BOUND_PORT)


@pytest.fixture(autouse=True)
def _isolate(monkeypatch: pytest.MonkeyPatch) -> None:
    _FakeServer.instances = []
    monkeypatch.setattr(sys, "path", list(sys.path))


def test_resolve_listen_port_defaults() -> None:
    assert resolve_listen_port(RunConfiguration(listen=True)) == DEFAULT_LISTEN_PORT
    assert resolve_listen_port(RunConfiguration(listen=True, open_browser=True)) == 0
    assert resolve_listen_port(RunConfiguration(listen=True, port=9000, open_browser=True)) == 9000
    assert resolve_listen_port(RunConfiguration(listen=True, port=0)) == 0


def test_local_run_loads_requires_then_files_and_returns_engine_result(tmp_path: Path) -> None:
    order_file = tmp_path / "order.txt"
    setup_file = tmp_path / "setup_env.py"
    setup_file.write_text(
        f"with open({str(order_file)!r}, 'a') as handle:\n    handle.write('require\\n')\n",
        encoding="utf-8",
    )
    test_file = tmp_path / "test_sample.py"
    test_file.write_text(
        f"with open({str(order_file)!r}, 'a') as handle:\n    handle.write('test\\n')\n",
        encoding="utf-8",
    )
    configuration = RunConfiguration(
        bail=True,
        slow_ms=10,
        timeout_ms=300,
        reporter=ReporterKind.JSON,
        reporter_options={"pretty": True},
        required_modules=(str(setup_file),),
    )
    engine = _FakeEngine(result=3)

    outcome = asyncio.run(
        dispatch(configuration, [test_file], engine=engine, registry=ModuleRegistry(), cwd=tmp_path)
    )

    assert outcome == Exit(3)
    assert order_file.read_text(encoding="utf-8").splitlines() == ["require", "test"]
    assert engine.reporting == (ReporterKind.JSON, {"pretty": True})
    assert engine.bail is True
    assert engine.slow == 10
    assert engine.timeout == 300
    assert str(tmp_path) in sys.path


def test_local_run_hands_loaders_to_engine_in_file_order(tmp_path: Path) -> None:
    files = []
    for name in ("test_b.py", "test_a.py"):
        path = tmp_path / name
        path.write_text(f"NAME = {name!r}\n", encoding="utf-8")
        files.append(path)
    engine = _FakeEngine()

    asyncio.run(dispatch(RunConfiguration(), files, engine=engine, cwd=tmp_path))

    assert [module.NAME for module in engine.loaded] == ["test_b.py", "test_a.py"]


def test_required_module_failure_aborts_before_running(tmp_path: Path) -> None:
    engine = _FakeEngine()
    configuration = RunConfiguration(required_modules=("bmocha_missing_required_module",))

    with pytest.raises(ModuleNotFoundError):
        asyncio.run(dispatch(configuration, [], engine=engine, cwd=tmp_path))
    assert engine.reporting is None


def test_listen_mode_with_open_uses_ephemeral_port_and_opens_bound_url() -> None:
    opened: list[tuple[str, str | None]] = []
    engine = _FakeEngine()
    configuration = RunConfiguration(listen=True, open_browser=True, required_modules=("json",))

    outcome = asyncio.run(
        dispatch(
            configuration,
            [Path("/tmp/test_one.py")],
            engine=engine,
            server_factory=_FakeServer,
            browser_opener=lambda url, command: opened.append((url, command)),
        )
    )

    server = _FakeServer.instances[0]
    assert outcome == KeepAlive()
    assert server.listened == (0, LOOPBACK_HOST)
    assert server.engine is engine
    assert server.files == [Path("/tmp/test_one.py")]
    assert server.requires == ["json"]
    assert opened == [(f"http://localhost:{BOUND_PORT}/", None)]


def test_listen_mode_without_open_does_not_launch_a_browser(
    capsys: pytest.CaptureFixture[str],
) -> None:
    opened: list[str] = []

    outcome = asyncio.run(
        dispatch(
            RunConfiguration(listen=True),
            [],
            engine=_FakeEngine(),
            server_factory=_FakeServer,
            browser_opener=lambda url, command: opened.append(url),
        )
    )

    assert outcome == KeepAlive()
    assert _FakeServer.instances[0].listened == (DEFAULT_LISTEN_PORT, LOOPBACK_HOST)
    assert opened == []
    assert f"http://localhost:{DEFAULT_LISTEN_PORT}/" in capsys.readouterr().out


def test_listen_mode_passes_browser_command_to_opener() -> None:
    opened: list[tuple[str, str | None]] = []
    configuration = RunConfiguration(
        listen=True, open_browser=True, port=9001, browser_command="firefox %s"
    )

    asyncio.run(
        dispatch(
            configuration,
            [],
            engine=_FakeEngine(),
            server_factory=_FakeServer,
            browser_opener=lambda url, command: opened.append((url, command)),
        )
    )

    assert opened == [("http://localhost:9001/", "firefox %s")]


def test_server_errors_are_logged_not_raised(caplog: pytest.LogCaptureFixture) -> None:
    asyncio.run(
        dispatch(
            RunConfiguration(listen=True),
            [],
            engine=_FakeEngine(),
            server_factory=_FakeServer,
            browser_opener=lambda url, command: None,
        )
    )
    observer = _FakeServer.instances[0].observers[0]

    with caplog.at_level(logging.ERROR):
        observer(OSError("connection reset"))

    assert "connection reset" in caplog.text
