"""Fire-and-forget browser launching."""

from __future__ import annotations

import logging
import os
import subprocess
import sys
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass

URL_PLACEHOLDER = "%s"
_CHROME_FAMILY = ("chrome", "chromium")

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BrowserCommand:
    """Process invocation used to open a URL."""

    args: tuple[str, ...] | str
    shell: bool = False


Spawner = Callable[[BrowserCommand], None]


def build_browser_command(
    url: str,
    command: str | None = None,
    *,
    platform: str | None = None,
    environ: Mapping[str, str] | None = None,
) -> BrowserCommand:
    """Choose how to open `url` on the host platform."""
    if command and URL_PLACEHOLDER in command:
        return BrowserCommand(args=command.replace(URL_PLACEHOLDER, url, 1), shell=True)
    if command:
        return BrowserCommand(args=(command, url))

    host_platform = platform or sys.platform
    if host_platform == "win32":
        return BrowserCommand(args=("explorer", url))
    if host_platform == "darwin":
        return BrowserCommand(args=("open", url))

    browser = (environ if environ is not None else os.environ).get("BROWSER")
    if not browser:
        return BrowserCommand(args=("xdg-open", url))
    if any(name in os.path.basename(browser).lower() for name in _CHROME_FAMILY):
        return BrowserCommand(args=(browser, f"--app={url}"))
    return BrowserCommand(args=(browser, url))


def open_browser(
    url: str,
    command: str | None = None,
    *,
    platform: str | None = None,
    environ: Mapping[str, str] | None = None,
    spawn: Spawner | None = None,
) -> None:
    """Open `url` in a browser without waiting for the spawned process.

    The child is detached and never observed. Failing to start it is logged,
    never raised.
    """
    invocation = build_browser_command(url, command, platform=platform, environ=environ)
    spawner = spawn or _spawn_detached
    try:
        spawner(invocation)
    except OSError as exc:
        logger.warning("could not launch browser for %s: %s", url, exc)


def _spawn_detached(invocation: BrowserCommand) -> None:
    args: str | Sequence[str] = (
        invocation.args if isinstance(invocation.args, str) else list(invocation.args)
    )
    options: dict[str, object] = {}
    if sys.platform == "win32":
        options["creationflags"] = getattr(subprocess, "DETACHED_PROCESS", 0)
    else:
        options["start_new_session"] = True
    subprocess.Popen(  # pylint: disable=consider-using-with
        args,
        shell=invocation.shell,
        stdin=subprocess.DEVNULL,
        stdout=subprocess.DEVNULL,
        stderr=subprocess.DEVNULL,
        **options,
    )
