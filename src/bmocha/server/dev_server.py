"""Development server exposing discovered test files to a browser."""

from __future__ import annotations

import html
import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from aiohttp import web

ErrorObserver = Callable[[BaseException], None]

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ListenAddress:
    """Address the server is actually bound to."""

    host: str
    port: int


class DevServer:
    """Serve the run's test files and options over HTTP."""

    def __init__(self, engine: Any, files: Sequence[Path], requires: Sequence[str]) -> None:
        self._engine = engine
        self._files = tuple(files)
        self._requires = tuple(requires)
        self._observers: list[ErrorObserver] = []
        self._runner: web.AppRunner | None = None
        self._app = web.Application(middlewares=[self._error_middleware])
        self._app.router.add_get("/", self._handle_index)
        self._app.router.add_get("/bmocha.json", self._handle_manifest)
        self._app.router.add_get("/files/{index}", self._handle_file)

    def on_error(self, callback: ErrorObserver) -> None:
        """Subscribe to errors raised while handling requests."""
        self._observers.append(callback)

    async def listen(self, port: int, host: str) -> ListenAddress:
        """Bind to `host:port` and return the bound address (port 0 picks one)."""
        runner = web.AppRunner(self._app, access_log=None)
        await runner.setup()
        site = web.TCPSite(runner, host, port)
        await site.start()
        self._runner = runner
        bound_host, bound_port = runner.addresses[0][:2]
        return ListenAddress(host=bound_host, port=bound_port)

    async def close(self) -> None:
        if self._runner is not None:
            await self._runner.cleanup()
            self._runner = None

    def manifest(self) -> dict[str, object]:
        grep = getattr(self._engine, "grep", None)
        return {
            "files": [str(path) for path in self._files],
            "requires": list(self._requires),
            "options": {
                "bail": getattr(self._engine, "bail", False),
                "console": getattr(self._engine, "console", False),
                "grep": grep.pattern if grep is not None else None,
                "fgrep": getattr(self._engine, "fgrep", None),
                "invert": getattr(self._engine, "invert", False),
                "slow": getattr(self._engine, "slow", None),
                "timeout": getattr(self._engine, "timeout", None),
                "timeouts": getattr(self._engine, "timeouts", True),
                "retries": getattr(self._engine, "retries", 0),
            },
        }

    @web.middleware
    async def _error_middleware(self, request: web.Request, handler) -> web.StreamResponse:
        try:
            return await handler(request)
        except web.HTTPException:
            raise
        except Exception as exc:  # pylint: disable=broad-exception-caught
            self._notify(exc)
            return web.Response(status=500, text="Internal Server Error")

    def _notify(self, error: BaseException) -> None:
        if not self._observers:
            logger.error("unobserved server error: %s", error)
        for observer in self._observers:
            observer(error)

    async def _handle_index(self, _request: web.Request) -> web.Response:
        file_items = "\n".join(
            f'    <li><a href="/files/{index}">{html.escape(str(path))}</a></li>'
            for index, path in enumerate(self._files)
        )
        require_items = "\n".join(
            f"    <li>{html.escape(entry)}</li>" for entry in self._requires
        )
        body = (
            "<!DOCTYPE html>\n<html>\n<head><title>bmocha</title></head>\n<body>\n"
            f"  <h1>bmocha</h1>\n  <h2>Test files</h2>\n  <ul>\n{file_items}\n  </ul>\n"
            f"  <h2>Required modules</h2>\n  <ul>\n{require_items}\n  </ul>\n"
            "</body>\n</html>\n"
        )
        return web.Response(text=body, content_type="text/html")

    async def _handle_manifest(self, _request: web.Request) -> web.Response:
        return web.json_response(self.manifest())

    async def _handle_file(self, request: web.Request) -> web.Response:
        try:
            index = int(request.match_info["index"])
        except ValueError as exc:
            raise web.HTTPNotFound() from exc
        if not 0 <= index < len(self._files):
            raise web.HTTPNotFound()
        text = self._files[index].read_text(encoding="utf-8")
        return web.Response(text=text, content_type="text/plain")
