"""Launch dispatch exports."""

from .browser_launcher import BrowserCommand, build_browser_command, open_browser
from .dispatch_outcomes import DispatchOutcome, Exit, KeepAlive
from .launch_dispatcher import (
    DEFAULT_LISTEN_PORT,
    LOOPBACK_HOST,
    apply_run_configuration,
    dispatch,
    resolve_listen_port,
)
from .module_registry import ModuleRegistry, extend_module_search_path, require_modules

__all__ = [
    "BrowserCommand",
    "build_browser_command",
    "open_browser",
    "DispatchOutcome",
    "Exit",
    "KeepAlive",
    "DEFAULT_LISTEN_PORT",
    "LOOPBACK_HOST",
    "apply_run_configuration",
    "dispatch",
    "resolve_listen_port",
    "ModuleRegistry",
    "extend_module_search_path",
    "require_modules",
]
