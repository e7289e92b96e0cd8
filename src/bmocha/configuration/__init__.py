"""Run configuration exports."""

from .argument_scanner import (
    HELP_TEXT,
    InformationRequest,
    build_configuration,
    coerce_uint32,
    render_information,
)
from .run_configuration import (
    DEFAULT_SLOW_MS,
    DEFAULT_TIMEOUT_MS,
    UNRESOLVED_PORT,
    ReporterKind,
    RunConfiguration,
)

__all__ = [
    "HELP_TEXT",
    "InformationRequest",
    "build_configuration",
    "coerce_uint32",
    "render_information",
    "DEFAULT_SLOW_MS",
    "DEFAULT_TIMEOUT_MS",
    "UNRESOLVED_PORT",
    "ReporterKind",
    "RunConfiguration",
]
