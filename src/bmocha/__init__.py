"""Command-line orchestrator for running Python test files locally or in a browser."""

import logging
from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("bmocha")
except PackageNotFoundError:  # pragma: no cover - source checkout without install
    __version__ = "0.0.0"

logging.getLogger(__name__).addHandler(logging.NullHandler())

__all__ = ["__version__"]
