"""Domain errors shared across the orchestrator."""

from __future__ import annotations


class BmochaError(Exception):
    """Base class for orchestrator errors."""


class UsageError(BmochaError):
    """Raised when command-line arguments are invalid."""


class ResolutionError(BmochaError):
    """Raised when a required module or test file cannot be located."""
