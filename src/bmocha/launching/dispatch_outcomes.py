"""Dispatch outcome entities."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TypeAlias


@dataclass(frozen=True)
class Exit:
    """The run finished and the process should exit with `code`."""

    code: int


@dataclass(frozen=True)
class KeepAlive:
    """A server is listening and the process must stay alive."""


DispatchOutcome: TypeAlias = Exit | KeepAlive
