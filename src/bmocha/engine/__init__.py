"""Default in-process test engine exports."""

from .local_engine import FileSuite, LocalEngine, RunnableCase
from .reporters import (
    JSONReporter,
    JSONStreamReporter,
    Reporter,
    SpecReporter,
    create_reporter,
)
from .run_results import CaseResult, CaseState, RunStats

__all__ = [
    "FileSuite",
    "LocalEngine",
    "RunnableCase",
    "JSONReporter",
    "JSONStreamReporter",
    "Reporter",
    "SpecReporter",
    "create_reporter",
    "CaseResult",
    "CaseState",
    "RunStats",
]
