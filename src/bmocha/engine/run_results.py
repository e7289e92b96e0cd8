"""Engine result entities."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class CaseState(str, Enum):
    """Final state of one test case."""

    PASSED = "passed"
    FAILED = "failed"


@dataclass(frozen=True)
class CaseResult:  # pylint: disable=too-many-instance-attributes
    """Outcome of running one test case, including retries."""

    title: str
    full_title: str
    file: str
    state: CaseState
    duration_ms: int
    slow: bool = False
    current_retry: int = 0
    error_message: str | None = None
    error_stack: str | None = None

    @property
    def passed(self) -> bool:
        return self.state is CaseState.PASSED


@dataclass(frozen=True)
class RunStats:
    """Aggregate counters for one run."""

    suites: int
    tests: int
    passes: int
    failures: int
    start: str
    end: str
    duration_ms: int

    def as_dict(self) -> dict[str, object]:
        return {
            "suites": self.suites,
            "tests": self.tests,
            "passes": self.passes,
            "pending": 0,
            "failures": self.failures,
            "start": self.start,
            "end": self.end,
            "duration": self.duration_ms,
        }
