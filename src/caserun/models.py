"""Data models for test cases, outcomes and run summaries."""

import json
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Optional


class SpeedLevel(str, Enum):
    """Speed tier of a test case."""

    QUICK = "quick"
    SLOW = "slow"

    def admitted_at(self, minimum: "SpeedLevel") -> bool:
        """Check whether a test of this tier runs at the given minimum tier.

        Running at QUICK excludes SLOW tests; running at SLOW includes both.
        """
        return minimum == SpeedLevel.SLOW or self == SpeedLevel.QUICK


class OutcomeKind(str, Enum):
    """Classified result of one test execution."""

    OK = "ok"
    CHECK_FAILED = "check_failed"
    FAULT = "fault"
    SKIPPED = "skipped"
    PENDING = "pending"


@dataclass(frozen=True)
class Outcome:
    """The outcome of attempting one test.

    ``fault`` is only set for ``OutcomeKind.FAULT`` and names the category of
    the uncaught error: ``"failure"``, ``"invalid"`` or ``"exception"``.
    """

    kind: OutcomeKind
    message: str = ""
    fault: Optional[str] = None

    @classmethod
    def ok(cls) -> "Outcome":
        return cls(OutcomeKind.OK)

    @classmethod
    def check_failed(cls, message: str) -> "Outcome":
        return cls(OutcomeKind.CHECK_FAILED, message)

    @classmethod
    def fault_of(cls, fault: str, message: str) -> "Outcome":
        return cls(OutcomeKind.FAULT, message, fault)

    @classmethod
    def skipped(cls) -> "Outcome":
        return cls(OutcomeKind.SKIPPED)

    @classmethod
    def pending(cls, message: str = "") -> "Outcome":
        return cls(OutcomeKind.PENDING, message)

    @property
    def has_run(self) -> bool:
        """Whether the outcome represents an actual execution attempt."""
        return self.kind in (OutcomeKind.OK, OutcomeKind.CHECK_FAILED, OutcomeKind.FAULT)

    @property
    def is_failure(self) -> bool:
        """Whether the outcome counts towards the failure total."""
        return self.kind in (OutcomeKind.CHECK_FAILED, OutcomeKind.FAULT, OutcomeKind.PENDING)

    @property
    def is_error(self) -> bool:
        """Whether the outcome produces an error report."""
        return self.kind in (OutcomeKind.CHECK_FAILED, OutcomeKind.FAULT)

    def render(self) -> str:
        """Render the failure message the way it is echoed and reported."""
        if self.kind == OutcomeKind.FAULT:
            return f"[{self.fault}] {self.message}"
        return self.message

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return {
            "kind": self.kind.value,
            "message": self.message,
            "fault": self.fault,
        }


@dataclass
class TestCase:
    """A registered test case: description, speed tier and body."""

    __test__ = False

    description: str
    speed: SpeedLevel
    fn: Callable[[Any], Any]


def test_case(description: str, speed: SpeedLevel | str, fn: Callable[[Any], Any]) -> TestCase:
    """Build a test case.

    Args:
        description: Human readable description of the case
        speed: ``SpeedLevel`` (or its string value) of the case
        fn: Test body, called with the run argument

    Returns:
        TestCase ready to be registered in a group
    """
    return TestCase(description=description, speed=SpeedLevel(speed), fn=fn)


test_case.__test__ = False


@dataclass
class RunSummary:
    """Summary of one run."""

    success: int = 0
    failures: int = 0
    time: float = 0.0

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return {
            "success": self.success,
            "failures": self.failures,
            "time": self.time,
        }

    def to_json(self) -> str:
        """Render the machine-readable summary object."""
        return json.dumps(self.to_dict(), separators=(",", ":"))
