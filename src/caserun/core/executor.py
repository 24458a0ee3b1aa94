"""Sequential execution of the tests of a run.

Both strategies run tests strictly one after the other: the asynchronous
strategy awaits each test to completion before starting the next one, since
every test holds the process output channel while it runs.
"""

import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Any, Awaitable, Optional, Protocol

from caserun.core.aggregator import summarize
from caserun.core.path import TestPath
from caserun.models import Outcome, RunSummary


class EventKind(str, Enum):
    START = "start"
    RESULT = "result"


@dataclass(frozen=True)
class Event:
    """Progress event sent to the reporter."""

    kind: EventKind
    path: TestPath
    outcome: Optional[Outcome] = None

    @classmethod
    def start(cls, path: TestPath) -> "Event":
        return cls(EventKind.START, path)

    @classmethod
    def result(cls, path: TestPath, outcome: Outcome) -> "Event":
        return cls(EventKind.RESULT, path, outcome)


class Reporter(Protocol):
    """What the execution strategies need from a reporter."""

    def event(self, event: Event) -> None: ...

    def render_error(self, path: TestPath, outcome: Outcome) -> str: ...


class ExecutionStrategy(ABC):
    """Drives an ordered list of wrapped tests through to a summary."""

    def __init__(self, reporter: Reporter):
        self.reporter = reporter
        # Most recent first.
        self.errors: list[str] = []

    @abstractmethod
    def run(self, tests: list[tuple[TestPath, Any]], args: Any) -> RunSummary | Awaitable[RunSummary]:
        """Run every test in order and summarize the outcomes."""
        pass

    def _start(self, path: TestPath) -> None:
        self.reporter.event(Event.start(path))

    def _finish(self, path: TestPath, outcome: Outcome) -> Outcome:
        if outcome.is_error:
            self.errors.insert(0, self.reporter.render_error(path, outcome))
        self.reporter.event(Event.result(path, outcome))
        return outcome


class SyncStrategy(ExecutionStrategy):
    """Runs tests by blocking on each one."""

    def run(self, tests: list[tuple[TestPath, Any]], args: Any) -> RunSummary:
        start_time = time.time()
        outcomes = []
        for path, test in tests:
            self._start(path)
            outcomes.append(self._finish(path, test(args)))
        return summarize(outcomes, time.time() - start_time)


class AsyncStrategy(ExecutionStrategy):
    """Runs tests inside a single task, awaiting each one to completion."""

    async def run(self, tests: list[tuple[TestPath, Any]], args: Any) -> RunSummary:
        start_time = time.time()
        outcomes = []
        for path, test in tests:
            self._start(path)
            outcome = await test.acall(args)
            outcomes.append(self._finish(path, outcome))
        return summarize(outcomes, time.time() - start_time)
