"""Test run orchestration."""

import logging
import os
from typing import Any, Awaitable, Optional

from caserun.config import RunConfig
from caserun.core.capture import CapturedTest, OutputCapture
from caserun.core.executor import ExecutionStrategy
from caserun.core.filter import EmptySelectionError, Selection, filter_tests
from caserun.core.path import TestPath
from caserun.core.protect import SkippedTest
from caserun.core.suite import Suite
from caserun.errors import HarnessError
from caserun.models import RunSummary

log = logging.getLogger(__name__)


class RunDirectoryError(HarnessError):
    """Raised when the run directory cannot be prepared."""

    pass


class TestRunner:
    """Runs the tests of a suite under one configuration."""

    __test__ = False

    def __init__(
        self,
        config: RunConfig,
        suite: Suite,
        strategy: ExecutionStrategy,
        capture: Optional[OutputCapture] = None,
    ):
        """Initialize the test runner.

        Args:
            config: Run configuration
            suite: Registered tests
            strategy: Sync or async execution strategy, owning the reporter
            capture: Output channel owner (a new one by default)
        """
        self.config = config
        self.suite = suite
        self.strategy = strategy
        self.capture = capture or OutputCapture()

    @property
    def errors(self) -> list[str]:
        """Error reports of the run so far, most recent first."""
        return self.strategy.errors

    def prepare(self) -> None:
        """Create the run directory and point the convenience symlinks at it."""
        output_dir = self.config.output_dir
        if not output_dir.exists():
            try:
                output_dir.mkdir(mode=0o770, parents=True)
            except OSError as e:
                raise RunDirectoryError(f"cannot create {output_dir}: {e}") from e
            log.debug("Created run directory %s", output_dir)
            if os.name == "posix":
                self._link(self.config.name, output_dir)
                self._link("latest", output_dir)
        elif not output_dir.is_dir():
            raise RunDirectoryError(f"exists but is not a directory: {str(output_dir)!r}")

    def _link(self, link_name: str, target) -> None:
        link = self.config.test_dir / link_name
        try:
            if link.is_symlink() or link.exists():
                link.unlink()
            link.symlink_to(target, target_is_directory=True)
        except OSError as e:
            raise RunDirectoryError(f"cannot link {link} to {target}: {e}") from e
        log.debug("Linked %s -> %s", link, target)

    def wrap(self, tests: list[tuple[TestPath, Any]]) -> list[tuple[TestPath, Any]]:
        """Apply output capture, then speed selection, to every test."""
        wrapped = []
        for path, test in tests:
            # Substituted skips never run, so they get no output file.
            if not isinstance(test, SkippedTest):
                test = CapturedTest(self.capture, self.config.output_file(path), test, self.config.verbose)
            if not self.suite.speed(path).admitted_at(self.config.speed_level):
                test = SkippedTest(path)
            wrapped.append((path, test))
        return wrapped

    def result(self, tests: list[tuple[TestPath, Any]], args: Any) -> RunSummary | Awaitable[RunSummary]:
        """Run the given tests; awaitable when the strategy is asynchronous."""
        self.prepare()
        return self.strategy.run(self.wrap(tests), args)

    def run_all(self, args: Any) -> RunSummary | Awaitable[RunSummary]:
        return self.result(self.suite.tests(), args)

    def run_selection(self, selection: Selection, args: Any) -> RunSummary | Awaitable[RunSummary]:
        """Run the selected tests, reporting the others as skipped.

        Raises:
            EmptySelectionError: If the selection matches nothing; raised
                before any test runs
        """
        tests = self.suite.tests()
        if not filter_tests(selection, tests, subst=False):
            raise EmptySelectionError()
        return self.result(filter_tests(selection, tests, subst=True), args)

    def list_tests(self) -> list[TestPath]:
        """Registered paths in path order."""
        return sorted(self.suite.paths())
