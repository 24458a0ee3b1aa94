"""Selection of a subset of registered tests."""

import re
from dataclasses import dataclass
from typing import Any, Optional

from caserun.core.path import TestPath
from caserun.core.protect import SkippedTest
from caserun.errors import HarnessError

CASES_FORMAT_ERROR = "must be a comma-separated list of integers / integer ranges"
_CASE_RANGE_RE = re.compile(r"\s*(\d+)\s*(?:(?:-|\.\.)\s*(\d+)\s*)?")


class EmptySelectionError(HarnessError):
    """Raised when a selection matches no registered test."""

    def __init__(self):
        super().__init__("Invalid request (no tests to run, filter skipped everything)!")


@dataclass(frozen=True)
class Selection:
    """Name pattern and index set a test must match to be selected.

    A missing criterion matches everything.
    """

    pattern: Optional[re.Pattern] = None
    cases: Optional[frozenset[int]] = None

    def matches(self, path: TestPath) -> bool:
        if self.pattern is not None and not self.pattern.search(path.name):
            return False
        if self.cases is not None and path.index not in self.cases:
            return False
        return True


def filter_tests(
    selection: Selection,
    tests: list[tuple[TestPath, Any]],
    subst: bool,
) -> list[tuple[TestPath, Any]]:
    """Apply a selection to an ordered list of tests.

    Args:
        selection: Criteria a test must match
        tests: (path, test) pairs in run order
        subst: Replace non-matching tests with skips instead of dropping them

    Returns:
        The filtered list, in the original order
    """
    filtered = []
    for path, test in tests:
        if selection.matches(path):
            filtered.append((path, test))
        elif subst:
            filtered.append((path, SkippedTest(path)))
    return filtered


def compile_pattern(text: str) -> re.Pattern:
    """Compile a test name pattern.

    Raises:
        ValueError: If the pattern is not a valid regular expression
    """
    try:
        return re.compile(text)
    except re.error as e:
        raise ValueError(f"invalid regular expression {text!r}: {e}") from e


def parse_cases(text: str) -> frozenset[int]:
    """Parse a case list such as ``"4,6-10,19"`` into a set of indices.

    Ranges may be written ``6-10`` or ``6..10`` and include both bounds.

    Raises:
        ValueError: If the list is malformed or a range is reversed
    """
    cases: set[int] = set()
    for part in text.split(","):
        match = _CASE_RANGE_RE.fullmatch(part)
        if match is None:
            raise ValueError(CASES_FORMAT_ERROR)
        lower = int(match.group(1))
        upper = int(match.group(2)) if match.group(2) is not None else lower
        if lower > upper:
            raise ValueError(CASES_FORMAT_ERROR)
        cases.update(range(lower, upper + 1))
    return frozenset(cases)
