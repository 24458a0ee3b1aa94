"""Suite registry: registered test cases keyed by path."""

import logging
import re
from typing import Any, Callable, Iterable, Optional

from caserun.core.path import TestPath
from caserun.core.protect import ProtectedTest
from caserun.errors import HarnessError
from caserun.models import SpeedLevel, TestCase

log = logging.getLogger(__name__)

NAME_PATTERN = r"^[a-zA-Z0-9_\- ]+$"
_NAME_RE = re.compile(NAME_PATTERN)


class RegistrationError(HarnessError):
    """Raised when tests cannot be registered."""

    pass


class DuplicateTestError(RegistrationError):
    """Raised when two tests share the same file key."""

    def __init__(self, path: TestPath):
        super().__init__(f"Duplicate test name: {path.name}")
        self.path = path


class InvalidNameError(RegistrationError):
    """Raised once registration is over if any group name was invalid."""

    def __init__(self, messages: list[str]):
        super().__init__("\n".join(messages))
        self.messages = messages


def normalize_description(doc: str) -> str:
    """Make a non-empty description end with a period."""
    if doc == "" or doc.endswith("."):
        return doc
    return doc + "."


def validate_name(name: str) -> Optional[str]:
    """Return an error message for an invalid group name, None if valid."""
    if _NAME_RE.fullmatch(name):
        return None
    return f"Error: {name!r} is not a valid test label (must match {NAME_PATTERN})."


class Suite:
    """Ordered collection of protected tests with per-path metadata."""

    def __init__(self):
        self._tests: list[tuple[TestPath, Callable[[Any], Any]]] = []
        self._file_keys: set[str] = set()
        self._doc: dict[TestPath, str] = {}
        self._speed: dict[TestPath, SpeedLevel] = {}

    def add(
        self,
        path: TestPath,
        description: str,
        speed: SpeedLevel,
        fn: Callable[[Any], Any],
    ) -> "Suite":
        """Register one test.

        Raises:
            DuplicateTestError: If a test with the same file key exists
        """
        if path.file_key() in self._file_keys:
            raise DuplicateTestError(path)
        self._tests.append((path, fn))
        self._file_keys.add(path.file_key())
        self._doc[path] = description
        self._speed[path] = speed
        return self

    def tests(self) -> list[tuple[TestPath, Callable[[Any], Any]]]:
        """All (path, test) pairs in registration order."""
        return list(self._tests)

    def paths(self) -> list[TestPath]:
        return [path for path, _ in self._tests]

    def description(self, path: TestPath) -> str:
        return self._doc.get(path, "")

    def speed(self, path: TestPath) -> SpeedLevel:
        return self._speed.get(path, SpeedLevel.SLOW)

    def __len__(self) -> int:
        return len(self._tests)


class Registry:
    """Registration phase of a run.

    Group names are validated on every ``register`` call but invalid names do
    not stop registration: their messages are accumulated and only raised by
    ``build``, so every offending name is reported at once.
    """

    def __init__(self, suite: Optional[Suite] = None):
        self.suite = suite if suite is not None else Suite()
        self.errors: list[str] = []
        self.max_label = 0

    def register(self, name: str, cases: Iterable[TestCase]) -> "Registry":
        error = validate_name(name)
        if error is not None:
            log.debug("Rejected test group name %r", name)
            self.errors.append(error)
            return self
        if self.errors:
            return self

        self.max_label = max(self.max_label, len(name))
        for index, case in enumerate(cases):
            path = TestPath(name, index)
            self.suite.add(
                path,
                normalize_description(case.description),
                SpeedLevel(case.speed),
                ProtectedTest(path, case.fn),
            )
        return self

    def register_all(self, groups: Iterable[tuple[str, Iterable[TestCase]]]) -> "Registry":
        for name, cases in groups:
            self.register(name, cases)
        return self

    def build(self) -> Suite:
        """Return the registered suite.

        Raises:
            InvalidNameError: If any registered group name was invalid
        """
        if self.errors:
            raise InvalidNameError(list(self.errors))
        return self.suite
