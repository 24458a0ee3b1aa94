"""Run-level errors raised by the harness."""


class HarnessError(Exception):
    """Base class for errors that abort a whole run."""

    pass


class TestError(HarnessError):
    """Raised when a run fails and the caller asked not to exit."""

    __test__ = False

    def __init__(self, failures: int):
        super().__init__(f"{failures} test(s) failed")
        self.failures = failures
