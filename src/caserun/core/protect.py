"""Fault isolation around a single test body.

A test body signals failure by raising. ``ProtectedTest`` catches whatever
escapes the body and turns it into an ``Outcome``, so nothing a test does can
abort the run.
"""

import inspect
import logging
import traceback
from typing import Any, Callable, Optional

from caserun.core.path import TestPath
from caserun.models import Outcome

log = logging.getLogger(__name__)


class CheckError(Exception):
    """Raised by a test body when a check fails."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class Failure(Exception):
    """Raised by a test body for a generic failure condition."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class TodoError(Exception):
    """Raised by a test body that is deliberately not implemented yet."""

    def __init__(self, message: str = ""):
        super().__init__(message)
        self.message = message


class SkipTest(Exception):
    """Raised by a test body to skip itself."""

    pass


def fail(message: str) -> None:
    """Fail the current test with a check failure."""
    raise CheckError(message)


def failwith(message: str) -> None:
    """Fail the current test with a generic failure."""
    raise Failure(message)


def todo(message: str = "") -> None:
    """Mark the current test as not implemented."""
    raise TodoError(message)


def skip() -> None:
    """Skip the current test."""
    raise SkipTest()


def check(expected: Any, actual: Any, message: str = "") -> None:
    """Check that two values are equal, failing the test otherwise."""
    if expected != actual:
        label = f" {message}" if message else ""
        raise CheckError(f"Error{label}: expecting\n{expected!r}, got\n{actual!r}.")


def check_raises(message: str, exc_type: type[BaseException], fn: Callable[[], Any]) -> None:
    """Check that ``fn`` raises ``exc_type``, failing the test otherwise."""
    try:
        fn()
    except exc_type:
        return
    except Exception as e:
        raise CheckError(
            f"Fail {message}: expecting {exc_type.__name__}, got {type(e).__name__}: {e}."
        ) from e
    raise CheckError(f"Fail {message}: expecting {exc_type.__name__}, got nothing.")


def _trace(exc: BaseException) -> str:
    """Format the traceback of ``exc`` below the protection frame."""
    tb = exc.__traceback__.tb_next if exc.__traceback__ else None
    frames = "".join(traceback.format_tb(tb)).rstrip()
    return f"\n{frames}" if frames else ""


def classify(exc: Exception) -> Outcome:
    """Convert an exception escaping a test body into an ``Outcome``."""
    if isinstance(exc, CheckError):
        return Outcome.check_failed(f"Test error: {exc.message}{_trace(exc)}")
    if isinstance(exc, Failure):
        return Outcome.fault_of("failure", f"{exc.message}{_trace(exc)}")
    if isinstance(exc, (ValueError, TypeError)):
        return Outcome.fault_of("invalid", f"{exc}{_trace(exc)}")
    if isinstance(exc, TodoError):
        return Outcome.pending(exc.message)
    if isinstance(exc, SkipTest):
        return Outcome.skipped()
    description = "".join(traceback.format_exception_only(type(exc), exc)).strip()
    return Outcome.fault_of("exception", f"{description}{_trace(exc)}")


class ProtectedTest:
    """A test body wrapped so that it always produces an ``Outcome``.

    Calling the object runs the body synchronously; ``acall`` runs it under an
    event loop and awaits whatever the body returns.
    """

    def __init__(self, path: TestPath, fn: Callable[[Any], Any]):
        self.path = path
        self.fn = fn

    def __call__(self, args: Any) -> Outcome:
        try:
            result = self.fn(args)
            if inspect.isawaitable(result):
                if hasattr(result, "close"):
                    result.close()
                raise TypeError(
                    f"{self.path} returned an awaitable; asynchronous tests "
                    "need an asynchronous runner"
                )
        except Exception as e:
            return self._outcome_of(e)
        return Outcome.ok()

    async def acall(self, args: Any) -> Outcome:
        try:
            result = self.fn(args)
            if inspect.isawaitable(result):
                await result
        except Exception as e:
            return self._outcome_of(e)
        return Outcome.ok()

    def _outcome_of(self, exc: Exception) -> Outcome:
        outcome = classify(exc)
        log.debug("%s raised %s, classified as %s", self.path, type(exc).__name__, outcome.kind.value)
        return outcome


class SkippedTest:
    """Stand-in executable that never runs anything and reports a skip."""

    def __init__(self, path: Optional[TestPath] = None):
        self.path = path

    def __call__(self, args: Any) -> Outcome:
        return Outcome.skipped()

    async def acall(self, args: Any) -> Outcome:
        return Outcome.skipped()
