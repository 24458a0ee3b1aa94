"""Per-test capture of the process output channel."""

import logging
import os
import sys
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Generator

from caserun.errors import HarnessError
from caserun.models import Outcome

log = logging.getLogger(__name__)

STDOUT_FD = 1
STDERR_FD = 2


class CaptureError(HarnessError):
    """Raised when the output channel is already redirected."""

    pass


def _flush_std_streams() -> None:
    for stream in (sys.stdout, sys.stderr):
        if stream is not None:
            stream.flush()


class OutputCapture:
    """Exclusive owner of the process-wide stdout/stderr channel.

    Redirection happens at both levels: the ``sys.stdout``/``sys.stderr``
    objects and file descriptors 1 and 2, so output written by Python code,
    extension modules and child processes all lands in the same file.
    """

    def __init__(self):
        self._lock = threading.Lock()

    @property
    def active(self) -> bool:
        return self._lock.locked()

    @contextmanager
    def redirect(self, file: Path | str) -> Generator[None, None, None]:
        """Send stdout and stderr to ``file`` for the duration of the block.

        Raises:
            CaptureError: If another redirect is active or the output file
                cannot be opened
        """
        if not self._lock.acquire(blocking=False):
            raise CaptureError("The output channel is already redirected")
        try:
            _flush_std_streams()
            try:
                fd = os.open(file, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o660)
            except OSError as e:
                raise CaptureError(f"cannot open {file}: {e}") from e
            dups = []
            try:
                dups.append(os.dup(STDOUT_FD))
                dups.append(os.dup(STDERR_FD))
                dups.append(os.dup(fd))
                stream = os.fdopen(dups[-1], "w", buffering=1, encoding="utf-8", errors="replace")
            except OSError:
                for dup in dups:
                    os.close(dup)
                os.close(fd)
                raise
            saved_stdout_fd, saved_stderr_fd = dups[0], dups[1]
            saved_stdout, saved_stderr = sys.stdout, sys.stderr
            try:
                os.dup2(fd, STDOUT_FD)
                os.dup2(fd, STDERR_FD)
                os.close(fd)
                sys.stdout = sys.stderr = stream
                log.debug("Redirected output to %s", file)
                yield
            finally:
                stream.flush()
                sys.stdout, sys.stderr = saved_stdout, saved_stderr
                stream.close()
                os.dup2(saved_stdout_fd, STDOUT_FD)
                os.dup2(saved_stderr_fd, STDERR_FD)
                os.close(saved_stdout_fd)
                os.close(saved_stderr_fd)
        finally:
            self._lock.release()


class CapturedTest:
    """A protected test whose output goes to its own file.

    When the outcome is an error, the failure message is written to the
    captured file and echoed on the restored error stream.
    """

    def __init__(self, capture: OutputCapture, file: Path, inner: Any, verbose: bool = False):
        self.capture = capture
        self.file = file
        self.inner = inner
        self.verbose = verbose

    def __call__(self, args: Any) -> Outcome:
        if self.verbose:
            return self.inner(args)
        with self.capture.redirect(self.file):
            outcome = self.inner(args)
            self._record(outcome)
        self._echo(outcome)
        return outcome

    async def acall(self, args: Any) -> Outcome:
        if self.verbose:
            return await self.inner.acall(args)
        with self.capture.redirect(self.file):
            outcome = await self.inner.acall(args)
            self._record(outcome)
        self._echo(outcome)
        return outcome

    @staticmethod
    def _record(outcome: Outcome) -> None:
        if outcome.is_error:
            print(outcome.render())

    @staticmethod
    def _echo(outcome: Outcome) -> None:
        if outcome.is_error:
            print(outcome.render(), file=sys.stderr)
