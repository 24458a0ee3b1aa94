"""Console rendering of test progress and run summaries using rich."""

from typing import Optional

from rich.console import Console
from rich.text import Text

from caserun.config import RunConfig
from caserun.core.executor import Event, EventKind
from caserun.core.path import TestPath
from caserun.core.suite import Suite
from caserun.models import Outcome, OutcomeKind, RunSummary

STATUS_WIDTH = 20

STATUS_LABELS = {
    OutcomeKind.OK: ("[OK]", "green"),
    OutcomeKind.CHECK_FAILED: ("[FAIL]", "red"),
    OutcomeKind.FAULT: ("[ERROR]", "red"),
    OutcomeKind.SKIPPED: ("[SKIP]", "yellow"),
    OutcomeKind.PENDING: ("[TODO]", "yellow"),
}

COMPACT_SYMBOLS = {
    OutcomeKind.OK: ".",
    OutcomeKind.CHECK_FAILED: "F",
    OutcomeKind.FAULT: "E",
    OutcomeKind.SKIPPED: "S",
    OutcomeKind.PENDING: "T",
}


def plural(n: int) -> str:
    return "" if n in (0, 1) else "s"


def make_console() -> Console:
    """Console writing to whatever ``sys.stdout`` is at print time."""
    return Console(highlight=False, emoji=False, soft_wrap=True)


class ConsoleReporter:
    """Renders progress events, error reports and the final summary."""

    def __init__(
        self,
        config: RunConfig,
        suite: Suite,
        max_label: int = 0,
        console: Optional[Console] = None,
    ):
        """Initialize the reporter.

        Args:
            config: Run configuration (verbosity, compact and JSON modes)
            suite: Registered tests, for descriptions
            max_label: Length of the longest group name, for alignment
            console: Console to print to
        """
        self.config = config
        self.suite = suite
        self.max_label = max_label
        self.console = console or make_console()

    def _print(self, *parts, end: str = "\n") -> None:
        if not self.config.json_output:
            self.console.print(*parts, end=end)

    def path_text(self, path: TestPath) -> Text:
        text = Text(path.name.ljust(self.max_label + 8), style="cyan")
        text.append(f"{path.index:3d}")
        return text

    def info_text(self, path: TestPath) -> Text:
        text = self.path_text(path)
        text.append(f"   {self.suite.description(path)}")
        return text

    def banner(self, name: str, run_id: str) -> None:
        self._print(Text.assemble("Testing ", (name, "bold"), "."))
        self._print(f"This run has ID `{run_id}`.")

    def event(self, event: Event) -> None:
        """Render a start or result event."""
        if event.kind == EventKind.START:
            # The start line is overwritten by the result, which needs a tty.
            if self.config.compact or not self.console.is_terminal:
                return
            line = Text(" ...".ljust(STATUS_WIDTH), style="yellow")
            self._print(line + self.info_text(event.path), end="")
            return

        if self.config.compact:
            self._print(COMPACT_SYMBOLS[event.outcome.kind], end="")
            return

        if self.console.is_terminal and not self.config.json_output:
            self.console.file.write("\r")
        label, style = STATUS_LABELS[event.outcome.kind]
        self._print(Text(label.ljust(STATUS_WIDTH), style=style) + self.info_text(event.path))

    def render_error(self, path: TestPath, outcome: Outcome) -> str:
        """Render the error report of a failed test.

        The report quotes the test's captured output file when there is one.
        """
        filename = self.config.output_file(path)
        if self.config.verbose or not filename.exists():
            logs = f"{outcome.render()}\n"
        else:
            output = filename.read_text(encoding="utf-8", errors="replace")
            logs = f"in `{filename}`:\n{output}"
        return f"-- {path.display()} [{self.suite.description(path)}] Failed --\n{logs}"

    def show_result(self, summary: RunSummary, errors: list[str]) -> None:
        """Render the end-of-run summary.

        Args:
            summary: Run summary
            errors: Error reports, most recent first
        """
        if self.config.json_output:
            self.console.print(summary.to_json(), markup=False)
            return

        if self.config.compact:
            self._print("")

        if summary.failures > 0 and errors:
            if self.config.verbose or self.config.show_errors:
                for error in reversed(errors):
                    self._print(Text(error))
            else:
                self._print(Text(errors[0]))

        if self.config.compact and summary.failures == 0:
            return

        line = Text()
        if not self.config.verbose:
            line.append(f"The full test results are available in `{self.config.output_dir}`.\n")
        if summary.failures == 0:
            line.append("Test Successful", style="green")
        else:
            line.append(f"{summary.failures} error{plural(summary.failures)}!", style="red")
        line.append(f" in {summary.time:.3f}s. {summary.success} test{plural(summary.success)} run.")
        self._print(line)

    def list_tests(self, paths: list[TestPath]) -> None:
        for path in paths:
            self.console.print(self.path_text(path) + Text(f"    {self.suite.description(path)}"))


def print_fatal(message: str) -> None:
    """Print a fatal pre-run error on stderr."""
    Console(stderr=True, highlight=False, soft_wrap=True).print(Text(message, style="red"))
