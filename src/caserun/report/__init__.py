"""Console reporting of test runs."""

from caserun.report.console import ConsoleReporter

__all__ = ["ConsoleReporter"]
