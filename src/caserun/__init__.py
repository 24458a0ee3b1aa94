"""
caserun - execution core of a unit-test harness.

This package provides tools to:
- Register named groups of test cases with stable identities
- Run them one at a time with fault isolation and per-test output capture
- Select subsets of tests by group name and case number
- Summarize results for humans or scripts
"""

__version__ = "0.1.0"
__author__ = "caserun Team"

from caserun.cli import run, run_async, run_with_args, run_with_args_async
from caserun.core.protect import (
    CheckError,
    Failure,
    SkipTest,
    TodoError,
    check,
    check_raises,
    fail,
    failwith,
    skip,
    todo,
)
from caserun.errors import HarnessError, TestError
from caserun.models import Outcome, RunSummary, SpeedLevel, TestCase, test_case

__all__ = [
    "run",
    "run_async",
    "run_with_args",
    "run_with_args_async",
    "test_case",
    "TestCase",
    "SpeedLevel",
    "Outcome",
    "RunSummary",
    "check",
    "check_raises",
    "fail",
    "failwith",
    "todo",
    "skip",
    "CheckError",
    "Failure",
    "TodoError",
    "SkipTest",
    "HarnessError",
    "TestError",
]
