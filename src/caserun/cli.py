"""Command-line interface of caserun test binaries.

A test program registers its groups and calls ``run``; the returned click
group parses the program's own command line:

    prog [OPTIONS]                          run every test
    prog test [OPTIONS] [NAME_REGEX] [TESTCASES]
    prog list
"""

import asyncio
import logging
import sys
from pathlib import Path
from typing import Any, Callable, Iterable, Optional, Sequence

import click

from caserun import __version__
from caserun.config import RunConfig, get_default_config
from caserun.core.executor import AsyncStrategy, SyncStrategy
from caserun.core.filter import CASES_FORMAT_ERROR, Selection, compile_pattern, parse_cases
from caserun.core.runner import TestRunner
from caserun.core.suite import Registry, RegistrationError, Suite
from caserun.errors import HarnessError, TestError
from caserun.models import RunSummary, SpeedLevel, TestCase
from caserun.report.console import ConsoleReporter, print_fatal

log = logging.getLogger(__name__)

EXIT_FATAL = 124
MAX_FAILURE_EXIT = EXIT_FATAL - 1

FLAG_OPTIONS = ("verbose", "compact", "show_errors", "quick_tests", "json_output")


class RegexParamType(click.ParamType):
    """A regular expression matched against test group names."""

    name = "regex"

    def convert(self, value, param, ctx):
        if not isinstance(value, str):
            return value
        try:
            return compile_pattern(value)
        except ValueError as e:
            self.fail(str(e), param, ctx)


class CaseListParamType(click.ParamType):
    """A comma-separated list of test case numbers and ranges."""

    name = "cases"

    def convert(self, value, param, ctx):
        if not isinstance(value, str):
            return value
        try:
            return parse_cases(value)
        except ValueError:
            self.fail(f"{value!r} {CASES_FORMAT_ERROR}", param, ctx)


def common_options(f: Callable) -> Callable:
    """Options shared by every command, each with an environment default."""
    options = [
        click.option(
            "-o",
            "test_dir",
            type=click.Path(file_okay=False, path_type=Path),
            default=None,
            envvar="CASERUN_OUTPUT_DIR",
            metavar="DIR",
            help="Where to store the log files of the tests.",
        ),
        click.option(
            "--verbose",
            "-v",
            is_flag=True,
            envvar="CASERUN_VERBOSE",
            help="Display the test outputs. WARNING: when using this option the "
            "output logs will not be available for further inspection.",
        ),
        click.option("--compact", "-c", is_flag=True, envvar="CASERUN_COMPACT", help="Compact the output of the tests."),
        click.option("--show-errors", "-e", is_flag=True, envvar="CASERUN_SHOW_ERRORS", help="Display the test errors."),
        click.option("--quick-tests", "-q", is_flag=True, envvar="CASERUN_QUICK_TESTS", help="Run only the quick tests."),
        click.option(
            "--json",
            "json_output",
            is_flag=True,
            envvar="CASERUN_JSON",
            help="Display JSON for the results, to be used by a script.",
        ),
    ]
    for option in reversed(options):
        f = option(f)
    return f


def build_config(name: str, options: dict[str, Any]) -> RunConfig:
    """Turn parsed command-line options into a run configuration."""
    overrides: dict[str, Any] = {
        "verbose": bool(options.get("verbose")),
        "compact": bool(options.get("compact")),
        "show_errors": bool(options.get("show_errors")),
        "json_output": bool(options.get("json_output")),
        "speed_level": SpeedLevel.QUICK if options.get("quick_tests") else SpeedLevel.SLOW,
    }
    if options.get("test_dir") is not None:
        overrides["test_dir"] = options["test_dir"]
    return get_default_config(name).model_copy(update=overrides)


def merge_options(ctx: click.Context, options: dict[str, Any]) -> dict[str, Any]:
    """Combine options given before and after the subcommand name."""
    merged = dict(ctx.find_root().params)
    if options.get("test_dir") is not None:
        merged["test_dir"] = options["test_dir"]
    for flag in FLAG_OPTIONS:
        merged[flag] = bool(merged.get(flag)) or bool(options.get(flag))
    return merged


def build_cli(
    name: str,
    suite: Suite,
    max_label: int = 0,
    params: Sequence[click.Parameter] = (),
    asynchronous: bool = False,
) -> click.Group:
    """Build the command line of a test binary.

    Args:
        name: Name of the test binary
        suite: Registered tests
        max_label: Length of the longest group name, for alignment
        params: Extra options; their values are passed to every test as a dict
        asynchronous: Drive the run with ``asyncio`` instead of blocking calls

    Returns:
        A click group whose commands return a ``RunSummary`` (or None for
        ``list``)
    """

    def test_args(ctx: click.Context) -> Optional[dict[str, Any]]:
        if not params:
            return None
        root = ctx.find_root().params
        return {param.name: root.get(param.name) for param in params}

    def execute(ctx: click.Context, options: dict[str, Any], selection: Optional[Selection]) -> RunSummary:
        config = build_config(name, options)
        reporter = ConsoleReporter(config, suite, max_label)
        strategy = AsyncStrategy(reporter) if asynchronous else SyncStrategy(reporter)
        runner = TestRunner(config, suite, strategy)
        reporter.banner(name, config.run_id)

        args = test_args(ctx)
        if selection is None:
            pending = runner.run_all(args)
        else:
            pending = runner.run_selection(selection, args)
        summary = asyncio.run(pending) if asynchronous else pending

        reporter.show_result(summary, runner.errors)
        return summary

    @click.group(name=name, invoke_without_command=True, help="Run all the tests.")
    @click.version_option(version=__version__, prog_name=name)
    @common_options
    @click.pass_context
    def cli(ctx: click.Context, **options: Any) -> Optional[RunSummary]:
        if ctx.invoked_subcommand is None:
            return execute(ctx, options, None)
        return None

    for param in params:
        cli.params.append(param)

    @cli.command("test", help="Run a subset of the tests.")
    @common_options
    @click.argument("name_regex", required=False, type=RegexParamType())
    @click.argument("testcases", required=False, type=CaseListParamType())
    @click.pass_context
    def test_cmd(ctx: click.Context, name_regex, testcases, **options: Any) -> RunSummary:
        """Run only the tests matching NAME_REGEX and TESTCASES, e.g. '4,6-10,19'."""
        selection = Selection(pattern=name_regex, cases=testcases)
        return execute(ctx, merge_options(ctx, options), selection)

    @cli.command("list", help="List all available tests.")
    @common_options
    @click.pass_context
    def list_cmd(ctx: click.Context, **options: Any) -> None:
        config = build_config(name, merge_options(ctx, options))
        reporter = ConsoleReporter(config, suite, max_label)
        reporter.list_tests(sorted(suite.paths()))

    return cli


def _main(
    name: str,
    params: Sequence[click.Parameter],
    groups: Iterable[tuple[str, Iterable[TestCase]]],
    argv: Optional[Sequence[str]],
    and_exit: bool,
    asynchronous: bool,
) -> Optional[RunSummary]:
    registry = Registry()
    try:
        suite = registry.register_all(groups).build()
    except RegistrationError as e:
        print_fatal(str(e))
        if and_exit:
            sys.exit(EXIT_FATAL)
        raise

    cli = build_cli(name, suite, registry.max_label, params, asynchronous)
    try:
        result = cli.main(args=list(argv) if argv is not None else None, prog_name=name, standalone_mode=False)
    except click.ClickException as e:
        e.show()
        if and_exit:
            sys.exit(e.exit_code)
        raise
    except HarnessError as e:
        print_fatal(str(e))
        if and_exit:
            sys.exit(EXIT_FATAL)
        raise

    failures = result.failures if isinstance(result, RunSummary) else 0
    if isinstance(result, RunSummary):
        log.debug("Run finished: %s", result.to_dict())
    if and_exit:
        sys.exit(min(failures, MAX_FAILURE_EXIT))
    if failures > 0:
        raise TestError(failures)
    return result if isinstance(result, RunSummary) else None


def run_with_args(
    name: str,
    params: Sequence[click.Parameter],
    groups: Iterable[tuple[str, Iterable[TestCase]]],
    argv: Optional[Sequence[str]] = None,
    and_exit: bool = True,
) -> Optional[RunSummary]:
    """Register ``groups`` and run them according to the command line.

    Args:
        name: Name of the test binary
        params: Extra click options; every test receives a dict of their values
        groups: (group name, test cases) pairs
        argv: Arguments to parse instead of ``sys.argv[1:]``
        and_exit: Exit the process with the failure count when done

    Returns:
        The run summary (None for ``list``) when ``and_exit`` is False

    Raises:
        TestError: If tests failed and ``and_exit`` is False
        HarnessError: If the run was aborted before any test ran
    """
    return _main(name, params, groups, argv, and_exit, asynchronous=False)


def run(
    name: str,
    groups: Iterable[tuple[str, Iterable[TestCase]]],
    argv: Optional[Sequence[str]] = None,
    and_exit: bool = True,
) -> Optional[RunSummary]:
    """Register ``groups`` and run them; every test receives None."""
    return _main(name, (), groups, argv, and_exit, asynchronous=False)


def run_with_args_async(
    name: str,
    params: Sequence[click.Parameter],
    groups: Iterable[tuple[str, Iterable[TestCase]]],
    argv: Optional[Sequence[str]] = None,
    and_exit: bool = True,
) -> Optional[RunSummary]:
    """Like ``run_with_args``, with coroutine test bodies awaited under asyncio."""
    return _main(name, params, groups, argv, and_exit, asynchronous=True)


def run_async(
    name: str,
    groups: Iterable[tuple[str, Iterable[TestCase]]],
    argv: Optional[Sequence[str]] = None,
    and_exit: bool = True,
) -> Optional[RunSummary]:
    """Like ``run``, with coroutine test bodies awaited under asyncio."""
    return _main(name, (), groups, argv, and_exit, asynchronous=True)
