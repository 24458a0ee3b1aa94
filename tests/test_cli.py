"""Tests for the command-line entry points."""

import asyncio
import json

import click
import pytest

from caserun import TestError, fail, run, run_async, run_with_args, test_case
from caserun.cli import EXIT_FATAL, MAX_FAILURE_EXIT, build_config
from caserun.config import default_test_dir
from caserun.core.filter import EmptySelectionError
from caserun.core.suite import DuplicateTestError, InvalidNameError
from caserun.models import RunSummary, SpeedLevel


def last_json(out):
    return json.loads(out.strip().splitlines()[-1])


class TestRun:
    """Tests for running every test."""

    def test_failing_run_raises_test_error(self, math_groups, tmp_path, capsys):
        """Test that one check failure fails the run with a count of one."""
        with pytest.raises(TestError) as exc_info:
            run("math_tests", math_groups, argv=["-o", str(tmp_path)], and_exit=False)

        assert exc_info.value.failures == 1
        out = capsys.readouterr().out
        assert "Testing math_tests." in out
        assert "1 error! in" in out
        assert "2 tests run." in out

    def test_json_summary(self, math_groups, tmp_path, capsys):
        """Test that --json prints only the summary object on stdout."""
        with pytest.raises(TestError):
            run("math_tests", math_groups, argv=["--json", "-o", str(tmp_path)], and_exit=False)

        out = capsys.readouterr().out
        assert len(out.strip().splitlines()) == 1
        summary = last_json(out)
        assert summary["success"] == 2
        assert summary["failures"] == 1
        assert isinstance(summary["time"], float)

    def test_options_from_environment(self, math_groups, tmp_path, capsys, monkeypatch):
        """Test that options default from environment variables."""
        monkeypatch.setenv("CASERUN_JSON", "1")
        monkeypatch.setenv("CASERUN_OUTPUT_DIR", str(tmp_path))

        with pytest.raises(TestError):
            run("math_tests", math_groups, argv=[], and_exit=False)

        assert last_json(capsys.readouterr().out)["failures"] == 1
        assert (tmp_path / "latest").exists()

    def test_quick_tests_skip_slow_ones(self, tmp_path, capsys):
        """Test that -q never runs slow bodies."""
        calls = []
        groups = [
            (
                "speed",
                [
                    test_case("Quick", "quick", lambda _: calls.append("quick")),
                    test_case("Slow", "slow", lambda _: fail("should not run")),
                ],
            )
        ]

        summary = run("speed_tests", groups, argv=["-q", "-o", str(tmp_path)], and_exit=False)

        assert calls == ["quick"]
        assert summary == RunSummary(success=1, failures=0, time=summary.time)

    def test_exit_code_is_failure_count(self, math_groups, tmp_path, capsys):
        """Test that the process exits with the number of failures."""
        with pytest.raises(SystemExit) as exc_info:
            run("math_tests", math_groups, argv=["-o", str(tmp_path)])
        assert exc_info.value.code == 1

    def test_exit_code_zero_on_success(self, tmp_path, capsys):
        """Test that a clean run exits with zero."""
        groups = [("ok", [test_case("Fine", "quick", lambda _: None)])]
        with pytest.raises(SystemExit) as exc_info:
            run("ok_tests", groups, argv=["-o", str(tmp_path)])
        assert exc_info.value.code == 0

    def test_exit_code_is_capped(self, tmp_path, capsys):
        """Test that large failure counts stay below the fatal exit code."""
        cases = [test_case(f"Fails {i}", "quick", lambda _: fail("no")) for i in range(130)]
        with pytest.raises(SystemExit) as exc_info:
            run("many_tests", [("many", cases)], argv=["--json", "-o", str(tmp_path)])
        assert exc_info.value.code == MAX_FAILURE_EXIT


class TestSubsetCommand:
    """Tests for the test subcommand."""

    def test_selected_case_only(self, math_groups, tmp_path, capsys):
        """Test that unselected cases are skipped and do not fail the run."""
        summary = run("math_tests", math_groups, argv=["test", "math", "0", "-o", str(tmp_path)], and_exit=False)

        assert summary.success == 1
        assert summary.failures == 0
        out = capsys.readouterr().out
        assert "[SKIP]" in out
        assert "Bad addition." in out
        assert {p.name for p in tmp_path.rglob("*.output")} == {"math.000.output"}

    def test_options_before_subcommand(self, math_groups, tmp_path, capsys):
        """Test that shared options may precede the subcommand."""
        summary = run(
            "math_tests", math_groups, argv=["--json", "-o", str(tmp_path), "test", "math", "0"], and_exit=False
        )

        assert summary.failures == 0
        assert last_json(capsys.readouterr().out)["success"] == 1

    def test_empty_selection_is_fatal(self, math_groups, tmp_path, capsys):
        """Test that a selection matching nothing aborts before running."""
        with pytest.raises(EmptySelectionError):
            run("math_tests", math_groups, argv=["test", "math", "5", "-o", str(tmp_path)], and_exit=False)

        assert "no tests to run" in capsys.readouterr().err
        assert not any(p.name.startswith("math") for p in tmp_path.rglob("*.output"))

    def test_empty_selection_exit_code(self, math_groups, tmp_path, capsys):
        """Test the distinct exit code of fatal pre-run errors."""
        with pytest.raises(SystemExit) as exc_info:
            run("math_tests", math_groups, argv=["test", "nothing", "-o", str(tmp_path)])
        assert exc_info.value.code == EXIT_FATAL

    def test_malformed_case_list(self, math_groups, tmp_path, capsys):
        """Test that a malformed case list is a usage error."""
        with pytest.raises(SystemExit) as exc_info:
            run("math_tests", math_groups, argv=["test", "math", "1-x", "-o", str(tmp_path)])
        assert exc_info.value.code == 2
        assert "comma-separated list" in capsys.readouterr().err


class TestListCommand:
    """Tests for the list subcommand."""

    def test_lists_without_running(self, tmp_path, capsys):
        """Test that listing prints paths and runs nothing."""
        calls = []
        groups = [
            ("zeta", [test_case("Last", "quick", calls.append)]),
            ("alpha", [test_case("First", "slow", calls.append)]),
        ]

        result = run("list_tests", groups, argv=["list", "-o", str(tmp_path)], and_exit=False)

        assert result is None
        assert calls == []
        lines = capsys.readouterr().out.splitlines()
        assert lines[0].startswith("alpha")
        assert lines[0].endswith("First.")
        assert lines[1].startswith("zeta")
        assert not (tmp_path / "latest").exists()


class TestRegistrationErrors:
    """Tests for fatal registration errors."""

    def test_invalid_names_reported_together(self, tmp_path, capsys):
        """Test that every invalid group name is reported."""
        groups = [
            ("bad/name", [test_case("x", "quick", lambda _: None)]),
            ("fine", [test_case("x", "quick", lambda _: None)]),
            ("also*bad", [test_case("x", "quick", lambda _: None)]),
        ]

        with pytest.raises(InvalidNameError) as exc_info:
            run("names", groups, argv=["-o", str(tmp_path)], and_exit=False)

        assert len(exc_info.value.messages) == 2
        err = capsys.readouterr().err
        assert "bad/name" in err
        assert "also*bad" in err

    def test_case_different_duplicate_groups(self, tmp_path, capsys):
        """Test that "Math" and "math" collide."""
        groups = [
            ("Math", [test_case("x", "quick", lambda _: None)]),
            ("math", [test_case("y", "quick", lambda _: None)]),
        ]

        with pytest.raises(DuplicateTestError):
            run("dupes", groups, argv=["-o", str(tmp_path)], and_exit=False)

    def test_registration_error_exit_code(self, tmp_path, capsys):
        """Test the exit code of an invalid name."""
        groups = [("bad/name", [test_case("x", "quick", lambda _: None)])]
        with pytest.raises(SystemExit) as exc_info:
            run("names", groups, argv=["-o", str(tmp_path)])
        assert exc_info.value.code == EXIT_FATAL


class TestRunWithArgs:
    """Tests for extra command-line arguments."""

    def test_tests_receive_option_values(self, tmp_path, capsys):
        """Test that extra options are parsed and passed to every test."""
        seen = []
        groups = [("args", [test_case("Sees args", "quick", seen.append)])]
        params = [click.Option(["--seed"], type=int, default=0)]

        run_with_args("args_tests", params, groups, argv=["--seed", "42", "-o", str(tmp_path)], and_exit=False)

        assert seen == [{"seed": 42}]

    def test_plain_run_passes_none(self, tmp_path, capsys):
        """Test that run passes None to tests."""
        seen = []
        groups = [("args", [test_case("Sees args", "quick", seen.append)])]

        run("args_tests", groups, argv=["-o", str(tmp_path)], and_exit=False)

        assert seen == [None]


class TestRunAsync:
    """Tests for the asynchronous entry point."""

    def test_coroutine_bodies(self, tmp_path, capsys):
        """Test a suite of coroutine test bodies."""
        trace = []

        async def first(_):
            await asyncio.sleep(0.01)
            trace.append("first")

        async def second(_):
            trace.append("second")
            fail("async failure")

        groups = [("async", [test_case("First", "quick", first), test_case("Second", "quick", second)])]

        with pytest.raises(TestError) as exc_info:
            run_async("async_tests", groups, argv=["-o", str(tmp_path)], and_exit=False)

        assert exc_info.value.failures == 1
        assert trace == ["first", "second"]
        assert "async failure" in capsys.readouterr().out


class TestBuildConfig:
    """Tests for turning options into a run configuration."""

    def test_defaults_without_options(self, tmp_path, monkeypatch):
        """Test that missing options fall back to the default configuration."""
        monkeypatch.chdir(tmp_path)

        config = build_config("defaults", {"test_dir": None})

        assert config.name == "defaults"
        assert config.test_dir == default_test_dir()
        assert config.speed_level == SpeedLevel.SLOW
        assert not config.verbose
        assert len(config.run_id) == 36

    def test_options_override_defaults(self, tmp_path):
        """Test that given options replace the defaults."""
        config = build_config("opts", {"test_dir": tmp_path, "quick_tests": True, "json_output": True})

        assert config.test_dir == tmp_path
        assert config.speed_level == SpeedLevel.QUICK
        assert config.json_output
        assert not config.compact
