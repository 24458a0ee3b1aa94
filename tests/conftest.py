"""Shared fixtures for caserun tests."""

import pytest

from caserun import fail, test_case
from caserun.config import RunConfig
from caserun.core.suite import Registry


class RecordingReporter:
    """Reporter that keeps events instead of printing them."""

    def __init__(self):
        self.events = []

    def event(self, event):
        self.events.append(event)

    def render_error(self, path, outcome):
        return f"{path.display()}: {outcome.render()}"


@pytest.fixture
def reporter():
    """Create a recording reporter."""
    return RecordingReporter()


@pytest.fixture
def config(tmp_path):
    """Create a run configuration writing under a temporary directory."""
    return RunConfig(name="suite_tests", run_id="RUN-1", test_dir=tmp_path)


def _add(_):
    assert 1 + 1 == 2


def _bad_add(_):
    fail("1+1 != 3")


@pytest.fixture
def math_groups():
    """One group "math": case 0 passes, case 1 fails a check."""
    return [
        (
            "math",
            [
                test_case("Addition works", "quick", _add),
                test_case("Bad addition", "quick", _bad_add),
            ],
        )
    ]


@pytest.fixture
def math_suite(math_groups):
    """Registered suite for the math group."""
    return Registry().register_all(math_groups).build()
