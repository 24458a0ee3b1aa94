"""Aggregation of outcomes into a run summary."""

from typing import Iterable

from caserun.models import Outcome, RunSummary


def summarize(outcomes: Iterable[Outcome], elapsed: float) -> RunSummary:
    """Count executed and failing outcomes.

    Skipped tests neither run nor fail. Pending (todo) tests count as failures
    without counting as run.
    """
    outcomes = list(outcomes)
    return RunSummary(
        success=sum(1 for o in outcomes if o.has_run),
        failures=sum(1 for o in outcomes if o.is_failure),
        time=elapsed,
    )
