"""
Scenario Test Infrastructure.

Whole-day behavioral checks: seed a schedule, move the clock, run the full
analysis, and hold every plan to the plan invariants before the scenario
makes its own assertions.
"""

import pytest

from tempo.contracts.invariants import check_plan
from tempo.reshuffle.engine import ReshuffleEngine


@pytest.fixture
def run_day():
    """Analyze ``items`` for ``day`` at ``now``; the plan must pass check_plan."""

    def _run(items, day, now):
        result = ReshuffleEngine(clock=lambda: now).analyze(items, day)
        check_plan(result, items, day, now)
        return result

    return _run
