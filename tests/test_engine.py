"""
Tests for the end-to-end analysis pipeline.
"""

from tempo.contracts.invariants import check_plan
from tempo.contracts.vocabulary import CompassionateMessage
from tempo.observability.context import get_analysis_id
from tempo.reshuffle.context import create_context
from tempo.reshuffle.engine import ReshuffleEngine, analyze, needs_reshuffle
from tempo.reshuffle.processors import PROCESSORS, process_flexible_task
from tempo.schedule.changes import (
    ActionKind,
    Moved,
    Protected,
    Resized,
)
from tempo.schedule.items import RecurrenceFrequency, TaskCategory
from tests.fixtures import DAY, TOMORROW, at, flexible, habit, non_negotiable


def _engine(now):
    return ReshuffleEngine(clock=lambda: now)


class TestNeedsReshuffle:
    def test_calm_day(self):
        items = [non_negotiable("meeting", at(10)), flexible("task", at(11))]
        assert not needs_reshuffle(create_context(items, DAY, at(8)))

    def test_overlap(self):
        items = [non_negotiable("meeting", at(10)), flexible("task", at(10, 30))]
        assert needs_reshuffle(create_context(items, DAY, at(8)))

    def test_past_item_today(self):
        items = [flexible("task", at(9))]
        assert needs_reshuffle(create_context(items, DAY, at(9, 30)))

    def test_past_rule_only_applies_today(self):
        items = [flexible("task", at(9, day=TOMORROW))]
        assert not needs_reshuffle(create_context(items, TOMORROW, at(9, 30)))

    def test_completed_only_day(self):
        items = [flexible("task", at(9), is_completed=True)]
        assert not needs_reshuffle(create_context(items, DAY, at(12)))


class TestAnalyze:
    """Full runs through the pipeline."""

    def test_on_track_protects_everything(self):
        items = [non_negotiable("meeting", at(10)), flexible("task", at(11))]
        result = _engine(at(8)).analyze(items, DAY)
        assert [c.kind for c in result.changes] == [ActionKind.PROTECTED] * 2
        assert result.summary == "You're on track. All items protected."
        assert not result.has_changes

    def test_overflow_compresses_habit(self):
        h = habit("h", at(15), 90, minimum=30, frequency=RecurrenceFrequency.DAILY)
        items = [h, flexible("f", at(16, 30), 120)]
        result = analyze(items, DAY, at(15))
        assert result.for_item("h").action == Resized(60)
        assert result.overflow.kind == "compress_habits"
        assert '"H" → 60 min (saved 30 min)' in result.summary
        assert result.summary.endswith(CompassionateMessage.DAY_ADJUSTED)
        check_plan(result, items, DAY, at(15))

    def test_past_item_goes_through_fix_my_day(self):
        items = [flexible("f", at(9)), non_negotiable("meeting", at(10), 60)]
        result = analyze(items, DAY, at(9, 30))
        assert result.for_item("f").action == Moved(at(9, 30))
        assert result.for_item("meeting").action == Protected()

    def test_changes_follow_priority_order(self):
        items = [
            flexible("f", at(10, 30)),
            habit("h", at(12)),
            non_negotiable("meeting", at(10)),
        ]
        result = analyze(items, DAY, at(8))
        categories = [c.item.category for c in result.changes]
        assert categories == [
            TaskCategory.NON_NEGOTIABLE,
            TaskCategory.IDENTITY_HABIT,
            TaskCategory.FLEXIBLE_TASK,
        ]

    def test_deterministic(self):
        items = [flexible("f", at(9)), non_negotiable("meeting", at(10), 60)]
        first = analyze(items, DAY, at(9, 30))
        second = analyze(items, DAY, at(9, 30))
        assert first.changes == second.changes
        assert first.summary == second.summary


class TestEveningGuard:
    """Relocations touching a protected evening go back to the user."""

    def _heavy_evening(self):
        return [
            non_negotiable("n", at(15), 180),
            flexible("report", at(19), 60, is_evening_task=True),
        ]

    def test_deferral_of_evening_task_needs_consent(self):
        result = analyze(self._heavy_evening(), DAY, at(15))
        assert result.evening_decision.case_number == 6
        assert result.evening_protection_triggered
        change = result.for_item("report")
        assert change.kind is ActionKind.REQUIRES_USER_DECISION
        assert [o.key for o in change.action.options] == ["keep_evening", "defer"]
        assert change.reason == "This would affect your protected evening time"
        assert result.requires_user_consent

    def test_non_negotiables_pass_through(self):
        result = analyze(self._heavy_evening(), DAY, at(15))
        assert result.for_item("n").action == Protected()


class TestEntryPoints:
    def test_has_issues(self):
        engine = _engine(at(8))
        assert engine.has_issues([flexible("a", at(10)), flexible("b", at(10))], DAY)
        assert not engine.has_issues([flexible("a", at(10))], DAY)

    def test_status_messages(self):
        engine = _engine(at(15))
        assert engine.status_message([flexible("a", at(16))], DAY) == CompassionateMessage.ON_TRACK
        h = habit("h", at(15), 90, minimum=30)
        tight = [h, flexible("f", at(16, 30), 120)]
        assert engine.status_message(tight, DAY) == "Some adjustments suggested to fit everything in"

    def test_suggest_resolution_uses_clock(self):
        engine = _engine(at(8))
        new = habit("journal", at(10))
        existing = [flexible("errands", at(10), 60)]
        conflicts = engine.find_conflicts(new, existing)
        [res] = engine.suggest_resolution(new, conflicts, existing)
        assert res.suggested_start == at(10, 30)


class TestAnalysisId:
    def test_set_while_processing(self):
        seen = []

        def recording(item, context, overflow):
            seen.append(get_analysis_id())
            return process_flexible_task(item, context, overflow)

        processors = {**PROCESSORS, TaskCategory.FLEXIBLE_TASK: recording}
        engine = ReshuffleEngine(processors=processors)
        engine.analyze([flexible("a", at(10)), flexible("b", at(10))], DAY, at(8))

        assert len(seen) == 2
        assert seen[0] == seen[1]
        assert seen[0].startswith("rsh-")
        assert get_analysis_id() is None
