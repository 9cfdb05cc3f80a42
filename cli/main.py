#!/usr/bin/env python3
"""
Tempo CLI - reshuffle a day from a YAML schedule file.

Commands:
- analyze       propose one change per item for a day
- resolve       suggest how to fit a new item against what it overlaps
- status        one-line status for a day
- slots         next free starts for a given duration
- compensation  pending make-up time for deferred goals
"""

import argparse
import json
import logging
import sys
from datetime import date, datetime
from pathlib import Path

import yaml

from tempo.config import ReshuffleSettings, get_settings
from tempo.contracts.invariants import InvariantViolation, check_plan
from tempo.observability import configure_logging
from tempo.reshuffle.engine import ReshuffleEngine
from tempo.reshuffle.slot_finder import find_multiple_slots
from tempo.reshuffle.summary import quick_summary
from tempo.schedule.compensation import CompensationTracker, format_minutes
from tempo.schedule.repository import InMemoryScheduleRepository, RepositoryError
from tempo.schedule.sleep import SleepSchedule
from tempo.schedule.timeslots import format_clock

logger = logging.getLogger(__name__)


def print_header(text: str):
    """Print a section header."""
    print(f"\n{'═' * 50}")
    print(f"  {text}")
    print(f"{'═' * 50}")


def print_table(headers: list, rows: list, widths: list = None):
    """Print a simple table."""
    if not widths:
        widths = [
            max(len(str(row[i])) for row in [headers] + rows)
            for i in range(len(headers))
        ]

    header_str = " │ ".join(str(h).ljust(w) for h, w in zip(headers, widths))
    print(header_str)
    print("─" * len(header_str))

    for row in rows:
        print(" │ ".join(str(c)[:w].ljust(w) for c, w in zip(row, widths)))


def print_json(data) -> None:
    print(json.dumps(data, indent=2, default=str))


# =============================================================================
# INPUT
# =============================================================================


def load_schedule(path: Path) -> tuple[InMemoryScheduleRepository, SleepSchedule | None]:
    """Items plus the optional ``sleep:`` section of a schedule file."""
    repo = InMemoryScheduleRepository.load_yaml(path)
    with open(path) as f:
        raw = yaml.safe_load(f) or {}
    sleep = None
    if isinstance(raw, dict) and isinstance(raw.get("sleep"), dict):
        sleep = SleepSchedule.from_dict(raw["sleep"])
    return repo, sleep


def resolve_now(args) -> datetime:
    return datetime.fromisoformat(args.now) if args.now else datetime.now()


def resolve_date(args, now: datetime) -> date:
    return date.fromisoformat(args.date) if args.date else now.date()


def build_engine(args, sleep: SleepSchedule | None) -> ReshuffleEngine:
    settings = ReshuffleSettings.load(Path(args.config)) if args.config else get_settings()
    return ReshuffleEngine(settings=settings, sleep_provider=sleep)


# =============================================================================
# COMMANDS
# =============================================================================


def cmd_analyze(args) -> int:
    repo, sleep = load_schedule(Path(args.schedule))
    engine = build_engine(args, sleep)
    now = resolve_now(args)
    target = resolve_date(args, now)
    items = repo.all_items()

    result = engine.analyze(items, target, now)

    if args.strict:
        try:
            check_plan(result, items, target, now)
        except InvariantViolation as e:
            logger.error("Plan invariant violated: %s", e)
            print(f"Plan check did not pass: {e}", file=sys.stderr)
            return 2

    if args.track:
        recorded = CompensationTracker(settings=engine.settings).record_from_changes(
            result.changes
        )
        logger.info("Recorded %d compensation entr(ies)", len(recorded))

    if args.apply:
        repo.apply_changes(result.changes)
        repo.dump_yaml(Path(args.apply))
        logger.info("Wrote adjusted schedule to %s", args.apply)

    if args.json:
        print_json(result.to_dict())
        return 0

    print_header(f"RESHUFFLE: {target.isoformat()}")
    print(f"\n{quick_summary(result.changes)}\n")
    rows = [
        [
            change.item.title,
            change.item.category.display_name,
            change.kind.display_name,
            format_clock(change.new_start) if change.new_start else "-",
            change.new_duration_minutes or "-",
        ]
        for change in result.changes
    ]
    print_table(["Item", "Category", "Action", "Start", "Min"], rows, [28, 15, 16, 5, 4])
    for change in result.items_needing_decision:
        print(f"\n? {change.item.title}: {change.reason}")
        for option in change.action.options:
            print(f"   [{option.key}] {option.title} - {option.description}")
    print(f"\n{result.summary}")
    return 0


def cmd_resolve(args) -> int:
    repo, sleep = load_schedule(Path(args.schedule))
    engine = build_engine(args, sleep)
    now = resolve_now(args)

    new_item = repo.get(args.item)
    others = [item for item in repo.all_items() if item.id != new_item.id]
    conflicts = engine.find_conflicts(new_item, others)
    resolutions = engine.suggest_resolution(new_item, conflicts, others, now)

    if args.json:
        print_json([r.to_dict() for r in resolutions])
        return 0

    print_header(f"CONFLICTS: {new_item.title}")
    if not resolutions:
        print("No conflicts.")
        return 0
    for resolution in resolutions:
        start = resolution.suggested_start
        when = f" → {start:%a %H:%M}" if start else ""
        print(f"\n• {resolution.conflicting_item.title}{when}")
        print(f"  {resolution.reason}")
    return 0


def cmd_status(args) -> int:
    repo, sleep = load_schedule(Path(args.schedule))
    engine = build_engine(args, sleep)
    now = resolve_now(args)
    target = resolve_date(args, now)
    print(engine.status_message(repo.all_items(), target, now))
    return 0


def cmd_slots(args) -> int:
    repo, sleep = load_schedule(Path(args.schedule))
    engine = build_engine(args, sleep)
    now = resolve_now(args)
    target = resolve_date(args, now)
    after = max(now, engine.settings.morning_start(target))

    starts = find_multiple_slots(
        after,
        args.minutes,
        target,
        repo.all_items(),
        now,
        args.count,
        sleep_provider=sleep,
        settings=engine.settings,
    )
    if args.json:
        print_json([s.isoformat() for s in starts])
        return 0
    if not starts:
        print(f"No free {args.minutes} min slot found.")
        return 0
    for start in starts:
        print(f"{start:%a %b %d} {format_clock(start)}")
    return 0


def cmd_compensation(args) -> int:
    tracker = CompensationTracker()
    pending = tracker.pending()
    if args.json:
        print_json([r.to_dict() for r in pending])
        return 0

    print_header(f"MAKE-UP TIME: {tracker.formatted_pending_time()}")
    if not pending:
        print("Nothing pending.")
        return 0
    rows = [
        [r.item_title, r.original_date, r.reason, format_minutes(r.remaining_minutes)]
        for r in pending
    ]
    print_table(["Item", "From", "Reason", "Owed"], rows, [30, 10, 10, 7])
    return 0


# =============================================================================
# ENTRY POINT
# =============================================================================


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="tempo", description="Reshuffle a day without losing what matters.")
    p.add_argument("--config", help="Path to reshuffle.yaml (default: TEMPO_CONFIG or config/reshuffle.yaml)")
    p.add_argument("--log-level", default="WARNING", help="DEBUG, INFO, WARNING, ERROR")
    p.add_argument("--json-logs", action="store_true", default=None, help="Force JSON log lines")
    sub = p.add_subparsers(dest="cmd", required=True)

    def day_command(name: str, help_text: str) -> argparse.ArgumentParser:
        c = sub.add_parser(name, help=help_text)
        c.add_argument("schedule", help="YAML schedule file")
        c.add_argument("--now", help="ISO datetime to treat as now")
        c.add_argument("--date", help="ISO date to analyze (default: the date of --now)")
        c.add_argument("--json", action="store_true", help="JSON output")
        return c

    a = day_command("analyze", "Propose changes for a day")
    a.add_argument("--strict", action="store_true", help="Verify plan invariants, exit 2 on violation")
    a.add_argument("--apply", metavar="OUT", help="Apply automatic changes and write the schedule to OUT")
    a.add_argument("--track", action="store_true", help="Record compensation for deferred goals")

    r = sub.add_parser("resolve", help="Suggest a resolution for a new item")
    r.add_argument("schedule", help="YAML schedule file")
    r.add_argument("--item", required=True, help="Id of the new item")
    r.add_argument("--now", help="ISO datetime to treat as now")
    r.add_argument("--json", action="store_true", help="JSON output")

    day_command("status", "One-line status for a day")

    s = day_command("slots", "List free starts for a duration")
    s.add_argument("--minutes", type=int, required=True)
    s.add_argument("--count", type=int, default=None)

    c = sub.add_parser("compensation", help="Show pending make-up time")
    c.add_argument("--json", action="store_true", help="JSON output")

    return p


COMMANDS = {
    "analyze": cmd_analyze,
    "resolve": cmd_resolve,
    "status": cmd_status,
    "slots": cmd_slots,
    "compensation": cmd_compensation,
}


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging(args.log_level, json_format=args.json_logs)
    try:
        return COMMANDS[args.cmd](args)
    except (RepositoryError, FileNotFoundError, ValueError) as e:
        logger.error("%s: %s", args.cmd, e)
        print(f"Error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
