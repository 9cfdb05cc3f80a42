"""
Tests for the tempo command line.
"""

import json
import logging

import pytest
import yaml

from cli import main as cli_main
from cli.main import main
from tempo.contracts.invariants import InvariantViolation
from tempo.contracts.vocabulary import CompassionateMessage
from tempo.schedule.compensation import CompensationTracker
from tempo.schedule.repository import InMemoryScheduleRepository
from tests.fixtures import at, flexible, non_negotiable, optional

NOW = "2026-10-19T08:00"


@pytest.fixture(autouse=True)
def restore_root_logger():
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)


@pytest.fixture
def schedule(tmp_path):
    path = tmp_path / "today.yaml"
    items = [
        non_negotiable("standup", at(10), 60),
        flexible("notes", at(10, 30)),
        optional("guitar", at(16)),
    ]
    payload = {
        "sleep": {"bedtime": "23:00", "wake": "06:00"},
        "items": [item.to_dict() for item in items],
    }
    path.write_text(yaml.safe_dump(payload, sort_keys=False))
    return path


class TestAnalyze:
    def test_json_plan(self, schedule, capsys):
        assert main(["analyze", str(schedule), "--now", NOW, "--json"]) == 0
        data = json.loads(capsys.readouterr().out)
        actions = {c["item_id"]: c["action"] for c in data["changes"]}
        assert actions == {
            "standup": "requires_user_decision",
            "notes": "moved",
            "guitar": "protected",
        }
        assert data["requires_user_consent"] is True

    def test_table_output(self, schedule, capsys):
        assert main(["analyze", str(schedule), "--now", NOW]) == 0
        out = capsys.readouterr().out
        assert "RESHUFFLE: 2026-10-19" in out
        assert "1 protected, 1 adjusted" in out
        assert "? Standup: This non-negotiable overlaps with: Notes" in out
        assert "[keep]" in out

    def test_strict_passes(self, schedule):
        assert main(["analyze", str(schedule), "--now", NOW, "--strict", "--json"]) == 0

    def test_strict_violation_exit_code(self, schedule, monkeypatch, capsys):
        def broken(*args):
            raise InvariantViolation("boom")

        monkeypatch.setattr(cli_main, "check_plan", broken)
        assert main(["analyze", str(schedule), "--now", NOW, "--strict"]) == 2
        assert "boom" in capsys.readouterr().err

    def test_apply_writes_adjusted_schedule(self, schedule, tmp_path):
        out = tmp_path / "adjusted.yaml"
        assert main(["analyze", str(schedule), "--now", NOW, "--apply", str(out), "--json"]) == 0
        repo = InMemoryScheduleRepository.load_yaml(out)
        assert repo.get("notes").start_time == at(9, 30)
        assert repo.get("standup").start_time == at(10)


class TestOtherCommands:
    def test_resolve(self, schedule, capsys):
        assert main(["resolve", str(schedule), "--item", "notes", "--now", NOW, "--json"]) == 0
        [resolution] = json.loads(capsys.readouterr().out)
        assert resolution["suggestion"] == "move_new"
        assert resolution["candidates"][0] == "2026-10-19T11:00:00"

    def test_status(self, schedule, capsys):
        assert main(["status", str(schedule), "--now", NOW]) == 0
        assert capsys.readouterr().out.strip() == CompassionateMessage.ON_TRACK

    def test_slots(self, schedule, capsys):
        assert main(["slots", str(schedule), "--now", NOW, "--minutes", "30", "--count", "2"]) == 0
        assert capsys.readouterr().out.splitlines() == ["Mon Oct 19 08:00", "Mon Oct 19 08:30"]

    def test_compensation(self, capsys):
        CompensationTracker().record_debt(optional("guitar", at(16), 45), 45)
        assert main(["compensation"]) == 0
        out = capsys.readouterr().out
        assert "MAKE-UP TIME: 45m" in out
        assert "Guitar" in out

    def test_compensation_empty(self, capsys):
        assert main(["compensation", "--json"]) == 0
        assert json.loads(capsys.readouterr().out) == []


class TestErrors:
    def test_missing_file(self, tmp_path, capsys):
        assert main(["status", str(tmp_path / "nope.yaml")]) == 1
        assert capsys.readouterr().err.startswith("Error:")

    def test_unknown_item(self, schedule):
        assert main(["resolve", str(schedule), "--item", "ghost", "--now", NOW]) == 1

    def test_bad_now(self, schedule):
        assert main(["status", str(schedule), "--now", "soon"]) == 1
