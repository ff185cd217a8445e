"""
Bloom CLI Tests - Command Dispatch & Output

Tests the command line entry point against a small export file.

Run with: pytest tests/test_cli.py -v
"""

import sys
import json
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

import pytest

import bloom_cli


EXPORT = {
    "moments": [
        {"id": "m1", "created_at": "2024-03-06T09:00:00", "type": "write", "moods": ["joyful"]},
        {"id": "m2", "created_at": "2024-03-05T20:00:00", "type": "photo", "moods": ["calm"]},
    ],
    "completions": [{"ritual_id": "r1", "completion_date": "2024-03-06", "mood": "good"}],
    "anchor_logs": [{"anchor_id": "a1", "log_date": "2024-03-05"}],
    "anchors": [{"id": "a1", "label": "Drink water", "type": "grow"}],
    "member_rituals": [{"id": "mr1", "ritual_id": "r1", "planned_time": "07:00"}],
}


# =============================================================================
# FIXTURES
# =============================================================================

@pytest.fixture
def export_file(tmp_path):
    path = tmp_path / "export.json"
    path.write_text(json.dumps(EXPORT), encoding="utf-8")
    return str(path)


@pytest.fixture
def run(monkeypatch):
    """Invoke main() with the given arguments."""
    monkeypatch.setattr(bloom_cli, "setup_logging", lambda **kwargs: None)

    def _run(*args):
        monkeypatch.setattr(sys, "argv", ["bloom_cli.py", *args])
        bloom_cli.main()

    return _run


PINNED = ("--now", "2024-03-06T15:00:00", "--tz", "UTC")


# =============================================================================
# COMMANDS
# =============================================================================

def test_report_prints_json(run, export_file, capsys):
    run("report", export_file, *PINNED)
    report = json.loads(capsys.readouterr().out)

    assert report["now"] == "2024-03-06T15:00:00"
    assert report["moments"]["total_moments"] == 2
    assert report["seeds"]["summary"]["total_active"] == 1


def test_moments_text_output(run, export_file, capsys):
    run("moments", export_file, *PINNED)
    out = capsys.readouterr().out

    assert "Emotion Analytics" in out
    assert "Moments: 2" in out
    assert "Current: 2 day(s)" in out


def test_seeds_json_with_day(run, export_file, capsys):
    run("seeds", export_file, "--day", "2024-03-05", "--json", *PINNED)
    data = json.loads(capsys.readouterr().out)

    assert data["day"]["date"] == "2024-03-05"
    assert data["day"]["seeds"][0]["count"] == 1


def test_rituals_and_progress_run(run, export_file, capsys):
    run("rituals", export_file, *PINNED)
    run("progress", export_file, *PINNED)
    out = capsys.readouterr().out

    assert "Ritual Insights" in out
    assert "This Week" in out


# =============================================================================
# ERRORS
# =============================================================================

def test_bad_day_reports_error(run, export_file, capsys):
    with pytest.raises(SystemExit) as exc_info:
        run("seeds", export_file, "--day", "yesterday", *PINNED)

    assert exc_info.value.code == 1
    assert "❌ Error" in capsys.readouterr().err


def test_unknown_timezone_reports_error(run, export_file, capsys):
    with pytest.raises(SystemExit):
        run("moments", export_file, "--tz", "Nowhere/Special")
    assert "not a known timezone" in capsys.readouterr().err


def test_missing_file(run, capsys):
    with pytest.raises(SystemExit):
        run("report", "does-not-exist.json")
    assert "File not found" in capsys.readouterr().out


def test_unknown_command_prints_usage(run, capsys):
    with pytest.raises(SystemExit):
        run("dance")
    assert "Usage:" in capsys.readouterr().out
