"""Tests for the py-calgrid command-line tool."""

import json
import sys
from datetime import UTC, datetime, timedelta

import pytest

from py_calgrid.cmd.calgrid import main
from py_calgrid.events import Event
from py_calgrid.ical import export_icalendar
from py_calgrid.recurrence_rule import Frequency, RecurrenceRule

MONDAY = datetime(2025, 1, 6, 9, 0, tzinfo=UTC)


@pytest.fixture
def calendar_file(tmp_path):
    """An iCalendar file with a daily series and a two-day trip."""
    events = [
        Event(
            id="daily",
            title="Standup",
            start=MONDAY,
            end=MONDAY + timedelta(minutes=15),
            recurrence_rule=RecurrenceRule(Frequency.DAILY, count=3),
        ),
        Event(
            id="trip",
            title="Trip",
            start=datetime(2025, 1, 8, tzinfo=UTC),
            end=datetime(2025, 1, 9, 23, 59, 59, 999999, tzinfo=UTC),
            all_day=True,
        ),
    ]
    path = tmp_path / "team.ics"
    path.write_text(export_icalendar(events, "Team"), encoding="utf-8")
    return path


def _run(monkeypatch, *args):
    monkeypatch.setattr(sys, "argv", ["py-calgrid", *args])
    main()


def test_list_output(monkeypatch, capsys, calendar_file):
    """Test the default JSON list of occurrences."""
    _run(monkeypatch, "--start", "2025-01-06", "--end", "2025-01-12T23:59:59", str(calendar_file))

    rows = json.loads(capsys.readouterr().out)

    assert [row["title"] for row in rows] == ["Standup", "Standup", "Trip", "Standup"]
    assert rows[0]["id"] == "daily_0"


def test_week_layout(monkeypatch, capsys, calendar_file):
    """Test the week grid output."""
    _run(monkeypatch, "--layout", "week", "--start", "2025-01-08", str(calendar_file))

    (week,) = json.loads(capsys.readouterr().out)

    assert week["week"] == "2025-01-05"
    trip = next(row for row in week["events"] if row["title"] == "Trip")
    assert trip["position"] == 0
    assert trip["width"] == pytest.approx(200 / 7)


def test_day_layout_with_business_hours(monkeypatch, capsys, calendar_file):
    """Test the day column restricted to business hours."""
    _run(
        monkeypatch,
        "--layout", "day",
        "--start", "2025-01-07",
        "--business-hours", "9-17",
        str(calendar_file),
    )

    (standup,) = json.loads(capsys.readouterr().out)

    assert standup["top"] == 0
    assert standup["height"] == pytest.approx(100 / 8 / 4)


def test_export(monkeypatch, capsys, calendar_file):
    """Test re-exporting the parsed collection."""
    _run(monkeypatch, "--export", str(calendar_file))

    out = capsys.readouterr().out

    assert out.startswith("BEGIN:VCALENDAR")
    assert out.count("BEGIN:VEVENT") == 2
    assert "X-WR-CALNAME:team" in out


def test_missing_file(monkeypatch, capsys, tmp_path):
    """Test the error path for a missing input file."""
    with pytest.raises(SystemExit) as exc:
        _run(monkeypatch, str(tmp_path / "missing.ics"))

    assert exc.value.code == 1
    assert "Error: file does not exist" in capsys.readouterr().err


def test_unknown_timezone(monkeypatch, capsys, calendar_file):
    """Test the error path for an invalid timezone."""
    with pytest.raises(SystemExit) as exc:
        _run(monkeypatch, "--timezone", "Mars/Olympus", str(calendar_file))

    assert exc.value.code == 1
    assert "invalid configuration" in capsys.readouterr().err
