"""Tests for recurring event expansion."""

from datetime import UTC, datetime, timedelta
from zoneinfo import ZoneInfo

import pytest

from py_calgrid.errors import InvalidRuleError
from py_calgrid.events import Event
from py_calgrid.recurrence import expand_recurring_event
from py_calgrid.recurrence_rule import Frequency, RecurrenceRule
from py_calgrid.timerange import end_of_day

MONDAY = datetime(2025, 1, 6, 9, 0, tzinfo=UTC)
WEEK_START = datetime(2025, 1, 6, tzinfo=UTC)
WEEK_END = end_of_day(datetime(2025, 1, 12, tzinfo=UTC))


def _daily(**kwargs) -> Event:
    values = {
        "id": "daily",
        "title": "Standup",
        "start": MONDAY,
        "end": MONDAY + timedelta(hours=1),
        "uid": "daily@test",
        "recurrence_rule": RecurrenceRule(Frequency.DAILY),
    }
    values.update(kwargs)
    return Event(**values)


def test_daily_rule_over_seven_days():
    """Test that a daily rule yields one occurrence per day of the range."""
    base = _daily()

    occurrences = expand_recurring_event(base, [base], WEEK_START, WEEK_END)

    assert len(occurrences) == 7, f"expected 7 occurrences, got {len(occurrences)}"
    assert [o.start.day for o in occurrences] == list(range(6, 13))
    for occurrence in occurrences:
        assert occurrence.duration == timedelta(hours=1), f"{occurrence.id} has wrong duration"
        assert occurrence.uid == "daily@test"
        assert occurrence.recurrence_rule is None
        assert occurrence.exception_dates == []


def test_synthesized_ids_use_occurrence_index():
    """Test the "{id}_{index}" ids of synthesized occurrences."""
    base = _daily(uid=None)

    occurrences = expand_recurring_event(base, [base], WEEK_START, WEEK_END)

    assert occurrences[0].id == "daily_0"
    assert occurrences[6].id == "daily_6"
    assert occurrences[0].uid == "daily@test", "uid must be derived from the id"


def test_every_day_excluded_yields_nothing():
    """Test that excluding every date of the range leaves no occurrences."""
    base = _daily(exception_dates=[MONDAY + timedelta(days=i) for i in range(7)])

    occurrences = expand_recurring_event(base, [base], WEEK_START, WEEK_END)

    assert occurrences == [], f"expected no occurrences, got {occurrences}"


def test_exception_date_drops_single_occurrence():
    """Test exact-instant matching of exception dates."""
    wednesday = MONDAY + timedelta(days=2)
    # Same day, different instant: not an exclusion
    base = _daily(exception_dates=[wednesday, MONDAY + timedelta(days=3, minutes=1)])

    occurrences = expand_recurring_event(base, [base], WEEK_START, WEEK_END)

    assert len(occurrences) == 6
    assert wednesday not in [o.start for o in occurrences]
    assert occurrences[2].id == "daily_3", "indices count excluded occurrences too"


def test_occurrence_running_into_range_is_included():
    """Test that the search window reaches back by the event duration."""
    start = datetime(2025, 1, 6, 22, 0, tzinfo=UTC)
    base = _daily(start=start, end=start + timedelta(hours=4))
    range_start = datetime(2025, 1, 7, tzinfo=UTC)

    occurrences = expand_recurring_event(base, [base], range_start, end_of_day(range_start))

    assert [o.start for o in occurrences] == [start, start + timedelta(days=1)]


def test_override_replaces_occurrence():
    """Test that a stored override stands in for its original slot."""
    slot = MONDAY + timedelta(days=2)
    base = _daily(exception_dates=[slot])
    override = Event(
        id="daily_2_modified",
        title="Moved standup",
        start=slot + timedelta(hours=5),
        end=slot + timedelta(hours=6),
        uid="daily@test",
        recurrence_id=slot,
    )

    occurrences = expand_recurring_event(base, [base, override], WEEK_START, WEEK_END)

    assert len(occurrences) == 7, f"expected 7 occurrences, got {len(occurrences)}"
    moved = [o for o in occurrences if o.id == "daily_2_modified"]
    assert len(moved) == 1
    assert moved[0].title == "Moved standup"
    assert moved[0].start == slot + timedelta(hours=5)
    assert moved[0].recurrence_id == slot
    assert slot not in [o.start for o in occurrences]


def test_override_wins_over_missing_exception_date():
    """Test that an override replaces its slot even without an exception date."""
    slot = MONDAY + timedelta(days=1)
    base = _daily()
    override = Event(
        id="ov",
        title="Tuesday special",
        start=slot,
        end=slot + timedelta(hours=2),
        uid="daily@test",
        recurrence_id=slot,
    )

    occurrences = expand_recurring_event(base, [base, override], WEEK_START, WEEK_END)
    tuesday = [o for o in occurrences if o.start == slot]

    assert len(occurrences) == 7
    assert len(tuesday) == 1, f"expected one Tuesday event, got {tuesday}"
    assert tuesday[0].title == "Tuesday special"


def test_override_moved_into_range_is_emitted_once():
    """Test an override whose slot is outside the range but whose time is inside."""
    slot = MONDAY + timedelta(days=3)  # Thursday
    base = _daily(exception_dates=[slot])
    override = Event(
        id="ov",
        title="Moved to Friday",
        start=slot + timedelta(days=1, hours=6),
        end=slot + timedelta(days=1, hours=7),
        uid="daily@test",
        recurrence_id=slot,
    )
    friday = datetime(2025, 1, 10, tzinfo=UTC)

    occurrences = expand_recurring_event(base, [base, override], friday, end_of_day(friday))

    assert [o.title for o in occurrences] == ["Standup", "Moved to Friday"]


def test_override_moved_out_of_range_hides_slot():
    """Test that a slot moved elsewhere leaves its own day empty."""
    slot = MONDAY + timedelta(days=4)  # Friday
    base = _daily(exception_dates=[slot])
    override = Event(
        id="ov",
        title="Moved to Saturday",
        start=slot + timedelta(days=1),
        end=slot + timedelta(days=1, hours=1),
        uid="daily@test",
        recurrence_id=slot,
    )
    friday = datetime(2025, 1, 10, tzinfo=UTC)

    occurrences = expand_recurring_event(base, [base, override], friday, end_of_day(friday))

    assert occurrences == [], f"expected an empty Friday, got {occurrences}"


def test_override_of_other_series_is_ignored():
    """Test that overrides only apply to the series with the same uid."""
    slot = MONDAY + timedelta(days=1)
    base = _daily()
    foreign = Event(
        id="other",
        title="Other series",
        start=slot,
        end=slot + timedelta(hours=1),
        uid="other@test",
        recurrence_id=slot,
    )

    occurrences = expand_recurring_event(base, [base, foreign], WEEK_START, WEEK_END)

    assert all(o.title == "Standup" for o in occurrences)
    assert len(occurrences) == 7


def test_override_for_non_occurrence_is_ignored():
    """Test that an override whose slot is not generated by the rule is skipped."""
    base = _daily()
    stray = Event(
        id="stray",
        title="Stray",
        start=MONDAY + timedelta(days=1, minutes=30),
        end=MONDAY + timedelta(days=1, hours=1),
        uid="daily@test",
        recurrence_id=MONDAY + timedelta(days=1, minutes=30),
    )

    occurrences = expand_recurring_event(base, [base, stray], WEEK_START, WEEK_END)

    assert "stray" not in [o.id for o in occurrences]
    assert len(occurrences) == 7


def test_non_recurring_event_expands_to_nothing():
    """Test that only base recurring events are expanded."""
    plain = _daily(recurrence_rule=None)

    assert expand_recurring_event(plain, [plain], WEEK_START, WEEK_END) == []


def test_count_limits_occurrences():
    """Test that COUNT bounds the series."""
    base = _daily(recurrence_rule=RecurrenceRule(Frequency.DAILY, count=3))

    occurrences = expand_recurring_event(base, [base], WEEK_START, WEEK_END)

    assert len(occurrences) == 3


def test_weekly_rule_stays_on_local_weekday():
    """Test that a Los Angeles Wednesday series never drifts to Thursday."""
    la = ZoneInfo("America/Los_Angeles")
    start = datetime(2025, 1, 1, 16, 0, tzinfo=la)
    base = Event(
        id="sync",
        title="Weekly sync",
        start=start,
        end=start + timedelta(hours=1),
        recurrence_rule=RecurrenceRule(Frequency.WEEKLY, by_weekday=["WE"]),
    )

    occurrences = expand_recurring_event(
        base,
        [base],
        datetime(2025, 1, 1, tzinfo=UTC),
        end_of_day(datetime(2025, 1, 31, tzinfo=UTC)),
    )

    assert len(occurrences) == 5, f"expected 5 Wednesdays, got {len(occurrences)}"
    for occurrence in occurrences:
        local = occurrence.start.astimezone(la)
        assert local.weekday() == 2, f"{local} is not a Wednesday"
        assert local.hour == 16


def test_daily_rule_keeps_local_time_across_dst():
    """Test wall-clock generation across a daylight saving change."""
    berlin = ZoneInfo("Europe/Berlin")
    start = datetime(2025, 3, 28, 9, 0, tzinfo=berlin)
    base = Event(
        id="berlin",
        title="Morning",
        start=start,
        end=start + timedelta(minutes=30),
        recurrence_rule=RecurrenceRule(Frequency.DAILY, count=5),
    )

    occurrences = expand_recurring_event(
        base, [base], start, datetime(2025, 4, 5, tzinfo=berlin)
    )

    assert [o.start.astimezone(berlin).hour for o in occurrences] == [9] * 5


def test_invalid_rule_raises():
    """Test that an unusable rule surfaces with its configuration."""
    base = _daily(recurrence_rule=RecurrenceRule(Frequency.DAILY, interval=0))

    with pytest.raises(InvalidRuleError) as excinfo:
        expand_recurring_event(base, [base], WEEK_START, WEEK_END)

    assert excinfo.value.rule["interval"] == 0
    assert "interval must be positive" in str(excinfo.value)


def test_expansion_is_deterministic():
    """Test identical output for identical input."""
    slot = MONDAY + timedelta(days=2)
    base = _daily(exception_dates=[slot])
    override = Event(
        id="ov", title="Moved", start=slot, end=slot + timedelta(hours=1),
        uid="daily@test", recurrence_id=slot,
    )

    first = expand_recurring_event(base, [base, override], WEEK_START, WEEK_END)
    second = expand_recurring_event(base, [override, base], WEEK_START, WEEK_END)

    assert first == second
    assert [o.start for o in first] == sorted(o.start for o in first)
