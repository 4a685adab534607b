"""Tests for range queries over raw event collections."""

from datetime import UTC, datetime, timedelta

from py_calgrid.events import Event
from py_calgrid.range_index import events_for_resource, query_events
from py_calgrid.recurrence_rule import Frequency, RecurrenceRule
from py_calgrid.timerange import end_of_day

DAY = datetime(2025, 1, 15, tzinfo=UTC)


def _event(event_id: str, start: datetime, hours: float = 1, **kwargs) -> Event:
    return Event(
        id=event_id,
        title=event_id,
        start=start,
        end=start + timedelta(hours=hours),
        **kwargs,
    )


def test_plain_events_filtered_by_inclusive_overlap():
    """Test inclusion of overlapping and touching events."""
    inside = _event("inside", DAY.replace(hour=10))
    touching = _event("touching", DAY - timedelta(hours=1))
    before = _event("before", DAY - timedelta(hours=3))
    after = _event("after", DAY + timedelta(days=1, hours=1))

    result = query_events([after, inside, before, touching], DAY, end_of_day(DAY))

    assert [e.id for e in result] == ["touching", "inside"], f"got {[e.id for e in result]}"


def test_recurring_events_are_expanded():
    """Test that bases contribute their occurrences, not themselves."""
    base = _event(
        "daily",
        DAY.replace(hour=9) - timedelta(days=10),
        recurrence_rule=RecurrenceRule(Frequency.DAILY),
    )

    result = query_events([base], DAY, end_of_day(DAY + timedelta(days=1)))

    assert [e.start for e in result] == [DAY.replace(hour=9), DAY.replace(hour=9) + timedelta(days=1)]
    assert all(e.recurrence_rule is None for e in result)


def test_override_emitted_once():
    """Test that an override inside the range is not also emitted as a plain event."""
    slot = DAY.replace(hour=9)
    base = _event(
        "daily",
        slot - timedelta(days=2),
        uid="daily@test",
        recurrence_rule=RecurrenceRule(Frequency.DAILY),
        exception_dates=[slot],
    )
    override = _event("daily_modified", slot + timedelta(hours=2), uid="daily@test", recurrence_id=slot)

    result = query_events([base, override], DAY, end_of_day(DAY))

    assert [e.id for e in result] == ["daily_modified"], f"got {[e.id for e in result]}"


def test_orphan_override_treated_as_plain_event():
    """Test overrides whose base is not part of the collection."""
    slot = DAY.replace(hour=9)
    orphan = _event("orphan", slot, uid="gone@test", recurrence_id=slot)

    result = query_events([orphan], DAY, end_of_day(DAY))

    assert result == [orphan]


def test_duplicate_base_expanded_once():
    """Test that only the first base of a uid owns the series."""
    start = DAY.replace(hour=9)
    first = _event("a", start, uid="same@test", recurrence_rule=RecurrenceRule(Frequency.DAILY))
    second = _event("b", start, uid="same@test", recurrence_rule=RecurrenceRule(Frequency.DAILY))

    result = query_events([first, second], DAY, end_of_day(DAY))

    assert [e.id for e in result] == ["a_0"], f"got {[e.id for e in result]}"


def test_results_sorted_by_start():
    """Test ordering of mixed plain and recurring results."""
    base = _event(
        "daily", DAY.replace(hour=11), recurrence_rule=RecurrenceRule(Frequency.DAILY, count=2)
    )
    early = _event("early", DAY.replace(hour=8))
    late = _event("late", DAY.replace(hour=20))

    result = query_events([late, base, early], DAY, end_of_day(DAY + timedelta(days=1)))

    assert [e.id for e in result] == ["early", "daily_0", "late", "daily_1"]


def test_events_for_resource():
    """Test resource filtering on single and multiple assignments."""
    room = _event("room", DAY, resource_id="r1")
    shared = _event("shared", DAY, resource_ids=["r1", "r2"])
    other = _event("other", DAY, resource_id="r2")

    assert events_for_resource([room, shared, other], "r1") == [room, shared]
    assert events_for_resource([room, shared, other], "r3") == []
