"""iCalendar (RFC 5545) export and import of raw event collections.

Export writes one VEVENT per base recurring event, override instance and
plain event; occurrences synthesized by the expander are skipped. All
timed values are written in UTC and the calendar carries a single UTC
VTIMEZONE. Import reads the same subset back into Event objects.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from datetime import UTC, date, datetime, timedelta, tzinfo

from icalendar import Calendar as iCalendar
from icalendar import Event as iEvent
from icalendar import Timezone, TimezoneStandard
from icalendar.prop import vRecur

from .config import get_config
from .events import Event, series_uid
from .recurrence_rule import RecurrenceRule
from .timerange import end_of_day, to_instant

logger = logging.getLogger(__name__)

DEFAULT_CALENDAR_NAME = "py-calgrid Calendar"
PRODID = "-//py-calgrid//py-calgrid Calendar//EN"


def filter_exportable(events: Iterable[Event], namespace: str | None = None) -> list[Event]:
    """Drop synthesized occurrences, keeping bases, overrides and plain events.

    An event with neither a rule nor a recurrence id is treated as a
    synthesized occurrence when a base recurring event with the same uid is
    part of the collection.
    """
    events = list(events)
    base_uids = {series_uid(e, namespace) for e in events if e.is_recurring_base}

    exportable = []
    for event in events:
        if event.recurrence_rule is not None or event.recurrence_id is not None:
            exportable.append(event)
        elif series_uid(event, namespace) not in base_uids:
            exportable.append(event)
    return exportable


def _utc_timezone() -> Timezone:
    standard = TimezoneStandard()
    standard.add("dtstart", datetime(1970, 1, 1))
    standard.add("tzname", "UTC")
    standard.add("tzoffsetfrom", timedelta(0))
    standard.add("tzoffsetto", timedelta(0))

    timezone = Timezone()
    timezone.add("tzid", "UTC")
    timezone.add_component(standard)
    return timezone


def _ical_value(value: datetime, all_day: bool) -> date | datetime:
    if all_day:
        return value.date()
    return value.astimezone(UTC)


def _ical_end(event: Event) -> date | datetime:
    if event.all_day:
        # DATE ends are exclusive while the stored end still covers its own day
        return event.end.date() + timedelta(days=1)
    return event.end.astimezone(UTC)


def event_to_vevent(event: Event, timestamp: datetime, namespace: str | None = None) -> iEvent:
    """Convert one Event into a VEVENT component."""
    vevent = iEvent()
    vevent.add("uid", series_uid(event, namespace))
    vevent.add("dtstart", _ical_value(event.start, event.all_day))
    vevent.add("dtend", _ical_end(event))
    vevent.add("summary", event.title or "")

    if event.description:
        vevent.add("description", event.description)
    if event.location:
        vevent.add("location", event.location)

    if event.recurrence_rule is not None:
        vevent.add("rrule", vRecur.from_ical(event.recurrence_rule.to_ical()))
    if event.exception_dates:
        vevent.add("exdate", [_ical_value(d, event.all_day) for d in event.exception_dates])
    if event.recurrence_id is not None:
        vevent.add("recurrence-id", _ical_value(event.recurrence_id, event.all_day))

    vevent.add("dtstamp", timestamp)
    vevent.add("created", timestamp)
    vevent.add("last-modified", timestamp)
    vevent.add("status", "CONFIRMED")
    vevent.add("sequence", 0)
    vevent.add("transp", "OPAQUE")
    return vevent


def export_icalendar(
    events: Iterable[Event],
    calendar_name: str = DEFAULT_CALENDAR_NAME,
    *,
    timestamp: datetime | None = None,
    namespace: str | None = None,
) -> str:
    """Serialize a raw event collection as an iCalendar document.

    Args:
        events: Raw event collection (bases, overrides, plain events)
        calendar_name: Value of X-WR-CALNAME
        timestamp: DTSTAMP/CREATED/LAST-MODIFIED value (default: now, UTC)
        namespace: uid namespace for events without an explicit uid

    Returns:
        iCalendar text with CRLF line breaks

    Example:
        >>> text = export_icalendar(events, "Team")
        >>> text.startswith("BEGIN:VCALENDAR")
        True
    """
    timestamp = (timestamp or datetime.now(UTC)).astimezone(UTC)

    cal = iCalendar()
    cal.add("version", "2.0")
    cal.add("prodid", PRODID)
    cal.add("calscale", "GREGORIAN")
    cal.add("method", "PUBLISH")
    cal.add("x-wr-calname", calendar_name)
    cal.add("x-wr-caldesc", f"Exported from {calendar_name}")
    cal.add_component(_utc_timezone())

    exportable = filter_exportable(events, namespace)
    for event in exportable:
        cal.add_component(event_to_vevent(event, timestamp, namespace))

    logger.debug("Exported %d events to %r", len(exportable), calendar_name)
    return cal.to_ical().decode("utf-8")


def _decoded_instant(component: iEvent, name: str, tz: tzinfo | None) -> datetime | None:
    if name not in component:
        return None
    return to_instant(component.decoded(name), tz)


def _exception_dates(component: iEvent, tz: tzinfo | None) -> list[datetime]:
    prop = component.get("exdate")
    if prop is None:
        return []
    props = prop if isinstance(prop, list) else [prop]
    return [to_instant(value.dt, tz) for p in props for value in p.dts]


def _event_id(uid: str, namespace: str) -> str:
    suffix = f"@{namespace}"
    return uid[: -len(suffix)] if uid.endswith(suffix) else uid


def vevent_to_event(component: iEvent, tz: tzinfo | None = None, namespace: str | None = None) -> Event:
    """Convert a VEVENT component into an Event.

    All-day events end at the end of their last covered day (the day before
    the exclusive DTEND, or the start day without one). Timed events
    without DTEND end at DTSTART plus DURATION, or at the start.
    """
    namespace = namespace or get_config().uid_namespace
    uid = str(component.get("uid", ""))
    raw_start = component.decoded("dtstart")
    all_day = not isinstance(raw_start, datetime)
    start = to_instant(raw_start, tz)

    end = _decoded_instant(component, "dtend", tz)
    if all_day:
        if end is not None:
            last_day = end - timedelta(days=1)
        elif "duration" in component:
            last_day = start + component.decoded("duration") - timedelta(days=1)
        else:
            last_day = start
        end = end_of_day(max(last_day, start))
    elif end is None:
        end = start + component.decoded("duration") if "duration" in component else start

    recurrence_id = _decoded_instant(component, "recurrence-id", tz)
    rule = None
    if "rrule" in component:
        rule = RecurrenceRule.from_ical(component["rrule"].to_ical())

    event_id = _event_id(uid, namespace) if uid else ""
    if recurrence_id is not None:
        event_id = f"{event_id}_modified_{recurrence_id.astimezone(UTC):%Y%m%dT%H%M%SZ}"

    return Event(
        id=event_id,
        title=str(component.get("summary", "")),
        start=start,
        end=end,
        uid=uid or None,
        all_day=all_day,
        recurrence_rule=rule,
        exception_dates=_exception_dates(component, tz),
        recurrence_id=recurrence_id,
        description=str(component["description"]) if "description" in component else None,
        location=str(component["location"]) if "location" in component else None,
    )


def parse_icalendar(
    data: str | bytes, tz: tzinfo | None = None, namespace: str | None = None
) -> list[Event]:
    """Read the VEVENTs of an iCalendar document.

    Args:
        data: iCalendar text
        tz: Timezone for floating times (default: configured timezone)
        namespace: uid namespace stripped from uids to form event ids

    Returns:
        Raw events in document order

    Raises:
        ValueError: If the document cannot be parsed
        InvalidRuleError: If an RRULE is invalid
    """
    cal = iCalendar.from_ical(data)
    events = [vevent_to_event(component, tz, namespace) for component in cal.walk("VEVENT")]
    logger.debug("Parsed %d events", len(events))
    return events
