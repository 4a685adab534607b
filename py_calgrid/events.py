"""Calendar event types and the normalization boundary for raw input."""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field, fields, replace
from datetime import datetime, timedelta, tzinfo
from typing import Any

from .config import get_config
from .recurrence_rule import RecurrenceRule
from .timerange import to_instant

# Geometry fields computed by the layout engines; never part of stored events
LAYOUT_FIELDS = frozenset(
    {
        "left",
        "width",
        "top",
        "height",
        "position",
        "z_index",
        "is_truncated_start",
        "is_truncated_end",
    }
)

# camelCase keys accepted from collaborators, mapped to Event field names
_RAW_KEYS = {
    "allDay": "all_day",
    "rrule": "recurrence_rule",
    "recurrenceRule": "recurrence_rule",
    "exdates": "exception_dates",
    "exceptionDates": "exception_dates",
    "recurrenceId": "recurrence_id",
    "resourceId": "resource_id",
    "resourceIds": "resource_ids",
    "backgroundColor": "background_color",
    "zIndex": "z_index",
    "isTruncatedStart": "is_truncated_start",
    "isTruncatedEnd": "is_truncated_end",
}


@dataclass
class Event:
    """A calendar event.

    A base recurring event carries ``recurrence_rule`` and no
    ``recurrence_id``. An override instance carries ``recurrence_id`` (the
    original occurrence it replaces), no rule, and the base's ``uid``.
    """

    id: str | int
    title: str
    start: datetime
    end: datetime
    uid: str | None = None
    all_day: bool = False
    recurrence_rule: RecurrenceRule | None = None
    exception_dates: list[datetime] = field(default_factory=list)
    recurrence_id: datetime | None = None
    resource_id: str | int | None = None
    resource_ids: list[str | int] | None = None
    description: str | None = None
    location: str | None = None
    color: str | None = None
    background_color: str | None = None
    data: dict[str, Any] | None = None

    @property
    def duration(self) -> timedelta:
        return self.end - self.start

    @property
    def is_recurring_base(self) -> bool:
        return self.recurrence_rule is not None and self.recurrence_id is None

    @property
    def is_override(self) -> bool:
        return self.recurrence_id is not None and self.recurrence_rule is None


@dataclass
class PositionedEvent(Event):
    """An event with the geometry computed by a layout engine.

    ``left``/``width`` are percentages of the container width. For the day
    layout ``top``/``height`` are percentages of the column height; for the
    grid layout they are pixels and ``position`` is the row index.
    """

    left: float = 0.0
    width: float = 100.0
    top: float = 0.0
    height: float = 0.0
    position: int | None = None
    z_index: int | None = None
    is_truncated_start: bool = False
    is_truncated_end: bool = False


EVENT_FIELDS = tuple(f.name for f in fields(Event))


def series_uid(event: Event, namespace: str | None = None) -> str:
    """Return the series uid of ``event``, deriving ``"{id}@{namespace}"`` if unset."""
    if event.uid:
        return event.uid
    return f"{event.id}@{namespace or get_config().uid_namespace}"


def strip_layout(event: Event) -> Event:
    """Plain Event copy of ``event`` without layout geometry."""
    if type(event) is Event:
        return event
    return Event(**{name: getattr(event, name) for name in EVENT_FIELDS})


def positioned(event: Event, **geometry: Any) -> PositionedEvent:
    """Wrap ``event`` into a PositionedEvent with the given geometry."""
    return PositionedEvent(
        **{name: getattr(event, name) for name in EVENT_FIELDS}, **geometry
    )


def clean_updates(updates: Mapping[str, Any], tz: tzinfo | None = None) -> dict[str, Any]:
    """Validate and normalize a partial update of Event fields.

    Layout fields are discarded, camelCase keys are accepted, and date
    values pass through ``to_instant``. A recurrence rule given as a mapping
    is kept as a partial rule update for ``RecurrenceRule.merged``.

    Raises:
        ValueError: If a key is not an Event field
    """
    cleaned: dict[str, Any] = {}
    for key, value in updates.items():
        name = _RAW_KEYS.get(key, key)
        if name in LAYOUT_FIELDS:
            continue
        if name not in EVENT_FIELDS:
            raise ValueError(f"unknown event field in update: {key!r}")
        if name == "recurrence_rule" and isinstance(value, Mapping):
            cleaned[name] = dict(value)
        else:
            cleaned[name] = _normalize_field(name, value, tz)
    return cleaned


def apply_updates(event: Event, updates: Mapping[str, Any], tz: tzinfo | None = None) -> Event:
    """Return a plain Event copy of ``event`` with ``updates`` merged in."""
    return replace(strip_layout(event), **resolve_rule_update(event, clean_updates(updates, tz)))


def resolve_rule_update(event: Event, changes: dict[str, Any]) -> dict[str, Any]:
    """Turn a partial rule mapping in ``changes`` into a full RecurrenceRule."""
    value = changes.get("recurrence_rule")
    if not isinstance(value, Mapping):
        return changes
    if event.recurrence_rule is not None:
        rule = event.recurrence_rule.merged(value)
    else:
        rule = RecurrenceRule.coerce(value)
    return {**changes, "recurrence_rule": rule}


def _normalize_field(name: str, value: Any, tz: tzinfo | None) -> Any:
    if value is None:
        return None
    if name in ("start", "end"):
        return to_instant(value, tz)
    if name == "recurrence_id":
        return to_instant(value, tz)
    if name == "exception_dates":
        return [to_instant(v, tz) for v in value]
    if name == "recurrence_rule":
        return RecurrenceRule.coerce(value)
    if name == "resource_ids":
        return list(value)
    if name == "all_day":
        return bool(value)
    return value


def normalize_event(raw: Event | Mapping[str, Any], tz: tzinfo | None = None) -> Event:
    """Convert a caller-supplied event into the internal Event shape.

    ``raw`` may already be an Event (returned as is) or a mapping with
    snake_case or camelCase keys. Unknown keys are kept under ``data``.
    Missing or unparseable start/end values fall back to the current time;
    a missing end defaults to the start.
    """
    if isinstance(raw, Event):
        return raw

    values: dict[str, Any] = {}
    extra: dict[str, Any] = {}
    for key, value in raw.items():
        name = _RAW_KEYS.get(key, key)
        if name in LAYOUT_FIELDS:
            continue
        if name in EVENT_FIELDS:
            values[name] = _normalize_field(name, value, tz)
        else:
            extra[key] = value

    if "id" not in values:
        raise ValueError("event is missing an id")

    values.setdefault("title", "")
    values["start"] = values.get("start") or to_instant(None, tz)
    values["end"] = values.get("end") or values["start"]
    values["exception_dates"] = values.get("exception_dates") or []
    if extra:
        values["data"] = {**(values.get("data") or {}), **extra}

    return Event(**values)


def normalize_events(
    raw_events: Iterable[Event | Mapping[str, Any]] | None, tz: tzinfo | None = None
) -> list[Event]:
    """Normalize a whole collection (None gives an empty list)."""
    if not raw_events:
        return []
    return [normalize_event(raw, tz) for raw in raw_events]


def get_event_resource_ids(event: Event) -> list[str | int]:
    """Resources an event is assigned to (``resource_ids`` wins over ``resource_id``)."""
    if event.resource_ids:
        return list(event.resource_ids)
    if event.resource_id is not None:
        return [event.resource_id]
    return []
