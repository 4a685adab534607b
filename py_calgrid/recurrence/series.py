"""Grouping of raw events into recurring series by uid."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import datetime

from ..events import Event, series_uid


@dataclass
class SeriesEntry:
    """The base event and stored overrides of one series."""

    base: Event | None = None
    overrides: dict[datetime, Event] = field(default_factory=dict)

    def override_for(self, occurrence: datetime) -> Event | None:
        """Stored override replacing ``occurrence``, if any."""
        return self.overrides.get(occurrence)


class SeriesIndex:
    """uid -> SeriesEntry lookup built in one pass over the raw events.

    Override lookups keyed on (uid, recurrence_id) are dictionary hits, so
    expanding many series against the same collection stays linear.
    """

    def __init__(self, events: Iterable[Event], namespace: str | None = None) -> None:
        self.namespace = namespace
        self._entries: dict[str, SeriesEntry] = {}

        for event in events:
            if event.is_recurring_base:
                entry = self._entries.setdefault(series_uid(event, namespace), SeriesEntry())
                # First base wins, matching the first-match lookup of mutations
                if entry.base is None:
                    entry.base = event
            elif event.is_override:
                entry = self._entries.setdefault(series_uid(event, namespace), SeriesEntry())
                # Aware datetimes hash by instant, so equal instants collide on purpose
                entry.overrides.setdefault(event.recurrence_id, event)

    def __contains__(self, uid: str) -> bool:
        return uid in self._entries

    def get(self, uid: str) -> SeriesEntry | None:
        return self._entries.get(uid)

    def base_for(self, uid: str) -> Event | None:
        entry = self._entries.get(uid)
        return entry.base if entry else None

    def base_for_event(self, event: Event) -> Event | None:
        """Base of the series ``event`` belongs to."""
        return self.base_for(series_uid(event, self.namespace))

    def has_base(self, event: Event) -> bool:
        """True when ``event`` belongs to a series whose base is in the collection."""
        return self.base_for(series_uid(event, self.namespace)) is not None
