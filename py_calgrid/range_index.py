"""Range queries over a raw event collection."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from datetime import datetime

from .events import Event, get_event_resource_ids
from .recurrence.expander import expand_recurring_event
from .recurrence.series import SeriesIndex
from .timerange import overlaps, to_instant

logger = logging.getLogger(__name__)


def query_events(
    all_events: Sequence[Event],
    range_start: datetime,
    range_end: datetime,
    *,
    namespace: str | None = None,
) -> list[Event]:
    """All concrete events visible in ``[range_start, range_end]``.

    Non-recurring events are kept when they overlap the range (inclusive),
    recurring bases are expanded, and overrides reach the result only
    through their base's expansion. Overrides whose base is missing from
    the collection are treated as plain events.

    Args:
        all_events: Raw event collection
        range_start: Start of the visible range
        range_end: End of the visible range
        namespace: uid namespace for events without an explicit uid

    Returns:
        Concrete events sorted by start

    Raises:
        InvalidRuleError: If a recurrence rule cannot be evaluated
    """
    range_start = to_instant(range_start)
    range_end = to_instant(range_end)
    index = SeriesIndex(all_events, namespace)

    results: list[Event] = []
    for event in all_events:
        if event.is_recurring_base:
            if index.base_for_event(event) is not event:
                # A second base for the same uid; the first one owns the series
                logger.debug("Skipping duplicate base %s", event.id)
                continue
            results.extend(
                expand_recurring_event(
                    event,
                    all_events,
                    range_start,
                    range_end,
                    index=index,
                    namespace=namespace,
                )
            )
        elif event.is_override and index.has_base(event):
            continue
        elif overlaps(event.start, event.end, range_start, range_end):
            results.append(event)

    results.sort(key=lambda e: e.start)
    return results


def events_for_resource(events: Iterable[Event], resource_id: str | int) -> list[Event]:
    """Events assigned to ``resource_id`` through ``resource_id`` or ``resource_ids``."""
    return [e for e in events if resource_id in get_event_resource_ids(e)]
