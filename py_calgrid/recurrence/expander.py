"""Expansion of a base recurring event into concrete occurrences."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import fields, replace
from datetime import datetime

from dateutil import rrule as du_rrule

from ..errors import InvalidRuleError
from ..events import Event, series_uid
from ..timerange import overlaps, to_instant
from .series import SeriesIndex

logger = logging.getLogger(__name__)

# Fields an override never inherits from its base
_SERIES_ONLY_FIELDS = {"recurrence_rule", "exception_dates"}


def expand_recurring_event(
    base: Event,
    all_events: Sequence[Event],
    range_start: datetime,
    range_end: datetime,
    *,
    index: SeriesIndex | None = None,
    namespace: str | None = None,
) -> list[Event]:
    """Materialize the occurrences of ``base`` that overlap a range.

    Process:
    1. Build the rule anchored at ``rule.start`` (or ``base.start``)
    2. Query occurrences in ``[range_start - duration, range_end]`` so
       occurrences starting before the range but still running are found
    3. Replace occurrences that have a stored override, drop those listed in
       ``base.exception_dates``, synthesize the rest
    4. Keep occurrences with ``start <= range_end and end >= range_start``

    Args:
        base: Base recurring event (non-recurring events give ``[]``)
        all_events: Raw event collection holding the overrides
        range_start: Start of the visible range
        range_end: End of the visible range
        index: Prebuilt series index for ``all_events`` (built if omitted)
        namespace: uid namespace for events without an explicit uid

    Returns:
        Occurrences sorted by start

    Raises:
        InvalidRuleError: If the recurrence rule cannot be evaluated
    """
    rule = base.recurrence_rule
    if rule is None:
        return []

    range_start = to_instant(range_start)
    range_end = to_instant(range_end)

    if index is None:
        index = SeriesIndex(all_events, namespace)

    uid = series_uid(base, namespace)
    entry = index.get(uid)
    overrides = entry.overrides if entry else {}
    duration = base.end - base.start

    generator = rule.build(base.start)
    try:
        occurrences = generator.between(range_start - duration, range_end, inc=True)
    except (ValueError, TypeError, OverflowError) as e:
        raise InvalidRuleError(rule.to_payload(), e) from e

    excluded = set(base.exception_dates)
    results: list[Event] = []

    for i, occurrence in enumerate(occurrences):
        if occurrence in overrides:
            # Emitted from the override loop below
            continue
        if occurrence in excluded:
            continue

        results.append(
            replace(
                base,
                id=f"{base.id}_{i}",
                uid=uid,
                start=occurrence,
                end=occurrence + duration,
                recurrence_rule=None,
                exception_dates=[],
            )
        )

    for slot, override in overrides.items():
        if not _is_occurrence(generator, slot):
            logger.debug("Ignoring override %s: %s is not an occurrence of %s", override.id, slot, uid)
            continue
        results.append(_merge_override(base, override, uid))

    results = [e for e in results if overlaps(e.start, e.end, range_start, range_end)]
    results.sort(key=lambda e: e.start)
    return results


def _is_occurrence(generator: du_rrule.rrule, instant: datetime) -> bool:
    return bool(generator.between(instant, instant, inc=True))


def _merge_override(base: Event, override: Event, uid: str) -> Event:
    merged = {}
    for f in fields(Event):
        value = getattr(override, f.name)
        if value is None and f.name not in _SERIES_ONLY_FIELDS:
            value = getattr(base, f.name)
        merged[f.name] = value

    merged["uid"] = uid
    merged["recurrence_rule"] = None
    merged["exception_dates"] = []
    return Event(**merged)
