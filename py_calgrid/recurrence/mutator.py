"""Scoped update and delete operations on recurring series.

Every operation takes the raw event collection and returns a new list.
Input events are never modified; elements that are not touched by an
operation are returned by identity.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from dataclasses import replace
from datetime import UTC, date, datetime, time, timedelta
from enum import Enum
from typing import Any

from ..config import get_config
from ..errors import BaseSeriesNotFoundError
from ..events import Event, clean_updates, resolve_rule_update, series_uid, strip_layout
from ..timerange import end_of_day

logger = logging.getLogger(__name__)

# Fields of a new "following" series that are never taken from the updates
_SERIES_KEYS = {"id", "uid", "start", "end", "recurrence_rule", "recurrence_id"}


class Scope(str, Enum):
    """Breadth of a mutation across a recurring series."""

    THIS = "this"
    FOLLOWING = "following"
    ALL = "all"


def find_base_event(
    all_events: Sequence[Event], target: Event, namespace: str | None = None
) -> Event | None:
    """Return the base recurring event of ``target``'s series, if present."""
    uid = series_uid(target, namespace)
    for event in all_events:
        if event.is_recurring_base and series_uid(event, namespace) == uid:
            return event
    return None


def update_series(
    all_events: Sequence[Event],
    target: Event,
    updates: Mapping[str, Any],
    scope: Scope | str,
    *,
    namespace: str | None = None,
) -> list[Event]:
    """Apply ``updates`` to a recurring series.

    Args:
        all_events: Raw event collection
        target: Occurrence the user acted on (synthesized or override)
        updates: Partial Event fields; layout fields are ignored
        scope: "this", "following" or "all"
        namespace: uid namespace for events without an explicit uid

    Returns:
        New raw event collection

    Raises:
        ValueError: On an invalid scope or unknown update fields
        BaseSeriesNotFoundError: If the series base is not in ``all_events``
        InvalidRuleError: If a merged recurrence rule is invalid

    Example:
        >>> events = update_series(events, occurrence, {"title": "Moved"}, "this")
    """
    scope = Scope(scope)
    changes = clean_updates(updates)
    base = _require_base(all_events, target, namespace)

    if scope is Scope.THIS:
        return _update_this(all_events, base, target, changes, namespace)
    if scope is Scope.FOLLOWING:
        return _update_following(all_events, base, target, changes, namespace)

    updated = replace(base, **_with_timing(base, resolve_rule_update(base, changes)))
    return _replace_element(all_events, base, _rebase_anchor(base, updated))


def delete_series(
    all_events: Sequence[Event],
    target: Event,
    scope: Scope | str,
    *,
    namespace: str | None = None,
) -> list[Event]:
    """Remove occurrences of a recurring series.

    "this" excludes the target's slot (and drops an override stored for it),
    "following" ends the series the day before the target and "all" removes
    every event sharing the target's uid.

    Raises:
        ValueError: On an invalid scope
        BaseSeriesNotFoundError: If the series base is not in ``all_events``
    """
    scope = Scope(scope)
    base = _require_base(all_events, target, namespace)
    uid = series_uid(base, namespace)
    slot = _original_slot(target)

    if scope is Scope.ALL:
        return [e for e in all_events if series_uid(e, namespace) != uid]

    if scope is Scope.THIS:
        clamped = replace(base, exception_dates=_add_exception(base.exception_dates, slot))
        return [
            clamped if e is base else e
            for e in all_events
            if not _is_override_at(e, uid, slot, namespace)
        ]

    clamped = _clamp_before(base, slot)
    return [
        clamped if e is base else e
        for e in all_events
        if not _is_later_override(e, uid, slot, namespace)
    ]


def update_event(
    all_events: Sequence[Event], event_id: str | int, updates: Mapping[str, Any]
) -> list[Event]:
    """Apply ``updates`` to the non-recurring event with ``event_id``."""
    changes = clean_updates(updates)
    result = []
    found = False
    for event in all_events:
        if event.id == event_id:
            event = replace(strip_layout(event), **_with_timing(event, resolve_rule_update(event, changes)))
            found = True
        result.append(event)

    if not found:
        logger.debug("update_event: no event with id %r", event_id)
    return result


def delete_event(all_events: Sequence[Event], event_id: str | int) -> list[Event]:
    """Remove the event with ``event_id``."""
    return [e for e in all_events if e.id != event_id]


def _require_base(all_events: Sequence[Event], target: Event, namespace: str | None) -> Event:
    base = find_base_event(all_events, target, namespace)
    if base is None:
        raise BaseSeriesNotFoundError(series_uid(target, namespace))
    return base


def _original_slot(target: Event) -> datetime:
    return target.recurrence_id or target.start


def _slot_stamp(slot: datetime) -> str:
    return slot.astimezone(UTC).strftime("%Y%m%dT%H%M%SZ")


def _with_timing(event: Event, changes: dict[str, Any]) -> dict[str, Any]:
    """Keep ``event``'s duration when only the start is moved."""
    if "start" in changes and "end" not in changes and changes["start"] is not None:
        return {**changes, "end": changes["start"] + event.duration}
    return changes


def _rebase_anchor(base: Event, updated: Event) -> Event:
    """Move an unchanged rule anchor along with a moved series start."""
    rule = updated.recurrence_rule
    old = base.recurrence_rule
    shift = updated.start - base.start
    if not shift or rule is None or old is None:
        return updated
    if rule.start is None or rule.start != old.start:
        return updated
    return replace(updated, recurrence_rule=replace(rule, start=rule.start + shift))


def _add_exception(exception_dates: list[datetime], slot: datetime) -> list[datetime]:
    if slot in exception_dates:
        return list(exception_dates)
    return [*exception_dates, slot]


def _is_override_at(event: Event, uid: str, slot: datetime, namespace: str | None) -> bool:
    return event.is_override and event.recurrence_id == slot and series_uid(event, namespace) == uid


def _is_later_override(event: Event, uid: str, slot: datetime, namespace: str | None) -> bool:
    return event.is_override and event.recurrence_id >= slot and series_uid(event, namespace) == uid


def _replace_element(all_events: Sequence[Event], old: Event, new: Event) -> list[Event]:
    return [new if e is old else e for e in all_events]


def _update_this(
    all_events: Sequence[Event],
    base: Event,
    target: Event,
    changes: dict[str, Any],
    namespace: str | None,
) -> list[Event]:
    uid = series_uid(base, namespace)
    slot = _original_slot(target)

    existing = next((e for e in all_events if _is_override_at(e, uid, slot, namespace)), None)
    override_id = existing.id if existing else f"{target.id}_modified_{_slot_stamp(slot)}"

    override = replace(
        strip_layout(target),
        **_with_timing(target, changes),
    )
    override = replace(
        override,
        id=override_id,
        uid=uid,
        recurrence_id=slot,
        recurrence_rule=None,
        exception_dates=[],
    )

    updated_base = replace(base, exception_dates=_add_exception(base.exception_dates, slot))

    result = []
    for event in all_events:
        if event is base:
            result.append(updated_base)
        elif event is existing:
            result.append(override)
        else:
            result.append(event)

    if existing is None:
        result.append(override)
    return result


def _clamp_before(base: Event, slot: datetime) -> Event:
    """Copy of ``base`` whose rule ends on the day before ``slot``.

    A COUNT bound is converted into the UNTIL of the last surviving
    occurrence so the rule never carries both.
    """
    rule = base.recurrence_rule
    anchor = rule.start or base.start
    bound = end_of_day(slot - timedelta(days=1))

    if rule.until is not None:
        bound = min(bound, _until_instant(rule.until, anchor))

    if rule.count is not None:
        last = rule.build(base.start).before(bound, inc=True)
        if last is not None:
            bound = last

    return replace(base, recurrence_rule=replace(rule, until=bound, count=None))


def _until_instant(until: datetime | date, anchor: datetime) -> datetime:
    if isinstance(until, datetime):
        return until if until.tzinfo is not None else until.replace(tzinfo=anchor.tzinfo)
    return end_of_day(datetime.combine(until, time.min, tzinfo=anchor.tzinfo))


def _update_following(
    all_events: Sequence[Event],
    base: Event,
    target: Event,
    changes: dict[str, Any],
    namespace: str | None,
) -> list[Event]:
    uid = series_uid(base, namespace)
    slot = _original_slot(target)

    new_start = changes.get("start") or target.start
    new_end = changes.get("end") or new_start + target.duration

    if "recurrence_rule" in changes and changes["recurrence_rule"] is None:
        new_rule = None
    else:
        new_rule = base.recurrence_rule.merged(changes.get("recurrence_rule"))
        new_rule = replace(new_rule, start=new_start)

    new_id = f"{base.id}_following_{_slot_stamp(slot)}"
    # Slots whose edits are dropped with the old series
    superseded = {
        e.recurrence_id for e in all_events if _is_later_override(e, uid, slot, namespace)
    }

    carried = {k: v for k, v in changes.items() if k not in _SERIES_KEYS}
    carried.setdefault(
        "exception_dates",
        [d for d in base.exception_dates if d >= slot and d not in superseded],
    )

    new_series = replace(
        base,
        **carried,
        id=new_id,
        uid=f"{new_id}@{namespace or _namespace_of(base)}",
        start=new_start,
        end=new_end,
        recurrence_rule=new_rule,
        recurrence_id=None,
    )

    clamped = _clamp_before(base, slot)
    result = [
        clamped if e is base else e
        for e in all_events
        if not _is_later_override(e, uid, slot, namespace)
    ]
    result.append(new_series)
    return result


def _namespace_of(base: Event) -> str:
    """Namespace of ``base``'s uid, falling back to the configured default."""
    if base.uid and "@" in base.uid:
        return base.uid.rsplit("@", 1)[1]
    return get_config().uid_namespace
