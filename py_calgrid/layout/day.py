"""Vertical packing of overlapping events inside a single time column."""

from __future__ import annotations

import math
from collections.abc import Iterable
from datetime import date, datetime

from ..business_hours import BusinessHoursConfig, get_view_hours
from ..debug import log_layout_summary
from ..events import Event, PositionedEvent, positioned
from ..timerange import GridUnit, to_instant

# Total horizontal offset of the topmost event in a cluster, by cluster size
_CASCADE_OFFSETS = {2: 25, 3: 50, 4: 60}
_CASCADE_OFFSET_MAX = 70


def _cascade_offset(size: int) -> int:
    return _CASCADE_OFFSETS.get(size, _CASCADE_OFFSET_MAX)


def _clusters(events: list[Event]) -> list[list[Event]]:
    """Split start-sorted events into groups of transitively overlapping events."""
    clusters: list[list[Event]] = []
    current: list[Event] = []
    cluster_end: datetime | None = None

    for event in events:
        if cluster_end is not None and event.start >= cluster_end:
            clusters.append(current)
            current = []
            cluster_end = None
        current.append(event)
        cluster_end = event.end if cluster_end is None else max(cluster_end, event.end)

    if current:
        clusters.append(current)
    return clusters


def _vertical_span(
    event: Event, grid_start: datetime, total_units: int, unit: GridUnit
) -> tuple[float, float] | None:
    """(top, height) in percent of the column, or None when nothing is visible."""
    step = unit.delta.total_seconds()
    start = (event.start - grid_start).total_seconds() / step
    end = (event.end - grid_start).total_seconds() / step

    if unit is GridUnit.DAY:
        start = math.floor(start)
        end = math.ceil(end)
        if end <= start:
            end = start + 1

    start = max(start, 0)
    end = min(end, total_units)
    duration = max(0, end - start)
    if duration == 0:
        return None

    return start / total_units * 100, duration / total_units * 100


def position_day_events(
    events: Iterable[Event],
    grid_start: datetime,
    total_units: int,
    unit: GridUnit = GridUnit.HOUR,
) -> list[PositionedEvent]:
    """Lay out the timed events of one column.

    Overlapping events form clusters. A lone event spans the full width; in
    a cluster the longest event sits at the bottom at full width and each
    following one is shifted right by a share of the cascade offset.
    ``top`` and ``height`` are percentages of ``total_units`` cells starting
    at ``grid_start``. All-day events are ignored and events with nothing
    left inside the grid after clamping are dropped.

    Args:
        events: Concrete events of the column
        grid_start: Instant at the top edge of the column
        total_units: Number of grid cells in the column
        unit: Size of one cell

    Returns:
        Positioned events, cluster by cluster
    """
    timed = sorted((e for e in events if not e.all_day), key=lambda e: e.start)
    if not timed or total_units <= 0:
        return []

    grid_start = to_instant(grid_start)
    placed: list[PositionedEvent] = []

    for cluster in _clusters(timed):
        if len(cluster) == 1:
            span = _vertical_span(cluster[0], grid_start, total_units, unit)
            if span is not None:
                top, height = span
                placed.append(positioned(cluster[0], left=0.0, width=100.0, top=top, height=height))
            continue

        # Longest first, earlier start on ties
        ordered = sorted(cluster, key=lambda e: (-(e.end - e.start), e.start))
        step = _cascade_offset(len(ordered)) / (len(ordered) - 1)

        for i, event in enumerate(ordered):
            span = _vertical_span(event, grid_start, total_units, unit)
            if span is None:
                continue
            top, height = span
            left = step * i
            placed.append(
                positioned(
                    event,
                    left=left,
                    width=100 - left,
                    top=top,
                    height=height,
                    z_index=i + 1,
                )
            )

    log_layout_summary("day", placed, len(timed), grid_start=grid_start, units=total_units)
    return placed


def position_day_column(
    events: Iterable[Event],
    day: date | datetime,
    *,
    business_hours: BusinessHoursConfig | None = None,
    hide_non_business_hours: bool = False,
    all_dates: list[date] | None = None,
    unit: GridUnit = GridUnit.HOUR,
) -> list[PositionedEvent]:
    """Lay out one day column of a time grid showing the visible hours of ``day``.

    Raises:
        ValueError: If ``unit`` is not HOUR or MINUTE
    """
    if unit is GridUnit.DAY:
        raise ValueError("a day column is measured in hours or minutes")

    hours = get_view_hours(
        day,
        business_hours,
        hide_non_business_hours=hide_non_business_hours,
        all_dates=all_dates,
    )
    if not hours:
        return []
    total_units = len(hours) if unit is GridUnit.HOUR else len(hours) * 60
    return position_day_events(events, hours[0], total_units, unit)
