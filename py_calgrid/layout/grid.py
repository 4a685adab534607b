"""Horizontal packing of event bars into rows of day (or hour) columns.

Used by month, week and resource timeline views: every column is one grid
cell, multi-column events become bars spanning several columns, and each
row holds at most one event per column.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from datetime import date, datetime, timedelta

from ..config import get_config
from ..debug import log_layout_summary
from ..events import Event, PositionedEvent, positioned
from ..timerange import GridUnit, floor_to_unit, to_instant, units_between

logger = logging.getLogger(__name__)

# Hour cells end one minute early; day cells include the day of the end
_HOUR_END_ADJUSTMENT = timedelta(minutes=1)


class _Occupancy:
    """rows x columns table of taken cells."""

    def __init__(self, rows: int, columns: int) -> None:
        self.rows = rows
        self._taken = [[False] * columns for _ in range(rows)]

    def first_free_row(self, first_col: int, last_col: int) -> int | None:
        for row in range(self.rows):
            if not any(self._taken[row][first_col : last_col + 1]):
                return row
        return None

    def take(self, row: int, first_col: int, last_col: int) -> None:
        for col in range(first_col, last_col + 1):
            self._taken[row][col] = True


def _last_cell_instant(event: Event, unit: GridUnit) -> datetime:
    if unit is GridUnit.HOUR:
        return max(event.start, event.end - _HOUR_END_ADJUSTMENT)
    return event.end


def position_grid_events(
    events: Iterable[Event],
    columns: Sequence[date | datetime],
    day_max_events: int | None = None,
    day_number_height: int | None = None,
    unit: GridUnit = GridUnit.DAY,
    bar_height: int | None = None,
    gap: int | None = None,
) -> list[PositionedEvent]:
    """Assign rows and horizontal geometry to events across ``columns``.

    Process:
    1. Split events into bars (at least one unit long) and single-column
       events
    2. Place bars first (start ascending, longer first on ties) in the first
       row whose cells are free for the whole clamped span; if none is free,
       retry from later start columns, shrinking the bar
    3. Place single-column events (start ascending) in the first free row of
       their column, clamped into the grid when they start before it
    4. Anything that does not fit in ``day_max_events`` rows is dropped

    An event reaches the cell containing its end; on hour grids the end is
    moved back one minute first, so 10:00-12:00 covers the 10 and 11 cells.

    ``left``/``width`` are percentages of the grid width, ``top``/``height``
    are pixels below the day-number header and ``position`` is the row.

    Args:
        events: Concrete events to place
        columns: Column starts, one per grid cell, consecutive
        day_max_events: Row capacity (default from config)
        day_number_height: Header height in pixels (default from config)
        unit: Cell size, DAY or HOUR
        bar_height: Height of one row in pixels (default from config)
        gap: Vertical gap between rows in pixels (default from config)

    Returns:
        Positioned bars followed by positioned single-column events

    Example:
        >>> week = get_week_days(date(2025, 1, 15))
        >>> placed = position_grid_events(events, week, day_max_events=3)
    """
    config = get_config()
    if day_max_events is None:
        day_max_events = config.day_max_events
    if day_number_height is None:
        day_number_height = config.day_number_height
    if bar_height is None:
        bar_height = config.event_bar_height
    if gap is None:
        gap = config.gap

    events = list(events)
    if not columns or not events or day_max_events <= 0:
        return []

    origin = floor_to_unit(to_instant(columns[0]), unit)
    column_count = len(columns)
    grid = _Occupancy(day_max_events, column_count)

    def cells(event: Event) -> tuple[int, int]:
        return (
            units_between(origin, event.start, unit),
            units_between(origin, _last_cell_instant(event, unit), unit),
        )

    def geometry(row: int, first_col: int, last_col: int) -> dict:
        return {
            "left": first_col / column_count * 100,
            "width": (last_col - first_col + 1) / column_count * 100,
            "top": day_number_height + gap + row * (bar_height + gap),
            "height": bar_height,
            "position": row,
        }

    bars: list[Event] = []
    singles: list[Event] = []
    for event in events:
        (bars if event.end - event.start >= unit.delta else singles).append(event)

    bars.sort(key=lambda e: (e.start, -(e.end - e.start)))
    singles.sort(key=lambda e: e.start)

    placed: list[PositionedEvent] = []

    for event in bars:
        first, last = cells(event)
        truncated_start = first < 0
        truncated_end = last > column_count - 1
        first_col = max(first, 0)
        last_col = min(last, column_count - 1)
        if first_col > last_col:
            continue

        for try_col in range(first_col, last_col + 1):
            row = grid.first_free_row(try_col, last_col)
            if row is None:
                continue
            grid.take(row, try_col, last_col)
            placed.append(
                positioned(
                    event,
                    **geometry(row, try_col, last_col),
                    is_truncated_start=truncated_start or try_col > first_col,
                    is_truncated_end=truncated_end,
                )
            )
            break
        else:
            logger.debug("No row left for %s across columns %d-%d", event.id, first_col, last_col)

    for event in singles:
        first, last = cells(event)
        if last < 0 or first > column_count - 1:
            continue
        col = min(max(first, 0), column_count - 1)
        row = grid.first_free_row(col, col)
        if row is None:
            logger.debug("No row left for %s in column %d", event.id, col)
            continue
        grid.take(row, col, col)
        placed.append(positioned(event, **geometry(row, col, col)))

    log_layout_summary(
        "grid", placed, len(events), columns=column_count, rows=day_max_events, unit=unit.value
    )
    return placed
