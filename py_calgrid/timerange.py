"""Date and time-range helpers shared by every engine.

All functions are pure. Instants are timezone-aware datetimes; naive input
is interpreted in the configured default timezone.
"""

from __future__ import annotations

import logging
from datetime import date, datetime, time, timedelta, tzinfo
from enum import Enum
from typing import Any, TypeVar

from dateutil import parser as date_parser

from .config import get_config

logger = logging.getLogger(__name__)

D = TypeVar("D", date, datetime)

WEEKDAY_NAMES = (
    "sunday",
    "monday",
    "tuesday",
    "wednesday",
    "thursday",
    "friday",
    "saturday",
)


def now(tz: tzinfo | None = None) -> datetime:
    """Current time in ``tz`` (default timezone if omitted)."""
    return datetime.now(tz or get_config().tzinfo)


def to_instant(value: Any, tz: tzinfo | None = None) -> datetime:
    """Convert a loosely typed date value into an aware datetime.

    Accepts datetimes, dates (midnight), ISO 8601 or free-form strings and
    POSIX timestamps in seconds. Values that cannot be interpreted fall back
    to the current time and a warning is logged.

    Args:
        value: Value supplied by the caller
        tz: Timezone for naive values (default: configured timezone)

    Returns:
        Timezone-aware datetime
    """
    tz = tz or get_config().tzinfo

    if isinstance(value, datetime):
        return value if value.tzinfo is not None else value.replace(tzinfo=tz)

    if isinstance(value, date):
        return datetime.combine(value, time.min, tzinfo=tz)

    if isinstance(value, (int, float)) and not isinstance(value, bool):
        try:
            return datetime.fromtimestamp(value, tz)
        except (OverflowError, OSError, ValueError) as e:
            logger.warning("Unusable timestamp %r (%s), using current time", value, e)
            return now(tz)

    if isinstance(value, str) and value.strip():
        text = value.strip()
        try:
            parsed = date_parser.isoparse(text)
        except ValueError:
            try:
                parsed = date_parser.parse(text)
            except (ValueError, OverflowError) as e:
                logger.warning("Unparseable date %r (%s), using current time", value, e)
                return now(tz)
        return parsed if parsed.tzinfo is not None else parsed.replace(tzinfo=tz)

    logger.warning("Unsupported date value %r, using current time", value)
    return now(tz)


def overlaps(
    start: datetime, end: datetime, range_start: datetime, range_end: datetime
) -> bool:
    """Inclusive overlap test: ``start <= range_end and end >= range_start``."""
    return start <= range_end and end >= range_start


def clamp(value: D, lower: D, upper: D) -> D:
    """Clamp ``value`` into ``[lower, upper]``."""
    if value < lower:
        return lower
    if value > upper:
        return upper
    return value


def start_of_day(dt: datetime) -> datetime:
    """Midnight of ``dt``'s wall-clock day, in ``dt``'s timezone."""
    return dt.replace(hour=0, minute=0, second=0, microsecond=0)


def end_of_day(dt: datetime) -> datetime:
    """Last representable instant of ``dt``'s wall-clock day."""
    return dt.replace(hour=23, minute=59, second=59, microsecond=999999)


def weekday_index(d: date) -> int:
    """Day of week with Sunday = 0 ... Saturday = 6."""
    return (d.weekday() + 1) % 7


def get_day_hours(reference: datetime, length: int = 24) -> list[datetime]:
    """Hour slots of ``reference``'s day, starting at midnight."""
    midnight = start_of_day(reference)
    return [midnight.replace(hour=h) for h in range(length)]


def filter_hours(hours: list[datetime], min_start: int, max_end: int) -> list[datetime]:
    """Keep hour slots with ``min_start <= hour < max_end``."""
    return [h for h in hours if min_start <= h.hour < max_end]


def get_week_days(current: D, first_day_of_week: int = 0) -> list[D]:
    """Seven consecutive days starting on ``first_day_of_week`` that contain ``current``.

    Args:
        current: Reference date or datetime
        first_day_of_week: 0 = Sunday ... 6 = Saturday

    Returns:
        Seven dates (or midnight datetimes, for datetime input)

    Example:
        >>> get_week_days(date(2025, 10, 13), 3)[0]
        datetime.date(2025, 10, 8)
    """
    if not 0 <= first_day_of_week <= 6:
        raise ValueError(f"first_day_of_week must be in 0..6, got {first_day_of_week}")

    if isinstance(current, datetime):
        current = start_of_day(current)

    sunday = current - timedelta(days=weekday_index(current))
    week_start = sunday + timedelta(days=first_day_of_week)
    if current < week_start:
        week_start -= timedelta(weeks=1)

    return [week_start + timedelta(days=i) for i in range(7)]


def get_month_weeks(month_date: D, first_day_of_week: int = 0) -> list[list[D]]:
    """Six weeks of days covering the month of ``month_date``."""
    first_of_month = month_date.replace(day=1)
    first_week = get_week_days(first_of_month, first_day_of_week)
    return [
        get_week_days(first_week[0] + timedelta(weeks=i), first_day_of_week)
        for i in range(6)
    ]


class GridUnit(str, Enum):
    """Size of one cell of a layout grid."""

    MINUTE = "minute"
    HOUR = "hour"
    DAY = "day"

    @property
    def delta(self) -> timedelta:
        return _UNIT_DELTAS[self]


_UNIT_DELTAS = {
    GridUnit.MINUTE: timedelta(minutes=1),
    GridUnit.HOUR: timedelta(hours=1),
    GridUnit.DAY: timedelta(days=1),
}


def floor_to_unit(dt: datetime, unit: GridUnit) -> datetime:
    """Start of the grid cell containing ``dt`` (wall clock of ``dt``)."""
    if unit is GridUnit.DAY:
        return start_of_day(dt)
    if unit is GridUnit.HOUR:
        return dt.replace(minute=0, second=0, microsecond=0)
    return dt.replace(second=0, microsecond=0)


def units_between(origin: datetime, instant: datetime, unit: GridUnit) -> int:
    """Whole grid cells from ``origin``'s cell to the cell containing ``instant``.

    ``instant`` is read on the wall clock of ``origin``'s timezone, so day
    cells follow calendar dates across DST changes.
    """
    local = instant.astimezone(origin.tzinfo)
    if unit is GridUnit.DAY:
        return (local.date() - origin.date()).days
    delta = floor_to_unit(local, unit) - floor_to_unit(origin, unit)
    return int(delta.total_seconds() // unit.delta.total_seconds())
