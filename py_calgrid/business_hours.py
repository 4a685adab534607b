"""Business-hours resolution and visible hour ranges for time grids."""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from datetime import date, datetime

from .timerange import WEEKDAY_NAMES, filter_hours, get_day_hours, to_instant, weekday_index

DEFAULT_START_HOUR = 9
DEFAULT_END_HOUR = 17


@dataclass
class BusinessHours:
    """Opening hours for a set of weekdays.

    ``days_of_week`` accepts English weekday names or ordinals with
    Sunday = 0 ... Saturday = 6. None covers every day and an empty list
    covers no day. Hours are whole hours in ``0..24``; the end hour is
    exclusive.
    """

    days_of_week: list[str | int] | None = None
    start_hour: int = DEFAULT_START_HOUR
    end_hour: int = DEFAULT_END_HOUR

    def __post_init__(self) -> None:
        if self.days_of_week is not None:
            self.days_of_week = [_weekday_ordinal(d) for d in self.days_of_week]
        if not 0 <= self.start_hour <= self.end_hour <= 24:
            raise ValueError(
                f"invalid business hours {self.start_hour}-{self.end_hour}"
            )

    def covers(self, d: date) -> bool:
        """True if ``d``'s weekday is one of the configured days."""
        return self.days_of_week is None or weekday_index(d) in self.days_of_week


BusinessHoursConfig = BusinessHours | Sequence[BusinessHours]


@dataclass(frozen=True)
class HourRange:
    """Union of opening hours, ``[min_start, max_end)`` in whole hours."""

    min_start: int
    max_end: int


def _weekday_ordinal(value: str | int) -> int:
    if isinstance(value, int) and not isinstance(value, bool):
        if not 0 <= value <= 6:
            raise ValueError(f"weekday ordinal out of range: {value}")
        return value
    name = str(value).strip().lower()
    if name not in WEEKDAY_NAMES:
        raise ValueError(f"unknown weekday: {value!r}")
    return WEEKDAY_NAMES.index(name)


def _entries(config: BusinessHoursConfig | None) -> list[BusinessHours]:
    if config is None:
        return []
    if isinstance(config, BusinessHours):
        return [config]
    return list(config)


def _matching(config: BusinessHoursConfig | None, d: date) -> list[BusinessHours]:
    return [entry for entry in _entries(config) if entry.covers(d)]


def resolve_for_date(d: date, config: BusinessHoursConfig | None) -> BusinessHours | None:
    """Configuration that applies to ``d``.

    A single configuration is returned as is. For a list, the first entry
    whose weekday set contains ``d``'s weekday is returned, or None.
    """
    if config is None or isinstance(config, BusinessHours):
        return config
    for entry in config:
        if entry.covers(d):
            return entry
    return None


def is_business_day(d: date, config: BusinessHoursConfig | None) -> bool:
    """True if any entry covers ``d`` (always true without a configuration)."""
    if config is None:
        return True
    return bool(_matching(config, d))


def is_open(
    d: date,
    hour: int | None = None,
    minute: int = 0,
    config: BusinessHoursConfig | None = None,
) -> bool:
    """Whether ``hour:minute`` on ``d`` lies within business hours.

    Without a configuration everything is open. Without an hour only the
    weekday is checked. The end hour is exclusive, so with 9-17 hours
    16:59 is open and 17:00 is closed.

    Example:
        >>> monday = BusinessHours(days_of_week=["monday"])
        >>> is_open(date(2025, 1, 13), 16, 59, monday)
        True
    """
    if config is None:
        return True
    if hour is None:
        return is_business_day(d, config)

    minutes = hour * 60 + minute
    return any(
        entry.start_hour * 60 <= minutes < entry.end_hour * 60
        for entry in _matching(config, d)
    )


def union_hour_range(
    dates: Iterable[date],
    config: BusinessHoursConfig | None,
    resource_configs: Iterable[BusinessHoursConfig] = (),
) -> HourRange | None:
    """Earliest start and latest end among entries matching any of ``dates``.

    Resource configurations are merged with the global one. Returns None
    when no entry matches any date, meaning the full day should be shown.
    """
    configs = [config, *resource_configs]
    min_start, max_end = 24, 0
    matched = False

    for d in dates:
        for cfg in configs:
            for entry in _matching(cfg, d):
                matched = True
                min_start = min(min_start, entry.start_hour)
                max_end = max(max_end, entry.end_hour)

    if not matched:
        return None
    return HourRange(min_start, max_end)


def get_view_hours(
    reference_date: date | datetime,
    config: BusinessHoursConfig | None = None,
    hide_non_business_hours: bool = False,
    all_dates: Sequence[date] | None = None,
    resource_configs: Sequence[BusinessHoursConfig] = (),
) -> list[datetime]:
    """Hour slots a time grid shows for ``reference_date``.

    The full day is returned unless ``hide_non_business_hours`` is set and
    some configuration matches one of ``all_dates`` (default: the reference
    date alone), in which case only hours inside the union range remain.
    """
    reference = to_instant(reference_date)
    hours = get_day_hours(reference)

    if not hide_non_business_hours or (config is None and not resource_configs):
        return hours

    hour_range = union_hour_range(all_dates or [reference.date()], config, resource_configs)
    if hour_range is None:
        return hours

    return filter_hours(hours, hour_range.min_start, hour_range.max_end)
