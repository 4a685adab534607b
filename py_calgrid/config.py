"""Process-wide defaults for py-calgrid.

Every engine function takes its inputs explicitly; the values here only fill
in arguments a caller leaves out. Defaults can be overridden through the
environment.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from zoneinfo import ZoneInfo

CALGRID_TIMEZONE = os.getenv("CALGRID_TIMEZONE")
CALGRID_UID_NAMESPACE = os.getenv("CALGRID_UID_NAMESPACE")
CALGRID_DAY_MAX_EVENTS = os.getenv("CALGRID_DAY_MAX_EVENTS")
CALGRID_FIRST_DAY_OF_WEEK = os.getenv("CALGRID_FIRST_DAY_OF_WEEK")

# Grid geometry in pixels
GAP_BETWEEN_ELEMENTS = 1
DAY_NUMBER_HEIGHT = 28
EVENT_BAR_HEIGHT = 24
DAY_MAX_EVENTS_DEFAULT = 3

DEFAULT_UID_NAMESPACE = "py-calgrid"


@dataclass
class CalendarConfig:
    """Defaults used when a caller does not pass a value explicitly."""

    # Timezone given to naive datetimes at the normalization boundary
    timezone: str = CALGRID_TIMEZONE or "UTC"

    # Suffix of derived series uids ("{id}@{namespace}")
    uid_namespace: str = CALGRID_UID_NAMESPACE or DEFAULT_UID_NAMESPACE

    # Grid capacity and week layout
    day_max_events: int = int(CALGRID_DAY_MAX_EVENTS or DAY_MAX_EVENTS_DEFAULT)
    first_day_of_week: int = int(CALGRID_FIRST_DAY_OF_WEEK or 0)  # 0 = Sunday

    day_number_height: int = DAY_NUMBER_HEIGHT
    event_bar_height: int = EVENT_BAR_HEIGHT
    gap: int = GAP_BETWEEN_ELEMENTS

    _tz: ZoneInfo | None = field(default=None, init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        if not 0 <= self.first_day_of_week <= 6:
            raise ValueError(f"first_day_of_week must be in 0..6, got {self.first_day_of_week}")
        if self.day_max_events < 0:
            raise ValueError(f"day_max_events must not be negative, got {self.day_max_events}")

    @property
    def tzinfo(self) -> ZoneInfo:
        """Default timezone as a ZoneInfo instance."""
        if self._tz is None:
            self._tz = ZoneInfo(self.timezone)
        return self._tz


_default_config: CalendarConfig | None = None


def get_config() -> CalendarConfig:
    """Return the process default configuration, creating it on first use."""
    global _default_config
    if _default_config is None:
        _default_config = CalendarConfig()
    return _default_config


def set_config(config: CalendarConfig | None) -> None:
    """Replace the process default configuration (None resets it)."""
    global _default_config
    _default_config = config
