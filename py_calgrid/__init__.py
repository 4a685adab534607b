"""Recurrence expansion, series mutation and layout engines for calendar views."""

from .business_hours import BusinessHours, HourRange, get_view_hours, is_open, union_hour_range
from .config import CalendarConfig, get_config, set_config
from .errors import BaseSeriesNotFoundError, CalendarError, InvalidRuleError
from .events import Event, PositionedEvent, normalize_event, normalize_events, strip_layout
from .ical import export_icalendar, parse_icalendar
from .layout import GridUnit, position_day_column, position_day_events, position_grid_events
from .range_index import events_for_resource, query_events
from .recurrence import (
    Scope,
    delete_event,
    delete_series,
    expand_recurring_event,
    update_event,
    update_series,
)
from .recurrence_rule import Frequency, RecurrenceRule

__version__ = "0.1.0"

__all__ = [
    "BaseSeriesNotFoundError",
    "BusinessHours",
    "CalendarConfig",
    "CalendarError",
    "Event",
    "Frequency",
    "GridUnit",
    "HourRange",
    "InvalidRuleError",
    "PositionedEvent",
    "RecurrenceRule",
    "Scope",
    "delete_event",
    "delete_series",
    "events_for_resource",
    "expand_recurring_event",
    "export_icalendar",
    "get_config",
    "get_view_hours",
    "is_open",
    "normalize_event",
    "normalize_events",
    "parse_icalendar",
    "position_day_column",
    "position_day_events",
    "position_grid_events",
    "query_events",
    "set_config",
    "strip_layout",
    "union_hour_range",
    "update_event",
    "update_series",
]
