"""Recurrence expansion and scoped series mutation."""

from .expander import expand_recurring_event
from .mutator import (
    Scope,
    delete_event,
    delete_series,
    find_base_event,
    update_event,
    update_series,
)
from .series import SeriesEntry, SeriesIndex

__all__ = [
    "Scope",
    "SeriesEntry",
    "SeriesIndex",
    "delete_event",
    "delete_series",
    "expand_recurring_event",
    "find_base_event",
    "update_event",
    "update_series",
]
