"""Layout engines turning concrete events into positioned events."""

from ..timerange import GridUnit
from .day import position_day_column, position_day_events
from .grid import position_grid_events

__all__ = [
    "GridUnit",
    "position_day_column",
    "position_day_events",
    "position_grid_events",
]
