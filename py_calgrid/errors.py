"""Errors raised by the recurrence and series mutation engines."""

from __future__ import annotations

from typing import Any


class CalendarError(Exception):
    """Base class for py-calgrid errors."""


class InvalidRuleError(CalendarError):
    """A recurrence rule that cannot be turned into an occurrence generator."""

    def __init__(self, rule: Any, err: Exception | None = None):
        self.rule = rule
        self.err = err
        super().__init__(str(self))

    def __str__(self) -> str:
        s = f"invalid recurrence rule: {self.rule!r}"
        if self.err:
            return f"{s}: {self.err}"
        return s


class BaseSeriesNotFoundError(CalendarError):
    """No base recurring event exists for the given series uid."""

    def __init__(self, uid: str):
        self.uid = uid
        super().__init__(str(self))

    def __str__(self) -> str:
        return f"base recurring event not found for uid {self.uid!r}"
