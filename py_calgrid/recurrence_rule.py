"""Recurrence rules (RFC 5545 RRULE subset) backed by python-dateutil."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import asdict, dataclass, field, fields, replace
from datetime import UTC, date, datetime, time
from enum import Enum
from typing import Any

from dateutil import rrule as du_rrule
from icalendar.prop import vRecur

from .errors import InvalidRuleError
from .timerange import WEEKDAY_NAMES, end_of_day, to_instant


class Frequency(str, Enum):
    """RRULE FREQ values."""

    YEARLY = "YEARLY"
    MONTHLY = "MONTHLY"
    WEEKLY = "WEEKLY"
    DAILY = "DAILY"
    HOURLY = "HOURLY"
    MINUTELY = "MINUTELY"
    SECONDLY = "SECONDLY"


# dateutil and rrule.js share this numbering (YEARLY = 0 ... SECONDLY = 6)
_FREQUENCY_ORDER = list(Frequency)

_DATEUTIL_FREQ = {
    Frequency.YEARLY: du_rrule.YEARLY,
    Frequency.MONTHLY: du_rrule.MONTHLY,
    Frequency.WEEKLY: du_rrule.WEEKLY,
    Frequency.DAILY: du_rrule.DAILY,
    Frequency.HOURLY: du_rrule.HOURLY,
    Frequency.MINUTELY: du_rrule.MINUTELY,
    Frequency.SECONDLY: du_rrule.SECONDLY,
}

# iCal weekday codes in dateutil order (Monday = 0)
WEEKDAY_CODES = ("MO", "TU", "WE", "TH", "FR", "SA", "SU")

_UNIT_NAMES = {
    Frequency.YEARLY: "year",
    Frequency.MONTHLY: "month",
    Frequency.WEEKLY: "week",
    Frequency.DAILY: "day",
    Frequency.HOURLY: "hour",
    Frequency.MINUTELY: "minute",
    Frequency.SECONDLY: "second",
}

# Accepted spellings for each field when reading a loosely typed mapping
_ALIASES = {
    "frequency": ("frequency", "freq"),
    "interval": ("interval",),
    "by_weekday": ("by_weekday", "byweekday", "byday", "byDay", "days_of_week", "daysOfWeek"),
    "by_month_day": ("by_month_day", "bymonthday", "byMonthDay"),
    "by_month": ("by_month", "bymonth", "byMonth"),
    "by_set_pos": ("by_set_pos", "bysetpos", "bySetPos"),
    "count": ("count",),
    "until": ("until",),
    "start": ("start", "dtstart"),
    "week_start": ("week_start", "wkst"),
}


def normalize_weekday(value: Any) -> str:
    """Normalize a weekday value into an iCal BYDAY token ("MO", "1MO", "-1FR").

    Accepts iCal tokens, English weekday names ("monday") and dateutil
    weekday objects or ordinals (Monday = 0).
    """
    if isinstance(value, du_rrule.weekday):
        code = WEEKDAY_CODES[value.weekday]
        return f"{value.n}{code}" if value.n else code

    if isinstance(value, int) and not isinstance(value, bool):
        if not 0 <= value <= 6:
            raise ValueError(f"weekday ordinal out of range: {value}")
        return WEEKDAY_CODES[value]

    token = str(value).strip()
    if token.lower() in WEEKDAY_NAMES:
        # WEEKDAY_NAMES is Sunday-first
        return WEEKDAY_CODES[(WEEKDAY_NAMES.index(token.lower()) - 1) % 7]

    token = token.upper()
    code, ordinal = token[-2:], token[:-2]
    if code not in WEEKDAY_CODES:
        raise ValueError(f"unknown weekday: {value!r}")
    if ordinal and ordinal.lstrip("+-") and not ordinal.lstrip("+-").isdigit():
        raise ValueError(f"unknown weekday: {value!r}")
    return f"{int(ordinal)}{code}" if ordinal.lstrip("+-") else code


def _to_dateutil_weekday(token: str) -> du_rrule.weekday:
    code, ordinal = token[-2:], token[:-2]
    wd = du_rrule.weekday(WEEKDAY_CODES.index(code))
    return wd(int(ordinal)) if ordinal else wd


def _as_int_list(value: Any) -> list[int]:
    if value is None:
        return []
    if isinstance(value, (list, tuple, set, frozenset)):
        return [int(v) for v in value]
    return [int(value)]


def _as_list(value: Any) -> list[Any]:
    if value is None:
        return []
    if isinstance(value, (list, tuple, set, frozenset)):
        return list(value)
    if isinstance(value, str) and "," in value:
        return value.split(",")
    return [value]


def _parse_frequency(value: Any) -> Frequency:
    if isinstance(value, Frequency):
        return value
    if isinstance(value, int) and not isinstance(value, bool):
        return _FREQUENCY_ORDER[value]
    return Frequency(str(value).strip().upper())


@dataclass
class RecurrenceRule:
    """A recurrence rule attached to a base recurring event.

    ``start`` is the anchor of the series; when unset the owning event's
    start is used.
    """

    frequency: Frequency
    interval: int = 1
    by_weekday: list[str] = field(default_factory=list)
    by_month_day: list[int] = field(default_factory=list)
    by_month: list[int] = field(default_factory=list)
    by_set_pos: list[int] = field(default_factory=list)
    count: int | None = None
    until: datetime | date | None = None
    start: datetime | None = None
    week_start: str | None = None

    @classmethod
    def from_ical(cls, value: str | bytes, start: datetime | None = None) -> RecurrenceRule:
        """Parse an RRULE value ("FREQ=DAILY;COUNT=5", "RRULE:" prefix allowed).

        Raises:
            InvalidRuleError: If the value is not a valid RRULE
        """
        text = value.decode("utf-8") if isinstance(value, bytes) else str(value)
        text = text.strip()
        if text.upper().startswith("RRULE:"):
            text = text[len("RRULE:") :]

        try:
            parsed = vRecur.from_ical(text)
        except (ValueError, TypeError) as e:
            raise InvalidRuleError(text, e) from e

        return cls.from_mapping(dict(parsed), start=start)

    @classmethod
    def from_mapping(
        cls, data: Mapping[str, Any], start: datetime | None = None
    ) -> RecurrenceRule:
        """Build a rule from a loosely typed mapping.

        Keys may use this class's field names, rrule.js option names
        (``freq``, ``byweekday``, ``dtstart``) or iCal part names in any case.
        Values may be scalars or the single-item lists icalendar produces.

        Raises:
            InvalidRuleError: If the mapping cannot describe a rule
        """
        lowered = {str(k).lower().replace("-", "_"): v for k, v in data.items()}

        def pick(name: str) -> Any:
            for alias in _ALIASES[name]:
                if alias.lower() in lowered:
                    return lowered[alias.lower()]
            return None

        def scalar(value: Any) -> Any:
            if isinstance(value, (list, tuple)):
                return value[0] if value else None
            return value

        try:
            frequency = pick("frequency")
            if frequency is None:
                raise ValueError("missing frequency")

            until = scalar(pick("until"))
            if isinstance(until, str):
                until = to_instant(until)

            dtstart = scalar(pick("start"))
            if dtstart is not None:
                dtstart = to_instant(dtstart)

            count = scalar(pick("count"))
            week_start = scalar(pick("week_start"))

            rule = cls(
                frequency=_parse_frequency(scalar(frequency)),
                interval=int(scalar(pick("interval")) or 1),
                by_weekday=[normalize_weekday(d) for d in _as_list(pick("by_weekday"))],
                by_month_day=_as_int_list(pick("by_month_day")),
                by_month=_as_int_list(pick("by_month")),
                by_set_pos=_as_int_list(pick("by_set_pos")),
                count=int(count) if count is not None else None,
                until=until,
                start=dtstart or start,
                week_start=normalize_weekday(week_start) if week_start else None,
            )
        except (ValueError, TypeError, IndexError) as e:
            raise InvalidRuleError(dict(data), e) from e

        return rule

    @classmethod
    def coerce(cls, value: Any) -> RecurrenceRule | None:
        """Accept a RecurrenceRule, an RRULE string or a mapping (None passes through)."""
        if value is None or isinstance(value, RecurrenceRule):
            return value
        if isinstance(value, (str, bytes)):
            return cls.from_ical(value)
        if isinstance(value, Mapping):
            return cls.from_mapping(value)
        raise InvalidRuleError(value, TypeError(f"unsupported rule type {type(value).__name__}"))

    def to_payload(self) -> dict[str, Any]:
        """Plain-dict view of the rule, used in error messages and JSON output."""
        payload = asdict(self)
        payload["frequency"] = self.frequency.value
        return {k: v for k, v in payload.items() if v not in (None, [])}

    def to_ical(self) -> str:
        """Serialize to an RRULE value string (without the "RRULE:" prefix).

        UNTIL is always written in UTC (or as a DATE for date-only bounds).
        """
        parts: dict[str, Any] = {"FREQ": self.frequency.value}
        if self.until is not None:
            until = self.until
            if isinstance(until, datetime):
                until = until.astimezone(UTC) if until.tzinfo else until.replace(tzinfo=UTC)
            parts["UNTIL"] = until
        if self.count is not None:
            parts["COUNT"] = self.count
        if self.interval != 1:
            parts["INTERVAL"] = self.interval
        if self.by_weekday:
            parts["BYDAY"] = list(self.by_weekday)
        if self.by_month_day:
            parts["BYMONTHDAY"] = list(self.by_month_day)
        if self.by_month:
            parts["BYMONTH"] = list(self.by_month)
        if self.by_set_pos:
            parts["BYSETPOS"] = list(self.by_set_pos)
        if self.week_start:
            parts["WKST"] = self.week_start

        return vRecur(parts).to_ical().decode("utf-8")

    def merged(self, changes: Mapping[str, Any] | RecurrenceRule | None) -> RecurrenceRule:
        """Return a copy with ``changes`` applied.

        A mapping is a partial update (same spellings as ``from_mapping``);
        a RecurrenceRule replaces every field.
        """
        if changes is None:
            return replace(self)
        if isinstance(changes, RecurrenceRule):
            return replace(changes)
        if isinstance(changes, (str, bytes)):
            return RecurrenceRule.from_ical(changes)

        current = {f.name: getattr(self, f.name) for f in fields(self)}
        lowered = {str(k).lower() for k in changes}
        defaults = {} if lowered & {"frequency", "freq"} else {"frequency": self.frequency}
        partial = RecurrenceRule.from_mapping({**defaults, **dict(changes)})
        for name, aliases in _ALIASES.items():
            if any(a.lower() in lowered for a in aliases):
                current[name] = getattr(partial, name)
        return RecurrenceRule(**current)

    def build(self, anchor: datetime) -> du_rrule.rrule:
        """Create the dateutil occurrence generator for this rule.

        Occurrences are generated on the wall clock of the anchor's timezone,
        so weekday and hour matching follow the event's local day.

        Args:
            anchor: Series start used when ``self.start`` is unset

        Raises:
            InvalidRuleError: If dateutil rejects the configuration
        """
        dtstart = self.start or anchor

        try:
            if self.interval < 1:
                raise ValueError(f"interval must be positive, got {self.interval}")
            if self.count is not None and self.count < 0:
                raise ValueError(f"count must not be negative, got {self.count}")

            until = self.until
            if until is not None and not isinstance(until, datetime):
                # A DATE bound includes the whole day
                until = end_of_day(datetime.combine(until, time.min, tzinfo=dtstart.tzinfo))
            elif until is not None and until.tzinfo is None and dtstart.tzinfo is not None:
                until = until.replace(tzinfo=dtstart.tzinfo)

            return du_rrule.rrule(
                _DATEUTIL_FREQ[self.frequency],
                dtstart=dtstart,
                interval=self.interval,
                count=self.count,
                until=until,
                wkst=WEEKDAY_CODES.index(self.week_start) if self.week_start else None,
                byweekday=[_to_dateutil_weekday(d) for d in self.by_weekday] or None,
                bymonthday=self.by_month_day or None,
                bymonth=self.by_month or None,
                bysetpos=self.by_set_pos or None,
                cache=False,
            )
        except (ValueError, TypeError, KeyError, IndexError) as e:
            raise InvalidRuleError(self.to_payload(), e) from e

    def describe(self) -> str:
        """Human-readable summary, e.g. "Every 2 weeks on MO, WE, 5 times"."""
        unit = _UNIT_NAMES[self.frequency]
        if self.interval == 1:
            text = "Daily" if unit == "day" else f"{unit.capitalize()}ly"
        else:
            text = f"Every {self.interval} {unit}s"

        if self.frequency == Frequency.WEEKLY and self.by_weekday:
            text += f" on {', '.join(self.by_weekday)}"

        if self.until is not None:
            until = self.until.date() if isinstance(self.until, datetime) else self.until
            text += f", until {until.strftime('%b')} {until.day}, {until.year}"
        elif self.count:
            text += f", {self.count} time{'s' if self.count > 1 else ''}"

        return text
