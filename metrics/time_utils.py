"""Parse duration text into minutes and format minutes back into text.

Day and week units follow a working calendar (8 hours per day, 5 days per
week unless told otherwise). Placeholder text parses to ``None`` so callers
can tell an unknown duration from a known zero.
"""

from __future__ import annotations

import math
import re
from dataclasses import dataclass
from typing import Optional, Union

Number = Union[int, float]

UNKNOWN_TIME = "Unknown"
PLACEHOLDER_TIMES = {"unknown", "not specified", "unspecified", "n/a", "na", "tbd", "none", "-", "?"}
MINUTES_PER_HOUR = 60
DAY_FORMAT_THRESHOLD = 24 * MINUTES_PER_HOUR


@dataclass(frozen=True)
class WorkCalendar:
    hours_per_day: int = 8
    days_per_week: int = 5

    @property
    def minutes_per_day(self) -> int:
        return self.hours_per_day * MINUTES_PER_HOUR

    @property
    def minutes_per_week(self) -> int:
        return self.days_per_week * self.minutes_per_day


DEFAULT_CALENDAR = WorkCalendar()

_NUMBER = r"(\d+(?:\.\d+)?)"
_RANGE = _NUMBER + r"\s*(?:-|–|to)\s*" + _NUMBER
_QUALIFIER = r"\s*(?:(?:working|work|business)\s+)?"
_WEEK_UNIT = _QUALIFIER + r"(?:weeks?|wks?|w)(?![A-Za-z])"
_DAY_UNIT = _QUALIFIER + r"(?:days?|d)(?![A-Za-z])"
_HOUR_UNIT = r"\s*(?:hours?|hrs?|h)(?![A-Za-z])"
_MINUTE_UNIT = r"\s*(?:minutes?|mins?|m)(?![A-Za-z])"

_WEEK_RANGE = re.compile(_RANGE + _WEEK_UNIT, re.IGNORECASE)
_WEEKS = re.compile(_NUMBER + _WEEK_UNIT, re.IGNORECASE)
_DAY_RANGE = re.compile(_RANGE + _DAY_UNIT, re.IGNORECASE)
_DAYS = re.compile(_NUMBER + _DAY_UNIT, re.IGNORECASE)
_HOUR_RANGE = re.compile(_RANGE + _HOUR_UNIT, re.IGNORECASE)
_HOURS = re.compile(_NUMBER + _HOUR_UNIT, re.IGNORECASE)
_MINUTE_RANGE = re.compile(_RANGE + _MINUTE_UNIT, re.IGNORECASE)
_MINUTES = re.compile(_NUMBER + _MINUTE_UNIT, re.IGNORECASE)


def _tidy(value: float) -> Number:
    return int(value) if float(value).is_integer() else value


def _amount(text: str, range_pattern: "re.Pattern[str]", single_pattern: "re.Pattern[str]") -> Optional[float]:
    match = range_pattern.search(text)
    if match:
        return (float(match.group(1)) + float(match.group(2))) / 2
    match = single_pattern.search(text)
    if match:
        return float(match.group(1))
    return None


def parse_time_to_minutes(text: Optional[str], calendar: Optional[WorkCalendar] = None) -> Optional[Number]:
    """Convert text such as ``"2 hours 30 minutes"`` or ``"2-3 weeks"`` to minutes.

    Patterns are tried in a fixed order (week ranges, weeks, day ranges, days,
    then hours and minutes together) and the first that matches decides the
    result. Returns ``None`` for placeholders and unparseable text.
    """

    if not isinstance(text, str):
        return None
    cleaned = text.strip().strip("()").strip()
    if not cleaned or cleaned.lower() in PLACEHOLDER_TIMES:
        return None
    calendar = calendar or DEFAULT_CALENDAR

    for range_pattern, single_pattern, unit in (
        (_WEEK_RANGE, _WEEKS, calendar.minutes_per_week),
        (_DAY_RANGE, _DAYS, calendar.minutes_per_day),
    ):
        amount = _amount(cleaned, range_pattern, single_pattern)
        if amount is not None:
            return _tidy(amount * unit)

    hours = _amount(cleaned, _HOUR_RANGE, _HOURS)
    minutes = _amount(cleaned, _MINUTE_RANGE, _MINUTES)
    if hours is None and minutes is None:
        return None
    return _tidy((hours or 0) * MINUTES_PER_HOUR + (minutes or 0))


def _plural(count: int, unit: str) -> str:
    return f"{count} {unit}{'' if count == 1 else 's'}"


def format_minutes_to_time(minutes: Optional[Number], calendar: Optional[WorkCalendar] = None) -> str:
    """Render minutes as ``"2 hours 30 minutes"``; long durations use working days."""

    if minutes is None or isinstance(minutes, bool):
        return UNKNOWN_TIME
    try:
        value = float(minutes)
    except (TypeError, ValueError):
        return UNKNOWN_TIME
    if math.isnan(value) or math.isinf(value) or value < 0:
        return UNKNOWN_TIME
    calendar = calendar or DEFAULT_CALENDAR
    total = int(math.floor(value + 0.5))

    if value >= DAY_FORMAT_THRESHOLD:
        days, rest = divmod(total, calendar.minutes_per_day)
        hours, remaining = divmod(rest, MINUTES_PER_HOUR)
        parts = [_plural(days, "day")]
        if hours:
            parts.append(_plural(hours, "hour"))
        if remaining:
            parts.append(_plural(remaining, "minute"))
        return " ".join(parts)
    if value >= MINUTES_PER_HOUR:
        hours, remaining = divmod(total, MINUTES_PER_HOUR)
        if remaining:
            return f"{_plural(hours, 'hour')} {_plural(remaining, 'minute')}"
        return _plural(hours, "hour")
    return _plural(total, "minute")
