from __future__ import annotations

import datetime as dt
import re
from dataclasses import dataclass, field
from typing import Any, Mapping

from dateutil import parser as date_parser
from dateutil.relativedelta import relativedelta

TIMEFRAMES = ("last_week", "last_month", "last_year", "older")

_AGE_BOUNDS = (
    ("last_week", "weekly"),
    ("last_month", "monthly"),
    ("last_year", "yearly"),
)

_SHORTHAND_UNITS = {
    "daily": "day",
    "weekly": "week",
    "monthly": "month",
    "yearly": "year",
}

_FREQUENCY_RE = re.compile(r"every\s+(?:(\d+)\s+)?(day|week|month|year)s?")


def parse_frequency(text: str) -> relativedelta:
    """
    Turn a lookup frequency such as "daily" or "every 2 weeks" into an interval.

    Raises ValueError for anything else.
    """
    value = (text or "").strip().casefold()

    count = 1
    unit = _SHORTHAND_UNITS.get(value)
    if unit is None:
        match = _FREQUENCY_RE.fullmatch(value)
        if match is None:
            raise ValueError(f"unrecognized lookup frequency: {text!r}")
        if match.group(1):
            count = int(match.group(1))
        unit = match.group(2)

    if count < 1:
        raise ValueError(f"lookup frequency must be at least 1 {unit}: {text!r}")

    return relativedelta(**{f"{unit}s": count})


def _as_date(value: Any) -> dt.date | None:
    if isinstance(value, dt.datetime):
        return value.date()
    if isinstance(value, dt.date):
        return value
    if isinstance(value, str) and value.strip():
        try:
            return date_parser.parse(value).date()
        except (ValueError, OverflowError):
            return None
    return None


def age_timeframe(item_date: dt.date, today: dt.date) -> str:
    """Bucket an item's publication date into one of TIMEFRAMES."""
    for timeframe, frequency in _AGE_BOUNDS:
        if item_date > today - parse_frequency(frequency):
            return timeframe
    return "older"


@dataclass(frozen=True)
class ThrottlePolicy:
    """
    Age-based lookup throttling.

    Older items are looked up less often: an item is skipped when its last
    verified mention falls inside the frequency configured for its age bucket.
    """

    throttle_lookups: Mapping[str, str] = field(default_factory=dict)

    def __call__(self, now: dt.datetime, item_date: Any, last_lookup: Any) -> bool:
        return self.should_throttle(now, item_date, last_lookup)

    def should_throttle(self, now: dt.datetime, item_date: Any, last_lookup: Any) -> bool:
        if not self.throttle_lookups:
            return False

        today = _as_date(now)
        item_day = _as_date(item_date)
        last_day = _as_date(last_lookup)
        if today is None or item_day is None or last_day is None:
            return False

        frequency = self.throttle_lookups.get(age_timeframe(item_day, today))
        if not frequency:
            return False

        return last_day >= today - parse_frequency(frequency)
