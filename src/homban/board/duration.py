# src/homban/board/duration.py

from __future__ import annotations

"""
Calendar-aware recurrence periods.

A Duration is a bag of calendar units (years ... seconds). It is intentionally
not normalized: "3mo" and "1q" are different values that happen to add the same
amount to a date. Normalization is only used for classification (is_monthly, ...).
"""

import re
from dataclasses import dataclass, fields
from datetime import datetime, timedelta

from dateutil.relativedelta import relativedelta

_DURATION_RE = re.compile(
    r"""
    ^\s*
    (?:(?P<years>\d+)\s*y(?:ears?)?\s*)?
    (?:(?P<half_years>\d+)\s*ha(?:lfyears?)?\s*)?
    (?:(?P<quarters>\d+)\s*q(?:uarters?)?\s*)?
    (?:(?P<months>\d+)\s*mo(?:nths?)?\s*)?
    (?:(?P<weeks>\d+)\s*w(?:eeks?)?\s*)?
    (?:(?P<days>\d+)\s*d(?:ays?)?\s*)?
    (?:(?P<hours>\d+)\s*h(?:ours?)?\s*)?
    (?:(?P<minutes>\d+)\s*m(?:inutes?)?\s*)?
    (?:(?P<seconds>\d+)\s*s(?:econds?)?\s*)?
    $
    """,
    re.IGNORECASE | re.VERBOSE,
)

# Field order is the text order.
_UNITS: tuple[tuple[str, str], ...] = (
    ("years", "y"),
    ("half_years", "ha"),
    ("quarters", "q"),
    ("months", "mo"),
    ("weeks", "w"),
    ("days", "d"),
    ("hours", "h"),
    ("minutes", "m"),
    ("seconds", "s"),
)


class DurationParseError(ValueError):
    """Raised for text that is not a duration."""


@dataclass(frozen=True, slots=True)
class Duration:
    years: int = 0
    half_years: int = 0
    quarters: int = 0
    months: int = 0
    weeks: int = 0
    days: int = 0
    hours: int = 0
    minutes: int = 0
    seconds: int = 0

    def __post_init__(self) -> None:
        for f in fields(self):
            value = getattr(self, f.name)
            if not isinstance(value, int) or isinstance(value, bool):
                raise TypeError(f"Duration.{f.name} must be an int, got {value!r}")
            if value < 0:
                raise ValueError(f"Duration.{f.name} must be non-negative, got {value}")

    # ---- text form ----

    @classmethod
    def parse(cls, text: str) -> Duration:
        """
        Parse "1y2mo3d", "1 quarter", "2W 3D" and friends.

        All units are optional but at least one must be present; "" is an error,
        not a zero duration.
        """
        m = _DURATION_RE.match(text or "")
        if m is None:
            raise DurationParseError(f"Invalid duration: {text!r}")

        groups = m.groupdict()
        if all(v is None for v in groups.values()):
            raise DurationParseError(f"Invalid duration: {text!r}")

        return cls(**{name: int(v) if v is not None else 0 for name, v in groups.items()})

    def format(self) -> str:
        parts = [f"{getattr(self, name)}{abbrev}" for name, abbrev in _UNITS if getattr(self, name)]
        # "" would not parse back.
        return "".join(parts) or "0s"

    def __str__(self) -> str:
        return self.format()

    # ---- arithmetic ----

    @property
    def total_months(self) -> int:
        return self.years * 12 + self.half_years * 6 + self.quarters * 3 + self.months

    @property
    def total_days(self) -> int:
        return self.weeks * 7 + self.days

    def add_to_date(self, reference: datetime) -> datetime:
        """
        Add this duration to reference using calendar arithmetic.

        Units are applied smallest first: the time-of-day part, then whole days,
        then whole months (Jan 31 + 1mo = Feb 28/29).
        """
        result = reference + timedelta(hours=self.hours, minutes=self.minutes, seconds=self.seconds)
        result = result + timedelta(days=self.total_days)
        return result + relativedelta(months=self.total_months)

    # ---- classification ----

    def normalize(self) -> Duration:
        minutes = self.minutes + self.seconds // 60
        seconds = self.seconds % 60
        hours = self.hours + minutes // 60
        minutes %= 60
        days = self.days + hours // 24
        hours %= 24
        weeks = self.weeks + days // 7
        days %= 7

        quarters = self.quarters + self.months // 3
        months = self.months % 3
        half_years = self.half_years + quarters // 2
        quarters %= 2
        years = self.years + half_years // 2
        half_years %= 2

        return Duration(
            years=years,
            half_years=half_years,
            quarters=quarters,
            months=months,
            weeks=weeks,
            days=days,
            hours=hours,
            minutes=minutes,
            seconds=seconds,
        )

    def is_zero(self) -> bool:
        return all(getattr(self, name) == 0 for name, _ in _UNITS)

    def _is_exactly(self, unit: str, count: int) -> bool:
        n = self.normalize()
        return all(getattr(n, name) == (count if name == unit else 0) for name, _ in _UNITS)

    def is_daily(self) -> bool:
        return self._is_exactly("days", 1)

    def is_bidaily(self) -> bool:
        return self._is_exactly("days", 2)

    def is_weekly(self) -> bool:
        return self._is_exactly("weeks", 1)

    def is_biweekly(self) -> bool:
        return self._is_exactly("weeks", 2)

    def is_monthly(self) -> bool:
        return self._is_exactly("months", 1)

    def is_bimonthly(self) -> bool:
        return self._is_exactly("months", 2)

    def is_quarterly(self) -> bool:
        return self._is_exactly("quarters", 1)

    def is_half_yearly(self) -> bool:
        return self._is_exactly("half_years", 1)

    def is_yearly(self) -> bool:
        return self._is_exactly("years", 1)

    def is_biyearly(self) -> bool:
        return self._is_exactly("years", 2)
