"""Time-of-day value used for booking interval comparisons."""

from __future__ import annotations

import re
from dataclasses import dataclass

_TIME_PATTERN = re.compile(r"^\s*(\d{1,2}):(\d{2})\s*([AaPp][Mm])?\s*$")

MINUTES_PER_DAY = 24 * 60


@dataclass(frozen=True, order=True)
class TimeOfDay:
    """Minutes since midnight, parsed once from a booking time string."""

    minutes: int

    def __post_init__(self) -> None:
        if not 0 <= self.minutes < MINUTES_PER_DAY:
            raise ValueError(f"Minutes {self.minutes} out of valid range 0-1439")

    @classmethod
    def parse(cls, text: str) -> "TimeOfDay":
        """Parse ``HH:MM`` (24-hour) or ``H:MM AM/PM`` (12-hour) strings.

        ``12 AM`` maps to hour 0 and ``12 PM`` to hour 12.
        """

        if not isinstance(text, str):
            raise ValueError(f"Time value {text!r} is not a string")

        match = _TIME_PATTERN.match(text)
        if not match:
            raise ValueError(f"Time string '{text}' is not HH:MM or H:MM AM/PM")

        hour = int(match.group(1))
        minute = int(match.group(2))
        period = match.group(3).upper() if match.group(3) else None

        if not 0 <= minute <= 59:
            raise ValueError(f"Minute {minute} out of valid range 0-59")

        if period is None:
            if not 0 <= hour <= 23:
                raise ValueError(f"Hour {hour} out of valid range 0-23")
        else:
            if not 1 <= hour <= 12:
                raise ValueError(f"Hour {hour} out of valid range 1-12 for {period}")
            if period == "PM" and hour != 12:
                hour += 12
            elif period == "AM" and hour == 12:
                hour = 0

        return cls(hour * 60 + minute)

    @property
    def hour(self) -> int:
        return self.minutes // 60

    @property
    def minute(self) -> int:
        return self.minutes % 60

    def __str__(self) -> str:
        return f"{self.hour:02d}:{self.minute:02d}"


def intervals_overlap(
    a_start: TimeOfDay,
    a_end: TimeOfDay,
    b_start: TimeOfDay,
    b_end: TimeOfDay,
) -> bool:
    """Half-open overlap test: touching boundaries do not overlap."""

    return a_start < b_end and a_end > b_start
