"""Culture-invariant duration strings used inside cache policy directives.

Accepted forms (leading ``-`` allowed, surrounding whitespace ignored):

- ``d``                      a whole number of days
- ``[d.]hh:mm[:ss[.fffffff]]``
- ``d:hh:mm:ss[.fffffff]``

Hours must be below 24, minutes and seconds below 60, and fractions carry at
most seven digits (100ns ticks). Day counts are bounded by the largest
duration the directive format can carry.
"""

from __future__ import annotations

import re
from datetime import timedelta

# Whole days in the largest representable directive duration
MAX_DAYS = 10_675_199

_DAYS_ONLY = re.compile(r"^(?P<sign>-)?(?P<days>\d+)$")
_CONSTANT = re.compile(
    r"^(?P<sign>-)?(?:(?P<days>\d+)\.)?(?P<hours>\d{1,2}):(?P<minutes>\d{1,2})"
    r"(?::(?P<seconds>\d{1,2})(?:\.(?P<fraction>\d{1,7}))?)?$"
)
_GENERAL = re.compile(
    r"^(?P<sign>-)?(?P<days>\d+):(?P<hours>\d{1,2}):(?P<minutes>\d{1,2})"
    r":(?P<seconds>\d{1,2})(?:\.(?P<fraction>\d{1,7}))?$"
)


def parse_timespan(text: str) -> timedelta | None:
    """Parse a duration string, returning None when it is not valid."""
    value = text.strip()

    match = _DAYS_ONLY.match(value)
    if match:
        if int(match["days"]) > MAX_DAYS:
            return None
        days = timedelta(days=int(match["days"]))
        return -days if match["sign"] else days

    match = _GENERAL.match(value) or _CONSTANT.match(value)
    if match is None:
        return None

    hours = int(match["hours"])
    minutes = int(match["minutes"])
    days = int(match["days"] or 0)
    seconds = int(match["seconds"] or 0)
    if hours > 23 or minutes > 59 or seconds > 59 or days > MAX_DAYS:
        return None

    # Fractions are ticks of 100ns; timedelta keeps microseconds.
    fraction = match["fraction"] or ""
    microseconds = int(fraction.ljust(7, "0")[:6]) if fraction else 0

    result = timedelta(
        days=days,
        hours=hours,
        minutes=minutes,
        seconds=seconds,
        microseconds=microseconds,
    )
    return -result if match["sign"] else result


def format_timespan(value: timedelta) -> str:
    """Render a duration as ``[-][d.]hh:mm:ss[.fffffff]``."""
    sign = "-" if value < timedelta(0) else ""
    value = abs(value)

    hours, remainder = divmod(value.seconds, 3600)
    minutes, seconds = divmod(remainder, 60)

    text = f"{hours:02d}:{minutes:02d}:{seconds:02d}"
    if value.days:
        text = f"{value.days}.{text}"
    if value.microseconds:
        text = f"{text}.{value.microseconds * 10:07d}"
    return f"{sign}{text}"
