# durations.py
# Converts recipe timings between the textual wire form ("1h30m", "45s"),
# datetime.timedelta, and the database interval column.

import re
from datetime import timedelta
from decimal import Decimal, InvalidOperation
from typing import Annotated, Any, Optional

from pydantic import BeforeValidator, PlainSerializer

from eatinn.exceptions import FormatError

# Nanoseconds per unit. Both the micro sign and the greek mu are accepted for micro.
UNIT_NANOSECONDS = {
    "ns": 1,
    "us": 1_000,
    "µs": 1_000,
    "μs": 1_000,
    "ms": 1_000_000,
    "s": 1_000_000_000,
    "m": 60 * 1_000_000_000,
    "h": 60 * 60 * 1_000_000_000,
}

# Longest accepted duration: a signed 64-bit count of nanoseconds (about 2562047h).
MAX_NANOSECONDS = 2**63 - 1
MAX_MINUTES = MAX_NANOSECONDS // UNIT_NANOSECONDS["m"]
# at microsecond resolution, rounded up like parse_duration rounds
MAX_DURATION = timedelta(microseconds=-(-MAX_NANOSECONDS // 1_000))

_COMPONENT = re.compile(r"(\d*)(?:\.(\d*))?([^\d.]+)")


def parse_duration(value: Any) -> timedelta:
    """
    Parse a duration string such as "300ms", "-1.5h" or "2h45m".

    A duration string is a possibly signed sequence of decimal numbers, each
    with optional fraction and a unit suffix. Valid units are "ns", "us"
    (or "µs"), "ms", "s", "m", "h". The bare string "0" is also accepted.
    Resolution is one microsecond; anything finer is rounded.
    """
    if not isinstance(value, str):
        raise FormatError('duration must be a string (e.g., "30m", "1h30m")')

    text = value
    sign = 1
    if text[:1] in ("-", "+"):
        sign = -1 if text[0] == "-" else 1
        text = text[1:]

    if text == "0":
        return timedelta(0)
    if not text:
        raise FormatError(f"invalid duration {value!r}")

    total = Decimal(0)
    pos = 0
    while pos < len(text):
        match = _COMPONENT.match(text, pos)
        if match is None:
            raise FormatError(f"invalid duration {value!r}")
        whole, fraction, unit = match.groups()
        if not whole and not fraction:
            raise FormatError(f"invalid duration {value!r}")
        if unit not in UNIT_NANOSECONDS:
            raise FormatError(f"unknown unit {unit!r} in duration {value!r}")
        try:
            number = Decimal(f"{whole or '0'}.{fraction or '0'}")
        except InvalidOperation:
            raise FormatError(f"invalid duration {value!r}")
        total += number * UNIT_NANOSECONDS[unit]
        if total > MAX_NANOSECONDS:
            raise FormatError(f"invalid duration {value!r}")
        pos = match.end()

    microseconds = int((total / 1000).to_integral_value())
    try:
        return timedelta(microseconds=sign * microseconds)
    except OverflowError:
        raise FormatError(f"invalid duration {value!r}")


def _decimal(value: int, scale: int) -> str:
    whole, rest = divmod(value, scale)
    if not rest:
        return str(whole)
    width = len(str(scale)) - 1
    return f"{whole}.{str(rest).zfill(width).rstrip('0')}"


def format_duration(duration: timedelta) -> str:
    """
    Render a timedelta in the same textual form parse_duration accepts,
    e.g. "1h30m0s", "45s", "1.5s", "500ms", "0s".
    """
    total_us = (duration.days * 86_400 + duration.seconds) * 1_000_000 + duration.microseconds
    if total_us == 0:
        return "0s"

    sign = "-" if total_us < 0 else ""
    total_us = abs(total_us)

    if total_us < 1_000:
        return f"{sign}{total_us}µs"
    if total_us < 1_000_000:
        return f"{sign}{_decimal(total_us, 1_000)}ms"

    seconds, fraction = divmod(total_us, 1_000_000)
    hours, seconds = divmod(seconds, 3_600)
    minutes, seconds = divmod(seconds, 60)
    text = _decimal(seconds * 1_000_000 + fraction, 1_000_000) + "s"
    if hours:
        return f"{sign}{hours}h{minutes}m{text}"
    if minutes:
        return f"{sign}{minutes}m{text}"
    return f"{sign}{text}"


def to_interval(duration: timedelta) -> Optional[timedelta]:
    # Zero is stored as NULL, so an omitted timing and an explicit "0s" look the same.
    if not duration:
        return None
    return duration


def from_interval(value: Optional[timedelta]) -> timedelta:
    if value is None:
        return timedelta(0)
    return value


def _coerce_duration(value: Any) -> timedelta:
    if isinstance(value, timedelta):
        return value
    return parse_duration(value)


# Pydantic field type: text on the wire, timedelta in Python.
Duration = Annotated[
    timedelta,
    BeforeValidator(_coerce_duration),
    PlainSerializer(format_duration, return_type=str, when_used="json"),
]
