"""
Duration text parsing and formatting.

Timeouts and election timings are written by operators as Go-style
duration text ("30s", "1m30s", "250ms", "1h"). This module converts that
text to datetime.timedelta and back.

Durations are held at microsecond precision (the precision of timedelta);
nanosecond inputs are truncated toward zero. format_duration produces the
canonical text, so parse -> format -> parse always returns the same value.
"""

import re
from datetime import timedelta

from syncer_core.exceptions import InvalidDurationFormat

_NANOS_PER_UNIT = {
    "ns": 1,
    "us": 1_000,
    "µs": 1_000,  # U+00B5 micro sign
    "μs": 1_000,  # U+03BC greek mu
    "ms": 1_000_000,
    "s": 1_000_000_000,
    "m": 60 * 1_000_000_000,
    "h": 3600 * 1_000_000_000,
}

_COMPONENT = re.compile(r"(\d*)(?:\.(\d*))?(ns|us|µs|μs|ms|s|m|h)")

_MICROS_PER_SECOND = 1_000_000

# Durations are int64 nanoseconds
_MAX_NANOS = (1 << 63) - 1


def parse_duration(text: str) -> timedelta:
    """
    Parse Go-style duration text.

    A duration is an optionally signed sequence of decimal numbers, each
    with an optional fraction and a required unit suffix, such as "300ms",
    "-1.5h" or "2h45m". "0" is accepted without a unit.

    Args:
        text: The duration text

    Returns:
        The parsed duration

    Raises:
        InvalidDurationFormat: If the text is empty or malformed
    """
    s = text
    negative = False
    if s and s[0] in "+-":
        negative = s[0] == "-"
        s = s[1:]

    if s == "0":
        return timedelta(0)
    if not s:
        raise InvalidDurationFormat(text)

    nanos = 0
    pos = 0
    while pos < len(s):
        match = _COMPONENT.match(s, pos)
        if match is None:
            if not s[pos:].strip("0123456789."):
                raise InvalidDurationFormat(text, "missing unit in duration")
            raise InvalidDurationFormat(text)
        whole, frac, unit = match.group(1), match.group(2), match.group(3)
        if not whole and not frac:
            raise InvalidDurationFormat(text)

        scale = _NANOS_PER_UNIT[unit]
        nanos += int(whole or "0") * scale
        if frac:
            nanos += int(frac) * scale // (10 ** len(frac))
        if nanos > _MAX_NANOS:
            raise InvalidDurationFormat(text, "duration out of range")
        pos = match.end()

    micros = nanos // 1_000
    return timedelta(microseconds=-micros if negative else micros)


def _trim_fraction(value: int, digits: int) -> str:
    """Render value/10**digits with trailing zeros removed."""
    whole, frac = divmod(value, 10**digits)
    if frac == 0:
        return str(whole)
    return f"{whole}.{str(frac).rjust(digits, '0').rstrip('0')}"


def format_duration(duration: timedelta) -> str:
    """
    Render a duration as canonical Go-style text.

    Examples: 0 -> "0s", 1.5s -> "1.5s", 90m -> "1h30m0s", 250ms -> "250ms".
    """
    micros = duration // timedelta(microseconds=1)
    if micros == 0:
        return "0s"

    sign = "-" if micros < 0 else ""
    micros = abs(micros)

    if micros < 1_000:
        return f"{sign}{micros}µs"
    if micros < _MICROS_PER_SECOND:
        return f"{sign}{_trim_fraction(micros, 3)}ms"

    hours, rem = divmod(micros, 3600 * _MICROS_PER_SECOND)
    minutes, rem = divmod(rem, 60 * _MICROS_PER_SECOND)
    seconds = _trim_fraction(rem, 6)

    if hours:
        return f"{sign}{hours}h{minutes}m{seconds}s"
    if minutes:
        return f"{sign}{minutes}m{seconds}s"
    return f"{sign}{seconds}s"
