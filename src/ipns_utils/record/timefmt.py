"""
Timestamp and duration formats used by IPNS records and the CLI.

Validity (EOL) timestamps are RFC 3339 strings with nanosecond precision,
exactly as go-ipns writes them::

    2006-01-02T15:04:05.000000000Z

Python datetimes carry microseconds, so the last three digits are always
zero when writing and are truncated when reading.

Durations (``--ttl``, ``--lifetime``) use Go's ``time.ParseDuration`` syntax::

    300ms   -1.5h   2h45m   1h0m0s

and are carried as integer nanoseconds, the unit of the record's ttl field.
"""

from __future__ import annotations

import re
from datetime import UTC, datetime, timedelta, timezone
from typing import Final

__all__ = [
    "format_validity",
    "parse_validity",
    "parse_duration",
    "format_duration",
]

_RFC3339: Final = re.compile(
    r"^(\d{4})-(\d{2})-(\d{2})[Tt](\d{2}):(\d{2}):(\d{2})(?:\.(\d{1,9}))?(Z|z|[+-]\d{2}:\d{2})$"
)

NANOSECOND: Final[int] = 1
MICROSECOND: Final[int] = 1_000 * NANOSECOND
MILLISECOND: Final[int] = 1_000 * MICROSECOND
SECOND: Final[int] = 1_000 * MILLISECOND
MINUTE: Final[int] = 60 * SECOND
HOUR: Final[int] = 60 * MINUTE

MAX_DURATION: Final[int] = (1 << 63) - 1
"""Longest duration, in nanoseconds, that fits a Go time.Duration (about 2562047h)."""

_UNITS: Final[dict[str, int]] = {
    "ns": NANOSECOND,
    "us": MICROSECOND,
    "µs": MICROSECOND,  # micro sign
    "μs": MICROSECOND,  # greek mu
    "ms": MILLISECOND,
    "s": SECOND,
    "m": MINUTE,
    "h": HOUR,
}

_DURATION_COMPONENT: Final = re.compile(r"(\d*)(?:\.(\d*))?(ns|us|µs|μs|ms|s|m|h)")


def format_validity(eol: datetime) -> bytes:
    """
    Format an EOL timestamp for the record's validity field.

    Args:
        eol: Expiry time. Naive datetimes are taken to be UTC.

    Returns:
        ASCII bytes in ``YYYY-MM-DDTHH:MM:SS.nnnnnnnnnZ`` form.
    """
    if eol.tzinfo is None:
        eol = eol.replace(tzinfo=UTC)
    utc = eol.astimezone(UTC)

    text = (
        f"{utc.year:04d}-{utc.month:02d}-{utc.day:02d}"
        f"T{utc.hour:02d}:{utc.minute:02d}:{utc.second:02d}"
        f".{utc.microsecond * 1000:09d}Z"
    )
    return text.encode("ascii")


def parse_validity(text: str) -> datetime:
    """
    Parse an RFC 3339 timestamp.

    Accepts 0 to 9 fraction digits and either ``Z`` or a ``+HH:MM`` offset.

    Returns:
        Timezone-aware UTC datetime, truncated to microseconds.

    Raises:
        ValueError: If the text is not a valid RFC 3339 timestamp.
    """
    match = _RFC3339.match(text)
    if match is None:
        raise ValueError(f"not an RFC 3339 timestamp: {text!r}")

    year, month, day, hour, minute, second, fraction, offset = match.groups()

    microsecond = int((fraction or "")[:6].ljust(6, "0"))

    if offset in ("Z", "z"):
        tz = UTC
    else:
        sign = -1 if offset[0] == "-" else 1
        hours, minutes = int(offset[1:3]), int(offset[4:6])
        tz = timezone(sign * timedelta(hours=hours, minutes=minutes))

    parsed = datetime(
        int(year),
        int(month),
        int(day),
        int(hour),
        int(minute),
        int(second),
        microsecond,
        tzinfo=tz,
    )
    return parsed.astimezone(UTC)


def parse_duration(text: str) -> int:
    """
    Parse a Go duration string.

    Args:
        text: e.g. "30s", "-10m", "24.5h", "1h30m", "0".

    Returns:
        Duration in nanoseconds (fractions of a nanosecond are truncated).

    Raises:
        ValueError: If the string is not a valid duration or does not fit
            in 64 signed bits of nanoseconds.
    """
    original = text
    sign = 1
    if text[:1] in ("-", "+"):
        sign = -1 if text[0] == "-" else 1
        text = text[1:]

    if text == "0":
        return 0
    if not text:
        raise ValueError(f"invalid duration {original!r}")

    total = 0
    pos = 0
    while pos < len(text):
        match = _DURATION_COMPONENT.match(text, pos)
        if match is None:
            raise ValueError(f"invalid duration {original!r}")

        whole, fraction, unit = match.groups()
        if not whole and not fraction:
            raise ValueError(f"invalid duration {original!r}")

        scale = _UNITS[unit]
        total += int(whole or "0") * scale
        if fraction:
            total += int(fraction) * scale // 10 ** len(fraction)

        pos = match.end()

    # A Go duration is a signed 64-bit nanosecond count.
    if total > MAX_DURATION + (sign < 0):
        raise ValueError(f"invalid duration {original!r}: out of range")

    return sign * total


def _format_fraction(value: int, scale: int) -> str:
    """Format value / scale with the shortest exact decimal fraction."""
    whole, remainder = divmod(value, scale)
    if remainder == 0:
        return str(whole)
    width = len(str(scale)) - 1
    digits = str(remainder).rjust(width, "0").rstrip("0")
    return f"{whole}.{digits}"


def format_duration(nanoseconds: int) -> str:
    """
    Format nanoseconds the way Go's ``Duration.String`` does.

    Examples: ``0s``, ``1.5µs``, ``250ms``, ``1m30s``, ``24h0m0s``.
    """
    if nanoseconds == 0:
        return "0s"

    sign = "-" if nanoseconds < 0 else ""
    value = abs(nanoseconds)

    # Sub-second durations use the largest unit that keeps a whole part.
    if value < SECOND:
        if value < MICROSECOND:
            return f"{sign}{value}ns"
        if value < MILLISECOND:
            return f"{sign}{_format_fraction(value, MICROSECOND)}µs"
        return f"{sign}{_format_fraction(value, MILLISECOND)}ms"

    hours, value = divmod(value, HOUR)
    minutes, value = divmod(value, MINUTE)
    seconds = _format_fraction(value, SECOND)

    if hours:
        return f"{sign}{hours}h{minutes}m{seconds}s"
    if minutes:
        return f"{sign}{minutes}m{seconds}s"
    return f"{sign}{seconds}s"
