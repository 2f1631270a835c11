"""Formatting helpers: hex arrays, line splitting, validity and expiry strings."""

import calendar
from datetime import datetime, timezone
from typing import List, Optional


def hex_array(data: bytes) -> str:
    """Format bytes as upper-case, colon separated hex (e.g. "AA:BB:CC")."""
    return ":".join(f"{b:02X}" for b in data)


def split_string(value: str, prefix: str, size: int) -> List[str]:
    """
    Split value into chunks of at most size characters, each with prefix.

    Args:
        value: String to split
        prefix: Prepended to every chunk (usually indentation)
        size: Maximum chunk length, prefix excluded

    Returns:
        List of prefixed chunks; a short value gives a single line
    """
    if len(value) <= size:
        return [prefix + value]
    return [prefix + value[i:i + size] for i in range(0, len(value), size)]


def validity_format(t: datetime) -> str:
    """Render a validity timestamp like openssl does: "Jan  2 15:04:05 2006 UTC"."""
    t = t.astimezone(timezone.utc)
    return f"{t:%b} {t.day:2d} {t:%H:%M:%S %Y} UTC"


def now_utc() -> datetime:
    return datetime.now(timezone.utc)


def _add_months(t: datetime, months: int) -> datetime:
    month = t.month - 1 + months
    year = t.year + month // 12
    month = month % 12 + 1
    day = min(t.day, calendar.monthrange(year, month)[1])
    return t.replace(year=year, month=month, day=day)


def calendar_diff(a: datetime, b: datetime):
    """
    Difference between two instants in calendar units.

    Returns:
        Tuple (years, months, days, hours, minutes, seconds), order of a and b
        does not matter
    """
    if a > b:
        a, b = b, a

    months = (b.year - a.year) * 12 + (b.month - a.month)
    if _add_months(a, months) > b:
        months -= 1
    anchor = _add_months(a, months)
    remainder = b - anchor

    hours, seconds = divmod(remainder.seconds, 3600)
    minutes, seconds = divmod(seconds, 60)
    return months // 12, months % 12, remainder.days, hours, minutes, seconds


def expiry_format(t: datetime, now: Optional[datetime] = None) -> str:
    """Human readable distance to t, dropping leading zero units."""
    year, month, day, hour, minute, _ = calendar_diff(now or now_utc(), t)
    if year != 0:
        return f"{year} years {month} months {day} days {hour} hours {minute} minutes"
    if month != 0:
        return f"{month} months {day} days {hour} hours {minute} minutes"
    if day != 0:
        return f"{day} days {hour} hours {minute} minutes"
    if hour != 0:
        return f"{hour} hours {minute} minutes"
    return f"{minute} minutes"
