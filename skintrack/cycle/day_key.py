"""Calendar-day identity for cycle history.

Every recorded day is stored under a *day key*: the epoch-milliseconds
timestamp of local midnight for that calendar day, as an integer.  This is
the persisted representation, so it must stay bit-for-bit compatible with
existing history.

Arithmetic is done on calendar dates and converted back, never by adding
``86_400_000`` to a key, so days that are 23 or 25 hours long (DST
transitions) still land on midnight.
"""

from __future__ import annotations

from datetime import date, datetime, time, timedelta
from typing import Iterator

DAY_MS = 24 * 60 * 60 * 1000


def to_day_key(value: date | datetime) -> int:
    """Return the day key for the calendar day containing ``value``.

    Naive datetimes are taken as local time.  Aware datetimes are first
    converted to local time, so the key reflects the local calendar day.

    Args:
        value: A date or datetime.

    Returns:
        Epoch milliseconds of local midnight, as an int.
    """
    if isinstance(value, datetime):
        if value.tzinfo is not None:
            value = value.astimezone()
        day = value.date()
    else:
        day = value
    midnight = datetime.combine(day, time.min)
    return int(round(midnight.timestamp() * 1000))


def from_day_key(day_key: int) -> date:
    """Return the local calendar date a day key identifies."""
    return datetime.fromtimestamp(day_key / 1000).date()


def today_key() -> int:
    return to_day_key(date.today())


def add_days(day_key: int, days: int) -> int:
    """Shift a day key by a number of calendar days."""
    return to_day_key(from_day_key(day_key) + timedelta(days=days))


def diff_in_days(from_key: int, to_key: int) -> int:
    """Calendar days from ``from_key`` to ``to_key`` (negative if earlier)."""
    return (from_day_key(to_key) - from_day_key(from_key)).days


def iter_day_keys(start_key: int, end_key: int) -> Iterator[int]:
    """Yield every day key in the inclusive range, in ascending order.

    The bounds may be given in either order.
    """
    first = from_day_key(min(start_key, end_key))
    last = from_day_key(max(start_key, end_key))
    current = first
    while current <= last:
        yield to_day_key(current)
        current += timedelta(days=1)


def normalize_day_key(day_key: int) -> int:
    """Snap any epoch-millis timestamp to the key of its local calendar day."""
    return to_day_key(from_day_key(day_key))
