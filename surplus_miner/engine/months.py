"""Month keys: the join key shared by every pipeline stage."""
from datetime import datetime, timezone
from typing import Union


def month_key(value: Union[int, float, str, datetime]) -> str:
    """Return the ``YYYY-MM`` key for an epoch-millis timestamp, a datetime or a date string.

    Date strings may be ``YYYY-MM-DD``, ``YYYY/MM/DD`` or already ``YYYY-MM``.
    A string whose month is outside 1..12 raises ValueError.
    Datetimes and timestamps are bucketed by their UTC year and month.
    """
    if isinstance(value, datetime):
        if value.tzinfo is not None:
            value = value.astimezone(timezone.utc)
        return f"{value.year:04d}-{value.month:02d}"
    if isinstance(value, str):
        parts = value.strip().replace("/", "-").split("-")
        if len(parts) < 2 or not parts[0].isdigit() or not parts[1].isdigit():
            raise ValueError(f"Not a date string: {value!r}")
        key = f"{int(parts[0]):04d}-{int(parts[1]):02d}"
        parse_month(key)
        return key
    ts = datetime.fromtimestamp(float(value) / 1000.0, tz=timezone.utc)
    return f"{ts.year:04d}-{ts.month:02d}"


def parse_month(key: str) -> tuple:
    """Split a ``YYYY-MM`` key into ``(year, month)`` ints, validating the month range."""
    year_str, _, month_str = key.partition("-")
    if len(year_str) != 4 or len(month_str) != 2 or not (year_str + month_str).isdigit():
        raise ValueError(f"Invalid month key: {key!r} (expected YYYY-MM)")
    month = int(month_str)
    if not 1 <= month <= 12:
        raise ValueError(f"Invalid month key: {key!r} (month out of range)")
    return int(year_str), month
