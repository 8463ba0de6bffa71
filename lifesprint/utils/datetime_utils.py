"""
Centralized datetime utilities.

All timestamps are handled in UTC. The database stores naive UTC datetimes
(TIMESTAMP WITHOUT TIME ZONE) and plain dates for container periods, so every
value crossing into persistence goes through these helpers.
"""

from datetime import date, datetime
from typing import Optional, Union

import pytz


def get_utc_now() -> datetime:
    """Get the current time as a naive UTC datetime."""
    return datetime.now(pytz.UTC).replace(tzinfo=None)


def get_utc_today() -> date:
    """Get the current UTC calendar date."""
    return datetime.now(pytz.UTC).date()


def to_naive_utc(dt: Optional[datetime]) -> Optional[datetime]:
    """
    Convert any datetime to naive UTC for database storage.

    Aware datetimes are converted to UTC and stripped of tzinfo.
    Naive datetimes are assumed to already be UTC.
    """
    if dt is None:
        return None

    if dt.tzinfo is not None:
        return dt.astimezone(pytz.UTC).replace(tzinfo=None)

    return dt


def to_utc_date(value: Union[date, datetime]) -> date:
    """
    Reduce a reference instant to its UTC calendar date.

    Accepts plain dates (returned unchanged), naive datetimes (assumed UTC)
    and aware datetimes (converted to UTC first).
    """
    if isinstance(value, datetime):
        return to_naive_utc(value).date()
    return value
