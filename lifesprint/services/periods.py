"""
Calendar periods for containers.

Date logic (UTC, date-only):
- Annual: Jan 1 - Dec 31 of the reference year
- Monthly: 1st - last day of the reference month
- Weekly: Monday - Sunday of the ISO-8601 week containing the reference date
- Daily: the reference date only

Everything here is a pure function of its arguments; callers pass the
reference date explicitly instead of reading the wall clock.
"""

import calendar
from datetime import date, datetime, timedelta
from typing import Tuple, Union

from ..models.container import ContainerKind
from ..utils.datetime_utils import to_utc_date

DateLike = Union[date, datetime]


class ContainerPeriodCalculator:
    """Compute the [start, end] range of a container period."""

    @classmethod
    def range(cls, kind: Union[ContainerKind, str], reference: DateLike) -> Tuple[date, date]:
        """Start and end date (inclusive) of the period of ``kind`` containing ``reference``."""
        kind = ContainerKind(kind)
        day = to_utc_date(reference)

        if kind == ContainerKind.ANNUAL:
            return cls.annual(day)
        if kind == ContainerKind.MONTHLY:
            return cls.monthly(day)
        if kind == ContainerKind.WEEKLY:
            return cls.weekly(day)
        return cls.daily(day)

    @staticmethod
    def annual(day: date) -> Tuple[date, date]:
        return date(day.year, 1, 1), date(day.year, 12, 31)

    @staticmethod
    def monthly(day: date) -> Tuple[date, date]:
        last_day = calendar.monthrange(day.year, day.month)[1]
        return date(day.year, day.month, 1), date(day.year, day.month, last_day)

    @staticmethod
    def weekly(day: date) -> Tuple[date, date]:
        # weekday(): Monday = 0 ... Sunday = 6
        start = day - timedelta(days=day.weekday())
        return start, start + timedelta(days=6)

    @staticmethod
    def daily(day: date) -> Tuple[date, date]:
        return day, day

    @classmethod
    def contains(cls, kind: Union[ContainerKind, str], reference: DateLike, candidate: DateLike) -> bool:
        """Whether ``candidate`` falls inside the period of ``kind`` containing ``reference``."""
        start, end = cls.range(kind, reference)
        return start <= to_utc_date(candidate) <= end


def period_range(kind: Union[ContainerKind, str], reference: DateLike) -> Tuple[date, date]:
    """Module-level shortcut for ContainerPeriodCalculator.range()."""
    return ContainerPeriodCalculator.range(kind, reference)
