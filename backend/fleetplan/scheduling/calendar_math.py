"""Pure calendar helpers.

All helpers work on ``date`` as well as ``datetime`` and keep the time of day
and tzinfo of the value they are given.
"""

import calendar
from datetime import date, datetime, timedelta
from typing import TypeVar

from dateutil.relativedelta import relativedelta

D = TypeVar("D", date, datetime)


def days_in_month(year: int, month: int) -> int:
    """Number of days in the given month (leap-year aware)."""
    return calendar.monthrange(year, month)[1]


def clamp_day_of_month(value: D, desired_day: int) -> D:
    """Return ``value`` with its day set to ``desired_day``, capped at the month's last day."""
    return value.replace(day=min(desired_day, days_in_month(value.year, value.month)))


def day_of_week(value: date) -> int:
    """Weekday with 0 = Sunday ... 6 = Saturday."""
    return (value.weekday() + 1) % 7


def days_until_weekday(value: date, target: int) -> int:
    """Days to move forward (0-6) to land on ``target`` weekday (0 = Sunday)."""
    return (target - day_of_week(value) + 7) % 7


def add_days(value: D, days: int) -> D:
    return value + timedelta(days=days)


def add_months(value: D, months: int = 1) -> D:
    """Step by calendar months, clamping e.g. Jan 31 + 1 month to Feb 28/29."""
    result: D = value + relativedelta(months=months)
    return result
