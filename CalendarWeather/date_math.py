"""Date arithmetic helpers - pure functions for grid and schedule calculations."""
import calendar
from datetime import date, datetime, time, timedelta, tzinfo
from typing import Optional, Tuple

DATE_KEY_FORMAT = "%Y-%m-%d"

MONDAY = 0
SUNDAY = 6


def days_in_month(year: int, month: int) -> int:
    """Return the number of days in the given month (leap years included)."""
    return calendar.monthrange(year, month)[1]


def previous_month(year: int, month: int) -> Tuple[int, int]:
    """Return (year, month) for one month earlier."""
    if month == 1:
        return year - 1, 12
    return year, month - 1


def next_month(year: int, month: int) -> Tuple[int, int]:
    """Return (year, month) for one month later."""
    if month == 12:
        return year + 1, 1
    return year, month + 1


def add_months(d: date, months: int) -> date:
    """
    Shift a date by whole calendar months.

    The day is clamped to the length of the target month, so Jan 31 + 1
    month is Feb 28 (or 29 in a leap year).
    """
    total = d.year * 12 + (d.month - 1) + months
    year, month = divmod(total, 12)
    month += 1
    return date(year, month, min(d.day, days_in_month(year, month)))


def weekday_index(d: date, week_start: int = MONDAY) -> int:
    """Column of `d` in a week row that begins on `week_start` (0=Mon .. 6=Sun)."""
    return (d.weekday() - week_start) % 7


def day_of_year(d: date) -> int:
    """Return the 1-based day-of-year for the given date."""
    return d.timetuple().tm_yday


def midnight_of(day: date, tz: Optional[tzinfo] = None) -> datetime:
    """Local wall-clock midnight that starts `day` (naive when tz is None)."""
    return datetime.combine(day, time(0), tzinfo=tz)


def start_of_day(moment: datetime) -> datetime:
    return midnight_of(moment.date(), moment.tzinfo)


def next_midnight(moment: datetime) -> datetime:
    """First midnight strictly after `moment`, in the moment's own time zone."""
    return midnight_of(moment.date() + timedelta(days=1), moment.tzinfo)


def date_key(d: date) -> str:
    """Cache key for a calendar date, e.g. "2025-03-10"."""
    return d.strftime(DATE_KEY_FORMAT)


def parse_date_key(value) -> Optional[date]:
    """Parse a "YYYY-MM-DD" string; returns None instead of raising."""
    if not isinstance(value, str):
        return None
    try:
        return datetime.strptime(value, DATE_KEY_FORMAT).date()
    except ValueError:
        return None
