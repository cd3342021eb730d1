"""Month grid generation - pure functions, no UI dependencies."""
from dataclasses import dataclass
from datetime import date
from enum import Enum
from typing import List

from date_math import (
    MONDAY,
    days_in_month,
    next_month,
    previous_month,
    weekday_index,
)

DAY_ABBR = ["Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun"]


class MonthMembership(Enum):
    """Which month a grid cell belongs to."""
    PREVIOUS = "previous"
    CURRENT = "current"
    NEXT = "next"


@dataclass(frozen=True)
class CalendarDay:
    """One cell of the month grid."""
    day_number: int
    membership: MonthMembership
    actual_date: date

    @property
    def is_current_month(self) -> bool:
        return self.membership is MonthMembership.CURRENT

    def is_same_day(self, other: date) -> bool:
        """Compare by real date so filler "1" never matches current-month "1"."""
        return self.actual_date == other


CalendarGrid = List[CalendarDay]


def generate_grid(reference_date: date, week_start: int = MONDAY) -> CalendarGrid:
    """
    Build the day grid for the month containing `reference_date`.

    The grid starts with trailing days of the previous month so the 1st
    lands in its weekday column, then every day of the month, then leading
    days of the next month to complete the last week row.

    Args:
        reference_date: Any date inside the month to render
        week_start: Weekday that opens each row (0=Monday .. 6=Sunday)

    Returns:
        List of CalendarDay whose length is a multiple of 7 (28 to 42)
    """
    year, month = reference_date.year, reference_date.month
    first = date(year, month, 1)
    month_length = days_in_month(year, month)

    grid: CalendarGrid = []

    leading = weekday_index(first, week_start)
    if leading:
        prev_year, prev_month = previous_month(year, month)
        prev_length = days_in_month(prev_year, prev_month)
        for day in range(prev_length - leading + 1, prev_length + 1):
            grid.append(CalendarDay(day, MonthMembership.PREVIOUS, date(prev_year, prev_month, day)))

    for day in range(1, month_length + 1):
        grid.append(CalendarDay(day, MonthMembership.CURRENT, date(year, month, day)))

    trailing = -len(grid) % 7
    if trailing:
        next_year, next_mon = next_month(year, month)
        for day in range(1, trailing + 1):
            grid.append(CalendarDay(day, MonthMembership.NEXT, date(next_year, next_mon, day)))

    return grid


def weeks(grid: CalendarGrid) -> List[List[CalendarDay]]:
    """Split a grid into week rows of 7 cells."""
    return [grid[i:i + 7] for i in range(0, len(grid), 7)]


def weekday_symbols(week_start: int = MONDAY) -> List[str]:
    """Header labels for the grid columns, rotated to the week start."""
    return DAY_ABBR[week_start:] + DAY_ABBR[:week_start]
