"""Tests for month grid generation."""
from datetime import date

import pytest

from calendar_grid import MonthMembership, generate_grid, weekday_symbols, weeks
from date_math import SUNDAY, days_in_month, next_month, previous_month


def _sample_dates():
    """First, middle and last day of every month across a leap cycle."""
    for year in (2023, 2024, 2025, 2100):
        for month in range(1, 13):
            for day in (1, 15, days_in_month(year, month)):
                yield date(year, month, day)


@pytest.mark.parametrize("week_start", [0, SUNDAY])
def test_grid_is_whole_weeks_with_exact_current_month(week_start):
    """Test grid length and the current-month run for many dates."""
    for reference in _sample_dates():
        grid = generate_grid(reference, week_start)
        assert len(grid) % 7 == 0
        assert 28 <= len(grid) <= 42

        current = [d.day_number for d in grid if d.membership is MonthMembership.CURRENT]
        assert current == list(range(1, days_in_month(reference.year, reference.month) + 1))

        assert grid[0].actual_date.weekday() == week_start


def test_filler_dates_are_adjacent_months():
    """Test filler days carry the true previous/next month and year."""
    for reference in _sample_dates():
        grid = generate_grid(reference)
        prev = previous_month(reference.year, reference.month)
        nxt = next_month(reference.year, reference.month)
        for day in grid:
            ym = (day.actual_date.year, day.actual_date.month)
            if day.membership is MonthMembership.PREVIOUS:
                assert ym == prev
            elif day.membership is MonthMembership.NEXT:
                assert ym == nxt
            assert day.actual_date.day == day.day_number


def test_february_2024_grid():
    """Test leap-year February starting on Thursday with Monday start."""
    grid = generate_grid(date(2024, 2, 1))

    assert len(grid) == 35
    previous = [d for d in grid if d.membership is MonthMembership.PREVIOUS]
    current = [d for d in grid if d.membership is MonthMembership.CURRENT]
    following = [d for d in grid if d.membership is MonthMembership.NEXT]

    assert [d.actual_date for d in previous] == [date(2024, 1, 29), date(2024, 1, 30), date(2024, 1, 31)]
    assert len(current) == 29
    assert [d.actual_date for d in following] == [date(2024, 3, 1), date(2024, 3, 2), date(2024, 3, 3)]


def test_year_rollover_fillers():
    """Test December and January grids borrow from the neighbouring year."""
    january = generate_grid(date(2025, 1, 10))
    assert january[0].membership is MonthMembership.PREVIOUS
    assert january[0].actual_date == date(2024, 12, 30)

    december = generate_grid(date(2024, 12, 10))
    assert december[-1].membership is MonthMembership.NEXT
    assert december[-1].actual_date == date(2025, 1, 5)


def test_six_week_month():
    """Test a 31-day month starting on Sunday needs six rows."""
    grid = generate_grid(date(2024, 12, 1))
    assert len(grid) == 42
    assert len(weeks(grid)) == 6


def test_four_week_month_has_no_filler():
    """Test Feb 2021 (starts Monday, 28 days) fills exactly four rows."""
    grid = generate_grid(date(2021, 2, 14))
    assert len(grid) == 28
    assert all(d.is_current_month for d in grid)


def test_filler_one_is_not_current_one():
    """Test filler "1" and current-month "1" are never the same day."""
    grid = generate_grid(date(2024, 2, 1))
    ones = [d for d in grid if d.day_number == 1]
    assert len(ones) == 2
    assert ones[0].is_same_day(date(2024, 2, 1))
    assert not ones[1].is_same_day(date(2024, 2, 1))


def test_weekday_symbols_rotate():
    """Test header labels follow the week start."""
    assert weekday_symbols()[0] == "Mon"
    assert weekday_symbols(SUNDAY) == ["Sun", "Mon", "Tue", "Wed", "Thu", "Fri", "Sat"]
