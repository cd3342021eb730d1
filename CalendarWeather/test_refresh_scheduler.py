"""Tests for refresh planning."""
from datetime import date, datetime, timedelta, timezone
from zoneinfo import ZoneInfo

import pytest

from refresh_scheduler import next_dst_transition, plan_refreshes

NEW_YORK = ZoneInfo("America/New_York")
BERLIN = ZoneInfo("Europe/Berlin")
TOKYO = ZoneInfo("Asia/Tokyo")


def _moments():
    """A spread of moments across month, year and DST boundaries."""
    start = datetime(2024, 1, 1, 0, 0, tzinfo=NEW_YORK)
    for hours in range(0, 24 * 400, 37):
        yield start + timedelta(hours=hours)
    yield datetime(2024, 12, 31, 23, 59, 59, tzinfo=NEW_YORK)
    yield datetime(2024, 2, 28, 23, 30, tzinfo=NEW_YORK)


def test_plan_is_future_sorted_and_has_next_midnight():
    """Test every instant is after now and the next midnight is present."""
    for now in _moments():
        plan = plan_refreshes(now, NEW_YORK)
        assert all(instant > now for instant in plan)
        assert plan == sorted(plan)
        assert len(plan) == len(set(p.timestamp() for p in plan))

        midnight = datetime.combine(now.date() + timedelta(days=1), datetime.min.time(), tzinfo=NEW_YORK)
        assert plan[0] == midnight


def test_plan_is_idempotent():
    """Test the same now always yields the same plan."""
    now = datetime(2024, 10, 19, 15, 45, tzinfo=BERLIN)
    assert plan_refreshes(now, BERLIN) == plan_refreshes(now, BERLIN)


def test_plan_contents_around_spring_forward():
    """Test redundancy, week, month and DST instants for New York in March."""
    now = datetime(2024, 3, 1, 12, 0, tzinfo=NEW_YORK)
    plan = plan_refreshes(now, NEW_YORK)

    expected = [
        datetime(2024, 3, 2, 0, 0, tzinfo=NEW_YORK),
        datetime(2024, 3, 2, 1, 0, tzinfo=NEW_YORK),
        datetime(2024, 3, 2, 6, 0, tzinfo=NEW_YORK),
        datetime(2024, 3, 8, 0, 0, tzinfo=NEW_YORK),
        datetime(2024, 3, 11, 0, 0, tzinfo=NEW_YORK),  # after the DST change
        datetime(2024, 4, 1, 0, 0, tzinfo=NEW_YORK),
    ]
    assert plan == expected


def test_fixed_offset_zone_omits_dst_instant():
    """Test zones without transitions silently drop the DST instant."""
    now = datetime(2024, 3, 1, 12, 0, tzinfo=timezone.utc)
    plan = plan_refreshes(now)
    assert len(plan) == 5
    assert plan[0] == datetime(2024, 3, 2, tzinfo=timezone.utc)


def test_naive_time_uses_wall_clock():
    """Test naive moments plan on the wall clock with month clamping."""
    now = datetime(2024, 1, 31, 10, 0)
    plan = plan_refreshes(now)
    assert plan[0] == datetime(2024, 2, 1)
    assert datetime(2024, 2, 29) in plan
    assert len(plan) == 5


def test_aware_now_converted_to_target_zone():
    """Test an aware UTC moment is planned in the requested zone."""
    now = datetime(2024, 6, 1, 3, 0, tzinfo=timezone.utc)  # 23:00 May 31 in New York
    plan = plan_refreshes(now, NEW_YORK)
    assert plan[0] == datetime(2024, 6, 1, 0, 0, tzinfo=NEW_YORK)


@pytest.mark.parametrize("now,tz,expected", [
    (datetime(2024, 3, 1, 12, 0), NEW_YORK, date(2024, 3, 10)),
    (datetime(2024, 10, 19, 9, 0), BERLIN, date(2024, 10, 27)),
    (datetime(2024, 5, 1, 9, 0), BERLIN, None),  # next change is October, beyond 3 months
    (datetime(2024, 3, 1, 12, 0), TOKYO, None),
])
def test_next_dst_transition(now, tz, expected):
    """Test DST transition detection within the lookahead window."""
    assert next_dst_transition(now.replace(tzinfo=tz), tz) == expected


def test_dst_lookup_without_zone():
    """Test naive times report no transition."""
    assert next_dst_transition(datetime(2024, 3, 1, 12, 0)) is None


def test_dst_instant_later_in_lookahead_window():
    """Test a transition two months out still yields the midnight after it."""
    now = datetime(2025, 9, 1, 12, 0, tzinfo=BERLIN)

    assert next_dst_transition(now, BERLIN) == date(2025, 10, 26)
    plan = plan_refreshes(now, BERLIN)
    assert datetime(2025, 10, 27, 0, 0, tzinfo=BERLIN) in plan
    assert plan[-1] == datetime(2025, 10, 27, 0, 0, tzinfo=BERLIN)
    assert len(plan) == 6


def test_dst_instant_in_third_month():
    """Test a transition in the last month of the window is still found."""
    now = datetime(2025, 8, 1, 12, 0, tzinfo=BERLIN)

    assert next_dst_transition(now, BERLIN) == date(2025, 10, 26)
    assert datetime(2025, 10, 27, 0, 0, tzinfo=BERLIN) in plan_refreshes(now, BERLIN)
