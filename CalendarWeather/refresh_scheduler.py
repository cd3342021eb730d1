"""Refresh planning - decides when a renderer must rebuild its snapshot."""
import logging
from datetime import date, datetime, timedelta, tzinfo
from typing import List, Optional

from date_math import add_months, midnight_of, next_midnight

RefreshPlan = List[datetime]

REDUNDANCY_OFFSETS = (timedelta(hours=1), timedelta(hours=6))
DST_LOOKAHEAD_MONTHS = 3


def next_dst_transition(
    now: datetime,
    tz: Optional[tzinfo] = None,
    lookahead_months: int = DST_LOOKAHEAD_MONTHS
) -> Optional[date]:
    """
    Find the local day on which the UTC offset next changes.

    Compares the offset at consecutive local midnights across the
    lookahead window. Naive times and fixed-offset zones have no
    transitions and return None.

    Args:
        now: Reference moment
        tz: Zone to inspect (defaults to now.tzinfo)
        lookahead_months: Calendar months to scan ahead

    Returns:
        The date during which the transition happens, or None
    """
    tz = tz or now.tzinfo
    if tz is None:
        return None

    today = now.astimezone(tz).date() if now.tzinfo else now.date()
    horizon = add_months(today, lookahead_months)

    day = today
    offset = midnight_of(day, tz).utcoffset()
    if offset is None:
        return None
    while day < horizon:
        following = day + timedelta(days=1)
        next_offset = midnight_of(following, tz).utcoffset()
        if next_offset != offset:
            return day
        day, offset = following, next_offset
    return None


def plan_refreshes(now: datetime, tz: Optional[tzinfo] = None) -> RefreshPlan:
    """
    Compute the future instants at which a snapshot must be regenerated.

    The plan always holds the next local midnight, plus 1h and 6h after
    it, the midnight one week out, the midnight one calendar month out and,
    when the zone has one in the next three months, the midnight right
    after a daylight-saving change.

    Args:
        now: Generation time; aware datetimes are converted to `tz`
        tz: Local zone (defaults to now.tzinfo; naive means wall clock only)

    Returns:
        Ascending, de-duplicated list of instants, all strictly after now
    """
    if tz is not None and now.tzinfo is not None:
        now = now.astimezone(tz)
    elif tz is not None:
        now = now.replace(tzinfo=tz)
    local_tz = now.tzinfo

    midnight = next_midnight(now)
    candidates = [midnight]
    candidates.extend(midnight + offset for offset in REDUNDANCY_OFFSETS)
    candidates.append(midnight_of(now.date() + timedelta(days=7), local_tz))
    candidates.append(midnight_of(add_months(now.date(), 1), local_tz))

    try:
        transition_day = next_dst_transition(now, local_tz)
    except (OverflowError, ValueError) as e:
        logging.debug(f"DST lookup unavailable: {e}")
        transition_day = None
    if transition_day is not None:
        candidates.append(midnight_of(transition_day + timedelta(days=1), local_tz))

    plan: RefreshPlan = []
    for instant in sorted(candidates):
        if instant <= now:
            continue
        if plan and plan[-1] == instant:
            continue
        plan.append(instant)

    logging.debug(f"Refresh plan for {now.isoformat()}: {[p.isoformat() for p in plan]}")
    return plan
