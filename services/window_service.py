"""
Time window calculation.

All windows are anchored to the latest date present in the sales facts,
never to the wall clock, so back-filled history computes the same way
as live data. Dates are plain calendar days (datetime.date); there is
no timezone conversion anywhere in the engine.
"""

from datetime import date, timedelta
from typing import Iterable, Optional, Union

import structlog

from models.analytics import CalendarPeriods, DateRange, NoData, TimeWindows
from models.facts import SalesFact

logger = structlog.get_logger(__name__)

# Trading weeks run Friday -> Thursday
WEEK_START_WEEKDAY = 4  # date.weekday(): Monday=0 ... Friday=4


def find_anchor_date(facts: Iterable[SalesFact]) -> Optional[date]:
    """Latest sale date across all facts, or None when there are none."""
    return max((fact.sale_date for fact in facts), default=None)


def compute_windows(
    anchor_date: date,
    lead_time_days: int = 0,
    safety_buffer_days: int = 0,
) -> TimeWindows:
    """
    Build the trailing windows for an anchor date.

    Args:
        anchor_date: Latest observed sales date
        lead_time_days: Days from order to arrival
        safety_buffer_days: Extra days of cover

    Returns:
        TimeWindows with inclusive ranges ending at (or before) the anchor
    """
    return TimeWindows(
        anchor_date=anchor_date,
        yesterday=DateRange.trailing(anchor_date, 1),
        last_7=DateRange.trailing(anchor_date, 7),
        last_14=DateRange.trailing(anchor_date, 14),
        last_30=DateRange.trailing(anchor_date, 30),
        prev_30=DateRange.trailing(anchor_date, 30, offset=30),
        custom_days=lead_time_days + safety_buffer_days,
    )


def resolve_windows(
    facts: Iterable[SalesFact],
    lead_time_days: int = 0,
    safety_buffer_days: int = 0,
) -> Union[TimeWindows, NoData]:
    """Windows anchored to the facts' latest date, or NoData if there are no facts."""
    anchor = find_anchor_date(facts)
    if anchor is None:
        logger.info("no_anchor_date")
        return NoData()
    return compute_windows(anchor, lead_time_days, safety_buffer_days)


def week_start_for(day: date) -> date:
    """Friday on or before the given day."""
    return day - timedelta(days=(day.weekday() - WEEK_START_WEEKDAY) % 7)


def compute_calendar_periods(anchor_date: date) -> CalendarPeriods:
    """Week/month/year-to-date starts relative to the anchor."""
    return CalendarPeriods(
        anchor_date=anchor_date,
        week_start=week_start_for(anchor_date),
        month_start=anchor_date.replace(day=1),
        year_start=anchor_date.replace(month=1, day=1),
    )
