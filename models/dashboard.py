"""
Dashboard summary models.

Headline unit sales, trend series and top-10 rankings, all anchored
to the latest sales date.
"""

from datetime import date
from typing import Literal, Optional

from pydantic import Field

from models.base import FrozenSchema


class KeyMetrics(FrozenSchema):
    """Unit sales for the anchor day and each period-to-date."""

    yesterday: int = Field(0, description="Units sold on the anchor date")
    weekly: int = Field(0, description="Units sold since the week started (Friday)")
    monthly: int = Field(0, description="Units sold since the first of the month")
    yearly: int = Field(0, description="Units sold since January 1st")


class TrendPoint(FrozenSchema):
    """One bucket of a trend series."""

    period_start: date
    quantity: int
    is_red_day: bool = False


class RankingEntry(FrozenSchema):
    """One row of a top-10 ranking, keyed by product name."""

    rank: int
    product_name: str
    image_url: Optional[str] = None
    quantity: int


class Rankings(FrozenSchema):
    yesterday: list[RankingEntry] = Field(default_factory=list)
    weekly: list[RankingEntry] = Field(default_factory=list)
    monthly: list[RankingEntry] = Field(default_factory=list)
    yearly: list[RankingEntry] = Field(default_factory=list)
    inventory: list[RankingEntry] = Field(default_factory=list)


class DashboardSummary(FrozenSchema):
    """Landing page summary."""

    status: Literal["ok"] = "ok"
    anchor_date: date
    metrics: KeyMetrics
    daily_trend: list[TrendPoint]
    weekly_trend: list[TrendPoint]
    rankings: Rankings
