"""
Dashboard summary.

Headline unit sales (anchor day, week/month/year to date), daily and
weekly trend series and top-10 rankings by product name. Only SKUs with
a real registry entry count; placeholders for unregistered SKUs are left
out so every number matches the product views.
"""

from collections import defaultdict
from typing import Iterable, Mapping, Optional, Union

import structlog

from models.analytics import NoData, ReconciledStock
from models.dashboard import (
    DashboardSummary,
    KeyMetrics,
    RankingEntry,
    Rankings,
    TrendPoint,
)
from models.facts import ProductRegistryEntry, SalesFact
from services.stock_reconciliation_service import total_stock
from services.window_service import compute_calendar_periods, find_anchor_date, week_start_for
from utils.calendar_utils import is_red_day

logger = structlog.get_logger(__name__)

DAILY_TREND_POINTS = 30
WEEKLY_TREND_POINTS = 12
RANKING_SIZE = 10


def top_ranking(
    totals: Mapping[str, int],
    images: Mapping[str, Optional[str]],
    size: int = RANKING_SIZE,
) -> list[RankingEntry]:
    """Highest totals first; ties keep first-seen order."""
    ordered = sorted(totals.items(), key=lambda item: item[1], reverse=True)[:size]
    return [
        RankingEntry(rank=index, product_name=name, image_url=images.get(name), quantity=qty)
        for index, (name, qty) in enumerate(ordered, start=1)
    ]


def build_dashboard_summary(
    facts: Iterable[SalesFact],
    registry: Mapping[str, ProductRegistryEntry],
    stock: Mapping[str, ReconciledStock],
) -> Union[DashboardSummary, NoData]:
    """
    Summarize sales for the landing page.

    Args:
        facts: Full sales history
        registry: sku_id -> product master entry
        stock: Reconciled current stock per SKU

    Returns:
        DashboardSummary, or NoData when there are no sales facts
    """
    facts = list(facts)
    anchor = find_anchor_date(facts)
    if anchor is None:
        return NoData()

    periods = compute_calendar_periods(anchor)
    registered = {
        sku_id: entry for sku_id, entry in registry.items() if not entry.is_placeholder
    }

    images: dict[str, Optional[str]] = {}
    for entry in registered.values():
        images.setdefault(entry.product_name, entry.image_url)

    metrics = defaultdict(int)
    rank_yesterday: dict[str, int] = defaultdict(int)
    rank_weekly: dict[str, int] = defaultdict(int)
    rank_monthly: dict[str, int] = defaultdict(int)
    rank_yearly: dict[str, int] = defaultdict(int)
    daily: dict = defaultdict(int)
    weekly: dict = defaultdict(int)

    for fact in facts:
        entry = registered.get(fact.sku_id)
        if entry is None:
            continue

        name = entry.product_name
        qty = fact.quantity
        day = fact.sale_date

        if day == anchor:
            metrics["yesterday"] += qty
            rank_yesterday[name] += qty
        if day >= periods.week_start:
            metrics["weekly"] += qty
            rank_weekly[name] += qty
        if day >= periods.month_start:
            metrics["monthly"] += qty
            rank_monthly[name] += qty
        if day >= periods.year_start:
            metrics["yearly"] += qty
            rank_yearly[name] += qty

        daily[day] += qty
        weekly[week_start_for(day)] += qty

    inventory: dict[str, int] = defaultdict(int)
    for sku_id, entry in registered.items():
        inventory[entry.product_name] += total_stock(stock, sku_id)

    daily_trend = [
        TrendPoint(period_start=day, quantity=daily[day], is_red_day=is_red_day(day))
        for day in sorted(daily)[-DAILY_TREND_POINTS:]
    ]
    weekly_trend = [
        TrendPoint(period_start=week, quantity=weekly[week])
        for week in sorted(weekly)[-WEEKLY_TREND_POINTS:]
    ]

    summary = DashboardSummary(
        anchor_date=anchor,
        metrics=KeyMetrics(**metrics),
        daily_trend=daily_trend,
        weekly_trend=weekly_trend,
        rankings=Rankings(
            yesterday=top_ranking(rank_yesterday, images),
            weekly=top_ranking(rank_weekly, images),
            monthly=top_ranking(rank_monthly, images),
            yearly=top_ranking(rank_yearly, images),
            inventory=top_ranking(inventory, images),
        ),
    )

    logger.info(
        "dashboard_summary_built",
        anchor_date=str(anchor),
        yesterday=summary.metrics.yesterday,
        weekly=summary.metrics.weekly,
    )
    return summary
