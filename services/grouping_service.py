"""
Product-level roll-up.

SKUs sharing a product name are variants (options) of one product.
Groups sum stock and sales, but report the worst days of inventory
among their children so one badly stocked variant is never hidden by
healthy siblings.

Product names are matched exactly. "Shirt" and "Shirt " are two groups.
"""

from collections import defaultdict
from typing import Iterable, Sequence

import structlog

from models.analytics import (
    DAYS_OF_INVENTORY_SENTINEL,
    AbcGrade,
    ProductGroup,
    SkuMetrics,
    Trend,
)

logger = structlog.get_logger(__name__)


def best_grade(grades: Iterable[AbcGrade]) -> AbcGrade:
    """Best grade in A < B < C < D order."""
    return min(grades, key=lambda grade: grade.value, default=AbcGrade.D)


def group_trend(sales_7d: int, prev_sales_7d: int) -> Trend:
    """Plain up/down/flat on summed weekly sales."""
    if sales_7d > prev_sales_7d:
        return Trend.UP
    if sales_7d < prev_sales_7d:
        return Trend.DOWN
    return Trend.FLAT


def is_within_lead_time(metrics: SkuMetrics, lead_time_days: int) -> bool:
    """Runs out before a new order could arrive. SKUs with no recent sales never do."""
    if metrics.days_of_inventory >= DAYS_OF_INVENTORY_SENTINEL:
        return False
    return metrics.days_of_inventory <= lead_time_days


def build_group(
    product_name: str,
    children: Sequence[SkuMetrics],
    lead_time_days: int,
) -> ProductGroup:
    """Roll a non-empty list of variants into one ProductGroup."""
    ordered = sorted(children, key=lambda child: child.sku_id)
    first = children[0]

    daily_sales: dict[str, int] = defaultdict(int)
    for child in ordered:
        for day, qty in child.daily_sales.items():
            daily_sales[day] += qty

    coupang_stock = sum(c.coupang_stock for c in ordered)
    hq_stock = sum(c.hq_stock for c in ordered)
    sales_7d = sum(c.sales_7d for c in ordered)
    prev_sales_7d = sum(c.prev_sales_7d for c in ordered)

    return ProductGroup(
        product_name=product_name,
        image_url=first.image_url,
        season=first.season,
        children=ordered,
        coupang_stock=coupang_stock,
        hq_stock=hq_stock,
        incoming_stock=sum(c.incoming_stock for c in ordered),
        total_stock=hq_stock + coupang_stock,
        total_sales=sum(c.total_sales for c in ordered),
        sales_7d=sales_7d,
        sales_14d=sum(c.sales_14d for c in ordered),
        sales_30d=sum(c.sales_30d for c in ordered),
        prev_sales_7d=prev_sales_7d,
        sales_yesterday=sum(c.sales_yesterday for c in ordered),
        daily_sales=dict(daily_sales),
        avg_daily_sales=sum(c.avg_daily_sales for c in ordered),
        shortage=sum(c.shortage for c in ordered),
        recommendation=sum(c.recommendation for c in ordered),
        days_of_inventory=min(c.days_of_inventory for c in ordered),
        abc_grade=best_grade(c.abc_grade for c in ordered),
        trend=group_trend(sales_7d, prev_sales_7d),
        is_urgent=any(is_within_lead_time(c, lead_time_days) for c in ordered),
    )


def group_by_product_name(
    metrics: Iterable[SkuMetrics],
    lead_time_days: int,
) -> list[ProductGroup]:
    """
    Group SKUs by exact product name.

    Args:
        metrics: Per-SKU metrics
        lead_time_days: Children with days_of_inventory at or below this make the group urgent

    Returns:
        Groups in first-seen order of product name
    """
    buckets: dict[str, list[SkuMetrics]] = {}
    for m in metrics:
        buckets.setdefault(m.product_name, []).append(m)

    groups = [
        build_group(name, children, lead_time_days)
        for name, children in buckets.items()
    ]

    logger.debug("skus_grouped", groups=len(groups))
    return groups


def sort_groups_for_display(groups: Sequence[ProductGroup]) -> list[ProductGroup]:
    """Urgent groups first, then by recommendation descending; ties keep input order."""
    return sorted(groups, key=lambda g: (not g.is_urgent, -g.recommendation))


def flatten_groups(groups: Iterable[ProductGroup]) -> list[SkuMetrics]:
    """Children of every group, in group order."""
    return [child for group in groups for child in group.children]
