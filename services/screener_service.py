"""
Risk and dead-stock screeners.

Two independent passes over the analytics output:
- Stock-out risk: products that still have stock but will sell out
  within a few days at the current pace. Highest velocity first, since
  those lose the most sales.
- Dead stock: stocked SKUs that barely sell, grouped by product.
  Biggest stock first, since that is the most frozen capital.
"""

from fractions import Fraction
from typing import Iterable, Sequence

import structlog

from models.analytics import AbcGrade, ProductGroup, SkuMetrics, StockRiskItem
from services.grouping_service import group_by_product_name
from services.metrics_service import daily_velocity

logger = structlog.get_logger(__name__)

DEFAULT_RISK_MAX_DAYS = 3
DEFAULT_DEAD_STOCK_MAX_SALES_30D = 3
DEAD_STOCK_GRADES = frozenset({AbcGrade.C, AbcGrade.D})


def _round_one_decimal(value: Fraction) -> float:
    return round(float(value), 1)


def screen_stockout_risk(
    groups: Iterable[ProductGroup],
    max_days_left: int = DEFAULT_RISK_MAX_DAYS,
) -> list[StockRiskItem]:
    """
    Products about to sell out.

    A group qualifies when it has stock, sold in the last 7 days, and
    stock / (sales_7d / 7) <= max_days_left.

    Args:
        groups: Product groups
        max_days_left: Inclusive days-left threshold

    Returns:
        StockRiskItem list, highest average daily sales first
    """
    candidates: list[tuple[Fraction, StockRiskItem]] = []

    for group in groups:
        if group.coupang_stock <= 0 or group.sales_7d <= 0:
            continue

        velocity = daily_velocity(group.sales_7d)
        days_left = group.coupang_stock / velocity
        if days_left > max_days_left:
            continue

        candidates.append((
            velocity,
            StockRiskItem(
                product_name=group.product_name,
                image_url=group.image_url,
                current_stock=group.coupang_stock,
                avg_daily_sales=_round_one_decimal(velocity),
                days_left=_round_one_decimal(days_left),
            ),
        ))

    candidates.sort(key=lambda pair: pair[0], reverse=True)
    items = [item for _, item in candidates]

    logger.info("stockout_risk_screened", items=len(items), max_days_left=max_days_left)
    return items


def is_dead_stock(metrics: SkuMetrics, max_sales_30d: int = DEFAULT_DEAD_STOCK_MAX_SALES_30D) -> bool:
    """Stocked SKU with a low grade or almost no sales in 30 days."""
    if metrics.hq_stock + metrics.coupang_stock <= 0:
        return False
    return metrics.abc_grade in DEAD_STOCK_GRADES or metrics.sales_30d <= max_sales_30d


def screen_dead_stock(
    metrics: Sequence[SkuMetrics],
    lead_time_days: int,
    max_sales_30d: int = DEFAULT_DEAD_STOCK_MAX_SALES_30D,
) -> list[ProductGroup]:
    """
    Dead-stock products.

    Args:
        metrics: Graded per-SKU metrics
        lead_time_days: Passed through to grouping
        max_sales_30d: Inclusive 30-day sales threshold

    Returns:
        Groups of qualifying SKUs, largest total stock (HQ + marketplace) first
    """
    dead = [m for m in metrics if is_dead_stock(m, max_sales_30d)]
    groups = group_by_product_name(dead, lead_time_days)
    groups.sort(key=lambda g: g.total_stock, reverse=True)

    logger.info(
        "dead_stock_screened",
        skus=len(dead),
        groups=len(groups),
        total_stock=sum(g.total_stock for g in groups),
    )
    return groups
