"""
Per-SKU metrics — single source of truth for every derived SKU figure.

Combines aggregated sales, reconciled stock and product master data into
SkuMetrics. Velocity is always the last 7 calendar days divided by 7,
whether or not every day had sales.

Ratios are computed with exact fractions so that thresholds and ceilings
never drift on float noise (10/7 * 7 is exactly 10 here).
"""

import math
from fractions import Fraction
from typing import Callable, NamedTuple, Optional

import structlog

from models.analytics import (
    DAYS_OF_INVENTORY_SENTINEL,
    ReconciledStock,
    SkuMetrics,
    SkuSalesAggregate,
    StockStatus,
    Trend,
)
from models.facts import ProductRegistryEntry

logger = structlog.get_logger(__name__)

VELOCITY_WINDOW_DAYS = 7
SHORTAGE_COVER_DAYS = 7

# Trend thresholds
TREND_MIN_VOLUME = 10
TREND_SHARP_CHANGE = Fraction(1, 2)

# Status thresholds (days of inventory)
CRITICAL_DAYS = 7
LOW_DAYS = 14


def round_half_up(value: Fraction) -> int:
    """Round to the nearest integer, halves away from zero for positives."""
    return math.floor(value + Fraction(1, 2))


def daily_velocity(sales_7d: int) -> Fraction:
    """Exact average daily sales over the trailing week."""
    return Fraction(sales_7d, VELOCITY_WINDOW_DAYS)


def calculate_days_of_inventory(stock: int, sales_7d: int) -> int:
    """
    Days until stock runs out at the current pace.

    Returns DAYS_OF_INVENTORY_SENTINEL when nothing sold in the last 7 days.
    """
    velocity = daily_velocity(sales_7d)
    if velocity == 0:
        return DAYS_OF_INVENTORY_SENTINEL
    return round_half_up(stock / velocity)


def calculate_shortage(stock: int, sales_7d: int) -> int:
    """Units missing to cover one more week at the current pace."""
    weekly_need = round_half_up(daily_velocity(sales_7d) * SHORTAGE_COVER_DAYS)
    return max(0, weekly_need - stock)


def calculate_recommendation(
    stock: int,
    incoming_stock: int,
    sales_7d: int,
    cover_days: int,
) -> int:
    """
    Units to order so stock covers the lead time plus safety buffer.

    recommendation = ceil(velocity * cover_days - (stock + incoming)), floored at 0
    """
    required = daily_velocity(sales_7d) * cover_days
    return max(0, math.ceil(required - (stock + incoming_stock)))


# ===================
# CLASSIFICATION RULES
# ===================

class TrendRule(NamedTuple):
    trend: Trend
    applies: Callable[[int, int], bool]


class StatusRule(NamedTuple):
    status: StockStatus
    applies: Callable[[int, int], bool]


def _growth(current: int, previous: int) -> Optional[Fraction]:
    """Relative change vs previous; None when previous is 0."""
    if previous == 0:
        return None
    return Fraction(current - previous, previous)


def _is_hot(current: int, previous: int) -> bool:
    growth = _growth(current, previous)
    return current >= TREND_MIN_VOLUME and growth is not None and growth >= TREND_SHARP_CHANGE


def _is_cold(current: int, previous: int) -> bool:
    growth = _growth(current, previous)
    return previous >= TREND_MIN_VOLUME and growth is not None and growth <= -TREND_SHARP_CHANGE


# Evaluated top to bottom; first match wins
TREND_RULES: tuple[TrendRule, ...] = (
    TrendRule(Trend.HOT, _is_hot),
    TrendRule(Trend.COLD, _is_cold),
    TrendRule(Trend.UP, lambda current, previous: current > previous),
    TrendRule(Trend.DOWN, lambda current, previous: current < previous),
    TrendRule(Trend.FLAT, lambda current, previous: True),
)

# Evaluated top to bottom; out of stock wins over the day thresholds
STATUS_RULES: tuple[StatusRule, ...] = (
    StatusRule(StockStatus.OUT_OF_STOCK, lambda stock, days: stock == 0),
    StatusRule(StockStatus.CRITICAL, lambda stock, days: days < CRITICAL_DAYS),
    StatusRule(StockStatus.LOW, lambda stock, days: days < LOW_DAYS),
    StatusRule(StockStatus.HEALTHY, lambda stock, days: True),
)


def classify_trend(sales_7d: int, prev_sales_7d: int) -> Trend:
    """Week-over-week trend label."""
    for rule in TREND_RULES:
        if rule.applies(sales_7d, prev_sales_7d):
            return rule.trend
    return Trend.FLAT


def classify_status(stock: int, days_of_inventory: int) -> StockStatus:
    """Stock health label."""
    for rule in STATUS_RULES:
        if rule.applies(stock, days_of_inventory):
            return rule.status
    return StockStatus.HEALTHY


# ===================
# METRICS
# ===================

def compute_metrics(
    entry: ProductRegistryEntry,
    sales: Optional[SkuSalesAggregate],
    stock: ReconciledStock,
    lead_time_days: int,
    safety_buffer_days: int,
) -> SkuMetrics:
    """
    Derive all metrics for one SKU.

    The ABC grade is left at D; classify_abc() assigns it across all SKUs.

    Args:
        entry: Product master data
        sales: Aggregated sales (None if the SKU never sold)
        stock: Reconciled current stock
        lead_time_days: Days from order to arrival
        safety_buffer_days: Extra days of cover

    Returns:
        SkuMetrics
    """
    if sales is None:
        sales = SkuSalesAggregate(sku_id=entry.sku_id)

    coupang_stock = stock.total
    sales_7d = sales.last_7
    prev_sales_7d = sales.last_14 - sales.last_7
    days_of_inventory = calculate_days_of_inventory(coupang_stock, sales_7d)

    return SkuMetrics(
        sku_id=entry.sku_id,
        product_name=entry.product_name,
        option=entry.option,
        season=entry.season,
        image_url=entry.image_url,
        hq_stock=entry.hq_stock,
        incoming_stock=entry.incoming_stock,
        safety_stock=entry.safety_stock,
        coupang_stock=coupang_stock,
        stock_by_warehouse=dict(stock.by_warehouse),
        total_sales=sales.total,
        sales_7d=sales_7d,
        sales_14d=sales.last_14,
        sales_30d=sales.last_30,
        prev_sales_7d=prev_sales_7d,
        prev_sales_30d=sales.prev_30,
        sales_yesterday=sales.yesterday,
        daily_sales=dict(sales.daily),
        avg_daily_sales=sales_7d / VELOCITY_WINDOW_DAYS,
        days_of_inventory=days_of_inventory,
        shortage=calculate_shortage(coupang_stock, sales_7d),
        recommendation=calculate_recommendation(
            coupang_stock,
            entry.incoming_stock,
            sales_7d,
            lead_time_days + safety_buffer_days,
        ),
        trend=classify_trend(sales_7d, prev_sales_7d),
        status=classify_status(coupang_stock, days_of_inventory),
    )
