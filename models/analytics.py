"""
Analytics models: windows, aggregates and derived per-SKU / per-product records.

Derived records are rebuilt from facts on every analytics run and are
frozen so presentation code cannot alter them.
"""

from datetime import date, timedelta
from enum import Enum
from typing import Literal, Optional

from pydantic import Field

from models.base import FrozenSchema
from models.facts import Warehouse

# Days of inventory reported when there is no sales velocity to burn stock down
DAYS_OF_INVENTORY_SENTINEL = 999


class AbcGrade(str, Enum):
    """Pareto grade by share of trailing 7-day unit sales."""

    A = "A"  # Top 20% cumulative share
    B = "B"  # Up to 50% cumulative share
    C = "C"  # Remaining selling SKUs
    D = "D"  # No sales in the last 7 days


class Trend(str, Enum):
    """Week-over-week sales trend."""

    HOT = "hot"    # Sharp rise on meaningful volume
    COLD = "cold"  # Sharp drop from meaningful volume
    UP = "up"
    DOWN = "down"
    FLAT = "flat"


class StockStatus(str, Enum):
    """Stock health label shown next to each SKU."""

    OUT_OF_STOCK = "품절"
    CRITICAL = "위험"
    LOW = "부족"
    HEALTHY = "양호"


# ===================
# TIME WINDOWS
# ===================

class DateRange(FrozenSchema):
    """Inclusive range of calendar days."""

    start: date
    end: date

    def contains(self, day: date) -> bool:
        return self.start <= day <= self.end

    @property
    def days(self) -> int:
        return (self.end - self.start).days + 1

    @classmethod
    def trailing(cls, anchor: date, days: int, offset: int = 0) -> "DateRange":
        """N days ending `offset` days before the anchor."""
        end = anchor - timedelta(days=offset)
        return cls(start=end - timedelta(days=days - 1), end=end)


class TimeWindows(FrozenSchema):
    """Trailing windows relative to the anchor date."""

    anchor_date: date
    yesterday: DateRange
    last_7: DateRange
    last_14: DateRange
    last_30: DateRange
    prev_30: DateRange
    custom_days: int = Field(..., ge=0, description="Lead time + safety buffer, in days of demand")


class CalendarPeriods(FrozenSchema):
    """Period-to-date starts used by the dashboard summary."""

    anchor_date: date
    week_start: date   # Most recent Friday on or before the anchor
    month_start: date
    year_start: date


class NoData(FrozenSchema):
    """Returned instead of analytics when no sales facts exist yet."""

    status: Literal["no_data"] = "no_data"
    reason: str = "NO_ANCHOR_DATE"


# ===================
# AGGREGATES
# ===================

class SkuSalesAggregate(FrozenSchema):
    """Sales totals for one SKU over the full history and each window."""

    sku_id: str
    total: int = 0
    last_7: int = 0
    last_14: int = 0
    last_30: int = 0
    prev_30: int = 0
    yesterday: int = 0
    daily: dict[str, int] = Field(default_factory=dict, description="ISO date -> units, sparse")


class ReconciledStock(FrozenSchema):
    """Current stock of one SKU per warehouse."""

    sku_id: str
    by_warehouse: dict[Warehouse, int] = Field(default_factory=dict)
    observed: bool = Field(default=True, description="False when no snapshot was ever seen")
    carried_forward: list[Warehouse] = Field(
        default_factory=list,
        description="Warehouses whose latest zero reading was replaced by the stored value"
    )

    @property
    def total(self) -> int:
        return sum(self.by_warehouse.values())


# ===================
# DERIVED RECORDS
# ===================

class SkuMetrics(FrozenSchema):
    """Everything the dashboard knows about one SKU."""

    sku_id: str
    product_name: str
    option: Optional[str] = None
    season: str
    image_url: Optional[str] = None

    # Stock
    hq_stock: int = 0
    incoming_stock: int = 0
    safety_stock: int = 0
    coupang_stock: int = 0
    stock_by_warehouse: dict[Warehouse, int] = Field(default_factory=dict)

    # Sales
    total_sales: int = 0
    sales_7d: int = 0
    sales_14d: int = 0
    sales_30d: int = 0
    prev_sales_7d: int = 0
    prev_sales_30d: int = 0
    sales_yesterday: int = 0
    daily_sales: dict[str, int] = Field(default_factory=dict)

    # Derived
    avg_daily_sales: float = 0.0
    days_of_inventory: int = DAYS_OF_INVENTORY_SENTINEL
    shortage: int = 0
    recommendation: int = 0
    trend: Trend = Trend.FLAT
    status: StockStatus = StockStatus.HEALTHY
    abc_grade: AbcGrade = AbcGrade.D


class ProductGroup(FrozenSchema):
    """Variants sharing one product name, rolled up."""

    product_name: str
    image_url: Optional[str] = None
    season: str
    children: list[SkuMetrics]

    coupang_stock: int = 0
    hq_stock: int = 0
    incoming_stock: int = 0
    total_stock: int = Field(default=0, description="hq_stock + coupang_stock")

    total_sales: int = 0
    sales_7d: int = 0
    sales_14d: int = 0
    sales_30d: int = 0
    prev_sales_7d: int = 0
    sales_yesterday: int = 0
    daily_sales: dict[str, int] = Field(default_factory=dict)

    avg_daily_sales: float = 0.0
    shortage: int = 0
    recommendation: int = 0
    days_of_inventory: int = Field(..., description="Worst case across children")
    abc_grade: AbcGrade
    trend: Trend = Trend.FLAT
    is_urgent: bool = False


class StockRiskItem(FrozenSchema):
    """Product expected to sell out within a few days."""

    product_name: str
    image_url: Optional[str] = None
    current_stock: int
    avg_daily_sales: float
    days_left: float


class UnregisteredSales(FrozenSchema):
    """Raw totals for SKUs that sell but have no registry entry."""

    sku_id: str
    total_sales: int
    sales_7d: int


class AnalyticsReport(FrozenSchema):
    """Full output of one analytics run."""

    status: Literal["ok"] = "ok"
    anchor_date: date
    windows: TimeWindows
    lead_time_days: int
    safety_buffer_days: int
    skus: list[SkuMetrics]
    groups: list[ProductGroup]
    stockout_risk: list[StockRiskItem]
    dead_stock: list[ProductGroup]
    unregistered_sales: list[UnregisteredSales] = Field(default_factory=list)
