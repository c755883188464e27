"""
Pydantic models for facts and derived analytics records.
"""

from models.base import BaseSchema, FrozenSchema
from models.facts import (
    UNKNOWN_SEASON,
    UNREGISTERED_PRODUCT_NAME,
    ProductRegistryEntry,
    SalesFact,
    StockSnapshot,
    Warehouse,
)
from models.analytics import (
    DAYS_OF_INVENTORY_SENTINEL,
    AbcGrade,
    AnalyticsReport,
    CalendarPeriods,
    DateRange,
    NoData,
    ProductGroup,
    ReconciledStock,
    SkuMetrics,
    SkuSalesAggregate,
    StockRiskItem,
    StockStatus,
    TimeWindows,
    Trend,
    UnregisteredSales,
)
from models.dashboard import (
    DashboardSummary,
    KeyMetrics,
    RankingEntry,
    Rankings,
    TrendPoint,
)

__all__ = [
    # Base
    "BaseSchema",
    "FrozenSchema",
    # Facts
    "UNKNOWN_SEASON",
    "UNREGISTERED_PRODUCT_NAME",
    "ProductRegistryEntry",
    "SalesFact",
    "StockSnapshot",
    "Warehouse",
    # Analytics
    "DAYS_OF_INVENTORY_SENTINEL",
    "AbcGrade",
    "AnalyticsReport",
    "CalendarPeriods",
    "DateRange",
    "NoData",
    "ProductGroup",
    "ReconciledStock",
    "SkuMetrics",
    "SkuSalesAggregate",
    "StockRiskItem",
    "StockStatus",
    "TimeWindows",
    "Trend",
    "UnregisteredSales",
    # Dashboard
    "DashboardSummary",
    "KeyMetrics",
    "RankingEntry",
    "Rankings",
    "TrendPoint",
]
