"""
Analytics orchestration.

run_analytics() is the pure pipeline:

    facts ─► windows ─► aggregate_sales ─┐
    snapshots ─► reconcile_stock ────────┼─► compute_metrics ─► classify_abc
    registry ────────────────────────────┘          │
                                                    ▼
                      group_by_product_name ─► screen_stockout_risk
                                            └► screen_dead_stock

AnalyticsService wraps it with data fetching and an AnalyticsCache so a
full recomputation happens at most once per data refresh.
"""

from dataclasses import dataclass
from typing import Iterable, Mapping, Optional, Union

import structlog

from config import settings
from models.analytics import (
    AnalyticsReport,
    NoData,
    TimeWindows,
    UnregisteredSales,
)
from models.dashboard import DashboardSummary
from models.facts import ProductRegistryEntry, SalesFact, StockSnapshot
from services.abc_service import classify_abc
from services.analytics_cache import AnalyticsCache
from services.dashboard_service import build_dashboard_summary
from services.data_source_service import DataSourceService
from services.grouping_service import group_by_product_name, sort_groups_for_display
from services.metrics_service import compute_metrics
from services.sales_aggregation_service import aggregate_sales
from services.screener_service import (
    DEFAULT_DEAD_STOCK_MAX_SALES_30D,
    DEFAULT_RISK_MAX_DAYS,
    screen_dead_stock,
    screen_stockout_risk,
)
from services.stock_reconciliation_service import (
    PreviousStock,
    reconcile_incremental,
    reconcile_stock,
    stock_for,
)
from services.window_service import resolve_windows

logger = structlog.get_logger(__name__)

FACTS_CACHE_KEY = "facts"
DASHBOARD_CACHE_KEY = "dashboard"


@dataclass(frozen=True)
class FactBatch:
    """Everything one analytics run reads from storage."""

    facts: list[SalesFact]
    snapshots: list[StockSnapshot]
    registry: dict[str, ProductRegistryEntry]


def run_analytics(
    facts: Iterable[SalesFact],
    snapshots: Iterable[StockSnapshot],
    registry: Mapping[str, ProductRegistryEntry],
    lead_time_days: int,
    safety_buffer_days: int,
    previous_stock: Optional[PreviousStock] = None,
    stockout_risk_days: int = DEFAULT_RISK_MAX_DAYS,
    dead_stock_max_sales_30d: int = DEFAULT_DEAD_STOCK_MAX_SALES_30D,
) -> Union[AnalyticsReport, NoData]:
    """
    Compute every derived record from raw facts.

    Registered SKUs get SkuMetrics. SKUs that sell without a registry
    entry (or only with a placeholder entry) are reported in
    unregistered_sales with their raw totals.

    Args:
        facts: Full sales history
        snapshots: Stock snapshots
        registry: sku_id -> product master entry
        lead_time_days: Days from order to arrival
        safety_buffer_days: Extra days of cover
        previous_stock: Stored per-warehouse stock; when given, stock is
            reconciled incrementally (zero readings carry stored values forward)
        stockout_risk_days: Days-left threshold for the risk screener
        dead_stock_max_sales_30d: 30-day sales threshold for dead stock

    Returns:
        AnalyticsReport, or NoData when there are no sales facts
    """
    facts = list(facts)
    windows = resolve_windows(facts, lead_time_days, safety_buffer_days)
    if isinstance(windows, NoData):
        return windows

    sales = aggregate_sales(facts, windows)
    if previous_stock is None:
        stock = reconcile_stock(snapshots)
    else:
        stock = reconcile_incremental(snapshots, previous_stock)

    registered = [entry for entry in registry.values() if not entry.is_placeholder]
    metrics = [
        compute_metrics(
            entry,
            sales.get(entry.sku_id),
            stock_for(stock, entry.sku_id),
            lead_time_days,
            safety_buffer_days,
        )
        for entry in registered
    ]
    metrics = classify_abc(metrics)

    groups = sort_groups_for_display(group_by_product_name(metrics, lead_time_days))

    registered_ids = {entry.sku_id for entry in registered}
    unregistered = [
        UnregisteredSales(sku_id=sku_id, total_sales=agg.total, sales_7d=agg.last_7)
        for sku_id, agg in sorted(sales.items())
        if sku_id not in registered_ids
    ]

    report = AnalyticsReport(
        anchor_date=windows.anchor_date,
        windows=windows,
        lead_time_days=lead_time_days,
        safety_buffer_days=safety_buffer_days,
        skus=metrics,
        groups=groups,
        stockout_risk=screen_stockout_risk(groups, stockout_risk_days),
        dead_stock=screen_dead_stock(metrics, lead_time_days, dead_stock_max_sales_30d),
        unregistered_sales=unregistered,
    )

    logger.info(
        "analytics_run_complete",
        anchor_date=str(windows.anchor_date),
        facts=len(facts),
        skus=len(metrics),
        groups=len(groups),
        stockout_risk=len(report.stockout_risk),
        dead_stock=len(report.dead_stock),
        unregistered=len(unregistered),
    )
    return report


class AnalyticsService:
    """
    Cached analytics for the API.

    The cache is owned by the caller and shared with the DataSourceService,
    whose write paths invalidate it.
    """

    def __init__(self, cache: AnalyticsCache, data_source: DataSourceService):
        self.cache = cache
        self.data_source = data_source

    def load_facts(self) -> FactBatch:
        """Fetch facts once per refresh; sales rows carry both facts and stock readings."""
        cached = self.cache.get(FACTS_CACHE_KEY)
        if cached is not None:
            return cached

        rows = self.data_source.fetch_sales_rows()
        batch = FactBatch(
            facts=self.data_source.fetch_sales_facts(rows),
            snapshots=self.data_source.fetch_stock_snapshots(rows),
            registry=self.data_source.fetch_registry(),
        )
        self.cache.set(FACTS_CACHE_KEY, batch)

        logger.info(
            "facts_loaded",
            facts=len(batch.facts),
            products=len(batch.registry),
        )
        return batch

    def get_report(
        self,
        lead_time_days: Optional[int] = None,
        safety_buffer_days: Optional[int] = None,
    ) -> Union[AnalyticsReport, NoData]:
        """Analytics for the given reorder settings (defaults from settings)."""
        lead = settings.lead_time_days if lead_time_days is None else lead_time_days
        buffer = settings.safety_buffer_days if safety_buffer_days is None else safety_buffer_days
        key = f"report:{lead}:{buffer}"

        cached = self.cache.get(key)
        if cached is not None:
            return cached

        batch = self.load_facts()
        report = run_analytics(
            batch.facts,
            batch.snapshots,
            batch.registry,
            lead_time_days=lead,
            safety_buffer_days=buffer,
            stockout_risk_days=settings.stockout_risk_days,
            dead_stock_max_sales_30d=settings.dead_stock_max_sales_30d,
        )
        self.cache.set(key, report)
        return report

    def get_dashboard(self) -> Union[DashboardSummary, NoData]:
        cached = self.cache.get(DASHBOARD_CACHE_KEY)
        if cached is not None:
            return cached

        batch = self.load_facts()
        summary = build_dashboard_summary(
            batch.facts,
            batch.registry,
            reconcile_stock(batch.snapshots),
        )
        self.cache.set(DASHBOARD_CACHE_KEY, summary)
        return summary

    def get_windows(self) -> Union[TimeWindows, NoData]:
        report = self.get_report()
        if isinstance(report, NoData):
            return report
        return report.windows

    def refresh(self) -> None:
        """Drop cached results so the next request recomputes from storage."""
        self.cache.invalidate()

