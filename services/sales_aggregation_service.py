"""
Sales aggregation.

Folds the full sales history into per-SKU totals in one linear pass.
Window totals fall out of the same pass, so the cost is one iteration
over the facts regardless of how many windows are reported.
"""

from collections import defaultdict
from dataclasses import dataclass, field
from typing import Iterable

import structlog

from exceptions import InvalidFactError
from models.analytics import SkuSalesAggregate, TimeWindows
from models.facts import SalesFact

logger = structlog.get_logger(__name__)


@dataclass
class _SalesAccumulator:
    total: int = 0
    last_7: int = 0
    last_14: int = 0
    last_30: int = 0
    prev_30: int = 0
    yesterday: int = 0
    daily: dict[str, int] = field(default_factory=lambda: defaultdict(int))

    def add(self, fact: SalesFact, windows: TimeWindows) -> None:
        qty = fact.quantity
        day = fact.sale_date

        self.total += qty
        if windows.last_7.contains(day):
            self.last_7 += qty
        if windows.last_14.contains(day):
            self.last_14 += qty
        if windows.last_30.contains(day):
            self.last_30 += qty
        if windows.prev_30.contains(day):
            self.prev_30 += qty
        if windows.yesterday.contains(day):
            self.yesterday += qty

        self.daily[day.isoformat()] += qty

    def freeze(self, sku_id: str) -> SkuSalesAggregate:
        return SkuSalesAggregate(
            sku_id=sku_id,
            total=self.total,
            last_7=self.last_7,
            last_14=self.last_14,
            last_30=self.last_30,
            prev_30=self.prev_30,
            yesterday=self.yesterday,
            daily=dict(self.daily),
        )


def aggregate_sales(
    facts: Iterable[SalesFact],
    windows: TimeWindows,
) -> dict[str, SkuSalesAggregate]:
    """
    Sum sales per SKU over the full history and each trailing window.

    Facts sharing (date, SKU, warehouse) are added, never overwritten.
    Days without sales are absent from the daily map.

    Args:
        facts: Sales facts in any order
        windows: Windows from compute_windows()

    Returns:
        Dict of sku_id -> SkuSalesAggregate

    Raises:
        InvalidFactError: If a fact carries a negative quantity
    """
    accumulators: dict[str, _SalesAccumulator] = defaultdict(_SalesAccumulator)
    fact_count = 0

    for fact in facts:
        if fact.quantity < 0:
            raise InvalidFactError(fact.sku_id, "quantity", fact.quantity)
        accumulators[fact.sku_id].add(fact, windows)
        fact_count += 1

    logger.debug(
        "sales_aggregated",
        facts=fact_count,
        skus=len(accumulators),
        anchor_date=str(windows.anchor_date),
    )

    return {sku_id: acc.freeze(sku_id) for sku_id, acc in accumulators.items()}
