"""
Stock reconciliation.

Sales extracts report the stock on hand next to every sales row, one
reading per warehouse visit. Current stock per SKU is the latest
reading of each warehouse, summed across warehouses.

Two modes:
- Full history (reconcile_stock): the latest date always wins, zero included.
- Incremental (reconcile_incremental): an upload is reconciled against the
  stock already stored for each warehouse. A zero on the upload's latest
  date is treated as a missing reading when the stored value for that exact
  SKU and warehouse is non-zero, and the stored value is kept.
"""

from collections import defaultdict
from datetime import date
from typing import Iterable, Mapping, Optional

import structlog

from exceptions import InvalidFactError
from models.analytics import ReconciledStock
from models.facts import StockSnapshot, Warehouse

logger = structlog.get_logger(__name__)

PreviousStock = Mapping[str, Mapping[Warehouse, int]]


def _latest_readings(
    snapshots: Iterable[StockSnapshot],
) -> dict[str, dict[Warehouse, int]]:
    """Sum of same-day readings on the latest date, per SKU and warehouse."""
    latest_date: dict[tuple[str, Warehouse], date] = {}
    latest_sum: dict[tuple[str, Warehouse], int] = defaultdict(int)

    for snap in snapshots:
        if snap.observed_stock < 0:
            raise InvalidFactError(snap.sku_id, "observed_stock", snap.observed_stock)

        key = (snap.sku_id, snap.warehouse)
        current = latest_date.get(key)

        if current is None or snap.snapshot_date > current:
            latest_date[key] = snap.snapshot_date
            latest_sum[key] = snap.observed_stock
        elif snap.snapshot_date == current:
            latest_sum[key] += snap.observed_stock

    readings: dict[str, dict[Warehouse, int]] = defaultdict(dict)
    for (sku_id, warehouse), stock in latest_sum.items():
        readings[sku_id][warehouse] = stock
    return readings


def reconcile_stock(snapshots: Iterable[StockSnapshot]) -> dict[str, ReconciledStock]:
    """
    Full-history reconciliation.

    Args:
        snapshots: Every stock snapshot on record

    Returns:
        Dict of sku_id -> ReconciledStock (latest date per warehouse wins)
    """
    readings = _latest_readings(snapshots)

    result = {
        sku_id: ReconciledStock(sku_id=sku_id, by_warehouse=by_warehouse)
        for sku_id, by_warehouse in readings.items()
    }

    logger.debug("stock_reconciled", mode="full_history", skus=len(result))
    return result


def reconcile_incremental(
    snapshots: Iterable[StockSnapshot],
    previous: PreviousStock,
) -> dict[str, ReconciledStock]:
    """
    Reconcile an upload batch against previously stored stock.

    Warehouses absent from the batch keep their stored value. A zero
    latest reading is replaced by a stored non-zero value for the same
    SKU and warehouse; a zero with nothing stored stays zero.

    Args:
        snapshots: Snapshots from the new upload
        previous: Stored stock, sku_id -> warehouse -> units

    Returns:
        Dict of sku_id -> ReconciledStock for every SKU in the batch or in `previous`
    """
    readings = _latest_readings(snapshots)
    result: dict[str, ReconciledStock] = {}
    carried = 0

    for sku_id in set(readings) | set(previous):
        stored = previous.get(sku_id, {})
        by_warehouse = dict(stored)
        carried_forward = []

        for warehouse, stock in readings.get(sku_id, {}).items():
            stored_value = stored.get(warehouse, 0)
            if stock == 0 and stored_value > 0:
                carried_forward.append(warehouse)
                continue
            by_warehouse[warehouse] = stock

        carried += len(carried_forward)
        result[sku_id] = ReconciledStock(
            sku_id=sku_id,
            by_warehouse=by_warehouse,
            carried_forward=carried_forward,
        )

    logger.info(
        "stock_reconciled",
        mode="incremental",
        skus=len(result),
        carried_forward=carried,
    )
    return result


def total_stock(stock: Mapping[str, ReconciledStock], sku_id: str) -> int:
    """Stock summed across warehouses; 0 for a SKU never observed."""
    return stock_for(stock, sku_id).total


def stock_for(stock: Mapping[str, ReconciledStock], sku_id: str) -> ReconciledStock:
    """Reconciled stock for a SKU, or an unobserved empty record."""
    found: Optional[ReconciledStock] = stock.get(sku_id)
    if found is None:
        return ReconciledStock(sku_id=sku_id, observed=False)
    return found
