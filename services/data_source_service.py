"""
Data source: reads and writes facts and product master data in Supabase.

Tables:
    products:    barcode (pk), name, option_code, season, image_url,
                 hq_stock, incoming_stock, safety_stock,
                 fc_stock, vf_stock, current_stock, updated_at
    daily_sales: date, barcode, warehouse,
                 quantity (default 0), current_stock (null = not reported)
                 unique (date, barcode, warehouse)

Reads are paginated: Supabase caps a response at 1000 rows, so every
table is read as 1000-row ranges fetched a few at a time in parallel.
Every write invalidates the analytics cache.
"""

from collections import defaultdict
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timezone
from typing import Any, Iterable, Optional

import structlog

from config import get_admin_client, get_supabase_client
from exceptions import DatabaseError
from models.facts import (
    ProductRegistryEntry,
    SalesFact,
    StockSnapshot,
    UNKNOWN_SEASON,
    UNREGISTERED_PRODUCT_NAME,
    Warehouse,
)
from services.analytics_cache import AnalyticsCache
from services.stock_reconciliation_service import reconcile_incremental

logger = structlog.get_logger(__name__)

PAGE_SIZE = 1000
CONCURRENT_PAGES = 5
PRODUCT_CHUNK_SIZE = 500
SALES_CHUNK_SIZE = 1000

PRODUCT_COLUMNS = (
    "barcode, name, option_code, season, image_url, "
    "hq_stock, incoming_stock, safety_stock, fc_stock, vf_stock"
)
SALES_COLUMNS = "date, barcode, warehouse, quantity, current_stock"


# ===================
# ROW MAPPING
# ===================

def row_to_sales_fact(row: dict) -> SalesFact:
    return SalesFact(
        sale_date=row["date"][:10],
        sku_id=row["barcode"],
        warehouse=row.get("warehouse") or Warehouse.PRIMARY,
        quantity=row.get("quantity") or 0,
    )


def row_to_stock_snapshot(row: dict) -> StockSnapshot:
    return StockSnapshot(
        snapshot_date=row["date"][:10],
        sku_id=row["barcode"],
        warehouse=row.get("warehouse") or Warehouse.PRIMARY,
        observed_stock=row["current_stock"],
    )


def row_to_registry_entry(row: dict) -> ProductRegistryEntry:
    return ProductRegistryEntry(
        sku_id=row["barcode"],
        product_name=row["name"],
        option=row.get("option_code"),
        season=row.get("season") or UNKNOWN_SEASON,
        image_url=row.get("image_url"),
        hq_stock=row.get("hq_stock") or 0,
        incoming_stock=row.get("incoming_stock") or 0,
        safety_stock=row.get("safety_stock") or 0,
    )


def row_to_warehouse_stock(row: dict) -> dict[Warehouse, int]:
    return {w: row.get(w.stock_column) or 0 for w in Warehouse}


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


class DataSourceService:
    """
    Persistence boundary for the analytics engine.

    Owns no analytics state itself; it only invalidates the cache it was
    given whenever stored data changes.
    """

    def __init__(self, cache: AnalyticsCache, db=None):
        self.cache = cache
        self.db = db if db is not None else get_supabase_client()

    # ===================
    # READ OPERATIONS
    # ===================

    def fetch_all_rows(self, table: str, columns: str, order: str) -> list[dict]:
        """
        Read every row of a table.

        Counts the rows first, then fetches PAGE_SIZE ranges in parallel
        batches of CONCURRENT_PAGES. Row order across pages does not matter
        to the engine.
        """
        try:
            count_result = (
                self.db.table(table)
                .select(order, count="exact")
                .limit(1)
                .execute()
            )
            total = count_result.count or 0
            if total == 0:
                return []

            ranges = [
                (start, min(start + PAGE_SIZE, total) - 1)
                for start in range(0, total, PAGE_SIZE)
            ]

            def fetch_page(bounds: tuple[int, int]) -> list[dict]:
                start, end = bounds
                result = (
                    self.db.table(table)
                    .select(columns)
                    .order(order)
                    .range(start, end)
                    .execute()
                )
                return result.data or []

            rows: list[dict] = []
            with ThreadPoolExecutor(max_workers=CONCURRENT_PAGES) as executor:
                for page in executor.map(fetch_page, ranges):
                    rows.extend(page)

            logger.info("rows_fetched", table=table, total=total, pages=len(ranges), rows=len(rows))
            return rows

        except Exception as e:
            logger.error("fetch_all_rows_failed", table=table, error=str(e))
            raise DatabaseError("select", str(e), details={"table": table})

    def fetch_sales_rows(self) -> list[dict]:
        return self.fetch_all_rows("daily_sales", SALES_COLUMNS, "date")

    def fetch_sales_facts(self, rows: Optional[list[dict]] = None) -> list[SalesFact]:
        """All sales facts on record."""
        rows = self.fetch_sales_rows() if rows is None else rows
        return [row_to_sales_fact(row) for row in rows]

    def fetch_stock_snapshots(self, rows: Optional[list[dict]] = None) -> list[StockSnapshot]:
        """Stock readings co-reported on the sales rows; rows without one are skipped."""
        rows = self.fetch_sales_rows() if rows is None else rows
        return [row_to_stock_snapshot(row) for row in rows if row.get("current_stock") is not None]

    def fetch_registry(self) -> dict[str, ProductRegistryEntry]:
        """Product master, keyed by SKU."""
        rows = self.fetch_all_rows("products", PRODUCT_COLUMNS, "barcode")
        return {row["barcode"]: row_to_registry_entry(row) for row in rows}

    def fetch_stored_stock(self, sku_ids: Iterable[str]) -> dict[str, dict[Warehouse, int]]:
        """Per-warehouse stock last written by an upload, for the given SKUs."""
        wanted = list(sku_ids)
        stored: dict[str, dict[Warehouse, int]] = {}

        try:
            for i in range(0, len(wanted), PRODUCT_CHUNK_SIZE):
                chunk = wanted[i:i + PRODUCT_CHUNK_SIZE]
                result = (
                    self.db.table("products")
                    .select("barcode, fc_stock, vf_stock")
                    .in_("barcode", chunk)
                    .execute()
                )
                for row in result.data or []:
                    stored[row["barcode"]] = row_to_warehouse_stock(row)
        except Exception as e:
            logger.error("fetch_stored_stock_failed", error=str(e))
            raise DatabaseError("select", str(e), details={"table": "products"})

        return stored

    # ===================
    # WRITE OPERATIONS
    # ===================

    def upload_products(self, entries: list[ProductRegistryEntry]) -> int:
        """
        Upsert product master rows.

        Duplicate SKUs in one upload: the last entry wins.

        Returns:
            Number of unique products written
        """
        self.cache.invalidate()
        if not entries:
            return 0

        unique = {entry.sku_id: entry for entry in entries}
        rows = [
            {
                "barcode": entry.sku_id,
                "name": entry.product_name,
                "option_code": entry.option,
                "season": entry.season,
                "image_url": entry.image_url,
                "hq_stock": entry.hq_stock,
                "incoming_stock": entry.incoming_stock,
                "safety_stock": entry.safety_stock,
                "updated_at": _now(),
            }
            for entry in unique.values()
        ]

        self._upsert_chunks("products", rows, PRODUCT_CHUNK_SIZE, on_conflict="barcode")

        logger.info("products_uploaded", received=len(entries), written=len(rows))
        return len(rows)

    def upload_sales(
        self,
        facts: list[SalesFact],
        snapshots: list[StockSnapshot],
    ) -> dict[str, Any]:
        """
        Store an upload batch of sales and stock readings.

        1. Sum rows sharing (date, SKU, warehouse).
        2. Create placeholder products for SKUs missing from the master.
        3. Upsert the daily sales rows, writing only the columns the batch
           reported (a sales-only key never touches current_stock).
        4. Reconcile the batch's stock against the stored per-warehouse
           stock (zero readings carry the stored value forward) and write it.

        Returns:
            Counts of rows, placeholders and stock updates
        """
        self.cache.invalidate()
        if not facts and not snapshots:
            return {"rows": 0, "skus": 0, "stock_updates": 0}

        # Only columns the batch actually reported: a key with sales but no
        # stock reading must not write (or overwrite) current_stock
        merged: dict[tuple, dict[str, int]] = defaultdict(dict)
        for fact in facts:
            values = merged[(fact.sale_date, fact.sku_id, fact.warehouse)]
            values["quantity"] = values.get("quantity", 0) + fact.quantity
        for snap in snapshots:
            values = merged[(snap.snapshot_date, snap.sku_id, snap.warehouse)]
            values["current_stock"] = values.get("current_stock", 0) + snap.observed_stock

        sku_ids = sorted({sku_id for _, sku_id, _ in merged})
        self._ensure_products_exist(sku_ids)

        # One upsert per column set so PostgREST never fills a missing column with NULL
        rows_by_columns: dict[tuple, list[dict]] = defaultdict(list)
        for (day, sku_id, warehouse), values in merged.items():
            rows_by_columns[tuple(sorted(values))].append({
                "date": day.isoformat(),
                "barcode": sku_id,
                "warehouse": warehouse.value,
                **values,
            })

        rows = [row for group in rows_by_columns.values() for row in group]
        for group in rows_by_columns.values():
            self._upsert_chunks(
                "daily_sales", group, SALES_CHUNK_SIZE, on_conflict="date,barcode,warehouse"
            )

        stock_updates = self._store_reconciled_stock(snapshots)

        logger.info(
            "sales_uploaded",
            facts=len(facts),
            snapshots=len(snapshots),
            rows=len(rows),
            skus=len(sku_ids),
            stock_updates=stock_updates,
        )
        return {"rows": len(rows), "skus": len(sku_ids), "stock_updates": stock_updates}

    def reset_data(self) -> bool:
        """Delete all sales rows and zero every stored stock figure."""
        self.cache.invalidate()
        db = get_admin_client() or self.db

        try:
            db.table("daily_sales").delete().neq("barcode", "").execute()
            db.table("products").update(
                {"current_stock": 0, "fc_stock": 0, "vf_stock": 0, "hq_stock": 0}
            ).neq("barcode", "").execute()
        except Exception as e:
            logger.error("reset_data_failed", error=str(e))
            raise DatabaseError("reset", str(e))

        logger.warning("data_reset")
        return True

    # ===================
    # HELPERS
    # ===================

    def _upsert_chunks(
        self,
        table: str,
        rows: list[dict],
        chunk_size: int,
        on_conflict: str,
        ignore_duplicates: bool = False,
    ) -> None:
        for i in range(0, len(rows), chunk_size):
            chunk = rows[i:i + chunk_size]
            try:
                self.db.table(table).upsert(
                    chunk,
                    on_conflict=on_conflict,
                    ignore_duplicates=ignore_duplicates,
                ).execute()
            except Exception as e:
                logger.error("upsert_failed", table=table, offset=i, error=str(e))
                raise DatabaseError("upsert", str(e), details={"table": table, "offset": i})

    def _ensure_products_exist(self, sku_ids: list[str]) -> None:
        """Placeholder master rows so sales rows never reference a missing product."""
        rows = [
            {
                "barcode": sku_id,
                "name": UNREGISTERED_PRODUCT_NAME,
                "season": UNKNOWN_SEASON,
                "updated_at": _now(),
            }
            for sku_id in sku_ids
        ]
        self._upsert_chunks(
            "products", rows, PRODUCT_CHUNK_SIZE, on_conflict="barcode", ignore_duplicates=True
        )

    def _store_reconciled_stock(self, snapshots: list[StockSnapshot]) -> int:
        if not snapshots:
            return 0

        batch_skus = {snap.sku_id for snap in snapshots}
        previous = self.fetch_stored_stock(batch_skus)
        reconciled = reconcile_incremental(snapshots, previous)

        updated = 0
        for sku_id in sorted(batch_skus):
            stock = reconciled[sku_id]
            values = {w.stock_column: stock.by_warehouse.get(w, 0) for w in Warehouse}
            values["current_stock"] = stock.total
            values["updated_at"] = _now()
            try:
                self.db.table("products").update(values).eq("barcode", sku_id).execute()
            except Exception as e:
                logger.error("stock_update_failed", sku_id=sku_id, error=str(e))
                raise DatabaseError("update", str(e), details={"sku_id": sku_id})
            updated += 1

        return updated
