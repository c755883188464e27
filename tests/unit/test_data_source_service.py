"""
Unit tests for the Supabase data source.

Uses the mock client from conftest, which honours range(), in_() and
records every write.
"""

from datetime import date

import pytest

from exceptions import DatabaseError
from models.facts import UNREGISTERED_PRODUCT_NAME, Warehouse
from services.data_source_service import (
    PAGE_SIZE,
    row_to_registry_entry,
    row_to_sales_fact,
    row_to_stock_snapshot,
)
from services.stock_reconciliation_service import reconcile_stock
from tests.factories import RegistryFactory, RowFactory, SalesFactFactory, StockSnapshotFactory


# ===================
# ROW MAPPING
# ===================

class TestRowMapping:

    def test_sales_row(self):
        row = RowFactory.sales_row("A", date(2024, 5, 1), quantity=4, current_stock=9, warehouse="vf")

        fact = row_to_sales_fact(row)
        snapshot = row_to_stock_snapshot(row)

        assert fact.sale_date == date(2024, 5, 1)
        assert fact.quantity == 4
        assert fact.warehouse == Warehouse.SECONDARY
        assert snapshot.observed_stock == 9
        assert snapshot.warehouse == Warehouse.SECONDARY

    def test_timestamp_dates_truncated(self):
        row = RowFactory.sales_row("A")
        row["date"] = "2024-05-01T00:00:00+00:00"

        assert row_to_sales_fact(row).sale_date == date(2024, 5, 1)

    def test_missing_warehouse_defaults_to_primary(self):
        row = RowFactory.sales_row("A")
        row["warehouse"] = None

        assert row_to_sales_fact(row).warehouse == Warehouse.PRIMARY

    def test_stock_only_row_has_zero_quantity(self):
        row = RowFactory.sales_row("A", current_stock=7)
        del row["quantity"]

        assert row_to_sales_fact(row).quantity == 0
        assert row_to_stock_snapshot(row).observed_stock == 7

    def test_product_row_nulls(self):
        row = RowFactory.product_row("A", season=None, hq_stock=None, safety_stock=None)

        entry = row_to_registry_entry(row)

        assert entry.season == "정보없음"
        assert entry.hq_stock == 0
        assert entry.safety_stock == 0


# ===================
# READS
# ===================

class TestFetch:

    def test_paginates_past_page_size(self, data_source, mock_supabase):
        rows = [
            RowFactory.sales_row(f"SKU{i}", date(2024, 1, 1), quantity=1)
            for i in range(PAGE_SIZE * 2 + 5)
        ]
        mock_supabase.set_table_data("daily_sales", rows)

        facts = data_source.fetch_sales_facts()

        assert len(facts) == PAGE_SIZE * 2 + 5
        ranges = [r for table, r in mock_supabase.page_requests if table == "daily_sales" and r]
        assert sorted(ranges) == [(0, 999), (1000, 1999), (2000, 2004)]

    def test_empty_table(self, data_source, mock_supabase):
        assert data_source.fetch_sales_facts() == []

    def test_registry_keyed_by_sku(self, data_source, mock_supabase):
        mock_supabase.set_table_data("products", [
            RowFactory.product_row("A", "봄 니트"),
            RowFactory.product_row("B", UNREGISTERED_PRODUCT_NAME),
        ])

        registry = data_source.fetch_registry()

        assert registry["A"].product_name == "봄 니트"
        assert registry["B"].is_placeholder is True

    def test_fetch_stored_stock(self, data_source, mock_supabase):
        mock_supabase.set_table_data("products", [
            RowFactory.product_row("A", fc_stock=5, vf_stock=2),
            RowFactory.product_row("B", fc_stock=9),
        ])

        stored = data_source.fetch_stored_stock(["A"])

        assert stored == {"A": {Warehouse.PRIMARY: 5, Warehouse.SECONDARY: 2}}

    def test_rows_without_stock_reading_skipped(self, data_source, mock_supabase):
        mock_supabase.set_table_data("daily_sales", [
            RowFactory.sales_row("A", date(2024, 1, 1), quantity=0, current_stock=10),
            RowFactory.sales_row("A", date(2024, 1, 2), quantity=3, current_stock=None),
        ])

        snapshots = data_source.fetch_stock_snapshots()

        assert [(s.snapshot_date, s.observed_stock) for s in snapshots] == [(date(2024, 1, 1), 10)]
        assert len(data_source.fetch_sales_facts()) == 2

    def test_failure_wrapped(self, data_source, mock_supabase):
        mock_supabase.set_table_data("daily_sales", [RowFactory.sales_row()])
        mock_supabase.fail_on = ("daily_sales", "select")

        with pytest.raises(DatabaseError) as exc_info:
            data_source.fetch_sales_facts()

        assert exc_info.value.details["table"] == "daily_sales"


# ===================
# WRITES
# ===================

class TestUploadProducts:

    def test_last_duplicate_wins(self, data_source, mock_supabase):
        written = data_source.upload_products([
            RegistryFactory.create("A", "Old name"),
            RegistryFactory.create("A", "New name"),
            RegistryFactory.create("B", "Coat"),
        ])

        upserts = mock_supabase.writes("products", "upsert")
        assert written == 2
        assert len(upserts) == 1
        assert upserts[0]["on_conflict"] == "barcode"
        names = {row["barcode"]: row["name"] for row in upserts[0]["payload"]}
        assert names == {"A": "New name", "B": "Coat"}

    def test_invalidates_cache(self, data_source, analytics_cache):
        analytics_cache.set("report", "stale")

        data_source.upload_products([])

        assert analytics_cache.get("report") is None


class TestUploadSales:

    def test_same_key_rows_merged(self, data_source, mock_supabase):
        day = date(2024, 1, 2)
        facts = [
            SalesFactFactory.create("A", 3, day),
            SalesFactFactory.create("A", 4, day),
        ]

        result = data_source.upload_sales(facts, [])

        sales_upserts = mock_supabase.writes("daily_sales", "upsert")
        assert result["rows"] == 1
        assert sales_upserts[0]["on_conflict"] == "date,barcode,warehouse"
        assert sales_upserts[0]["payload"][0]["quantity"] == 7

    def test_placeholders_never_overwrite_existing_products(self, data_source, mock_supabase):
        data_source.upload_sales([SalesFactFactory.create("NEW", 1)], [])

        placeholder = mock_supabase.writes("products", "upsert")[0]
        assert placeholder["ignore_duplicates"] is True
        assert placeholder["payload"][0]["name"] == UNREGISTERED_PRODUCT_NAME

    def test_sales_only_key_never_writes_stock(self, data_source, mock_supabase):
        result = data_source.upload_sales(
            [SalesFactFactory.create("A", 1, date(2024, 1, 2))],
            [StockSnapshotFactory.create("A", 10, date(2024, 1, 1))],
        )

        written = [
            row
            for call in mock_supabase.writes("daily_sales", "upsert")
            for row in call["payload"]
        ]
        by_date = {row["date"]: row for row in written}
        assert result["rows"] == 2
        assert "current_stock" not in by_date["2024-01-02"]
        assert "quantity" not in by_date["2024-01-01"]
        assert by_date["2024-01-01"]["current_stock"] == 10

        # The newer sales-only day must not hide the only observed reading
        stock = reconcile_stock(data_source.fetch_stock_snapshots(written))
        assert stock["A"].total == 10
        assert stock["A"].by_warehouse == {Warehouse.PRIMARY: 10}

    def test_upserts_split_by_reported_columns(self, data_source, mock_supabase):
        day = date(2024, 1, 2)
        data_source.upload_sales(
            [SalesFactFactory.create("A", 2, day), SalesFactFactory.create("B", 1, day)],
            [StockSnapshotFactory.create("A", 5, day)],
        )

        payloads = [call["payload"] for call in mock_supabase.writes("daily_sales", "upsert")]
        column_sets = sorted(sorted({key for row in rows for key in row}) for rows in payloads)

        assert len(payloads) == 2
        assert ["barcode", "current_stock", "date", "quantity", "warehouse"] in column_sets
        assert ["barcode", "date", "quantity", "warehouse"] in column_sets
        for rows in payloads:
            assert len({tuple(sorted(row)) for row in rows}) == 1

    def test_zero_reading_keeps_stored_stock(self, data_source, mock_supabase):
        mock_supabase.set_table_data("products", [
            RowFactory.product_row("A", fc_stock=12, vf_stock=3),
        ])

        result = data_source.upload_sales(
            [SalesFactFactory.create("A", 2)],
            [StockSnapshotFactory.create("A", 0)],
        )

        updates = mock_supabase.writes("products", "update")
        assert result["stock_updates"] == 1
        assert updates[0]["payload"]["fc_stock"] == 12
        assert updates[0]["payload"]["vf_stock"] == 3
        assert updates[0]["payload"]["current_stock"] == 15
        assert ("eq", "barcode", "A") in updates[0]["filters"]

    def test_invalidates_cache(self, data_source, analytics_cache):
        analytics_cache.set("facts", "stale")

        data_source.upload_sales([SalesFactFactory.create("A", 1)], [])

        assert len(analytics_cache) == 0

    def test_empty_upload(self, data_source, mock_supabase):
        assert data_source.upload_sales([], []) == {"rows": 0, "skus": 0, "stock_updates": 0}
        assert mock_supabase.calls == []

    def test_upsert_failure_wrapped(self, data_source, mock_supabase):
        mock_supabase.fail_on = ("daily_sales", "upsert")

        with pytest.raises(DatabaseError):
            data_source.upload_sales([SalesFactFactory.create("A", 1)], [])


class TestResetData:

    def test_clears_sales_and_stock(self, data_source, mock_supabase, analytics_cache):
        analytics_cache.set("facts", "stale")

        assert data_source.reset_data() is True

        assert len(mock_supabase.writes("daily_sales", "delete")) == 1
        stock_reset = mock_supabase.writes("products", "update")[0]["payload"]
        assert stock_reset["fc_stock"] == 0
        assert stock_reset["vf_stock"] == 0
        assert len(analytics_cache) == 0
