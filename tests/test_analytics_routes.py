"""
API tests for the analytics routes, backed by the mock Supabase client.
"""

from datetime import date
from unittest.mock import patch

from tests.factories import RowFactory

ANCHOR = date(2025, 3, 10)


def seed(mock_supabase):
    mock_supabase.set_table_data("products", [
        RowFactory.product_row("A", "봄 니트", option_code="S", hq_stock=5),
        RowFactory.product_row("B", "Coat", hq_stock=40),
    ])
    mock_supabase.set_table_data("daily_sales", [
        RowFactory.sales_row("A", ANCHOR, quantity=14, current_stock=6),
        RowFactory.sales_row("B", ANCHOR, quantity=0, current_stock=3),
    ])


# ===================
# EMPTY STATE
# ===================

class TestNoData:

    def test_reports_answer_no_data(self, test_client_with_mock_db):
        for path in ("skus", "groups", "stockout-risk", "dead-stock", "dashboard", "windows"):
            response = test_client_with_mock_db.get(f"/api/analytics/{path}")

            assert response.status_code == 200
            assert response.json() == {"status": "no_data", "reason": "NO_ANCHOR_DATE"}


# ===================
# REPORTS
# ===================

class TestReports:

    def test_skus(self, test_client_with_mock_db, mock_supabase):
        seed(mock_supabase)

        response = test_client_with_mock_db.get("/api/analytics/skus")

        body = response.json()
        assert response.status_code == 200
        assert body["status"] == "ok"
        assert body["anchor_date"] == "2025-03-10"
        skus = {row["sku_id"]: row for row in body["data"]}
        assert skus["A"]["avg_daily_sales"] == 2.0
        assert skus["A"]["days_of_inventory"] == 3
        assert skus["A"]["stock_by_warehouse"] == {"fc": 6}

    def test_lead_time_override(self, test_client_with_mock_db, mock_supabase):
        seed(mock_supabase)

        response = test_client_with_mock_db.get("/api/analytics/skus?lead_time_days=30&safety_buffer_days=0")

        body = response.json()
        assert body["lead_time_days"] == 30
        skus = {row["sku_id"]: row for row in body["data"]}
        assert skus["A"]["recommendation"] == 54

    def test_invalid_override_rejected(self, test_client_with_mock_db):
        response = test_client_with_mock_db.get("/api/analytics/skus?lead_time_days=-1")
        assert response.status_code == 422

    def test_override_above_bound_rejected(self, test_client_with_mock_db):
        # Lead times this long would reach the 999-day "no sales" sentinel
        response = test_client_with_mock_db.get("/api/analytics/groups?lead_time_days=999")
        assert response.status_code == 422

        response = test_client_with_mock_db.get("/api/analytics/skus?safety_buffer_days=61")
        assert response.status_code == 422

    def test_groups_and_dead_stock(self, test_client_with_mock_db, mock_supabase):
        seed(mock_supabase)

        groups = test_client_with_mock_db.get("/api/analytics/groups").json()["data"]
        dead = test_client_with_mock_db.get("/api/analytics/dead-stock").json()["data"]

        assert groups[0]["product_name"] == "봄 니트"
        assert groups[0]["is_urgent"] is True
        assert [g["product_name"] for g in dead][0] == "Coat"

    def test_dashboard(self, test_client_with_mock_db, mock_supabase):
        seed(mock_supabase)

        body = test_client_with_mock_db.get("/api/analytics/dashboard").json()

        assert body["status"] == "ok"
        assert body["metrics"]["yesterday"] == 14

    def test_purchase_order_download(self, test_client_with_mock_db, mock_supabase):
        seed(mock_supabase)

        response = test_client_with_mock_db.get("/api/analytics/purchase-order")

        assert response.status_code == 200
        assert "spreadsheetml" in response.headers["content-type"]
        assert "purchase_order_2025-03-10.xlsx" in response.headers["content-disposition"]


# ===================
# ACTIONS
# ===================

class TestActions:

    def test_upload_invalidates_cached_report(self, test_client_with_mock_db, mock_supabase):
        first = test_client_with_mock_db.get("/api/analytics/skus").json()
        assert first["status"] == "no_data"

        seed(mock_supabase)
        stale = test_client_with_mock_db.get("/api/analytics/skus").json()
        assert stale["status"] == "no_data"

        response = test_client_with_mock_db.post("/api/analytics/products", json={
            "products": [{"sku_id": "A", "product_name": "봄 니트"}],
        })
        assert response.json() == {"status": "ok", "products": 1}

        fresh = test_client_with_mock_db.get("/api/analytics/skus").json()
        assert fresh["status"] == "ok"

    def test_refresh(self, test_client_with_mock_db, mock_supabase):
        test_client_with_mock_db.get("/api/analytics/skus")
        seed(mock_supabase)

        assert test_client_with_mock_db.post("/api/analytics/refresh").json() == {"status": "ok"}
        assert test_client_with_mock_db.get("/api/analytics/skus").json()["status"] == "ok"

    def test_upload_sales_rejects_negative_quantity(self, test_client_with_mock_db):
        response = test_client_with_mock_db.post("/api/analytics/sales", json={
            "facts": [{"sale_date": "2025-03-10", "sku_id": "A", "quantity": -1}],
        })
        assert response.status_code == 422

    def test_stockout_alert(self, test_client_with_mock_db, mock_supabase):
        mock_supabase.set_table_data("products", [RowFactory.product_row("A", "봄 니트")])
        mock_supabase.set_table_data("daily_sales", [
            RowFactory.sales_row("A", ANCHOR, quantity=14, current_stock=6),
        ])
        # 6 units at 2 a day: 3 days left
        with patch("routes.analytics.get_alert_service") as mock_get:
            mock_get.return_value.send_stockout_risk_alert.return_value = True
            response = test_client_with_mock_db.post("/api/analytics/alerts/stockout")

        assert response.json() == {"status": "ok", "items": 1, "sent": True}

    def test_database_error_rendered(self, test_client_with_mock_db, mock_supabase):
        mock_supabase.fail_on = ("daily_sales", "select")

        response = test_client_with_mock_db.get("/api/analytics/skus")

        assert response.status_code == 500
        assert response.json()["error"]["code"] == "DATABASE_ERROR"
