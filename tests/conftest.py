"""
Shared test fixtures.

Provides an in-memory stand-in for the Supabase query builder that
honours the calls the data source makes (count, range, in_, upsert,
update, delete) and records every write for assertions.
"""

import sys
from pathlib import Path

# Add backend directory to Python path
backend_dir = Path(__file__).parent.parent
sys.path.insert(0, str(backend_dir))

import pytest
from unittest.mock import patch
from typing import Generator

from services.analytics_cache import AnalyticsCache


# ===================
# MOCK SUPABASE CLIENT
# ===================

class MockSupabaseResponse:
    """Mock Supabase query response."""

    def __init__(self, data: list = None, count: int = None):
        self.data = data or []
        self.count = count if count is not None else len(self.data)


class MockSupabaseQuery:
    """Mock Supabase query builder with chainable methods."""

    def __init__(self, client: "MockSupabaseClient", table: str, operation: str, payload=None, **options):
        self._client = client
        self._table = table
        self._operation = operation
        self._payload = payload
        self._options = options
        self._filters: list[tuple] = []
        self._range: tuple[int, int] = None
        self._limit: int = None
        self._count_requested = False

    def select(self, *args, count: str = None, **kwargs):
        self._count_requested = count is not None
        return self

    def eq(self, column, value):
        self._filters.append(("eq", column, value))
        return self

    def neq(self, column, value):
        self._filters.append(("neq", column, value))
        return self

    def in_(self, column, values):
        self._filters.append(("in", column, list(values)))
        return self

    def order(self, column, **kwargs):
        return self

    def range(self, start, end):
        self._range = (start, end)
        return self

    def limit(self, count):
        self._limit = count
        return self

    def _matches(self, row: dict) -> bool:
        for kind, column, value in self._filters:
            if kind == "eq" and row.get(column) != value:
                return False
            if kind == "neq" and row.get(column) == value:
                return False
            if kind == "in" and row.get(column) not in value:
                return False
        return True

    def execute(self) -> MockSupabaseResponse:
        if self._client.fail_on == (self._table, self._operation):
            raise RuntimeError(f"{self._operation} on {self._table} failed")

        if self._operation != "select":
            self._client.calls.append({
                "table": self._table,
                "operation": self._operation,
                "payload": self._payload,
                "filters": list(self._filters),
                **self._options,
            })
            return MockSupabaseResponse(data=self._payload if isinstance(self._payload, list) else [])

        rows = [row for row in self._client.rows(self._table) if self._matches(row)]
        total = len(rows)
        if self._range is not None:
            start, end = self._range
            rows = rows[start:end + 1]
        if self._limit is not None:
            rows = rows[:self._limit]

        self._client.page_requests.append((self._table, self._range))
        return MockSupabaseResponse(data=rows, count=total if self._count_requested else None)


class MockSupabaseTable:
    """Mock Supabase table handing out query builders."""

    def __init__(self, client: "MockSupabaseClient", name: str):
        self._client = client
        self._name = name

    def select(self, *args, **kwargs):
        return MockSupabaseQuery(self._client, self._name, "select").select(*args, **kwargs)

    def upsert(self, rows, on_conflict: str = None, ignore_duplicates: bool = False):
        return MockSupabaseQuery(
            self._client, self._name, "upsert", rows,
            on_conflict=on_conflict, ignore_duplicates=ignore_duplicates,
        )

    def update(self, values):
        return MockSupabaseQuery(self._client, self._name, "update", values)

    def delete(self):
        return MockSupabaseQuery(self._client, self._name, "delete")


class MockSupabaseClient:
    """Mock Supabase client."""

    def __init__(self):
        self._tables: dict[str, list[dict]] = {}
        self.calls: list[dict] = []
        self.page_requests: list[tuple] = []
        self.fail_on: tuple = None

    def set_table_data(self, table_name: str, data: list):
        """Configure mock data for a table."""
        self._tables[table_name] = list(data)

    def rows(self, table_name: str) -> list[dict]:
        return self._tables.get(table_name, [])

    def table(self, name: str) -> MockSupabaseTable:
        """Get mock table."""
        return MockSupabaseTable(self, name)

    def writes(self, table_name: str, operation: str) -> list[dict]:
        """Recorded write calls for one table and operation."""
        return [
            call for call in self.calls
            if call["table"] == table_name and call["operation"] == operation
        ]


# ===================
# FIXTURES
# ===================

@pytest.fixture
def mock_supabase() -> MockSupabaseClient:
    """
    Create a mock Supabase client.

    Usage:
        def test_something(mock_supabase):
            mock_supabase.set_table_data("products", [
                {"barcode": "880001", "name": "봄 니트", ...}
            ])
    """
    return MockSupabaseClient()


@pytest.fixture
def analytics_cache() -> AnalyticsCache:
    return AnalyticsCache()


@pytest.fixture
def data_source(mock_supabase, analytics_cache):
    """DataSourceService reading and writing the mock client."""
    from services.data_source_service import DataSourceService

    with patch("services.data_source_service.get_admin_client", return_value=None):
        yield DataSourceService(analytics_cache, db=mock_supabase)


# ===================
# API TEST CLIENT
# ===================

@pytest.fixture
def test_client_with_mock_db(mock_supabase) -> Generator:
    """
    Create FastAPI test client with mocked database.

    Usage:
        def test_endpoint(test_client_with_mock_db, mock_supabase):
            mock_supabase.set_table_data("daily_sales", [...])
            response = test_client_with_mock_db.get("/api/analytics/skus")
    """
    from fastapi.testclient import TestClient
    from main import app

    with patch("config.database.get_supabase_client", return_value=mock_supabase):
        with patch("services.data_source_service.get_supabase_client", return_value=mock_supabase):
            with TestClient(app) as client:
                yield client
