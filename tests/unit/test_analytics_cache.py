"""
Unit tests for the analytics cache.
"""

from datetime import datetime, timedelta
from unittest.mock import patch

from services.analytics_cache import AnalyticsCache


class TestAnalyticsCache:

    def test_set_and_get(self):
        cache = AnalyticsCache()
        cache.set("report", {"skus": 3})

        assert cache.get("report") == {"skus": 3}
        assert "report" in cache
        assert len(cache) == 1

    def test_missing_key(self):
        assert AnalyticsCache().get("nothing") is None

    def test_invalidate_drops_everything(self):
        cache = AnalyticsCache()
        cache.set("a", 1)
        cache.set("b", 2)

        cache.invalidate()

        assert cache.get("a") is None
        assert cache.get("b") is None
        assert len(cache) == 0

    def test_no_ttl_never_expires(self):
        cache = AnalyticsCache()
        cache.set("a", 1)

        later = datetime.now() + timedelta(days=365)
        with patch("services.analytics_cache.datetime") as mock_datetime:
            mock_datetime.now.return_value = later
            assert cache.get("a") == 1

    def test_ttl_expiry(self):
        cache = AnalyticsCache(ttl_minutes=5)
        cache.set("a", 1)

        later = datetime.now() + timedelta(minutes=6)
        with patch("services.analytics_cache.datetime") as mock_datetime:
            mock_datetime.now.return_value = later
            assert cache.get("a") is None

        assert len(cache) == 0

    def test_separate_instances_do_not_share_state(self):
        first = AnalyticsCache()
        second = AnalyticsCache()
        first.set("a", 1)

        assert second.get("a") is None
