"""
In-memory store for computed analytics.

One AnalyticsCache is created by whoever owns the analytics lifecycle
(the API app, a script) and handed to the services that read and write
data. Entries live until invalidate() is called, or until an optional
TTL expires. Every write path to the fact store must call invalidate().
"""

from datetime import datetime, timedelta
from typing import Any, Optional

import structlog

logger = structlog.get_logger(__name__)


class AnalyticsCache:
    """Per-process memo of analytics results, keyed by name."""

    def __init__(self, ttl_minutes: Optional[int] = None):
        self.ttl = timedelta(minutes=ttl_minutes) if ttl_minutes else None
        self._entries: dict[str, tuple[Optional[datetime], Any]] = {}

    def get(self, key: str) -> Optional[Any]:
        """Cached value, or None if missing or expired."""
        entry = self._entries.get(key)
        if entry is None:
            logger.debug("analytics_cache_miss", key=key)
            return None

        expires_at, value = entry
        if expires_at is not None and datetime.now() > expires_at:
            del self._entries[key]
            logger.debug("analytics_cache_expired", key=key)
            return None

        logger.debug("analytics_cache_hit", key=key)
        return value

    def set(self, key: str, value: Any) -> None:
        expires_at = datetime.now() + self.ttl if self.ttl else None
        self._entries[key] = (expires_at, value)

    def invalidate(self) -> None:
        """Drop every cached result."""
        dropped = len(self._entries)
        self._entries.clear()
        logger.info("analytics_cache_invalidated", entries=dropped)

    def __contains__(self, key: str) -> bool:
        return self.get(key) is not None

    def __len__(self) -> int:
        return len(self._entries)
