"""
Business logic services.

The pure pipeline stages are plain functions; the stateful services
(data source, analytics, alerts, export) are classes.
"""

from services.analytics_cache import AnalyticsCache
from services.analytics_service import AnalyticsService, run_analytics
from services.data_source_service import DataSourceService
from services.alert_service import AlertService, get_alert_service
from services.export_service import ExportService, get_export_service

__all__ = [
    "AnalyticsCache",
    "AnalyticsService",
    "run_analytics",
    "DataSourceService",
    "AlertService",
    "get_alert_service",
    "ExportService",
    "get_export_service",
]
