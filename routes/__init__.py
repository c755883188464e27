"""
API route modules.

Each module defines routes for one domain area.
"""

from routes.analytics import router as analytics_router

__all__ = [
    "analytics_router",
]
