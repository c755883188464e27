"""
Inventory Analytics — Main Application

FastAPI application entry point.
"""

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from contextlib import asynccontextmanager
import structlog
from datetime import datetime, timezone

from config import settings, check_connection, configure_logging, DatabaseConnectionError
from exceptions import AppError
from services.analytics_cache import AnalyticsCache
from services.analytics_service import AnalyticsService
from services.data_source_service import DataSourceService

configure_logging()

logger = structlog.get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan handler.

    Startup: Check database connection, wire the analytics cache and services
    Shutdown: Drop cached analytics
    """
    logger.info(
        "application_starting",
        environment=settings.environment,
        debug=settings.debug
    )

    cache = AnalyticsCache(ttl_minutes=settings.analytics_cache_ttl_minutes)
    app.state.analytics_cache = cache
    app.state.data_source = None
    app.state.analytics_service = None

    try:
        data_source = DataSourceService(cache)
        app.state.data_source = data_source
        app.state.analytics_service = AnalyticsService(cache, data_source)
    except DatabaseConnectionError as e:
        logger.error("analytics_backend_unavailable", error=str(e))

    db_status = check_connection()
    if db_status["status"] == "healthy":
        logger.info(
            "database_connected",
            products=db_status["products_count"],
            daily_sales=db_status["daily_sales_count"]
        )
    else:
        logger.error(
            "database_connection_failed",
            error=db_status.get("error")
        )

    yield

    cache.invalidate()
    logger.info("application_shutting_down")


# Create FastAPI app
app = FastAPI(
    title="Inventory Analytics",
    description="Sales velocity, reorder recommendations and stock screening for marketplace SKUs",
    version="0.1.0",
    lifespan=lifespan,
    docs_url="/docs" if settings.debug else None,
    redoc_url="/redoc" if settings.debug else None,
)


# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=[
        "http://localhost:3000",
        "http://localhost:5173",
    ],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ===================
# ROUTES
# ===================

@app.get("/health")
async def health_check():
    """
    Health check endpoint.

    Returns:
        Basic health status and database connection state
    """
    db_status = check_connection()

    return {
        "status": "healthy" if db_status["status"] == "healthy" else "degraded",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "environment": settings.environment,
        "database": db_status
    }


@app.get("/")
async def root():
    """
    Root endpoint.

    Returns:
        API information and available endpoints
    """
    return {
        "name": "Inventory Analytics API",
        "version": "0.1.0",
        "docs": "/docs" if settings.debug else "Disabled in production",
        "health": "/health",
        "endpoints": {
            "skus": "/api/analytics/skus",
            "groups": "/api/analytics/groups",
            "stockout_risk": "/api/analytics/stockout-risk",
            "dead_stock": "/api/analytics/dead-stock",
            "dashboard": "/api/analytics/dashboard",
            "purchase_order": "/api/analytics/purchase-order",
        }
    }


# ===================
# ERROR HANDLERS
# ===================

@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError):
    """Render AppError raised outside a route body (e.g. from a dependency)."""
    logger.warning(
        "app_error",
        path=request.url.path,
        code=exc.code,
        error=exc.message
    )
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """
    Global exception handler.

    Catches unhandled exceptions and returns standard error format.
    """
    logger.error(
        "unhandled_exception",
        path=request.url.path,
        method=request.method,
        error=str(exc),
        error_type=type(exc).__name__
    )

    return JSONResponse(
        status_code=500,
        content={
            "error": {
                "code": "INTERNAL_ERROR",
                "message": "An unexpected error occurred",
                "details": str(exc) if settings.debug else None,
                "timestamp": datetime.now(timezone.utc).isoformat()
            }
        }
    )


# ===================
# INCLUDE ROUTERS
# ===================
from routes.analytics import router as analytics_router

app.include_router(analytics_router)  # Prefix already in router


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "main:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=settings.debug
    )
