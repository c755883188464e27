"""
Analytics API routes.

Read endpoints serve the cached AnalyticsReport / DashboardSummary.
When there are no sales facts yet, they answer 200 with
{"status": "no_data", "reason": "NO_ANCHOR_DATE"}.

Write endpoints store facts and product master rows; each write
invalidates the analytics cache.
"""

from typing import Optional

import structlog
from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import JSONResponse, StreamingResponse
from pydantic import BaseModel, Field

from config import settings
from exceptions import AppError
from models.analytics import NoData
from models.facts import ProductRegistryEntry, SalesFact, StockSnapshot
from services.alert_service import get_alert_service
from services.analytics_service import AnalyticsService
from services.data_source_service import DataSourceService
from services.export_service import get_export_service

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/api/analytics", tags=["Analytics"])

MAX_LEAD_TIME_DAYS = 120
MAX_SAFETY_BUFFER_DAYS = 60


# ===================
# REQUEST MODELS
# ===================

class ProductUploadRequest(BaseModel):
    """Product master rows to upsert."""

    products: list[ProductRegistryEntry] = Field(default_factory=list)


class SalesUploadRequest(BaseModel):
    """Sales facts and stock readings from one report."""

    facts: list[SalesFact] = Field(default_factory=list)
    snapshots: list[StockSnapshot] = Field(default_factory=list)


# ===================
# DEPENDENCIES
# ===================

def get_analytics_service(request: Request) -> AnalyticsService:
    service = getattr(request.app.state, "analytics_service", None)
    if service is None:
        raise AppError(
            code="DATABASE_UNAVAILABLE",
            message="Analytics backend is not connected",
            status_code=503,
        )
    return service


def get_data_source(request: Request) -> DataSourceService:
    source = getattr(request.app.state, "data_source", None)
    if source is None:
        raise AppError(
            code="DATABASE_UNAVAILABLE",
            message="Analytics backend is not connected",
            status_code=503,
        )
    return source


# ===================
# EXCEPTION HANDLER
# ===================

def handle_error(e: Exception) -> JSONResponse:
    """Convert exception to JSON response."""
    if isinstance(e, AppError):
        return JSONResponse(
            status_code=e.status_code,
            content=e.to_dict()
        )
    logger.error("unexpected_error", error=str(e), type=type(e).__name__)
    return JSONResponse(
        status_code=500,
        content={
            "error": {
                "code": "INTERNAL_ERROR",
                "message": "An unexpected error occurred"
            }
        }
    )


def no_data_response(result: NoData) -> dict:
    return result.model_dump(mode="json")


# ===================
# REPORT ROUTES
# ===================

@router.get("/skus")
async def list_sku_metrics(
    lead_time_days: Optional[int] = Query(None, ge=0, le=MAX_LEAD_TIME_DAYS, description="Override lead time"),
    safety_buffer_days: Optional[int] = Query(None, ge=0, le=MAX_SAFETY_BUFFER_DAYS, description="Override safety buffer"),
    service: AnalyticsService = Depends(get_analytics_service),
):
    """
    Per-SKU metrics for every registered SKU.

    Includes velocity, days of inventory, shortage, reorder
    recommendation, trend, status and ABC grade.
    """
    try:
        report = service.get_report(lead_time_days, safety_buffer_days)
        if isinstance(report, NoData):
            return no_data_response(report)

        return {
            "status": report.status,
            "anchor_date": report.anchor_date.isoformat(),
            "lead_time_days": report.lead_time_days,
            "safety_buffer_days": report.safety_buffer_days,
            "data": [m.model_dump(mode="json") for m in report.skus],
            "unregistered_sales": [u.model_dump(mode="json") for u in report.unregistered_sales],
        }

    except Exception as e:
        return handle_error(e)


@router.get("/groups")
async def list_product_groups(
    lead_time_days: Optional[int] = Query(None, ge=0, le=MAX_LEAD_TIME_DAYS, description="Override lead time"),
    safety_buffer_days: Optional[int] = Query(None, ge=0, le=MAX_SAFETY_BUFFER_DAYS, description="Override safety buffer"),
    service: AnalyticsService = Depends(get_analytics_service),
):
    """
    Products grouped by name, urgent first, then by recommendation.
    """
    try:
        report = service.get_report(lead_time_days, safety_buffer_days)
        if isinstance(report, NoData):
            return no_data_response(report)

        return {
            "status": report.status,
            "anchor_date": report.anchor_date.isoformat(),
            "data": [g.model_dump(mode="json") for g in report.groups],
        }

    except Exception as e:
        return handle_error(e)


@router.get("/stockout-risk")
async def list_stockout_risk(
    service: AnalyticsService = Depends(get_analytics_service),
):
    """Products that will run out within the configured number of days."""
    try:
        report = service.get_report()
        if isinstance(report, NoData):
            return no_data_response(report)

        return {
            "status": report.status,
            "anchor_date": report.anchor_date.isoformat(),
            "max_days_left": settings.stockout_risk_days,
            "data": [item.model_dump(mode="json") for item in report.stockout_risk],
        }

    except Exception as e:
        return handle_error(e)


@router.get("/dead-stock")
async def list_dead_stock(
    service: AnalyticsService = Depends(get_analytics_service),
):
    """Low-grade products holding stock with almost no recent sales."""
    try:
        report = service.get_report()
        if isinstance(report, NoData):
            return no_data_response(report)

        return {
            "status": report.status,
            "anchor_date": report.anchor_date.isoformat(),
            "data": [g.model_dump(mode="json") for g in report.dead_stock],
        }

    except Exception as e:
        return handle_error(e)


@router.get("/windows")
async def get_windows(
    service: AnalyticsService = Depends(get_analytics_service),
):
    """Date windows every report is computed over."""
    try:
        windows = service.get_windows()
        return windows.model_dump(mode="json")

    except Exception as e:
        return handle_error(e)


@router.get("/dashboard")
async def get_dashboard(
    service: AnalyticsService = Depends(get_analytics_service),
):
    """
    Landing page summary.

    Headline sales for the anchor day, week, month and year to date,
    daily/weekly trend series and top-10 rankings.
    """
    try:
        return service.get_dashboard().model_dump(mode="json")

    except Exception as e:
        return handle_error(e)


@router.get("/purchase-order")
async def download_purchase_order(
    lead_time_days: Optional[int] = Query(None, ge=0, le=MAX_LEAD_TIME_DAYS, description="Override lead time"),
    safety_buffer_days: Optional[int] = Query(None, ge=0, le=MAX_SAFETY_BUFFER_DAYS, description="Override safety buffer"),
    service: AnalyticsService = Depends(get_analytics_service),
):
    """Reorder recommendations as an Excel purchase order."""
    try:
        report = service.get_report(lead_time_days, safety_buffer_days)
        if isinstance(report, NoData):
            return no_data_response(report)

        output = get_export_service().generate_purchase_order_excel(
            report.groups,
            report.lead_time_days,
            report.safety_buffer_days,
        )
        filename = f"purchase_order_{report.anchor_date.isoformat()}.xlsx"

        return StreamingResponse(
            output,
            media_type="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
            headers={"Content-Disposition": f'attachment; filename="{filename}"'},
        )

    except Exception as e:
        return handle_error(e)


# ===================
# ACTION ROUTES
# ===================

@router.post("/refresh")
async def refresh_analytics(
    service: AnalyticsService = Depends(get_analytics_service),
):
    """Drop cached results; the next read recomputes from storage."""
    try:
        service.refresh()
        logger.info("analytics_refresh_requested")
        return {"status": "ok"}

    except Exception as e:
        return handle_error(e)


@router.post("/alerts/stockout")
async def send_stockout_alert(
    service: AnalyticsService = Depends(get_analytics_service),
):
    """Push the current stock-out risk list to Telegram."""
    try:
        report = service.get_report()
        if isinstance(report, NoData):
            return no_data_response(report)

        sent = get_alert_service().send_stockout_risk_alert(report.stockout_risk)
        return {
            "status": "ok",
            "items": len(report.stockout_risk),
            "sent": sent,
        }

    except Exception as e:
        return handle_error(e)


# ===================
# DATA ROUTES
# ===================

@router.post("/products")
async def upload_products(
    data: ProductUploadRequest,
    source: DataSourceService = Depends(get_data_source),
):
    """Upsert product master rows (last duplicate wins)."""
    try:
        written = source.upload_products(data.products)
        return {"status": "ok", "products": written}

    except Exception as e:
        return handle_error(e)


@router.post("/sales")
async def upload_sales(
    data: SalesUploadRequest,
    source: DataSourceService = Depends(get_data_source),
):
    """Store sales facts and stock readings from one report."""
    try:
        result = source.upload_sales(data.facts, data.snapshots)
        return {"status": "ok", **result}

    except Exception as e:
        return handle_error(e)


@router.delete("/data")
async def reset_data(
    source: DataSourceService = Depends(get_data_source),
):
    """Delete all sales rows and zero stored stock."""
    try:
        source.reset_data()
        return {"status": "ok"}

    except Exception as e:
        return handle_error(e)
