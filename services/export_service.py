"""
Export service — Generate purchase order Excel files.

Turns the reorder recommendations of an analytics run into a workbook
the buying team can send to suppliers.
"""

from datetime import date
from io import BytesIO
from typing import Optional

from openpyxl import Workbook
from openpyxl.styles import Alignment, Border, Font, PatternFill, Side
import structlog

from models.analytics import ProductGroup

logger = structlog.get_logger(__name__)

HEADERS = ["상품명", "옵션", "바코드", "쿠팡재고", "본사재고", "입고예정", "7일판매", "재고일수", "추천발주"]
COLUMN_WIDTHS = [36, 18, 18, 10, 10, 10, 10, 10, 10]
HEADER_ROW = 5
URGENT_FILL = PatternFill(start_color="FDE2E1", end_color="FDE2E1", fill_type="solid")
HEADER_FILL = PatternFill(start_color="D9E1F2", end_color="D9E1F2", fill_type="solid")


class ExportService:
    """Service for generating purchase order export files."""

    def generate_purchase_order_excel(
        self,
        groups: list[ProductGroup],
        lead_time_days: int,
        safety_buffer_days: int,
        order_date: Optional[date] = None,
    ) -> BytesIO:
        """
        Generate Excel file for a purchase order.

        One row per SKU with a positive recommendation, SKUs listed under
        their product in display order. Urgent products are highlighted.

        Args:
            groups: Product groups in display order
            lead_time_days: Lead time used for the recommendations
            safety_buffer_days: Safety buffer used for the recommendations
            order_date: Order date (defaults to today)

        Returns:
            BytesIO containing the Excel file
        """
        if order_date is None:
            order_date = date.today()

        logger.info(
            "generating_purchase_order",
            group_count=len(groups),
            lead_time_days=lead_time_days,
            safety_buffer_days=safety_buffer_days,
        )

        wb = Workbook()
        ws = wb.active
        ws.title = "발주서"

        bold_font = Font(bold=True)
        header_font = Font(bold=True, size=14)
        thin_border = Border(bottom=Side(style="thin", color="000000"))

        for index, width in enumerate(COLUMN_WIDTHS):
            ws.column_dimensions[chr(ord("A") + index)].width = width

        # Title block
        ws["A1"] = "발주 추천서"
        ws["A1"].font = header_font
        ws["A2"] = "발주일:"
        ws["B2"] = order_date.isoformat()
        ws["A3"] = "리드타임 / 안전재고일:"
        ws["B3"] = f"{lead_time_days}일 / {safety_buffer_days}일"

        for col, title in enumerate(HEADERS, start=1):
            cell = ws.cell(row=HEADER_ROW, column=col, value=title)
            cell.font = bold_font
            cell.fill = HEADER_FILL
            cell.border = thin_border
            cell.alignment = Alignment(horizontal="center")

        row = HEADER_ROW + 1
        total_units = 0
        sku_count = 0

        for group in groups:
            children = [child for child in group.children if child.recommendation > 0]
            if not children:
                continue

            for child in children:
                values = [
                    group.product_name,
                    child.option or "",
                    child.sku_id,
                    child.coupang_stock,
                    child.hq_stock,
                    child.incoming_stock,
                    child.sales_7d,
                    child.days_of_inventory,
                    child.recommendation,
                ]
                for col, value in enumerate(values, start=1):
                    cell = ws.cell(row=row, column=col, value=value)
                    if group.is_urgent:
                        cell.fill = URGENT_FILL
                ws.cell(row=row, column=9).number_format = "#,##0"

                total_units += child.recommendation
                sku_count += 1
                row += 1

        # Empty row
        row += 1

        ws.cell(row=row, column=1, value="합계").font = bold_font
        ws.cell(row=row, column=3, value=f"{sku_count} SKU").font = bold_font
        total_cell = ws.cell(row=row, column=9, value=total_units)
        total_cell.font = bold_font
        total_cell.number_format = "#,##0"
        for col in range(1, len(HEADERS) + 1):
            ws.cell(row=row, column=col).border = thin_border

        ws.freeze_panes = ws.cell(row=HEADER_ROW + 1, column=1)

        logger.info(
            "purchase_order_generated",
            sku_count=sku_count,
            total_units=total_units,
        )

        output = BytesIO()
        wb.save(output)
        output.seek(0)

        return output


# Singleton instance
_export_service: Optional[ExportService] = None


def get_export_service() -> ExportService:
    """Get or create ExportService instance."""
    global _export_service
    if _export_service is None:
        _export_service = ExportService()
    return _export_service
