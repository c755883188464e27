"""
Alert service — pushes the stock-out risk list to Telegram.
"""

from typing import Optional

import structlog

from integrations.telegram import send_message
from models.analytics import StockRiskItem

logger = structlog.get_logger(__name__)

MAX_ALERT_ITEMS = 30

# Characters that break Telegram's legacy Markdown parser
MARKDOWN_SPECIAL = ("_", "*", "`", "[")


def escape_markdown(text: str) -> str:
    for char in MARKDOWN_SPECIAL:
        text = text.replace(char, f"\\{char}")
    return text


def format_risk_alert(items: list[StockRiskItem]) -> str:
    """
    Format stock-out risk items as a Telegram Markdown message.

    Example:
        🚨 *품절 임박 상품 2건*

        1. *봄 니트*
           재고 4 · 일평균 2.0 · 2.0일 남음
    """
    lines = [f"🚨 *품절 임박 상품 {len(items)}건*", ""]

    for index, item in enumerate(items[:MAX_ALERT_ITEMS], start=1):
        lines.append(f"{index}. *{escape_markdown(item.product_name)}*")
        lines.append(
            f"   재고 {item.current_stock} · 일평균 {item.avg_daily_sales:.1f} · "
            f"{item.days_left:.1f}일 남음"
        )

    hidden = len(items) - MAX_ALERT_ITEMS
    if hidden > 0:
        lines.append("")
        lines.append(f"_외 {hidden}건_")

    return "\n".join(lines)


class AlertService:
    """Sends analytics alerts."""

    def send_stockout_risk_alert(self, items: list[StockRiskItem]) -> bool:
        """
        Send the stock-out risk list.

        Args:
            items: Output of the stock-out risk screener

        Returns:
            True if a message was sent, False if there was nothing to send
            or Telegram is not configured

        Raises:
            TelegramError: If delivery fails
        """
        if not items:
            logger.info("stockout_alert_skipped_empty")
            return False

        sent = send_message(format_risk_alert(items))
        logger.info("stockout_alert_processed", items=len(items), sent=sent)
        return sent


# Singleton instance
_alert_service: Optional[AlertService] = None


def get_alert_service() -> AlertService:
    """Get or create AlertService instance."""
    global _alert_service
    if _alert_service is None:
        _alert_service = AlertService()
    return _alert_service
