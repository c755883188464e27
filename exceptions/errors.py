"""
Custom exception classes for the application.

Every error carries a machine-readable code and an HTTP status so routes
can render it without knowing the concrete type.
"""

from typing import Optional, Any
from datetime import datetime, timezone


class AppError(Exception):
    """
    Base exception for all application errors.

    All custom exceptions inherit from this.

    Attributes:
        code: Error code (e.g., "INVALID_FACT")
        message: Human-readable message
        status_code: HTTP status code
        details: Additional context
    """

    def __init__(
        self,
        code: str,
        message: str,
        status_code: int = 500,
        details: Optional[dict[str, Any]] = None
    ):
        self.code = code
        self.message = message
        self.status_code = status_code
        self.details = details or {}
        self.timestamp = datetime.now(timezone.utc).isoformat()
        super().__init__(message)

    def to_dict(self) -> dict:
        """Convert to API response format."""
        return {
            "error": {
                "code": self.code,
                "message": self.message,
                "details": self.details,
                "timestamp": self.timestamp
            }
        }


class ValidationError(AppError):
    """Validation failed (422)."""

    def __init__(
        self,
        message: str,
        code: str = "VALIDATION_ERROR",
        details: Optional[dict] = None
    ):
        super().__init__(
            code=code,
            message=message,
            status_code=422,
            details=details
        )


class ExternalServiceError(AppError):
    """External service failure (503)."""

    def __init__(
        self,
        service: str,
        message: str,
        details: Optional[dict] = None
    ):
        super().__init__(
            code=f"{service.upper()}_ERROR",
            message=message,
            status_code=503,
            details={"service": service, **(details or {})}
        )


class DatabaseError(AppError):
    """Database operation failed (500)."""

    def __init__(
        self,
        operation: str,
        message: str,
        details: Optional[dict] = None
    ):
        super().__init__(
            code="DATABASE_ERROR",
            message=f"Database {operation} failed: {message}",
            status_code=500,
            details={"operation": operation, **(details or {})}
        )


# ===================
# ANALYTICS ERRORS
# ===================

class InvalidFactError(ValidationError):
    """A fact reached the engine in a state ingestion should have rejected."""

    def __init__(self, sku_id: str, field: str, value: Any):
        super().__init__(
            code="INVALID_FACT",
            message=f"Invalid {field} for SKU {sku_id}: {value}",
            details={"sku_id": sku_id, "field": field, "value": value}
        )


# ===================
# ALERT ERRORS
# ===================

class TelegramError(ExternalServiceError):
    """Telegram API error."""

    def __init__(self, message: str, details: Optional[dict] = None):
        super().__init__(
            service="telegram",
            message=message,
            details=details
        )
