"""
Custom exceptions module.
"""

from exceptions.errors import (
    # Base exceptions
    AppError,
    ValidationError,
    ExternalServiceError,
    DatabaseError,

    # Analytics
    InvalidFactError,

    # Alerts
    TelegramError,
)

__all__ = [
    # Base
    "AppError",
    "ValidationError",
    "ExternalServiceError",
    "DatabaseError",

    # Analytics
    "InvalidFactError",

    # Alerts
    "TelegramError",
]
