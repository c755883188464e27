"""
Shared helpers.
"""

from utils.calendar_utils import is_red_day, KOREAN_HOLIDAYS

__all__ = [
    "is_red_day",
    "KOREAN_HOLIDAYS",
]
