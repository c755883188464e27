"""
Business calendar helpers.

Red days are weekends and Korean public holidays (substitute holidays
included). Sales on red days behave differently, so trend charts flag them.
"""

from datetime import date

KOREAN_HOLIDAYS: frozenset[date] = frozenset(
    date.fromisoformat(day)
    for day in (
        # 2024
        "2024-01-01",
        "2024-02-09", "2024-02-10", "2024-02-11", "2024-02-12",  # Lunar New Year
        "2024-03-01",
        "2024-04-10",  # Election Day
        "2024-05-05", "2024-05-06",
        "2024-05-15",
        "2024-06-06",
        "2024-08-15",
        "2024-09-16", "2024-09-17", "2024-09-18",  # Chuseok
        "2024-10-03",
        "2024-10-09",
        "2024-12-25",
        # 2025
        "2025-01-01",
        "2025-01-28", "2025-01-29", "2025-01-30",  # Lunar New Year
        "2025-03-01", "2025-03-03",
        "2025-05-05", "2025-05-06",
        "2025-06-06",
        "2025-08-15",
        "2025-10-03",
        "2025-10-05", "2025-10-06", "2025-10-07", "2025-10-08",  # Chuseok
        "2025-10-09",
        "2025-12-25",
        # 2026
        "2026-01-01",
        "2026-02-16", "2026-02-17", "2026-02-18",  # Lunar New Year
        "2026-03-01", "2026-03-02",
        "2026-05-05",
        "2026-05-24", "2026-05-25",
        "2026-06-06",
        "2026-08-15", "2026-08-17",
        "2026-09-24", "2026-09-25", "2026-09-26",  # Chuseok
        "2026-10-03", "2026-10-05",
        "2026-10-09",
        "2026-12-25",
    )
)


def is_red_day(day: date) -> bool:
    """True for Saturdays, Sundays and public holidays."""
    return day.weekday() >= 5 or day in KOREAN_HOLIDAYS
