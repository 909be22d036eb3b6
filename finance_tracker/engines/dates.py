"""
Date and month helpers shared by the engines.

All datetimes are naive UTC. A month's end is its last day at
23:59:59.999999 so that inclusive comparisons cover the whole day.
"""

import calendar
import math
from datetime import date, datetime, time, timedelta

from finance_tracker.models.transaction import to_naive_utc


ONE_DAY = timedelta(days=1)

MONTH_ABBREVIATIONS = (
    "Jan", "Feb", "Mar", "Apr", "May", "Jun",
    "Jul", "Aug", "Sep", "Oct", "Nov", "Dec",
)


def days_in_month(year: int, month: int) -> int:
    return calendar.monthrange(year, month)[1]


def month_start(year: int, month: int) -> datetime:
    return datetime(year, month, 1)


def month_end(year: int, month: int) -> datetime:
    return datetime.combine(date(year, month, days_in_month(year, month)), time.max)


def start_of_day(day: date) -> datetime:
    return datetime.combine(day, time.min)


def end_of_day(day: date) -> datetime:
    return datetime.combine(day, time.max)


def parse_month(value: str) -> tuple[int, int]:
    """'2025-03' -> (2025, 3)."""
    year, month = value.split("-")
    return int(year), int(month)


def format_month(year: int, month: int) -> str:
    return f"{year:04d}-{month:02d}"


def shift_month(year: int, month: int, offset: int) -> tuple[int, int]:
    """Move `offset` months forward (negative: backward)."""
    index = year * 12 + (month - 1) + offset
    return index // 12, index % 12 + 1


def as_datetime(value: date) -> datetime:
    """Dates become midnight datetimes; datetimes are normalized to naive UTC."""
    if isinstance(value, datetime):
        return to_naive_utc(value)
    return start_of_day(value)


def round_half_up(value: float) -> int:
    """Round like a spreadsheet would: 2.5 -> 3, not banker's rounding."""
    return math.floor(value + 0.5)
