"""
Elapsed time accounting by calendar month.
"""

from datetime import datetime, timezone
from typing import Dict, Optional

# year -> month -> elapsed seconds
MonthTable = Dict[int, Dict[int, int]]


def _month_bounds(year: int, month: int):
    start = datetime(year, month, 1, tzinfo=timezone.utc)
    if month == 12:
        end = datetime(year + 1, 1, 1, tzinfo=timezone.utc)
    else:
        end = datetime(year, month + 1, 1, tzinfo=timezone.utc)
    return start, end


def add_elapsed_time(
    table: MonthTable,
    begin_time: datetime,
    end_time: Optional[datetime],
    current_time: datetime
) -> None:
    """Add the seconds between ``begin_time`` and ``end_time`` to ``table``.

    Time is split on calendar month boundaries. An open interval
    (``end_time`` of None) and any part of an interval past
    ``current_time`` are capped at ``current_time``.

    Every month of every year the interval touches gets a slot, even when
    nothing is added to it.
    """
    if end_time is None:
        end_time = current_time

    for year in range(begin_time.year, end_time.year + 1):
        months = table.setdefault(year, {})
        for month in range(1, 13):
            months.setdefault(month, 0)

            start_of_month, end_of_month = _month_bounds(year, month)
            if begin_time >= end_of_month or end_time <= start_of_month:
                continue

            overlap_end = min(end_time, end_of_month, current_time)
            overlap_start = max(begin_time, start_of_month)
            elapsed = int((overlap_end - overlap_start).total_seconds())
            if elapsed > 0:
                months[month] += elapsed


def total_elapsed(table: MonthTable) -> int:
    """Sum every bucket of a month table."""
    return sum(sum(months.values()) for months in table.values())
