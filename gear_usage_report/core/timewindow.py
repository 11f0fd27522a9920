"""
Report time window resolution.

Turns the optional ``YYYY-MM-DD`` start and end arguments into a concrete
UTC window, clamping anything in the future to the current time.
"""

import logging
import re
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional

from .exceptions import UsageError

logger = logging.getLogger(__name__)

DATE_PATTERN = re.compile(r"^\d{4}-\d{1,2}-\d{1,2}$")


@dataclass(frozen=True)
class TimeWindow:
    """Inclusive query window in UTC."""
    start: datetime
    end: datetime

    def __post_init__(self):
        """Validate the window is ordered."""
        if self.start > self.end:
            raise ValueError("start must not be after end")

    def is_month_aligned(self) -> bool:
        """True when both bounds sit on the first instant of a month."""
        return _is_month_start(self.start) and _is_month_start(self.end)


def _is_month_start(value: datetime) -> bool:
    return (
        value.day == 1
        and value.hour == 0
        and value.minute == 0
        and value.second == 0
        and value.microsecond == 0
    )


def month_start(value: datetime) -> datetime:
    """First instant of the UTC month containing ``value``."""
    return datetime(value.year, value.month, 1, tzinfo=timezone.utc)


def parse_date(value: str, label: str = "date") -> datetime:
    """Parse a strict ``YYYY-MM-DD`` string to midnight UTC.

    Raises:
        UsageError: If the string does not match or is not a real date
    """
    if not DATE_PATTERN.match(value):
        raise UsageError(f"Invalid {label} '{value}': expected YYYY-MM-DD")
    try:
        parsed = datetime.strptime(value, "%Y-%m-%d")
    except ValueError:
        raise UsageError(f"Invalid {label} '{value}': not a valid calendar date")
    return parsed.replace(tzinfo=timezone.utc)


def _clamp_to_now(value: datetime, now: datetime, label: str) -> datetime:
    if value > now:
        logger.warning(
            "%s %s is in the future, using current time %s instead",
            label.capitalize(), value.strftime("%Y-%m-%d"), now.strftime("%Y-%m-%d %H:%M:%S"),
        )
        return now
    return value


def resolve_time_window(
    start: Optional[str],
    end: Optional[str],
    now: datetime
) -> TimeWindow:
    """Resolve the report window from optional date strings.

    Args:
        start: Start date string, defaults to the start of the current month
        end: End date string, defaults to ``now``
        now: Current UTC time

    Returns:
        Resolved TimeWindow

    Raises:
        UsageError: On a malformed date or a start date after the end date
    """
    start_time = parse_date(start, "start date") if start else month_start(now)
    end_time = parse_date(end, "end date") if end else now

    start_time = _clamp_to_now(start_time, now, "start date")
    end_time = _clamp_to_now(end_time, now, "end date")

    if start_time > end_time:
        raise UsageError(
            f"Start date {start_time.strftime('%Y-%m-%d')} "
            f"is after end date {end_time.strftime('%Y-%m-%d')}"
        )

    logger.debug("Resolved report window %s to %s", start_time, end_time)
    return TimeWindow(start=start_time, end=end_time)
