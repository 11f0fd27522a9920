"""
Human readable amounts and durations for report output.
"""

from decimal import Decimal
from typing import Union

from .pricing import SECONDS_PER_DAY, SECONDS_PER_HOUR

SECONDS_PER_MINUTE = 60


def formatted_number(amount: Union[Decimal, float, int]) -> str:
    """Format a dollar amount, e.g. ``1234.5`` -> ``$1,234.50``."""
    if amount < 0:
        return f"-${-amount:,.2f}"
    return f"${amount:,.2f}"


def pretty_duration(seconds: int) -> str:
    """Coarse duration: the largest whole unit plus the next one down.

    Units are truncated, never rounded: ``3661`` is ``1 hours and 1 minutes``.
    """
    seconds = int(seconds)
    if seconds >= SECONDS_PER_DAY:
        days, rest = divmod(seconds, SECONDS_PER_DAY)
        return f"{days} days and {rest // SECONDS_PER_HOUR} hours"
    if seconds >= SECONDS_PER_HOUR:
        hours, rest = divmod(seconds, SECONDS_PER_HOUR)
        return f"{hours} hours and {rest // SECONDS_PER_MINUTE} minutes"
    if seconds >= SECONDS_PER_MINUTE:
        minutes, rest = divmod(seconds, SECONDS_PER_MINUTE)
        return f"{minutes} minutes and {rest} seconds"
    return f"{seconds} seconds"


def format_timestamp(value) -> str:
    """UTC timestamp, or ``PRESENT`` for a record that is still open."""
    if value is None:
        return "PRESENT"
    return value.strftime("%Y-%m-%d %H:%M:%S UTC")
