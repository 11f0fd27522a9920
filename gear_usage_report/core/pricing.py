"""
Usage rates and cost estimation.

Costs are charged in whole billing units only; partial hours, days or
months are never prorated.
"""

from dataclasses import dataclass
from decimal import Decimal
from enum import Enum

SECONDS_PER_HOUR = 3600
SECONDS_PER_DAY = 86400
SECONDS_PER_MONTH = 2592000  # 30 days


class BillingDuration(Enum):
    """Unit a usage rate is charged per."""
    HOUR = "hour"
    DAY = "day"
    MONTH = "month"

    @property
    def seconds(self) -> int:
        """Length of one billing unit in seconds."""
        return {
            BillingDuration.HOUR: SECONDS_PER_HOUR,
            BillingDuration.DAY: SECONDS_PER_DAY,
            BillingDuration.MONTH: SECONDS_PER_MONTH,
        }[self]


@dataclass(frozen=True)
class UsageRate:
    """Price per billing unit for one plan and usage category."""
    usd: Decimal
    duration: BillingDuration

    def __post_init__(self):
        """Validate the price is not negative."""
        if self.usd < 0:
            raise ValueError("usd must be >= 0")


def billable_units(rate: UsageRate, seconds: int) -> int:
    """Whole billing units contained in ``seconds``."""
    return int(seconds) // rate.duration.seconds


def estimate_cost(rate: UsageRate, seconds: int, quantity: int = 1) -> Decimal:
    """Estimate the cost of ``seconds`` of usage at ``rate``.

    Args:
        rate: Usage rate to apply
        seconds: Elapsed seconds
        quantity: Multiplier for quantity based usage, e.g. storage GB

    Returns:
        Truncated unit count times the unit price, times ``quantity``
    """
    return Decimal(billable_units(rate, seconds)) * rate.usd * Decimal(quantity)
