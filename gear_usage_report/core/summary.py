"""
Plan level usage summaries.
"""

import logging
from collections import defaultdict
from dataclasses import dataclass, field
from decimal import Decimal
from typing import DefaultDict, Dict, List, Optional, Sequence

from gear_usage_report.storage.models import UsageType

from .aggregate import UsageAccumulator
from .elapsed import total_elapsed
from .pricing import SECONDS_PER_HOUR, estimate_cost

logger = logging.getLogger(__name__)


@dataclass
class PlanUsageSummary:
    """Usage totals for every matched user on one plan.

    ``plan_id`` is None for the summary across all users.
    """
    plan_id: Optional[str]
    user_count: int = 0
    gear_seconds: DefaultDict[str, int] = field(default_factory=lambda: defaultdict(int))
    cart_seconds: DefaultDict[str, int] = field(default_factory=lambda: defaultdict(int))
    addtl_fs_gb_seconds: int = 0

    @property
    def gear_hours(self) -> Dict[str, int]:
        return {size: seconds // SECONDS_PER_HOUR for size, seconds in self.gear_seconds.items()}

    @property
    def cart_hours(self) -> Dict[str, int]:
        return {cart: seconds // SECONDS_PER_HOUR for cart, seconds in self.cart_seconds.items()}

    @property
    def addtl_fs_gb_hours(self) -> int:
        return self.addtl_fs_gb_seconds // SECONDS_PER_HOUR

    @property
    def is_empty(self) -> bool:
        return not (
            any(self.gear_seconds.values())
            or any(self.cart_seconds.values())
            or self.addtl_fs_gb_seconds
        )

    def add(self, accumulator: UsageAccumulator) -> None:
        """Fold one user's accumulator into the totals."""
        self.user_count += 1
        for gear_size, table in accumulator.gears.items():
            self.gear_seconds[gear_size] += total_elapsed(table)
        for cart_name, table in accumulator.carts.items():
            self.cart_seconds[cart_name] += total_elapsed(table)
        self.addtl_fs_gb_seconds += accumulator.addtl_fs_gb_seconds

    def estimated_costs(self, billing) -> Dict[str, Decimal]:
        """Estimated cost per category, for categories the plan has a rate for.

        Keys are ``gear:<size>``, ``cart:<name>`` and ``addtl_fs_gb``.
        """
        costs = {}
        if self.plan_id is None:
            return costs

        for gear_size, seconds in self.gear_seconds.items():
            rate = billing.get_usage_rate(self.plan_id, UsageType.GEAR_USAGE, gear_size)
            if rate is not None:
                costs[f"gear:{gear_size}"] = estimate_cost(rate, seconds)
        for cart_name, seconds in self.cart_seconds.items():
            rate = billing.get_usage_rate(self.plan_id, UsageType.PREMIUM_CART, cart_name)
            if rate is not None:
                costs[f"cart:{cart_name}"] = estimate_cost(rate, seconds)
        rate = billing.get_usage_rate(self.plan_id, UsageType.ADDTL_FS_GB)
        if rate is not None and self.addtl_fs_gb_seconds:
            costs["addtl_fs_gb"] = estimate_cost(rate, self.addtl_fs_gb_seconds)
        return costs


def summarize_usage(
    accumulators: Dict[str, UsageAccumulator],
    plan_ids: Sequence[str] = ()
) -> List[PlanUsageSummary]:
    """Sum per-user accumulators into plan summaries.

    Args:
        accumulators: Per-user accumulators, after plan discounts
        plan_ids: Plan catalog; empty to summarise across all users

    Returns:
        One summary per catalog plan with at least one matched user, in
        catalog order, or a single all-users summary
    """
    if not plan_ids:
        summary = PlanUsageSummary(plan_id=None)
        for accumulator in accumulators.values():
            summary.add(accumulator)
        return [summary]

    summaries = {plan_id: PlanUsageSummary(plan_id=plan_id) for plan_id in plan_ids}
    for accumulator in accumulators.values():
        summary = summaries.get(accumulator.plan_id)
        if summary is None:
            logger.warning(
                "User %s is on plan %s which is not in the billing catalog, skipping",
                accumulator.user_id, accumulator.plan_id,
            )
            continue
        summary.add(accumulator)
    return [summary for summary in summaries.values() if summary.user_count]
