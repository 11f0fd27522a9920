"""
Billing plan lookups.

Wraps the billing plan catalog: plan listing and validation, usage rate
lookups and plan allowance discounts.
"""

import logging
from typing import Dict, List, Optional

from gear_usage_report.config.loader import BillingConfig, load_billing_config
from gear_usage_report.storage.models import UsageType

from .aggregate import UsageAccumulator
from .pricing import SECONDS_PER_HOUR, UsageRate

logger = logging.getLogger(__name__)


class BillingService:
    """Billing collaborator backed by a plan catalog.

    An empty catalog is valid: no plan filters are accepted, no rates
    resolve and the report aggregates across all users.
    """

    def __init__(self, config: Optional[BillingConfig] = None):
        self.config = config or BillingConfig()

    @classmethod
    def from_file(cls, path: Optional[str]) -> "BillingService":
        """Load the catalog from ``path``, or start empty when no path is set."""
        if not path:
            logger.debug("No billing config given, using an empty plan catalog")
            return cls()
        return cls(load_billing_config(path))

    def get_plans(self) -> List[str]:
        """Plan ids in the catalog, in declaration order."""
        return list(self.config.plans)

    def valid_plan(self, plan_id: str) -> bool:
        return plan_id in self.config.plans

    def get_usage_rate(
        self,
        plan_id: Optional[str],
        usage_type: UsageType,
        qualifier: Optional[str] = None
    ) -> Optional[UsageRate]:
        """Look up the rate for a usage category on a plan.

        Args:
            plan_id: Plan the user is on
            usage_type: Usage category
            qualifier: Gear size or cart name, unused for storage

        Returns:
            The rate, or None when the plan does not charge for it
        """
        plan = self.config.get_plan(plan_id) if plan_id else None
        if plan is None:
            return None

        if usage_type == UsageType.GEAR_USAGE:
            return plan.rates.gear_usage.get(qualifier)
        if usage_type == UsageType.PREMIUM_CART:
            return plan.rates.premium_cart.get(qualifier)
        if usage_type == UsageType.ADDTL_FS_GB:
            return plan.rates.addtl_fs_gb
        return None

    def apply_plan_discounts(self, accumulators: Dict[str, UsageAccumulator]) -> None:
        """Subtract each plan's included gear hours from every month bucket.

        Allowances are monthly, so a bucket never goes below zero and an
        unused allowance does not carry over to other months.
        """
        for accumulator in accumulators.values():
            plan = self.config.get_plan(accumulator.plan_id) if accumulator.plan_id else None
            if plan is None or not plan.included_gear_hours:
                continue

            for gear_size, table in accumulator.gears.items():
                included_hours = plan.included_gear_hours.get(gear_size, 0)
                if not included_hours:
                    continue
                included_seconds = included_hours * SECONDS_PER_HOUR
                for months in table.values():
                    for month, elapsed in months.items():
                        months[month] = max(0, elapsed - included_seconds)

            logger.debug(
                "Applied %s plan allowances for user %s",
                accumulator.plan_id, accumulator.user_id,
            )
