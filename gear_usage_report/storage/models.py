"""
Data models for storage layer.

Defines the account and usage record entities read by the report.
"""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional


class UsageType(Enum):
    """Categories of billable usage."""
    GEAR_USAGE = "gear_usage"
    ADDTL_FS_GB = "addtl_fs_gb"
    PREMIUM_CART = "premium_cart"


@dataclass(frozen=True)
class UserAccount:
    """A platform user and the billing plan they are on."""
    id: str
    login: str
    plan_id: Optional[str] = None


@dataclass(frozen=True)
class UsageRecord:
    """Immutable record of one billable usage interval.

    ``end_time`` is None while the usage is still ongoing.
    """
    user_id: str
    usage_type: UsageType
    begin_time: datetime
    end_time: Optional[datetime] = None
    gear_id: Optional[str] = None
    app_name: Optional[str] = None
    gear_size: Optional[str] = None
    addtl_fs_gb: Optional[int] = None
    cart_name: Optional[str] = None

    @property
    def qualifier(self) -> Optional[str]:
        """The value a usage rate is looked up by, besides the type."""
        if self.usage_type == UsageType.GEAR_USAGE:
            return self.gear_size
        if self.usage_type == UsageType.PREMIUM_CART:
            return self.cart_name
        return None
