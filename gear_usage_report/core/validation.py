"""
Filter validation for report queries.
"""

import re

from .exceptions import InvalidGearIdError, InvalidPlanError

GEAR_ID_PATTERN = re.compile(r"^[0-9a-f]{24}([0-9a-f]{8})?$")


def validate_gear_id(gear_id: str) -> str:
    """Check a gear id is a 24 or 32 character lowercase hex string.

    Raises:
        InvalidGearIdError: If the id is malformed
    """
    if not GEAR_ID_PATTERN.match(gear_id):
        raise InvalidGearIdError(f"Invalid gear id '{gear_id}'")
    return gear_id


def validate_plan_id(plan_id: str, billing) -> str:
    """Check a plan id exists in the billing catalog.

    Raises:
        InvalidPlanError: If the plan is unknown
    """
    if not billing.valid_plan(plan_id):
        plans = billing.get_plans()
        if plans:
            message = f"Invalid plan '{plan_id}', valid plans are: {', '.join(plans)}"
        else:
            message = f"Invalid plan '{plan_id}', no billing plans are configured"
        raise InvalidPlanError(message)
    return plan_id
