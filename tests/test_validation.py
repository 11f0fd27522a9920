"""
Unit tests for gear and plan filter validation.
"""

import pytest

from gear_usage_report.config.loader import BillingConfig, PlanConfig, PlanRates
from gear_usage_report.core.billing import BillingService
from gear_usage_report.core.exceptions import (
    EXIT_CODE_INVALID_GEAR,
    EXIT_CODE_INVALID_PLAN,
    InvalidGearIdError,
    InvalidPlanError,
)
from gear_usage_report.core.validation import validate_gear_id, validate_plan_id


class TestGearId:
    """Test gear id format validation."""

    @pytest.mark.parametrize("gear_id", [
        "5237a1d0e0b8cd6a2a000001",
        "0123456789abcdef0123456789abcdef",
    ])
    def test_valid_gear_ids(self, gear_id):
        assert validate_gear_id(gear_id) == gear_id

    @pytest.mark.parametrize("gear_id", [
        "abc",
        "5237A1D0E0B8CD6A2A000001",
        "5237a1d0e0b8cd6a2a00000g",
        "5237a1d0e0b8cd6a2a0000011",
    ])
    def test_invalid_gear_ids(self, gear_id):
        with pytest.raises(InvalidGearIdError) as exc_info:
            validate_gear_id(gear_id)
        assert exc_info.value.exit_code == EXIT_CODE_INVALID_GEAR


class TestPlanId:
    """Test plan id validation against the catalog."""

    def setup_method(self):
        self.billing = BillingService(BillingConfig(plans={
            "free": PlanConfig(plan_id="free", rates=PlanRates()),
            "silver": PlanConfig(plan_id="silver", rates=PlanRates()),
        }))

    def test_known_plan(self):
        assert validate_plan_id("silver", self.billing) == "silver"

    def test_unknown_plan(self):
        with pytest.raises(InvalidPlanError, match="valid plans are: free, silver") as exc_info:
            validate_plan_id("gold", self.billing)
        assert exc_info.value.exit_code == EXIT_CODE_INVALID_PLAN

    def test_empty_catalog(self):
        with pytest.raises(InvalidPlanError, match="no billing plans are configured"):
            validate_plan_id("silver", BillingService())
