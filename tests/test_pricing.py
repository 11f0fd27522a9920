"""
Unit tests for cost estimation.

Tests whole-unit truncation for each billing duration.
"""

from decimal import Decimal

import pytest

from gear_usage_report.core.pricing import (
    BillingDuration,
    UsageRate,
    billable_units,
    estimate_cost,
)


class TestBillingDuration:
    """Test billing unit lengths."""

    def test_unit_seconds(self):
        assert BillingDuration.HOUR.seconds == 3600
        assert BillingDuration.DAY.seconds == 86400
        assert BillingDuration.MONTH.seconds == 2592000

    def test_lookup_by_value(self):
        assert BillingDuration("day") == BillingDuration.DAY


class TestUsageRate:
    """Test UsageRate validation."""

    def test_negative_rate_rejected(self):
        with pytest.raises(ValueError, match="usd must be >= 0"):
            UsageRate(usd=Decimal("-1"), duration=BillingDuration.HOUR)


class TestEstimateCost:
    """Test cost accuracy and truncation."""

    def test_exact_hours(self):
        rate = UsageRate(usd=Decimal("0.05"), duration=BillingDuration.HOUR)
        assert estimate_cost(rate, 10 * 3600) == Decimal("0.50")

    def test_partial_hour_truncated(self):
        """Verify partial units are not charged."""
        rate = UsageRate(usd=Decimal("0.05"), duration=BillingDuration.HOUR)
        assert billable_units(rate, 3599) == 0
        assert estimate_cost(rate, 2 * 3600 + 3599) == Decimal("0.10")

    def test_daily_rate(self):
        rate = UsageRate(usd=Decimal("1.20"), duration=BillingDuration.DAY)
        assert estimate_cost(rate, 3 * 86400 + 80000) == Decimal("3.60")

    def test_monthly_rate(self):
        rate = UsageRate(usd=Decimal("10"), duration=BillingDuration.MONTH)
        assert estimate_cost(rate, 2592000 * 2 - 1) == Decimal("10")

    def test_quantity_multiplier(self):
        rate = UsageRate(usd=Decimal("0.01"), duration=BillingDuration.HOUR)
        assert estimate_cost(rate, 5 * 3600, quantity=3) == Decimal("0.15")

    def test_zero_seconds(self):
        rate = UsageRate(usd=Decimal("0.05"), duration=BillingDuration.HOUR)
        assert estimate_cost(rate, 0) == Decimal("0")
