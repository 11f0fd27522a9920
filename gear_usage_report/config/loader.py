"""
Configuration management and loading.

Handles the billing plan catalog: per-plan usage rates and included
allowances.
"""

from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Dict, Optional

import yaml

from gear_usage_report.core.pricing import BillingDuration, UsageRate


@dataclass(frozen=True)
class PlanRates:
    """Usage rates for one billing plan."""
    gear_usage: Dict[str, UsageRate] = field(default_factory=dict)
    addtl_fs_gb: Optional[UsageRate] = None
    premium_cart: Dict[str, UsageRate] = field(default_factory=dict)


@dataclass(frozen=True)
class PlanConfig:
    """A billing plan in the catalog."""
    plan_id: str
    rates: PlanRates
    included_gear_hours: Dict[str, int] = field(default_factory=dict)

    def __post_init__(self):
        """Validate included allowances are not negative."""
        for gear_size, hours in self.included_gear_hours.items():
            if hours < 0:
                raise ValueError(f"included_gear_hours for '{gear_size}' must be >= 0")


@dataclass(frozen=True)
class BillingConfig:
    """Complete billing plan catalog."""
    plans: Dict[str, PlanConfig] = field(default_factory=dict)

    def get_plan(self, plan_id: str) -> Optional[PlanConfig]:
        """Get a plan by id, or None when it is not in the catalog."""
        return self.plans.get(plan_id)


def load_billing_config(path: str) -> BillingConfig:
    """Load and validate the billing plan catalog from a YAML file.

    Strict validation ensures no silent misconfigurations that would
    produce wrong cost estimates.

    Args:
        path: Path to YAML configuration file

    Returns:
        Validated BillingConfig object

    Raises:
        FileNotFoundError: If config file doesn't exist
        yaml.YAMLError: If YAML is invalid
        ValueError: If configuration is invalid
    """
    config_path = Path(path)
    if not config_path.exists():
        raise FileNotFoundError(f"Billing config file not found: {path}")

    with open(config_path, 'r', encoding='utf-8') as f:
        try:
            raw_config = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise yaml.YAMLError(f"Invalid YAML in config file {path}: {e}")

    if not raw_config:
        raise ValueError("Configuration file is empty")
    if not isinstance(raw_config, dict):
        raise ValueError("Configuration must be a dictionary")

    allowed_top_keys = {'plans'}
    unknown_keys = set(raw_config.keys()) - allowed_top_keys
    if unknown_keys:
        raise ValueError(f"Unknown configuration keys: {unknown_keys}")

    plans_data = raw_config.get('plans') or {}
    if not isinstance(plans_data, dict):
        raise ValueError("'plans' must be a dictionary")

    plans = {}
    for plan_id, plan_data in plans_data.items():
        plan_id = str(plan_id)
        if plan_data is None:
            plan_data = {}
        if not isinstance(plan_data, dict):
            raise ValueError(f"Plan '{plan_id}' must be a dictionary")
        plans[plan_id] = _parse_plan_config(plan_id, plan_data)

    return BillingConfig(plans=plans)


def _parse_plan_config(plan_id: str, data: Dict) -> PlanConfig:
    """Parse and validate one plan entry.

    Args:
        plan_id: Plan identifier
        data: Plan configuration data

    Returns:
        Validated PlanConfig

    Raises:
        ValueError: If configuration is invalid
    """
    path = f"plans.{plan_id}"
    allowed_keys = {'rates', 'included_gear_hours'}
    unknown_keys = set(data.keys()) - allowed_keys
    if unknown_keys:
        raise ValueError(f"Unknown keys in {path}: {unknown_keys}")

    rates = _parse_rates(data.get('rates') or {}, f"{path}.rates")

    included_data = data.get('included_gear_hours') or {}
    if not isinstance(included_data, dict):
        raise ValueError(f"'included_gear_hours' in {path} must be a dictionary")

    included = {}
    for gear_size, hours in included_data.items():
        if isinstance(hours, bool) or not isinstance(hours, int) or hours < 0:
            raise ValueError(
                f"'included_gear_hours.{gear_size}' in {path} must be a non-negative integer"
            )
        included[str(gear_size)] = hours

    return PlanConfig(plan_id=plan_id, rates=rates, included_gear_hours=included)


def _parse_rates(data: Dict, path: str) -> PlanRates:
    if not isinstance(data, dict):
        raise ValueError(f"'{path}' must be a dictionary")

    allowed_keys = {'gear_usage', 'addtl_fs_gb', 'premium_cart'}
    unknown_keys = set(data.keys()) - allowed_keys
    if unknown_keys:
        raise ValueError(f"Unknown keys in {path}: {unknown_keys}")

    gear_usage = _parse_rate_map(data.get('gear_usage') or {}, f"{path}.gear_usage")
    premium_cart = _parse_rate_map(data.get('premium_cart') or {}, f"{path}.premium_cart")

    addtl_fs_gb = None
    if data.get('addtl_fs_gb') is not None:
        addtl_fs_gb = _parse_rate(data['addtl_fs_gb'], f"{path}.addtl_fs_gb")

    return PlanRates(
        gear_usage=gear_usage,
        addtl_fs_gb=addtl_fs_gb,
        premium_cart=premium_cart
    )


def _parse_rate_map(data: Dict, path: str) -> Dict[str, UsageRate]:
    if not isinstance(data, dict):
        raise ValueError(f"'{path}' must be a dictionary")
    return {
        str(name): _parse_rate(rate_data, f"{path}.{name}")
        for name, rate_data in data.items()
    }


def _parse_rate(data: Dict, path: str) -> UsageRate:
    """Parse and validate a single usage rate.

    Args:
        data: Rate data with 'usd' and 'duration'
        path: Path for error messages

    Returns:
        Validated UsageRate

    Raises:
        ValueError: If the rate is invalid
    """
    if not isinstance(data, dict):
        raise ValueError(f"'{path}' must be a dictionary")

    allowed_keys = {'usd', 'duration'}
    unknown_keys = set(data.keys()) - allowed_keys
    if unknown_keys:
        raise ValueError(f"Unknown keys in {path}: {unknown_keys}")

    if 'usd' not in data:
        raise ValueError(f"Missing required 'usd' in {path}")
    usd = data['usd']
    if isinstance(usd, bool) or not isinstance(usd, (int, float, str)):
        raise ValueError(f"'usd' in {path} must be a number")
    try:
        # str() keeps 0.1 from turning into its binary float expansion
        amount = Decimal(str(usd))
    except InvalidOperation:
        raise ValueError(f"'usd' in {path} must be a number")
    if amount < 0:
        raise ValueError(f"'usd' in {path} must be >= 0")

    if 'duration' not in data:
        raise ValueError(f"Missing required 'duration' in {path}")
    duration_str = data['duration']
    if not isinstance(duration_str, str):
        raise ValueError(f"'duration' in {path} must be a string")

    try:
        duration = BillingDuration(duration_str.lower())
    except ValueError:
        valid_durations = [duration.value for duration in BillingDuration]
        raise ValueError(f"'duration' in {path} must be one of: {valid_durations}")

    return UsageRate(usd=amount, duration=duration)
