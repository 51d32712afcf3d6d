"""
Gas pricing arithmetic.

Pure functions so the clamping and escalation rules can be checked without a
node. All prices are integers in wei.
"""

from decimal import Decimal, ROUND_FLOOR

from .models import GasPolicy


def effective_multiplier(policy: GasPolicy, retry_count: int = 0) -> Decimal:
    """Base multiplier, escalated by ``retry_increase ** retry_count`` on retries."""
    if retry_count < 0:
        raise ValueError("retry_count must be non-negative")

    multiplier = policy.multiplier
    if retry_count > 0:
        multiplier *= policy.retry_increase ** retry_count
    return multiplier


def compute_gas_price(network_price_wei: int, policy: GasPolicy, retry_count: int = 0) -> int:
    """
    Apply the multiplier to the network price and clamp into the policy band.

    The product is truncated, never rounded up.
    """
    multiplier = effective_multiplier(policy, retry_count)
    adjusted = int((Decimal(network_price_wei) * multiplier).to_integral_value(rounding=ROUND_FLOOR))
    return clamp_gas_price(adjusted, policy)


def clamp_gas_price(price_wei: int, policy: GasPolicy) -> int:
    if price_wei < policy.min_wei:
        return policy.min_wei
    if price_wei > policy.max_wei:
        return policy.max_wei
    return price_wei


def apply_gas_buffer(estimate: int, buffer_percent: int = 20) -> int:
    """Add a safety buffer to a gas estimate, rounding up."""
    return -(-estimate * (100 + buffer_percent) // 100)
