"""
Scale conversions between native token amounts and the oracle reference unit.

Native amounts carry 10**decimals of their own asset; reference values carry the
oracle's price unit. Every crossing between the two goes through this module so
the decimal scale is divided out exactly once and rounding is always floor.
"""

from __future__ import annotations

from decimal import Decimal

from core import safe_math
from shared.constants import PERCENTAGE_FACTOR


def to_reference(amount: int, decimals: int, price: int) -> int:
    """Value of ``amount`` (native) in the reference unit, floored."""
    return safe_math.mul_div(amount, price, 10**decimals)


def from_reference(value: int, decimals: int, price: int) -> int:
    """Native amount worth ``value`` reference units, floored."""
    return safe_math.mul_div(value, 10**decimals, price)


def convert_amount(
    amount: int,
    from_decimals: int,
    from_price: int,
    to_decimals: int,
    to_price: int,
    numerator_bps: int = PERCENTAGE_FACTOR,
    denominator_bps: int = PERCENTAGE_FACTOR,
) -> int:
    """
    Native amount of the target asset worth ``amount`` of the source asset,
    scaled by ``numerator_bps / denominator_bps``.

    One fused floor division: each decimal scale and each bps factor is divided
    out exactly once, matching the lending pool's own collateral arithmetic.
    """
    numerator = safe_math.mul(
        safe_math.mul(safe_math.mul(amount, from_price), 10**to_decimals), numerator_bps
    )
    denominator = safe_math.mul(
        safe_math.mul(to_price, 10**from_decimals), denominator_bps
    )
    return safe_math.div(numerator, denominator)


def format_units(amount: int, decimals: int) -> Decimal:
    """Human-readable token amount, for logs only."""
    return Decimal(amount).scaleb(-decimals)
