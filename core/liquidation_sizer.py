"""
Liquidation sizing under the close-factor and collateral-availability caps.

Two ceilings on the repay amount, both in the oracle reference unit:

    close factor:  value(debt * close_factor / 10000)
    collateral:    value(collateral) * 10000 / liquidation_bonus

The smaller one binds (the collateral ceiling wins ties). The comparison is
cross-multiplied without any intermediate floor, the same way the lending pool
decides whether a liquidation takes all of the collateral. When collateral
binds, all of it is seized and the repay amount is whatever that collateral
covers after the bonus markup. Otherwise the full close-factor amount is repaid
and a bonus-adjusted fraction of the collateral is seized.

Pure function. Rounding is floor throughout so the liquidator is never
over-credited.

Usage:
    from core.liquidation_sizer import size_liquidation

    plan = size_liquidation(
        debt_amount=30_000 * 10**6, collateral_amount=10**8,
        debt_decimals=6, collateral_decimals=8,
        debt_price=5 * 10**14, collateral_price=15 * 10**18,
        close_factor_bps=5000, liquidation_bonus_bps=10500,
    )
"""

from __future__ import annotations

from core import safe_math
from core.units import convert_amount
from shared.constants import PERCENTAGE_FACTOR
from shared.errors import DivisionByZero
from shared.types import BindingConstraint, LiquidationPlan


def size_liquidation(
    debt_amount: int,
    collateral_amount: int,
    debt_decimals: int,
    collateral_decimals: int,
    debt_price: int,
    collateral_price: int,
    close_factor_bps: int,
    liquidation_bonus_bps: int,
) -> LiquidationPlan:
    """
    Compute the maximum (collateral seized, debt repaid) pair.

    Args:
        debt_amount: Outstanding debt (stable + variable), native debt scale.
        collateral_amount: Collateral receipt balance, native collateral scale.
        debt_decimals / collateral_decimals: Asset decimals.
        debt_price / collateral_price: Oracle prices, reference unit per token.
        close_factor_bps: Share of debt repayable in one call (5000 = 50%).
        liquidation_bonus_bps: Collateral markup (10500 = 5% bonus).

    Raises:
        DivisionByZero: zero liquidation bonus.
        Overflow: an intermediate product leaves uint256.
    """
    if liquidation_bonus_bps == 0:
        raise DivisionByZero("liquidation bonus is zero")

    repay_by_close_factor = safe_math.mul_div(
        debt_amount, close_factor_bps, PERCENTAGE_FACTOR
    )

    # Unfloored cross-multiplication: all of the collateral is covered by the
    # close-factor repay iff value(collateral) * 10000 <= value(repay) * bonus.
    collateral_side = safe_math.mul(
        safe_math.mul(safe_math.mul(collateral_amount, collateral_price), 10**debt_decimals),
        PERCENTAGE_FACTOR,
    )
    close_factor_side = safe_math.mul(
        safe_math.mul(safe_math.mul(repay_by_close_factor, debt_price), 10**collateral_decimals),
        liquidation_bonus_bps,
    )

    if collateral_side <= close_factor_side:
        repay = convert_amount(
            collateral_amount,
            collateral_decimals,
            collateral_price,
            debt_decimals,
            debt_price,
            numerator_bps=PERCENTAGE_FACTOR,
            denominator_bps=liquidation_bonus_bps,
        )
        return LiquidationPlan(
            max_collateral_amount=collateral_amount,
            max_repay_amount=repay,
            binding=BindingConstraint.COLLATERAL,
        )

    seize = convert_amount(
        repay_by_close_factor,
        debt_decimals,
        debt_price,
        collateral_decimals,
        collateral_price,
        numerator_bps=liquidation_bonus_bps,
        denominator_bps=PERCENTAGE_FACTOR,
    )
    return LiquidationPlan(
        max_collateral_amount=min(seize, collateral_amount),
        max_repay_amount=repay_by_close_factor,
        binding=BindingConstraint.CLOSE_FACTOR,
    )
