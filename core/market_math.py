"""
Constant-product (Uniswap V2) swap quoting with the 0.3% fee.

quote_out:  amount_out = floor(a*997*rOut / (rIn*1000 + a*997))
quote_in:   amount_in  = floor(rIn*aOut*1000 / ((rOut - aOut)*997)) + 1

Rounding never favors the caller: quote_out(quote_in(y)) >= y for every valid
input, and quote_in(quote_out(x)) lands in [x, x + 1] whenever one output unit
is worth less than one input unit. All arithmetic is uint256-checked.

Reserves are a single snapshot; callers must re-read them right before use.
"""

from __future__ import annotations

from core import safe_math
from shared.constants import SWAP_FEE_DENOMINATOR, SWAP_FEE_NUMERATOR
from shared.errors import InsufficientInput, InsufficientLiquidity, InsufficientOutput
from shared.types import SwapQuote


def quote_out(amount_in: int, reserve_in: int, reserve_out: int) -> int:
    """Maximum output for ``amount_in`` of the input asset."""
    if amount_in == 0:
        raise InsufficientInput("quote_out: amount_in is zero")
    if reserve_in == 0 or reserve_out == 0:
        raise InsufficientLiquidity("quote_out: empty reserve")
    amount_in_with_fee = safe_math.mul(amount_in, SWAP_FEE_NUMERATOR)
    numerator = safe_math.mul(amount_in_with_fee, reserve_out)
    denominator = safe_math.add(
        safe_math.mul(reserve_in, SWAP_FEE_DENOMINATOR), amount_in_with_fee
    )
    return safe_math.div(numerator, denominator)


def quote_in(amount_out: int, reserve_in: int, reserve_out: int) -> int:
    """Minimum input required to receive ``amount_out`` of the output asset."""
    if amount_out == 0:
        raise InsufficientOutput("quote_in: amount_out is zero")
    if reserve_in == 0 or reserve_out == 0 or reserve_out <= amount_out:
        raise InsufficientLiquidity(
            f"quote_in: cannot take {amount_out} from reserve {reserve_out}"
        )
    numerator = safe_math.mul(
        safe_math.mul(reserve_in, amount_out), SWAP_FEE_DENOMINATOR
    )
    denominator = safe_math.mul(
        safe_math.sub(reserve_out, amount_out), SWAP_FEE_NUMERATOR
    )
    return safe_math.add(safe_math.div(numerator, denominator), 1)


def quote_exact_in(amount_in: int, reserve_in: int, reserve_out: int) -> SwapQuote:
    return SwapQuote(amount_in=amount_in, amount_out=quote_out(amount_in, reserve_in, reserve_out))


def quote_exact_out(amount_out: int, reserve_in: int, reserve_out: int) -> SwapQuote:
    return SwapQuote(amount_in=quote_in(amount_out, reserve_in, reserve_out), amount_out=amount_out)


# ---------------------------------------------------------------------------
# Pair token ordering
# ---------------------------------------------------------------------------


def sort_tokens(token_a: str, token_b: str) -> tuple[str, str]:
    """Order two token addresses the way a pair assigns token0/token1."""
    if token_a.lower() == token_b.lower():
        raise ValueError(f"identical token addresses: {token_a}")
    if token_a.lower() < token_b.lower():
        return token_a, token_b
    return token_b, token_a


def order_reserves(
    token_in: str, token0: str, reserve0: int, reserve1: int
) -> tuple[int, int]:
    """(reserve_in, reserve_out) for a swap whose input is ``token_in``."""
    if token_in.lower() == token0.lower():
        return reserve0, reserve1
    return reserve1, reserve0


def amounts_out_for(token_out: str, token0: str, amount_out: int) -> tuple[int, int]:
    """(amount0_out, amount1_out) for taking ``amount_out`` of ``token_out``."""
    if token_out.lower() == token0.lower():
        return amount_out, 0
    return 0, amount_out
