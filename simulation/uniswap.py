"""
Uniswap V2 pair and factory models.

The pair sends outputs optimistically, invokes the recipient's on_swap_callback
when a payload is supplied, then enforces the fee-adjusted constant-product
invariant against its actual balances. Any shortfall reverts with
"UniswapV2: K", which is what makes a flash swap safe for the pool.
"""

from __future__ import annotations

from core.market_math import sort_tokens
from shared.constants import SWAP_FEE_DENOMINATOR, SWAP_FEE_NUMERATOR, ZERO_ADDRESS
from shared.errors import Revert
from shared.interfaces import Factory, Pair
from simulation.ledger import Ledger

_FEE = SWAP_FEE_DENOMINATOR - SWAP_FEE_NUMERATOR  # 3 per mille


class UniswapV2Pair(Pair):
    def __init__(self, ledger: Ledger, address: str, token0: str, token1: str) -> None:
        self.address = address
        self.token0 = token0
        self.token1 = token1
        self._ledger = ledger
        self._state = ledger.storage(address)
        self._state.update({"reserve0": 0, "reserve1": 0, "timestamp": 0, "unlocked": True})
        ledger.register(address, self)

    def get_reserves(self) -> tuple[int, int, int]:
        return self._state["reserve0"], self._state["reserve1"], self._state["timestamp"]

    def sync(self) -> None:
        """Set reserves to the pair's current token balances."""
        self._update(self._balance(self.token0), self._balance(self.token1))

    def swap(
        self, sender: str, amount0_out: int, amount1_out: int, to: str, payload: bytes
    ) -> None:
        if not self._state["unlocked"]:
            raise Revert("UniswapV2: LOCKED")
        self._state["unlocked"] = False
        try:
            self._swap(sender, amount0_out, amount1_out, to, payload)
        finally:
            self._state["unlocked"] = True

    def _swap(
        self, sender: str, amount0_out: int, amount1_out: int, to: str, payload: bytes
    ) -> None:
        if amount0_out == 0 and amount1_out == 0:
            raise Revert("UniswapV2: INSUFFICIENT_OUTPUT_AMOUNT")
        reserve0, reserve1, _ = self.get_reserves()
        if amount0_out >= reserve0 or amount1_out >= reserve1:
            raise Revert("UniswapV2: INSUFFICIENT_LIQUIDITY")
        if to.lower() in (self.token0.lower(), self.token1.lower()):
            raise Revert("UniswapV2: INVALID_TO")

        if amount0_out > 0:
            self._token(self.token0).transfer(self.address, to, amount0_out)
        if amount1_out > 0:
            self._token(self.token1).transfer(self.address, to, amount1_out)
        if payload:
            self._ledger.contract_at(to).on_swap_callback(
                self.address, sender, amount0_out, amount1_out, payload
            )

        balance0 = self._balance(self.token0)
        balance1 = self._balance(self.token1)
        amount0_in = balance0 - (reserve0 - amount0_out) if balance0 > reserve0 - amount0_out else 0
        amount1_in = balance1 - (reserve1 - amount1_out) if balance1 > reserve1 - amount1_out else 0
        if amount0_in == 0 and amount1_in == 0:
            raise Revert("UniswapV2: INSUFFICIENT_INPUT_AMOUNT")

        balance0_adjusted = balance0 * SWAP_FEE_DENOMINATOR - amount0_in * _FEE
        balance1_adjusted = balance1 * SWAP_FEE_DENOMINATOR - amount1_in * _FEE
        if balance0_adjusted * balance1_adjusted < reserve0 * reserve1 * SWAP_FEE_DENOMINATOR**2:
            raise Revert("UniswapV2: K")
        self._update(balance0, balance1)

    def _update(self, balance0: int, balance1: int) -> None:
        self._state["reserve0"] = balance0
        self._state["reserve1"] = balance1
        self._state["timestamp"] += 1

    def _token(self, address: str):
        return self._ledger.contract_at(address)

    def _balance(self, token: str) -> int:
        return self._token(token).balance_of(self.address)


class UniswapV2Factory(Factory):
    def __init__(self, ledger: Ledger, address: str) -> None:
        self.address = address
        self._ledger = ledger
        self._state = ledger.storage(address)
        self._state.update({"pairs": {}, "created": 0})
        ledger.register(address, self)

    def get_pair(self, token_a: str, token_b: str) -> str:
        token0, token1 = sort_tokens(token_a, token_b)
        return self._state["pairs"].get((token0.lower(), token1.lower()), ZERO_ADDRESS)

    def create_pair(self, token_a: str, token_b: str) -> UniswapV2Pair:
        token0, token1 = sort_tokens(token_a, token_b)
        key = (token0.lower(), token1.lower())
        if key in self._state["pairs"]:
            raise Revert("UniswapV2: PAIR_EXISTS")
        self._state["created"] += 1
        address = "0x" + f"{int(self.address, 16) + self._state['created']:040x}"
        pair = UniswapV2Pair(self._ledger, address, token0, token1)
        self._state["pairs"][key] = address
        return pair
