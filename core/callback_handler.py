"""
Flash-swap continuation: swap for debt, liquidate, repay the borrow pair.

Invoked synchronously by the borrow pair from inside its own swap, after it has
optimistically sent the wrapped native to the liquidator and before it checks
its invariant. Everything here runs inside the orchestrator's atomic unit; any
failure propagates and rolls the whole invocation back.
"""

from __future__ import annotations

from typing import Callable

from bot_logging.logger_manager import setup_module_logger
from core.market_math import amounts_out_for, order_reserves, quote_exact_out
from shared.constants import DEBT_TO_COVER_MODE_EXACT, UINT256_MAX, ZERO_ADDRESS
from shared.errors import (
    BorrowMismatch,
    InsufficientLiquidity,
    TransferFailed,
    UnauthorizedCallback,
)
from shared.interfaces import ExecutionEnvironment, Token
from shared.serialization_utils import decode_repay_target
from shared.types import LiquidationTarget, SettlementState


class CallbackHandler:
    def __init__(
        self,
        env: ExecutionEnvironment,
        target: LiquidationTarget,
        address: str,
        advance: Callable[[SettlementState], None],
        current_state: Callable[[], SettlementState],
    ) -> None:
        self._env = env
        self._target = target
        self._address = address
        self._advance = advance
        self._current_state = current_state

        # Set only for the duration of the borrow swap
        self._expected_pair: str | None = None

        self._logger = setup_module_logger(
            "callback_handler", "callback_handler.log", module_folder="Callback_Handler_Logs"
        )

    def arm(self, pair_address: str) -> None:
        self._expected_pair = pair_address

    def disarm(self) -> None:
        self._expected_pair = None

    # ------------------------------------------------------------------
    # Continuation
    # ------------------------------------------------------------------

    def on_swap_callback(
        self, caller: str, sender: str, amount0: int, amount1: int, payload: bytes
    ) -> None:
        if (
            self._current_state() is not SettlementState.AWAITING_CALLBACK
            or self._expected_pair is None
            or caller.lower() != self._expected_pair.lower()
        ):
            raise UnauthorizedCallback(f"unexpected swap callback from {caller}")
        if sender.lower() != self._address.lower():
            raise UnauthorizedCallback(f"swap initiated by {sender}, not the liquidator")

        borrow_pair = self._env.contract_at(caller)
        if (amount0 == 0) == (amount1 == 0):
            raise BorrowMismatch(f"expected exactly one borrowed side, got ({amount0}, {amount1})")
        borrowed_token = borrow_pair.token0 if amount0 else borrow_pair.token1
        borrowed = amount0 or amount1
        if borrowed_token.lower() != self._target.wrapped_native.lower():
            raise BorrowMismatch(f"borrowed {borrowed_token}, expected wrapped native")

        wrapped: Token = self._env.contract_at(self._target.wrapped_native)
        balance = wrapped.balance_of(self._address)
        if balance != borrowed:
            raise BorrowMismatch(f"delivered {borrowed} but balance is {balance}")

        repay_target = decode_repay_target(payload)
        self._logger.info("Borrowed %d wrapped native; repay target %d", borrowed, repay_target)

        self._swap_for_debt(wrapped, repay_target)
        self._liquidate(repay_target)
        self._repay_borrow(caller)
        self._advance(SettlementState.REPAID)

    # ------------------------------------------------------------------
    # Steps
    # ------------------------------------------------------------------

    def _swap_for_debt(self, wrapped: Token, repay_target: int) -> None:
        """Buy exactly ``repay_target`` of the debt asset with wrapped native."""
        target = self._target
        pair_address = self._env.contract_at(target.factory).get_pair(
            target.debt_asset, target.wrapped_native
        )
        if pair_address == ZERO_ADDRESS:
            raise InsufficientLiquidity("no debt/wrapped-native pair")
        pair = self._env.contract_at(pair_address)

        reserve0, reserve1, _ = pair.get_reserves()
        reserve_wrapped, reserve_debt = order_reserves(
            target.wrapped_native, pair.token0, reserve0, reserve1
        )
        quote = quote_exact_out(repay_target, reserve_wrapped, reserve_debt)
        self._logger.info(
            "Swapping %d wrapped native for %d debt", quote.amount_in, quote.amount_out
        )

        _transfer(wrapped, self._address, pair_address, quote.amount_in)
        amount0_out, amount1_out = amounts_out_for(target.debt_asset, pair.token0, repay_target)
        pair.swap(self._address, amount0_out, amount1_out, self._address, b"")

    def _liquidate(self, repay_target: int) -> None:
        target = self._target
        debt_token: Token = self._env.contract_at(target.debt_asset)
        if not debt_token.approve(self._address, target.lending_pool, repay_target):
            raise TransferFailed("debt asset approval rejected")

        # The pool clamps to the close-factor bound and the collateral cover.
        if target.debt_to_cover_mode == DEBT_TO_COVER_MODE_EXACT:
            debt_to_cover = repay_target
        else:
            debt_to_cover = UINT256_MAX

        self._env.contract_at(target.lending_pool).liquidation_call(
            self._address,
            target.collateral_asset,
            target.debt_asset,
            target.user,
            debt_to_cover,
            False,
        )

    def _repay_borrow(self, pair_address: str) -> None:
        """Forward every unit of seized collateral to the borrow pair."""
        collateral: Token = self._env.contract_at(self._target.collateral_asset)
        seized = collateral.balance_of(self._address)
        self._logger.info("Returning %d seized collateral to %s", seized, pair_address)
        _transfer(collateral, self._address, pair_address, seized)


def _transfer(token: Token, sender: str, to: str, amount: int) -> None:
    if not token.transfer(sender, to, amount):
        raise TransferFailed(f"{token.symbol()} transfer of {amount} to {to} rejected")
