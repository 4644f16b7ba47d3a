"""
Settlement orchestrator: size, borrow, liquidate, repay, pay out, atomically.

State machine per invocation:

    IDLE -> SIZING -> BORROW_REQUESTED -> AWAITING_CALLBACK -> REPAID -> COMPLETED
                 \\_______________ any failure ______________/
                                     ABORTED

The whole sequence runs inside atomic_unit(env): a failure at any step reverts
every balance, position, and reserve change before the error is re-raised. The
borrow is a flash swap on the collateral/wrapped-native pair; the pair calls back
into on_swap_callback (CallbackHandler) before its own swap returns.

Usage:
    orchestrator = SettlementOrchestrator(env, target, address=LIQUIDATOR)
    env.register(LIQUIDATOR, orchestrator)
    result = orchestrator.operate(initiator=OWNER)
"""

from __future__ import annotations

import uuid

from bot_logging.logger_manager import log_data_processing, setup_module_logger
from core.atomic import atomic_unit
from core.callback_handler import CallbackHandler
from core.config_codec import decode_reserve_config
from core.liquidation_sizer import size_liquidation
from core.market_math import amounts_out_for, order_reserves, quote_exact_in
from core.profit_settler import ProfitSettler
from core.units import format_units
from shared.constants import (
    HEALTH_FACTOR_LIQUIDATION_THRESHOLD_WAD,
    REPAY_TARGET_SAFETY_MARGIN,
    ZERO_ADDRESS,
)
from shared.errors import (
    BorrowMismatch,
    InsufficientLiquidity,
    InvalidStateTransition,
    NotLiquidatable,
)
from shared.interfaces import ExecutionEnvironment, LendingPool, SwapCallee
from shared.serialization_utils import encode_repay_target
from shared.types import (
    LiquidationPlan,
    LiquidationTarget,
    Position,
    PriceQuote,
    SettlementResult,
    SettlementState,
)

_TRANSITIONS: dict[SettlementState, frozenset[SettlementState]] = {
    SettlementState.IDLE: frozenset({SettlementState.SIZING}),
    SettlementState.SIZING: frozenset({SettlementState.BORROW_REQUESTED}),
    SettlementState.BORROW_REQUESTED: frozenset({SettlementState.AWAITING_CALLBACK}),
    SettlementState.AWAITING_CALLBACK: frozenset({SettlementState.REPAID}),
    SettlementState.REPAID: frozenset({SettlementState.COMPLETED}),
    SettlementState.COMPLETED: frozenset(),
    SettlementState.ABORTED: frozenset(),
}

_TERMINAL = frozenset({SettlementState.COMPLETED, SettlementState.ABORTED})


class SettlementOrchestrator(SwapCallee):
    """
    Entry surface of the liquidator: ``operate`` (parameterless trigger besides
    the initiator) and ``on_swap_callback`` (only callable by the borrow pair
    mid-swap). Holds no state across invocations beyond the last outcome.
    """

    def __init__(self, env: ExecutionEnvironment, target: LiquidationTarget, address: str) -> None:
        self._env = env
        self._target = target
        self.address = address

        self._state = SettlementState.IDLE
        self._abort_reason: Exception | None = None

        self._handler = CallbackHandler(
            env, target, address, advance=self._advance, current_state=lambda: self._state
        )
        self._settler = ProfitSettler(env, target, address)
        self._logger = setup_module_logger(
            "orchestrator", "orchestrator.log", module_folder="Orchestrator_Logs"
        )

    # ------------------------------------------------------------------
    # Properties
    # ------------------------------------------------------------------

    @property
    def state(self) -> SettlementState:
        return self._state

    @property
    def abort_reason(self) -> Exception | None:
        return self._abort_reason

    # ------------------------------------------------------------------
    # Entry points
    # ------------------------------------------------------------------

    def operate(self, initiator: str) -> SettlementResult:
        """
        Run one full liquidation against the configured target.

        Returns the SettlementResult on success. On failure every effect is
        rolled back, the state is ABORTED, and the originating error is re-raised.
        """
        if self._state not in _TERMINAL and self._state is not SettlementState.IDLE:
            raise InvalidStateTransition(f"operate() re-entered while {self._state.value}")
        self._state = SettlementState.IDLE
        self._abort_reason = None
        trace_id = uuid.uuid4().hex

        try:
            with atomic_unit(self._env):
                result = self._run(initiator, trace_id)
        except Exception as e:
            self._abort(e)
            raise

        self._logger.info(
            "Liquidation of %s completed: repaid=%d seized=%d borrowed=%d profit=%d",
            self._target.user,
            result.plan.max_repay_amount,
            result.plan.max_collateral_amount,
            result.borrowed_amount,
            result.profit,
        )
        return result

    def on_swap_callback(
        self, caller: str, sender: str, amount0: int, amount1: int, payload: bytes
    ) -> None:
        self._handler.on_swap_callback(caller, sender, amount0, amount1, payload)

    def receive_native(self, sender: str, amount: int) -> None:
        """Accept native currency (wrapped-native unwraps land here)."""
        self._logger.debug("Received %d wei from %s", amount, sender)

    # ------------------------------------------------------------------
    # State machine
    # ------------------------------------------------------------------

    def _advance(self, new_state: SettlementState) -> None:
        if new_state not in _TRANSITIONS[self._state]:
            raise InvalidStateTransition(f"{self._state.value} -> {new_state.value}")
        self._logger.info("State %s -> %s", self._state.value, new_state.value)
        self._state = new_state

    def _abort(self, error: Exception) -> None:
        previous = self._state
        self._state = SettlementState.ABORTED
        self._abort_reason = error
        self._logger.error(
            "Liquidation of %s aborted in %s: %s: %s",
            self._target.user,
            previous.value,
            type(error).__name__,
            error,
        )

    # ------------------------------------------------------------------
    # Invocation body (runs inside the atomic unit)
    # ------------------------------------------------------------------

    def _run(self, initiator: str, trace_id: str) -> SettlementResult:
        target = self._target
        self._advance(SettlementState.SIZING)

        pool: LendingPool = self._env.contract_at(target.lending_pool)
        account = pool.get_user_account_data(target.user)
        if account.health_factor_wad >= HEALTH_FACTOR_LIQUIDATION_THRESHOLD_WAD:
            raise NotLiquidatable(
                f"health factor {account.health_factor} of {target.user} is not below 1.0"
            )

        plan = self._size(pool, trace_id)

        # Borrow leg: wrapped native out of the collateral/wrapped pair, repaid
        # inside the callback with the seized collateral.
        pair_address = self._env.contract_at(target.factory).get_pair(
            target.collateral_asset, target.wrapped_native
        )
        if pair_address == ZERO_ADDRESS:
            raise InsufficientLiquidity("no collateral/wrapped-native pair")
        pair = self._env.contract_at(pair_address)
        reserve0, reserve1, _ = pair.get_reserves()
        reserve_collateral, reserve_wrapped = order_reserves(
            target.collateral_asset, pair.token0, reserve0, reserve1
        )
        borrow = quote_exact_in(plan.max_collateral_amount, reserve_collateral, reserve_wrapped)
        repay_target = plan.max_repay_amount + REPAY_TARGET_SAFETY_MARGIN

        log_data_processing(
            trace_id,
            "orchestrator",
            "borrow_quote",
            {"reserve_collateral": reserve_collateral, "reserve_wrapped": reserve_wrapped},
            {"borrow": borrow, "repay_target": repay_target},
        )
        self._advance(SettlementState.BORROW_REQUESTED)

        amount0_out, amount1_out = amounts_out_for(
            target.wrapped_native, pair.token0, borrow.amount_out
        )
        self._handler.arm(pair_address)
        try:
            self._advance(SettlementState.AWAITING_CALLBACK)
            pair.swap(
                self.address,
                amount0_out,
                amount1_out,
                self.address,
                encode_repay_target(repay_target),
            )
        finally:
            self._handler.disarm()

        if self._state is not SettlementState.REPAID:
            raise BorrowMismatch("swap returned without invoking the continuation")

        profit = self._settler.settle(initiator)
        self._advance(SettlementState.COMPLETED)
        return SettlementResult(
            state=SettlementState.COMPLETED,
            plan=plan,
            borrowed_amount=borrow.amount_out,
            repay_target=repay_target,
            profit=profit,
        )

    def _size(self, pool: LendingPool, trace_id: str) -> LiquidationPlan:
        target = self._target
        collateral_config = decode_reserve_config(pool.get_configuration(target.collateral_asset))
        debt_config = decode_reserve_config(pool.get_configuration(target.debt_asset))

        position = self._read_position(pool)
        if position.debt_amount == 0 or position.collateral_amount == 0:
            raise NotLiquidatable(
                f"{target.user} has debt={position.debt_amount} "
                f"collateral={position.collateral_amount}"
            )

        oracle = self._env.contract_at(target.oracle)
        debt_price = PriceQuote(target.debt_asset, oracle.get_asset_price(target.debt_asset))
        collateral_price = PriceQuote(
            target.collateral_asset, oracle.get_asset_price(target.collateral_asset)
        )

        plan = size_liquidation(
            debt_amount=position.debt_amount,
            collateral_amount=position.collateral_amount,
            debt_decimals=debt_config.decimals,
            collateral_decimals=collateral_config.decimals,
            debt_price=debt_price.price,
            collateral_price=collateral_price.price,
            close_factor_bps=target.close_factor_bps,
            liquidation_bonus_bps=collateral_config.liquidation_bonus_bps,
        )
        self._logger.info(
            "Plan (%s binds): repay %s debt, seize %s collateral",
            plan.binding.value,
            format_units(plan.max_repay_amount, debt_config.decimals),
            format_units(plan.max_collateral_amount, collateral_config.decimals),
        )
        log_data_processing(
            trace_id,
            "orchestrator",
            "size_liquidation",
            {
                "position": position,
                "debt_price": debt_price,
                "collateral_price": collateral_price,
                "close_factor_bps": target.close_factor_bps,
                "liquidation_bonus_bps": collateral_config.liquidation_bonus_bps,
            },
            plan,
        )
        return plan

    def _read_position(self, pool: LendingPool) -> Position:
        target = self._target
        debt_reserve = pool.get_reserve_data(target.debt_asset)
        collateral_reserve = pool.get_reserve_data(target.collateral_asset)
        stable_debt = self._env.contract_at(debt_reserve.stable_debt_token_address)
        variable_debt = self._env.contract_at(debt_reserve.variable_debt_token_address)
        a_token = self._env.contract_at(collateral_reserve.a_token_address)
        return Position(
            debt_amount=stable_debt.balance_of(target.user) + variable_debt.balance_of(target.user),
            collateral_amount=a_token.balance_of(target.user),
        )
