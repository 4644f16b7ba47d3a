"""
Profit payout: unwrap the residual wrapped native and send it to the initiator.

Runs as the last step of the orchestrator's atomic unit, so a rejected payout
rolls back the liquidation too.
"""

from __future__ import annotations

from bot_logging.logger_manager import setup_module_logger
from core.units import format_units
from shared.errors import LiquidationError, PayoutFailed
from shared.interfaces import ExecutionEnvironment, WrappedNative
from shared.types import LiquidationTarget


class ProfitSettler:
    def __init__(self, env: ExecutionEnvironment, target: LiquidationTarget, address: str) -> None:
        self._env = env
        self._target = target
        self._address = address
        self._logger = setup_module_logger(
            "profit_settler", "profit_settler.log", module_folder="Profit_Settler_Logs"
        )

    def settle(self, initiator: str) -> int:
        """Pay the whole native balance to ``initiator``; returns the amount paid (wei)."""
        wrapped: WrappedNative = self._env.contract_at(self._target.wrapped_native)
        residual = wrapped.balance_of(self._address)
        if residual > 0:
            wrapped.withdraw(self._address, residual)

        profit = self._env.native_balance(self._address)
        if profit == 0:
            self._logger.warning("No residual value to pay out to %s", initiator)
            return 0

        try:
            self._env.transfer_native(self._address, initiator, profit)
        except LiquidationError as e:
            raise PayoutFailed(f"payout of {profit} wei to {initiator} rejected: {e}") from e

        self._logger.info("Paid %s native to %s", format_units(profit, 18), initiator)
        return profit
