"""
Read-only liquidation preview against live chain state.

Computes the same plan the SettlementOrchestrator would compute (same sizer,
same quotes, same repay target) from RPC reads, without submitting anything.
Used by the dry-run entry point and to pick (collateral, debt) candidates for a
borrower from the UserConfiguration bitmap.

Usage:
    planner = LiquidationPlanner(aave_client, uniswap_client, target)
    preview = await planner.preview()
"""

from __future__ import annotations

import asyncio
import uuid
from typing import TYPE_CHECKING

from bot_logging.logger_manager import log_data_processing, setup_module_logger
from core.config_codec import is_borrowing, is_using_as_collateral
from core.liquidation_sizer import size_liquidation
from core.market_math import order_reserves, quote_exact_in, quote_exact_out
from shared.constants import HEALTH_FACTOR_LIQUIDATION_THRESHOLD_WAD, REPAY_TARGET_SAFETY_MARGIN
from shared.types import LiquidationPreview, LiquidationTarget

if TYPE_CHECKING:
    from execution.aave_client import AaveClient
    from execution.uniswap_client import UniswapClient


class LiquidationPlanner:
    def __init__(
        self,
        aave_client: AaveClient,
        uniswap_client: UniswapClient,
        target: LiquidationTarget,
    ) -> None:
        self._aave = aave_client
        self._uniswap = uniswap_client
        self._target = target
        self._logger = setup_module_logger("planner", "planner.log", module_folder="Planner_Logs")

    async def preview(self) -> LiquidationPreview:
        """
        Size the liquidation of the configured target and quote both swaps.

        A healthy or empty position yields a preview with ``plan=None`` and no
        quotes. ``expected_profit`` is the wrapped native left after buying the
        repay target, before the unwrap (may be negative).
        """
        target = self._target
        trace_id = uuid.uuid4().hex

        account, position = await asyncio.gather(
            self._aave.get_user_account_data(target.user),
            self._aave.get_user_position(target.user, target.collateral_asset, target.debt_asset),
        )
        liquidatable = account.health_factor_wad < HEALTH_FACTOR_LIQUIDATION_THRESHOLD_WAD
        if not liquidatable or position.debt_amount == 0 or position.collateral_amount == 0:
            self._logger.info(
                "%s not liquidatable: health factor %s, debt %d, collateral %d",
                target.user,
                account.health_factor,
                position.debt_amount,
                position.collateral_amount,
            )
            return LiquidationPreview(
                user=target.user,
                health_factor_wad=account.health_factor_wad,
                liquidatable=False,
                position=position,
                plan=None,
                borrow_quote=None,
                repay_quote=None,
                expected_profit=0,
            )

        collateral_config, debt_config, collateral_price, debt_price = await asyncio.gather(
            self._aave.get_reserve_config(target.collateral_asset),
            self._aave.get_reserve_config(target.debt_asset),
            self._aave.get_asset_price(target.collateral_asset),
            self._aave.get_asset_price(target.debt_asset),
        )
        plan = size_liquidation(
            debt_amount=position.debt_amount,
            collateral_amount=position.collateral_amount,
            debt_decimals=debt_config.decimals,
            collateral_decimals=collateral_config.decimals,
            debt_price=debt_price,
            collateral_price=collateral_price,
            close_factor_bps=target.close_factor_bps,
            liquidation_bonus_bps=collateral_config.liquidation_bonus_bps,
        )

        reserve_collateral, reserve_wrapped_borrow = await self._ordered_reserves(
            target.collateral_asset, target.wrapped_native
        )
        reserve_wrapped_repay, reserve_debt = await self._ordered_reserves(
            target.wrapped_native, target.debt_asset
        )
        borrow_quote = quote_exact_in(
            plan.max_collateral_amount, reserve_collateral, reserve_wrapped_borrow
        )
        repay_quote = quote_exact_out(
            plan.max_repay_amount + REPAY_TARGET_SAFETY_MARGIN, reserve_wrapped_repay, reserve_debt
        )
        expected_profit = borrow_quote.amount_out - repay_quote.amount_in

        log_data_processing(
            trace_id,
            "planner",
            "preview",
            {
                "account": account,
                "position": position,
                "collateral_price": collateral_price,
                "debt_price": debt_price,
            },
            {
                "plan": plan,
                "borrow_quote": borrow_quote,
                "repay_quote": repay_quote,
                "expected_profit": expected_profit,
            },
        )
        self._logger.info(
            "Preview for %s: %s binds, repay %d, seize %d, expected profit %d wei",
            target.user,
            plan.binding.value,
            plan.max_repay_amount,
            plan.max_collateral_amount,
            expected_profit,
        )
        return LiquidationPreview(
            user=target.user,
            health_factor_wad=account.health_factor_wad,
            liquidatable=True,
            position=position,
            plan=plan,
            borrow_quote=borrow_quote,
            repay_quote=repay_quote,
            expected_profit=expected_profit,
        )

    async def discover_pairs(self, user: str) -> list[tuple[str, str]]:
        """
        (collateral, debt) reserve pairs a liquidation of ``user`` could target.

        Read from the UserConfiguration bitmap: every reserve flagged as
        collateral crossed with every reserve flagged as borrowed.
        """
        user_config, reserves = await asyncio.gather(
            self._aave.get_user_configuration(user),
            self._aave.get_reserves_list(),
        )
        collateral = [a for i, a in enumerate(reserves) if is_using_as_collateral(user_config, i)]
        debt = [a for i, a in enumerate(reserves) if is_borrowing(user_config, i)]
        pairs = [(c, d) for c in collateral for d in debt if c.lower() != d.lower()]
        self._logger.debug("%s: %d candidate (collateral, debt) pairs", user, len(pairs))
        return pairs

    async def _ordered_reserves(self, token_in: str, token_out: str) -> tuple[int, int]:
        pair = await self._uniswap.get_pair(token_in, token_out)
        (reserve0, reserve1, _), token0 = await asyncio.gather(
            self._uniswap.get_reserves(pair), self._uniswap.get_token0(pair)
        )
        return order_reserves(token_in, token0, reserve0, reserve1)
