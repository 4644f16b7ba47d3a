"""
Unit tests for core/planner.py.

The Aave and Uniswap clients are AsyncMocks returning the reference position
(1 WBTC against 30,000 USDT); the planner must reproduce the orchestrator's
plan, quote both legs from the pair reserves, and report the expected profit.
"""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from core.market_math import quote_in, quote_out
from shared.constants import WAD
from shared.types import (
    BindingConstraint,
    LiquidationTarget,
    Position,
    ReserveConfig,
    UserAccountData,
)

WBTC = "0x2260FAC5E5542a773Aa44fBCfeDf7C193bc2C599"
USDT = "0xdAC17F958D2ee523a2206206994597C13D831ec7"
WETH = "0xC02aaA39b223FE8D0A0e5C4F27eAD9083C756Cc2"
DAI = "0x6B175474E89094C44Da98b954EedeAC495271d0F"
USER = "0x59CE4a2AC5bC3f5F225439B2993b86B42f6d3e9F"
WBTC_WETH_PAIR = "0xBb2b8038a1640196FbE3e38816F3e67Cba72D940"
USDT_WETH_PAIR = "0x0d4a11d5EEaaC28EC3F61d100daF4d40471f1852"

TARGET = LiquidationTarget(
    lending_pool="0x7d2768dE32b0b80b7a3454c06BdAc94A69DDc7A9",
    factory="0x5C69bEe701ef814a2B6a3EDD4B1652CB9cc5aA6f",
    oracle="0xA50ba011c48153De246E5192C8f9258A2ba79Ca9",
    wrapped_native=WETH,
    collateral_asset=WBTC,
    debt_asset=USDT,
    user=USER,
)

WBTC_CONFIG = ReserveConfig(7000, 7500, 10500, 8, True, False, True, True, 2000)
USDT_CONFIG = ReserveConfig(8000, 8500, 10500, 6, True, False, True, False, 1000)

UNDERWATER = UserAccountData(15 * WAD, 15 * WAD, 0, 7500, 7000, 75 * 10**16)
HEALTHY = UserAccountData(45 * WAD, 15 * WAD, 165 * 10**17, 7500, 7000, 225 * 10**16)

# WBTC (0x22..) sorts before WETH (0xC0..); USDT (0xdA..) sorts after WETH
WBTC_WETH_RESERVES = (100 * 10**8, 1500 * WAD, 0)
USDT_WETH_RESERVES = (1000 * WAD, 2_000_000 * 10**6, 0)


@pytest.fixture
def aave_client():
    client = MagicMock()
    client.get_user_account_data = AsyncMock(return_value=UNDERWATER)
    client.get_user_position = AsyncMock(
        return_value=Position(debt_amount=30_000 * 10**6, collateral_amount=10**8)
    )
    client.get_reserve_config = AsyncMock(
        side_effect=lambda asset: WBTC_CONFIG if asset == WBTC else USDT_CONFIG
    )
    client.get_asset_price = AsyncMock(
        side_effect=lambda asset: 15 * WAD if asset == WBTC else 5 * 10**14
    )
    client.get_user_configuration = AsyncMock(return_value=0)
    client.get_reserves_list = AsyncMock(return_value=[USDT, WBTC, DAI, WETH])
    return client


@pytest.fixture
def uniswap_client():
    client = MagicMock()
    client.get_pair = AsyncMock(
        side_effect=lambda a, b: WBTC_WETH_PAIR if WBTC in (a, b) else USDT_WETH_PAIR
    )
    client.get_reserves = AsyncMock(
        side_effect=lambda pair: WBTC_WETH_RESERVES if pair == WBTC_WETH_PAIR else USDT_WETH_RESERVES
    )
    client.get_token0 = AsyncMock(side_effect=lambda pair: WBTC if pair == WBTC_WETH_PAIR else WETH)
    return client


@pytest.fixture
def planner(aave_client, uniswap_client):
    with (
        patch("core.planner.setup_module_logger") as mock_logger,
        patch("core.planner.log_data_processing"),
    ):
        mock_logger.return_value = MagicMock()

        from core.planner import LiquidationPlanner

        yield LiquidationPlanner(aave_client, uniswap_client, TARGET)


class TestPreview:

    async def test_underwater_position(self, planner):
        preview = await planner.preview()

        assert preview.liquidatable is True
        assert preview.plan.binding is BindingConstraint.CLOSE_FACTOR
        assert preview.plan.max_repay_amount == 15_000 * 10**6
        assert preview.plan.max_collateral_amount == 52_500_000

        assert preview.borrow_quote.amount_in == 52_500_000
        assert preview.borrow_quote.amount_out == quote_out(52_500_000, 100 * 10**8, 1500 * WAD)
        # WETH is token0 of the USDT pair
        assert preview.repay_quote.amount_out == 15_000 * 10**6 + 1
        assert preview.repay_quote.amount_in == quote_in(
            15_000 * 10**6 + 1, 1000 * WAD, 2_000_000 * 10**6
        )
        assert preview.expected_profit == (
            preview.borrow_quote.amount_out - preview.repay_quote.amount_in
        )
        assert preview.expected_profit > 0

    async def test_healthy_position_has_no_plan(self, planner, aave_client, uniswap_client):
        aave_client.get_user_account_data.return_value = HEALTHY
        preview = await planner.preview()

        assert preview.liquidatable is False
        assert preview.plan is None
        assert preview.borrow_quote is None
        assert preview.expected_profit == 0
        aave_client.get_reserve_config.assert_not_called()
        uniswap_client.get_pair.assert_not_called()

    async def test_empty_position_has_no_plan(self, planner, aave_client):
        aave_client.get_user_position.return_value = Position(debt_amount=0, collateral_amount=10**8)
        preview = await planner.preview()
        assert preview.liquidatable is False
        assert preview.plan is None

    async def test_client_errors_propagate(self, planner, uniswap_client):
        from execution.uniswap_client import UniswapClientError

        uniswap_client.get_pair.side_effect = UniswapClientError("no pair")
        with pytest.raises(UniswapClientError):
            await planner.preview()


class TestDiscoverPairs:

    async def test_collateral_crossed_with_debt(self, planner, aave_client):
        # USDT (0) borrowed, WBTC (1) collateral, DAI (2) both, WETH (3) unused
        aave_client.get_user_configuration.return_value = 0b1 | 0b1000 | 0b110000
        pairs = await planner.discover_pairs(USER)
        assert pairs == [(WBTC, USDT), (WBTC, DAI), (DAI, USDT)]

    async def test_no_flags_no_pairs(self, planner):
        assert await planner.discover_pairs(USER) == []
