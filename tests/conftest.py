"""
Shared pytest configuration and fixtures for the flash-swap liquidator tests.

Provides a mainnet liquidation target, a patched ConfigLoader, and
ready-built simulated scenarios (close-factor-bound and collateral-bound).
"""

from __future__ import annotations

from unittest.mock import MagicMock

import pytest

from shared.constants import WAD
from shared.types import LiquidationTarget

# ---------------------------------------------------------------------------
# Reference values
# ---------------------------------------------------------------------------

WBTC_PRICE_CLOSE_FACTOR_BINDS = 15 * WAD
WBTC_PRICE_COLLATERAL_BINDS = 6 * WAD

SAMPLE_USER_ADDRESS = "0x59CE4a2AC5bC3f5F225439B2993b86B42f6d3e9F"

MAINNET_TARGET = LiquidationTarget(
    lending_pool="0x7d2768dE32b0b80b7a3454c06BdAc94A69DDc7A9",
    factory="0x5C69bEe701ef814a2B6a3EDD4B1652CB9cc5aA6f",
    oracle="0xA50ba011c48153De246E5192C8f9258A2ba79Ca9",
    wrapped_native="0xC02aaA39b223FE8D0A0e5C4F27eAD9083C756Cc2",
    collateral_asset="0x2260FAC5E5542a773Aa44fBCfeDf7C193bc2C599",
    debt_asset="0xdAC17F958D2ee523a2206206994597C13D831ec7",
    user=SAMPLE_USER_ADDRESS,
)


# ---------------------------------------------------------------------------
# Config loader fixture (patched singleton)
# ---------------------------------------------------------------------------


@pytest.fixture
def mock_config_loader():
    """
    Provide a mock ConfigLoader that returns standard configs.

    Usage in tests:
        def test_something(mock_config_loader):
            mock_config_loader.get_liquidation_config.return_value = {...}
    """
    loader = MagicMock()
    loader.get_liquidation_config.return_value = {
        "target_user": SAMPLE_USER_ADDRESS,
        "collateral_asset": "WBTC",
        "debt_asset": "USDT",
        "wrapped_native": "WETH",
        "close_factor_bps": 5000,
        "debt_to_cover_mode": "max",
    }
    loader.get_chain_config.return_value = {
        "chain_id": 1,
        "rpc": {"http_url": "https://eth.llamarpc.com"},
        "contracts": {
            "lending_pool": MAINNET_TARGET.lending_pool,
            "price_oracle": MAINNET_TARGET.oracle,
            "uniswap_v2_factory": MAINNET_TARGET.factory,
        },
        "tokens": {
            "WETH": {"address": MAINNET_TARGET.wrapped_native, "decimals": 18},
            "USDT": {"address": MAINNET_TARGET.debt_asset, "decimals": 6},
            "WBTC": {"address": MAINNET_TARGET.collateral_asset, "decimals": 8},
        },
    }
    loader.get_app_config.return_value = {"logging": {"log_dir": "logs"}}
    loader.get_abi.return_value = []
    return loader


# ---------------------------------------------------------------------------
# Simulated scenarios
# ---------------------------------------------------------------------------


@pytest.fixture
def scenario():
    """Reference scenario after the drop to 15 ETH/WBTC: the close factor binds."""
    from simulation.scenario import build_scenario

    return build_scenario(collateral_price=WBTC_PRICE_CLOSE_FACTOR_BINDS)


@pytest.fixture
def collateral_bound_scenario():
    """Reference scenario after the drop to 6 ETH/WBTC: collateral binds."""
    from simulation.scenario import build_scenario

    return build_scenario(collateral_price=WBTC_PRICE_COLLATERAL_BINDS)


@pytest.fixture
def mainnet_target():
    """LiquidationTarget for the WBTC/USDT/WETH roles on Ethereum mainnet."""
    return MAINNET_TARGET
