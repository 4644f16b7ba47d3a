"""
Flash-Swap Liquidator: Main Entrypoint.

Two modes:
    1. Dry run (default): read the configured target from chain over AsyncWeb3,
       size the liquidation and quote both swaps via LiquidationPlanner. Nothing
       is submitted.
    2. Simulation (--simulate): build the reference scenario in the in-memory
       Ledger and run a full SettlementOrchestrator invocation (flash swap,
       liquidation, repayment, payout) end to end.

Usage:
    python main.py                  # dry run against ETH_RPC_URL
    python main.py --simulate       # reference scenario, close factor binds
    python main.py --simulate --collateral-price-eth 6
"""

from __future__ import annotations

import argparse
import asyncio
import sys
from decimal import Decimal

from dotenv import load_dotenv

from bot_logging.logger_manager import setup_module_logger
from config.loader import build_liquidation_target, get_config, get_env_var
from config.validate import ConfigValidationError, validate_all_configs
from core.units import format_units
from shared.constants import DEFAULT_CHAIN_ID, WAD
from shared.errors import LiquidationError

# ---------------------------------------------------------------------------
# Module logger (logged to logs/ root, no sub-folder)
# ---------------------------------------------------------------------------
_logger = setup_module_logger("main", "main.log", console=True)


# ---------------------------------------------------------------------------
# Startup banner
# ---------------------------------------------------------------------------


def _log_banner(mode: str, rpc_url: str, target) -> None:
    """Log a concise startup summary."""
    _logger.info("=" * 60)
    _logger.info("Flash-Swap Liquidator starting")
    _logger.info("=" * 60)
    _logger.info("  mode            : %s", mode)
    if rpc_url:
        _logger.info(
            "  rpc             : %s...%s", rpc_url[:25], rpc_url[-6:] if len(rpc_url) > 31 else ""
        )
    _logger.info("  target_user     : %s", target.user)
    _logger.info(
        "  liquidator      : %s", get_env_var("LIQUIDATOR_ADDRESS", "", str) or "(not set)"
    )
    _logger.info("  collateral      : %s", target.collateral_asset)
    _logger.info("  debt            : %s", target.debt_asset)
    _logger.info("  close_factor    : %d bps", target.close_factor_bps)
    _logger.info("  debt_to_cover   : %s", target.debt_to_cover_mode)
    _logger.info("=" * 60)


# ---------------------------------------------------------------------------
# Dry run (live chain, read-only)
# ---------------------------------------------------------------------------


async def _dry_run() -> int:
    try:
        validate_all_configs()
    except ConfigValidationError as exc:
        _logger.critical("Config validation failed:\n%s", exc)
        return 1

    chain_id = get_env_var("CHAIN_ID", DEFAULT_CHAIN_ID, int)
    chain_cfg = get_config().get_chain_config(chain_id)
    rpc_url: str = get_env_var("ETH_RPC_URL", chain_cfg["rpc"]["http_url"], str)
    target = build_liquidation_target(chain_id)
    if not target.user:
        _logger.critical("TARGET_USER not set in environment or liquidation.json")
        return 1

    _log_banner("dry-run", rpc_url, target)

    from web3 import AsyncWeb3
    from web3.providers import AsyncHTTPProvider

    from core.planner import LiquidationPlanner
    from execution.aave_client import AaveClient, AaveClientError
    from execution.uniswap_client import UniswapClient, UniswapClientError

    w3 = AsyncWeb3(AsyncHTTPProvider(rpc_url))
    if not await w3.is_connected():
        _logger.critical("Cannot connect to RPC at %s", rpc_url)
        return 1
    connected_chain = await w3.eth.chain_id
    _logger.info("Connected to chain %d via %s", connected_chain, rpc_url[:40])

    contracts = chain_cfg["contracts"]
    aave_client = AaveClient(w3, contracts["lending_pool"], contracts["price_oracle"])
    uniswap_client = UniswapClient(w3, contracts["uniswap_v2_factory"])
    planner = LiquidationPlanner(aave_client, uniswap_client, target)

    try:
        candidates = await planner.discover_pairs(target.user)
        _logger.info("Candidate (collateral, debt) pairs: %s", candidates)
        preview = await planner.preview()
    except (AaveClientError, UniswapClientError, LiquidationError) as exc:
        _logger.error("Preview failed: %s", exc)
        return 1

    _logger.info("Health factor   : %s", Decimal(preview.health_factor_wad) / WAD)
    if preview.plan is None:
        _logger.info("Position is not liquidatable")
        return 0
    _logger.info("Binding         : %s", preview.plan.binding.value)
    _logger.info("Repay           : %d (debt native units)", preview.plan.max_repay_amount)
    _logger.info("Seize           : %d (collateral native units)", preview.plan.max_collateral_amount)
    _logger.info("Expected profit : %s native", format_units(preview.expected_profit, 18))
    return 0


# ---------------------------------------------------------------------------
# Simulation (in-memory Ledger)
# ---------------------------------------------------------------------------


def _simulate(collateral_price_eth: str, debt_to_cover_mode: str) -> int:
    from simulation.scenario import build_scenario

    scenario = build_scenario(
        collateral_price=int(Decimal(collateral_price_eth) * WAD),
        debt_to_cover_mode=debt_to_cover_mode,
    )
    _log_banner("simulate", "", scenario.target)

    try:
        result = scenario.orchestrator.operate(scenario.initiator)
    except LiquidationError as exc:
        _logger.error("Settlement aborted: %s: %s", type(exc).__name__, exc)
        return 1

    _logger.info("Settlement      : %s", result.state.value)
    _logger.info("Binding         : %s", result.plan.binding.value)
    _logger.info("Repaid          : %s USDT", format_units(result.plan.max_repay_amount, 6))
    _logger.info("Seized          : %s WBTC", format_units(result.plan.max_collateral_amount, 8))
    _logger.info("Borrowed        : %s WETH", format_units(result.borrowed_amount, 18))
    _logger.info("Profit          : %s ETH", format_units(result.profit, 18))
    return 0


# ---------------------------------------------------------------------------
# Entrypoint
# ---------------------------------------------------------------------------


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Flash-swap liquidation engine")
    parser.add_argument(
        "--simulate",
        action="store_true",
        help="run the reference scenario in the in-memory environment",
    )
    parser.add_argument(
        "--collateral-price-eth",
        default="15",
        help="WBTC price after the drop, in ETH (simulation only)",
    )
    parser.add_argument(
        "--debt-to-cover-mode",
        choices=["max", "exact"],
        default="max",
        help="amount passed to liquidationCall (simulation only)",
    )
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> None:
    """Synchronous entry point."""
    load_dotenv()
    args = _parse_args(argv)
    try:
        if args.simulate:
            code = _simulate(args.collateral_price_eth, args.debt_to_cover_mode)
        else:
            code = asyncio.run(_dry_run())
    except KeyboardInterrupt:
        _logger.info("Interrupted by user")
        code = 130
    sys.exit(code)


if __name__ == "__main__":
    main()
