"""
Reference liquidation scenario on a fresh Ledger.

A borrower supplies 1 WBTC, draws 30,000 USDT against it, and the WBTC price
then drops until the position is under water. Prices are in wei of native
currency per whole token (USDT at 1/2000 ETH). Two constant-product pairs give
the liquidator its markets: WBTC/WETH (100 WBTC deep, at the post-drop oracle
price) and USDT/WETH (2,000,000 USDT : 1,000 WETH).

Usage:
    from simulation.scenario import build_scenario

    scenario = build_scenario()                           # close factor binds
    scenario = build_scenario(collateral_price=6 * 10**18)  # collateral binds
    result = scenario.orchestrator.operate(scenario.initiator)
"""

from __future__ import annotations

from dataclasses import dataclass

from bot_logging.logger_manager import setup_module_logger
from core.orchestrator import SettlementOrchestrator
from shared.constants import DEFAULT_CLOSE_FACTOR_BPS, DEFAULT_DEBT_TO_COVER_MODE, WAD
from shared.types import LiquidationTarget, ReserveConfig
from simulation.ledger import Ledger
from simulation.lending_pool import AaveV2LendingPool
from simulation.oracle import StaticPriceOracle
from simulation.tokens import ERC20, WETH
from simulation.uniswap import UniswapV2Factory, UniswapV2Pair

logger = setup_module_logger("simulation", "simulation.log", module_folder="Simulation_Logs")

# Deterministic addresses
LENDING_POOL = "0x000000000000000000000000000000000000a000"
ORACLE = "0x000000000000000000000000000000000000a001"
FACTORY = "0x000000000000000000000000000000000000f000"
WETH_ADDRESS = "0x0000000000000000000000000000000000000e00"
USDT_ADDRESS = "0x0000000000000000000000000000000000000d00"
WBTC_ADDRESS = "0x0000000000000000000000000000000000000c00"
A_USDT = "0x0000000000000000000000000000000000000d01"
STABLE_DEBT_USDT = "0x0000000000000000000000000000000000000d02"
VARIABLE_DEBT_USDT = "0x0000000000000000000000000000000000000d03"
A_WBTC = "0x0000000000000000000000000000000000000c01"
STABLE_DEBT_WBTC = "0x0000000000000000000000000000000000000c02"
VARIABLE_DEBT_WBTC = "0x0000000000000000000000000000000000000c03"
BORROWER = "0x00000000000000000000000000000000000b0b00"
LENDER = "0x00000000000000000000000000000000000001e0"
LIQUIDITY_PROVIDER = "0x00000000000000000000000000000000000001b0"
LIQUIDATOR = "0x0000000000000000000000000000000000001100"
INITIATOR = "0x0000000000000000000000000000000000000a11"

USDT_PRICE = 5 * 10**14  # 1 USDT = 0.0005 ETH
WBTC_PRICE_BEFORE_DROP = 45 * WAD
WBTC_PRICE_AFTER_DROP = 15 * WAD

USDT_RESERVE_CONFIG = ReserveConfig(
    ltv_bps=8000,
    liquidation_threshold_bps=8500,
    liquidation_bonus_bps=10500,
    decimals=6,
    active=True,
    frozen=False,
    borrowing_enabled=True,
    stable_rate_enabled=False,
    reserve_factor_bps=1000,
)
WBTC_RESERVE_CONFIG = ReserveConfig(
    ltv_bps=7000,
    liquidation_threshold_bps=7500,
    liquidation_bonus_bps=10500,
    decimals=8,
    active=True,
    frozen=False,
    borrowing_enabled=True,
    stable_rate_enabled=True,
    reserve_factor_bps=2000,
)


@dataclass
class Scenario:
    ledger: Ledger
    target: LiquidationTarget
    orchestrator: SettlementOrchestrator
    pool: AaveV2LendingPool
    oracle: StaticPriceOracle
    factory: UniswapV2Factory
    weth: WETH
    usdt: ERC20
    wbtc: ERC20
    collateral_pair: UniswapV2Pair
    debt_pair: UniswapV2Pair
    initiator: str = INITIATOR


def build_scenario(
    collateral_price: int = WBTC_PRICE_AFTER_DROP,
    collateral_deposit: int = 10**8,
    debt_borrowed: int = 30_000 * 10**6,
    close_factor_bps: int = DEFAULT_CLOSE_FACTOR_BPS,
    debt_to_cover_mode: str = DEFAULT_DEBT_TO_COVER_MODE,
    pool_cls: type[AaveV2LendingPool] = AaveV2LendingPool,
) -> Scenario:
    """
    Build the reference scenario.

    Args:
        collateral_price: WBTC oracle price after the drop (wei per WBTC). The
            WBTC/WETH pair is seeded at the same price.
        collateral_deposit: Borrower's WBTC supply (8 decimals).
        debt_borrowed: Borrower's USDT debt (6 decimals).
        close_factor_bps: Close factor used by both the pool and the target.
        debt_to_cover_mode: "max" or "exact".
        pool_cls: Lending pool implementation (tests substitute misbehaving pools).
    """
    ledger = Ledger()

    weth = WETH(ledger, WETH_ADDRESS)
    usdt = ERC20(ledger, USDT_ADDRESS, "USDT", 6)
    wbtc = ERC20(ledger, WBTC_ADDRESS, "WBTC", 8)
    for address, symbol, decimals in (
        (A_USDT, "aUSDT", 6),
        (STABLE_DEBT_USDT, "stableDebtUSDT", 6),
        (VARIABLE_DEBT_USDT, "variableDebtUSDT", 6),
        (A_WBTC, "aWBTC", 8),
        (STABLE_DEBT_WBTC, "stableDebtWBTC", 8),
        (VARIABLE_DEBT_WBTC, "variableDebtWBTC", 8),
    ):
        ERC20(ledger, address, symbol, decimals)

    oracle = StaticPriceOracle(ledger, ORACLE)
    oracle.set_asset_price(USDT_ADDRESS, USDT_PRICE)
    oracle.set_asset_price(WBTC_ADDRESS, WBTC_PRICE_BEFORE_DROP)
    oracle.set_asset_price(WETH_ADDRESS, WAD)

    pool = pool_cls(ledger, LENDING_POOL, ORACLE, close_factor_bps=close_factor_bps)
    pool.init_reserve(USDT_ADDRESS, USDT_RESERVE_CONFIG, A_USDT, STABLE_DEBT_USDT, VARIABLE_DEBT_USDT)
    pool.init_reserve(WBTC_ADDRESS, WBTC_RESERVE_CONFIG, A_WBTC, STABLE_DEBT_WBTC, VARIABLE_DEBT_WBTC)

    # Lender funds the USDT reserve; borrower opens the position at the old price
    usdt.mint(LENDER, 1_000_000 * 10**6)
    usdt.approve(LENDER, LENDING_POOL, 1_000_000 * 10**6)
    pool.deposit(LENDER, USDT_ADDRESS, 1_000_000 * 10**6, LENDER)

    wbtc.mint(BORROWER, collateral_deposit)
    wbtc.approve(BORROWER, LENDING_POOL, collateral_deposit)
    pool.deposit(BORROWER, WBTC_ADDRESS, collateral_deposit, BORROWER)
    pool.borrow(BORROWER, USDT_ADDRESS, debt_borrowed)

    oracle.set_asset_price(WBTC_ADDRESS, collateral_price)

    # Markets
    factory = UniswapV2Factory(ledger, FACTORY)
    collateral_pair = factory.create_pair(WBTC_ADDRESS, WETH_ADDRESS)
    debt_pair = factory.create_pair(USDT_ADDRESS, WETH_ADDRESS)
    collateral_reserve_wbtc = 100 * 10**8
    collateral_reserve_weth = 100 * collateral_price
    debt_reserve_usdt = 2_000_000 * 10**6
    debt_reserve_weth = 1_000 * WAD

    ledger.mint_native(LIQUIDITY_PROVIDER, collateral_reserve_weth + debt_reserve_weth)
    weth.deposit(LIQUIDITY_PROVIDER, collateral_reserve_weth + debt_reserve_weth)
    wbtc.mint(collateral_pair.address, collateral_reserve_wbtc)
    weth.transfer(LIQUIDITY_PROVIDER, collateral_pair.address, collateral_reserve_weth)
    collateral_pair.sync()
    usdt.mint(debt_pair.address, debt_reserve_usdt)
    weth.transfer(LIQUIDITY_PROVIDER, debt_pair.address, debt_reserve_weth)
    debt_pair.sync()

    target = LiquidationTarget(
        lending_pool=LENDING_POOL,
        factory=FACTORY,
        oracle=ORACLE,
        wrapped_native=WETH_ADDRESS,
        collateral_asset=WBTC_ADDRESS,
        debt_asset=USDT_ADDRESS,
        user=BORROWER,
        close_factor_bps=close_factor_bps,
        debt_to_cover_mode=debt_to_cover_mode,
    )
    orchestrator = SettlementOrchestrator(ledger, target, LIQUIDATOR)
    ledger.register(LIQUIDATOR, orchestrator)

    account = pool.get_user_account_data(BORROWER)
    logger.info(
        "Scenario ready: borrower health factor %s, collateral price %d",
        account.health_factor,
        collateral_price,
    )
    return Scenario(
        ledger=ledger,
        target=target,
        orchestrator=orchestrator,
        pool=pool,
        oracle=oracle,
        factory=factory,
        weth=weth,
        usdt=usdt,
        wbtc=wbtc,
        collateral_pair=collateral_pair,
        debt_pair=debt_pair,
    )
