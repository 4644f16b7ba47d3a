"""
Unit tests for the simulated execution environment (simulation/).

Covers the ledger journal (snapshot, revert, anchor, native transfers), the
atomic_unit scope, the constant-product pair and factory, wrapped native, and
the lending pool's account data, borrow limit, and liquidation clamping.
"""

from __future__ import annotations

import dataclasses

import pytest

from core.atomic import atomic_unit
from core.config_codec import is_borrowing, is_using_as_collateral
from core.market_math import amounts_out_for, quote_in, quote_out
from shared.constants import UINT256_MAX, WAD, ZERO_ADDRESS
from shared.errors import Revert, TransferFailed
from simulation.ledger import Ledger
from simulation.scenario import (
    A_WBTC,
    BORROWER,
    LENDER,
    USDT_RESERVE_CONFIG,
    VARIABLE_DEBT_USDT,
    build_scenario,
)
from simulation.tokens import ERC20, WETH

ALICE = "0x00000000000000000000000000000000000a11ce"
BOB = "0x0000000000000000000000000000000000000b0b"
TOKEN = "0x0000000000000000000000000000000000007000"
TRADER = "0x000000000000000000000000000000000000beef"


class _Receiver:
    def __init__(self):
        self.received = []

    def receive_native(self, sender, amount):
        self.received.append((sender, amount))


class _RejectingReceiver:
    def receive_native(self, sender, amount):
        raise Revert("no thanks")


class _NoReceiveHook:
    pass


class _ReentrantCallee:
    def __init__(self, pair):
        self.pair = pair

    def on_swap_callback(self, caller, sender, amount0, amount1, payload):
        self.pair.swap(sender, amount0, amount1, TRADER, b"")


@pytest.fixture
def ledger():
    return Ledger()


@pytest.fixture
def token(ledger):
    erc20 = ERC20(ledger, TOKEN, "TKN", 18)
    erc20.mint(ALICE, 1000)
    return erc20


# ---------------------------------------------------------------------------
# A. Ledger journal
# ---------------------------------------------------------------------------


class TestLedgerJournal:

    def test_revert_restores_balances_in_place(self, ledger, token):
        storage = ledger.storage(TOKEN)
        snapshot_id = ledger.snapshot()
        token.transfer(ALICE, BOB, 400)
        assert token.balance_of(BOB) == 400

        ledger.revert(snapshot_id)
        assert token.balance_of(ALICE) == 1000
        assert token.balance_of(BOB) == 0
        # Contracts hold the live dict; it must be the same object afterwards
        assert ledger.storage(TOKEN) is storage

    def test_release_commits(self, ledger, token):
        snapshot_id = ledger.snapshot()
        token.transfer(ALICE, BOB, 400)
        ledger.release(snapshot_id)
        assert token.balance_of(BOB) == 400

    def test_revert_discards_later_snapshots(self, ledger, token):
        outer = ledger.snapshot()
        token.transfer(ALICE, BOB, 1)
        inner = ledger.snapshot()
        ledger.revert(outer)
        with pytest.raises(KeyError):
            ledger.revert(inner)

    def test_anchor_always_reverts(self, ledger, token):
        with ledger.anchor():
            token.transfer(ALICE, BOB, 400)
        assert token.balance_of(BOB) == 0

    def test_register_twice_rejected(self, ledger, token):
        with pytest.raises(ValueError, match="already registered"):
            ledger.register(TOKEN, object())

    def test_unknown_contract(self, ledger):
        with pytest.raises(Revert, match="no contract"):
            ledger.contract_at(BOB)


class TestAtomicUnit:

    def test_commits_on_success(self, ledger, token):
        with atomic_unit(ledger):
            token.transfer(ALICE, BOB, 10)
        assert token.balance_of(BOB) == 10

    def test_reverts_and_reraises_on_failure(self, ledger, token):
        with pytest.raises(TransferFailed):
            with atomic_unit(ledger):
                token.transfer(ALICE, BOB, 10)
                token.transfer(BOB, ALICE, 11)
        assert token.balance_of(ALICE) == 1000
        assert token.balance_of(BOB) == 0


# ---------------------------------------------------------------------------
# B. Native currency and wrapped native
# ---------------------------------------------------------------------------


class TestNativeTransfers:

    def test_plain_account(self, ledger):
        ledger.mint_native(ALICE, 100)
        ledger.transfer_native(ALICE, BOB, 60)
        assert ledger.native_balance(ALICE) == 40
        assert ledger.native_balance(BOB) == 60

    def test_insufficient_balance(self, ledger):
        with pytest.raises(TransferFailed):
            ledger.transfer_native(ALICE, BOB, 1)

    def test_contract_receive_hook_called(self, ledger):
        receiver = _Receiver()
        ledger.register(BOB, receiver)
        ledger.mint_native(ALICE, 5)
        ledger.transfer_native(ALICE, BOB, 5)
        assert receiver.received == [(ALICE, 5)]

    def test_contract_without_hook_rejects(self, ledger):
        ledger.register(BOB, _NoReceiveHook())
        ledger.mint_native(ALICE, 5)
        with pytest.raises(Revert, match="cannot receive"):
            ledger.transfer_native(ALICE, BOB, 5)
        assert ledger.native_balance(ALICE) == 5

    def test_rejecting_hook_restores_balances(self, ledger):
        ledger.register(BOB, _RejectingReceiver())
        ledger.mint_native(ALICE, 5)
        with pytest.raises(Revert, match="no thanks"):
            ledger.transfer_native(ALICE, BOB, 5)
        assert ledger.native_balance(ALICE) == 5
        assert ledger.native_balance(BOB) == 0

    def test_weth_wrap_and_unwrap(self, ledger):
        weth = WETH(ledger, TOKEN)
        ledger.mint_native(ALICE, WAD)
        weth.deposit(ALICE, WAD)
        assert weth.balance_of(ALICE) == WAD
        assert ledger.native_balance(ALICE) == 0

        weth.withdraw(ALICE, WAD // 4)
        assert weth.balance_of(ALICE) == 3 * WAD // 4
        assert ledger.native_balance(ALICE) == WAD // 4
        assert ledger.native_balance(TOKEN) == 3 * WAD // 4

    def test_weth_withdraw_over_balance(self, ledger):
        weth = WETH(ledger, TOKEN)
        with pytest.raises(TransferFailed):
            weth.withdraw(ALICE, 1)


# ---------------------------------------------------------------------------
# C. Constant-product pair and factory
# ---------------------------------------------------------------------------


class TestPair:

    def test_paid_swap_updates_reserves(self, scenario):
        pair = scenario.collateral_pair
        reserve0, reserve1, timestamp = pair.get_reserves()
        amount_in = 10**6
        amount_out = quote_out(amount_in, reserve0, reserve1)  # WBTC is token0

        scenario.wbtc.mint(TRADER, amount_in)
        scenario.wbtc.transfer(TRADER, pair.address, amount_in)
        pair.swap(TRADER, *amounts_out_for(scenario.weth.address, pair.token0, amount_out), TRADER, b"")

        assert scenario.weth.balance_of(TRADER) == amount_out
        assert pair.get_reserves() == (reserve0 + amount_in, reserve1 - amount_out, timestamp + 1)

    def test_overdrawn_swap_fails_invariant(self, scenario):
        pair = scenario.collateral_pair
        reserve0, reserve1, _ = pair.get_reserves()
        amount_in = 10**6
        greedy = quote_out(amount_in, reserve0, reserve1) + 10**12

        scenario.wbtc.mint(TRADER, amount_in)
        scenario.wbtc.transfer(TRADER, pair.address, amount_in)
        with pytest.raises(Revert, match="UniswapV2: K"):
            with scenario.ledger.anchor():
                pair.swap(TRADER, 0, greedy, TRADER, b"")

    def test_unpaid_swap(self, scenario):
        with pytest.raises(Revert, match="INSUFFICIENT_INPUT_AMOUNT"):
            with scenario.ledger.anchor():
                scenario.collateral_pair.swap(TRADER, 0, 1, TRADER, b"")

    @pytest.mark.parametrize(
        "amounts, reason",
        [
            ((0, 0), "INSUFFICIENT_OUTPUT_AMOUNT"),
            ((100 * 10**8, 0), "INSUFFICIENT_LIQUIDITY"),
        ],
    )
    def test_invalid_outputs(self, scenario, amounts, reason):
        with pytest.raises(Revert, match=reason):
            scenario.collateral_pair.swap(TRADER, *amounts, TRADER, b"")

    def test_output_to_token_rejected(self, scenario):
        pair = scenario.collateral_pair
        with pytest.raises(Revert, match="INVALID_TO"):
            pair.swap(TRADER, 1, 0, pair.token1, b"")

    def test_reentrancy_locked(self, scenario):
        pair = scenario.collateral_pair
        scenario.ledger.register(TRADER, _ReentrantCallee(pair))
        with pytest.raises(Revert, match="LOCKED"):
            with scenario.ledger.anchor():
                pair.swap(TRADER, 0, 1, TRADER, b"\x01")
        # Lock released after the failed swap
        assert scenario.ledger.storage(pair.address)["unlocked"] is True

    def test_factory_lookup_is_order_independent(self, scenario):
        wbtc, weth = scenario.wbtc.address, scenario.weth.address
        assert scenario.factory.get_pair(wbtc, weth) == scenario.collateral_pair.address
        assert scenario.factory.get_pair(weth, wbtc) == scenario.collateral_pair.address
        assert scenario.factory.get_pair(wbtc, scenario.usdt.address) == ZERO_ADDRESS

    def test_duplicate_pair_rejected(self, scenario):
        with pytest.raises(Revert, match="PAIR_EXISTS"):
            scenario.factory.create_pair(scenario.weth.address, scenario.wbtc.address)

    def test_quote_in_buys_exact_output(self, scenario):
        pair = scenario.debt_pair
        reserve_usdt, reserve_weth, _ = pair.get_reserves()  # USDT is token0
        wanted = 1_000 * 10**6
        cost = quote_in(wanted, reserve_weth, reserve_usdt)

        scenario.ledger.mint_native(TRADER, cost)
        scenario.weth.deposit(TRADER, cost)
        scenario.weth.transfer(TRADER, pair.address, cost)
        pair.swap(TRADER, wanted, 0, TRADER, b"")
        assert scenario.usdt.balance_of(TRADER) == wanted


# ---------------------------------------------------------------------------
# D. Lending pool
# ---------------------------------------------------------------------------


class TestLendingPoolAccounts:

    def test_account_data_after_drop(self, scenario):
        account = scenario.pool.get_user_account_data(BORROWER)
        # 1 WBTC at 15 ETH against 30,000 USDT at 0.0005 ETH
        assert account.total_collateral_base == 15 * WAD
        assert account.total_debt_base == 15 * WAD
        assert account.ltv_bps == 7000
        assert account.current_liquidation_threshold_bps == 7500
        assert account.available_borrows_base == 0
        assert account.health_factor_wad == 75 * 10**16

    def test_no_debt_health_factor_is_max(self, scenario):
        account = scenario.pool.get_user_account_data(LENDER)
        assert account.health_factor_wad == UINT256_MAX
        assert account.total_debt_base == 0

    def test_user_configuration_bits(self, scenario):
        usdt_id = scenario.pool.get_reserve_data(scenario.usdt.address).id
        wbtc_id = scenario.pool.get_reserve_data(scenario.wbtc.address).id
        config = scenario.pool.get_user_configuration(BORROWER)
        assert is_borrowing(config, usdt_id)
        assert is_using_as_collateral(config, wbtc_id)
        assert not is_using_as_collateral(config, usdt_id)
        assert not is_borrowing(config, wbtc_id)

    def test_reserves_list_order(self, scenario):
        assert scenario.pool.get_reserves_list() == [scenario.usdt.address, scenario.wbtc.address]

    def test_borrow_beyond_limit_rejected(self, scenario):
        with pytest.raises(Revert, match="COLLATERAL_CANNOT_COVER_NEW_BORROW"):
            scenario.pool.borrow(BORROWER, scenario.usdt.address, 1)

    def test_unknown_reserve(self, scenario):
        with pytest.raises(Revert, match="not initialized"):
            scenario.pool.get_configuration(scenario.weth.address)

    def test_frozen_reserve_rejects_deposit(self, scenario):
        frozen = dataclasses.replace(USDT_RESERVE_CONFIG, frozen=True)
        scenario.pool.set_configuration(scenario.usdt.address, frozen)
        with pytest.raises(Revert, match="NO_ACTIVE_RESERVE"):
            scenario.pool.deposit(LENDER, scenario.usdt.address, 1, LENDER)


class TestLendingPoolLiquidation:

    @staticmethod
    def _fund_liquidator(scenario, amount):
        scenario.usdt.mint(TRADER, amount)
        scenario.usdt.approve(TRADER, scenario.pool.address, amount)

    def test_healthy_position_rejected(self):
        scenario = build_scenario(collateral_price=45 * WAD)
        self._fund_liquidator(scenario, 15_000 * 10**6)
        with pytest.raises(Revert, match="HEALTH_FACTOR_NOT_BELOW_THRESHOLD"):
            scenario.pool.liquidation_call(
                TRADER, scenario.wbtc.address, scenario.usdt.address, BORROWER, UINT256_MAX, False
            )

    def test_close_factor_clamp_with_receipt_token(self, scenario):
        self._fund_liquidator(scenario, 20_000 * 10**6)
        scenario.pool.liquidation_call(
            TRADER, scenario.wbtc.address, scenario.usdt.address, BORROWER, UINT256_MAX, True
        )
        assert scenario.usdt.balance_of(TRADER) == 5_000 * 10**6
        assert scenario.ledger.contract_at(A_WBTC).balance_of(TRADER) == 52_500_000
        assert scenario.wbtc.balance_of(TRADER) == 0
        assert scenario.ledger.contract_at(VARIABLE_DEBT_USDT).balance_of(BORROWER) == 15_000 * 10**6

    def test_partial_cover_below_close_factor(self, scenario):
        self._fund_liquidator(scenario, 2_000 * 10**6)
        scenario.pool.liquidation_call(
            TRADER, scenario.wbtc.address, scenario.usdt.address, BORROWER, 2_000 * 10**6, False
        )
        # 1 ETH of debt * 1.05 / 15 ETH per WBTC = 0.07 WBTC
        assert scenario.wbtc.balance_of(TRADER) == 7_000_000
        assert scenario.usdt.balance_of(TRADER) == 0

    def test_collateral_clamp_seizes_everything(self, collateral_bound_scenario):
        scenario = collateral_bound_scenario
        self._fund_liquidator(scenario, 15_000 * 10**6)
        scenario.pool.liquidation_call(
            TRADER, scenario.wbtc.address, scenario.usdt.address, BORROWER, UINT256_MAX, False
        )
        assert scenario.wbtc.balance_of(TRADER) == 10**8
        assert scenario.usdt.balance_of(TRADER) == 15_000 * 10**6 - 11_428_571_428
        wbtc_id = scenario.pool.get_reserve_data(scenario.wbtc.address).id
        assert not is_using_as_collateral(scenario.pool.get_user_configuration(BORROWER), wbtc_id)

    def test_without_allowance_fails(self, scenario):
        scenario.usdt.mint(TRADER, 15_000 * 10**6)
        with pytest.raises(TransferFailed, match="allowance"):
            scenario.pool.liquidation_call(
                TRADER, scenario.wbtc.address, scenario.usdt.address, BORROWER, UINT256_MAX, False
            )

    def test_missing_oracle_price(self, scenario):
        with pytest.raises(Revert, match="no price"):
            scenario.oracle.get_asset_price(TRADER)
