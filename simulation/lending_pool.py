"""
Aave V2 style lending pool model.

Reserves carry a packed ReserveConfiguration, an aToken (collateral receipt,
holding the underlying at its own address) and stable/variable debt tokens.
Balances do not accrue interest. ``liquidation_call`` follows the V2 flow:
health factor check, close-factor clamp, bonus-adjusted collateral amount with
the available-collateral cap, debt burn, debt pull from the liquidator, and
collateral (underlying or aToken) delivery.

Collateral arithmetic uses one fused floor division per quantity, so the amount
a liquidator pre-computes from the same inputs matches what the pool seizes.
"""

from __future__ import annotations

from bot_logging.logger_manager import setup_module_logger
from core.config_codec import (
    decode_reserve_config,
    encode_reserve_config,
    is_borrowing,
    is_using_as_collateral,
    set_borrowing,
    set_using_as_collateral,
)
from shared.constants import (
    DEFAULT_CLOSE_FACTOR_BPS,
    HEALTH_FACTOR_LIQUIDATION_THRESHOLD_WAD,
    MAX_RESERVES,
    PERCENTAGE_FACTOR,
    UINT256_MAX,
    WAD,
)
from shared.errors import Revert
from shared.interfaces import LendingPool
from shared.types import ReserveConfig, ReserveData, UserAccountData
from simulation.ledger import Ledger
from simulation.tokens import ERC20

logger = setup_module_logger("simulation", "simulation.log", module_folder="Simulation_Logs")


class AaveV2LendingPool(LendingPool):
    def __init__(
        self,
        ledger: Ledger,
        address: str,
        oracle: str,
        close_factor_bps: int = DEFAULT_CLOSE_FACTOR_BPS,
    ) -> None:
        self.address = address
        self._ledger = ledger
        self._oracle = oracle
        self._close_factor_bps = close_factor_bps
        self._state = ledger.storage(address)
        self._state.update({"reserves": {}, "reserves_list": [], "user_config": {}})
        ledger.register(address, self)

    # ------------------------------------------------------------------
    # Reserve administration
    # ------------------------------------------------------------------

    def init_reserve(
        self,
        asset: str,
        config: ReserveConfig,
        a_token: str,
        stable_debt_token: str,
        variable_debt_token: str,
    ) -> None:
        key = asset.lower()
        if key in self._state["reserves"]:
            raise Revert("RESERVE_ALREADY_INITIALIZED")
        if len(self._state["reserves_list"]) >= MAX_RESERVES:
            raise Revert("NO_MORE_RESERVES_ALLOWED")
        self._state["reserves"][key] = {
            "configuration": encode_reserve_config(config),
            "a_token": a_token,
            "stable_debt_token": stable_debt_token,
            "variable_debt_token": variable_debt_token,
            "id": len(self._state["reserves_list"]),
        }
        self._state["reserves_list"].append(asset)
        logger.info("Reserve %s initialized (id %d)", asset, self._state["reserves"][key]["id"])

    def set_configuration(self, asset: str, config: ReserveConfig) -> None:
        self._reserve(asset)["configuration"] = encode_reserve_config(config)

    # ------------------------------------------------------------------
    # Views
    # ------------------------------------------------------------------

    def get_reserve_data(self, asset: str) -> ReserveData:
        reserve = self._reserve(asset)
        return ReserveData(
            configuration=reserve["configuration"],
            a_token_address=reserve["a_token"],
            stable_debt_token_address=reserve["stable_debt_token"],
            variable_debt_token_address=reserve["variable_debt_token"],
            id=reserve["id"],
        )

    def get_reserves_list(self) -> list[str]:
        return list(self._state["reserves_list"])

    def get_configuration(self, asset: str) -> int:
        return self._reserve(asset)["configuration"]

    def get_user_configuration(self, user: str) -> int:
        return self._state["user_config"].get(user.lower(), 0)

    def get_user_account_data(self, user: str) -> UserAccountData:
        user_config = self.get_user_configuration(user)
        total_collateral = 0
        total_debt = 0
        weighted_ltv = 0
        weighted_threshold = 0

        for asset in self._state["reserves_list"]:
            reserve = self._reserve(asset)
            index = reserve["id"]
            if not is_using_as_collateral(user_config, index) and not is_borrowing(
                user_config, index
            ):
                continue
            config = decode_reserve_config(reserve["configuration"])
            price = self._price(asset)
            unit = 10**config.decimals

            if is_using_as_collateral(user_config, index) and config.liquidation_threshold_bps:
                value = self._token(reserve["a_token"]).balance_of(user) * price // unit
                total_collateral += value
                weighted_ltv += value * config.ltv_bps
                weighted_threshold += value * config.liquidation_threshold_bps

            if is_borrowing(user_config, index):
                total_debt += self._debt_of(reserve, user) * price // unit

        ltv = weighted_ltv // total_collateral if total_collateral else 0
        threshold = weighted_threshold // total_collateral if total_collateral else 0
        if total_debt == 0:
            health_factor = UINT256_MAX
        else:
            health_factor = total_collateral * threshold * WAD // (PERCENTAGE_FACTOR * total_debt)
        borrowable = total_collateral * ltv // PERCENTAGE_FACTOR
        return UserAccountData(
            total_collateral_base=total_collateral,
            total_debt_base=total_debt,
            available_borrows_base=max(borrowable - total_debt, 0),
            current_liquidation_threshold_bps=threshold,
            ltv_bps=ltv,
            health_factor_wad=health_factor,
        )

    # ------------------------------------------------------------------
    # User actions
    # ------------------------------------------------------------------

    def deposit(self, sender: str, asset: str, amount: int, on_behalf_of: str) -> None:
        if amount == 0:
            raise Revert("INVALID_AMOUNT")
        reserve = self._reserve(asset)
        config = decode_reserve_config(reserve["configuration"])
        if not config.active or config.frozen:
            raise Revert("NO_ACTIVE_RESERVE")

        self._token(asset).transfer_from(self.address, sender, reserve["a_token"], amount)
        a_token = self._token(reserve["a_token"])
        first_deposit = a_token.balance_of(on_behalf_of) == 0
        a_token.mint(on_behalf_of, amount)
        if first_deposit:
            self._set_user_flag(on_behalf_of, reserve["id"], collateral=True)
        logger.info("Deposit: %s supplied %d of %s", on_behalf_of, amount, asset)

    def borrow(self, sender: str, asset: str, amount: int) -> None:
        if amount == 0:
            raise Revert("INVALID_AMOUNT")
        reserve = self._reserve(asset)
        config = decode_reserve_config(reserve["configuration"])
        if not config.active or config.frozen or not config.borrowing_enabled:
            raise Revert("BORROWING_NOT_ENABLED")

        account = self.get_user_account_data(sender)
        if account.total_collateral_base == 0:
            raise Revert("COLLATERAL_BALANCE_IS_0")
        requested = amount * self._price(asset) // 10**config.decimals
        if requested > account.available_borrows_base:
            raise Revert("COLLATERAL_CANNOT_COVER_NEW_BORROW")

        self._token(reserve["variable_debt_token"]).mint(sender, amount)
        self._set_user_flag(sender, reserve["id"], borrowing=True)
        self._token(asset).transfer(reserve["a_token"], sender, amount)
        logger.info("Borrow: %s drew %d of %s", sender, amount, asset)

    def liquidation_call(
        self,
        sender: str,
        collateral_asset: str,
        debt_asset: str,
        user: str,
        debt_to_cover: int,
        receive_a_token: bool,
    ) -> None:
        collateral_reserve = self._reserve(collateral_asset)
        debt_reserve = self._reserve(debt_asset)
        collateral_config = decode_reserve_config(collateral_reserve["configuration"])
        debt_config = decode_reserve_config(debt_reserve["configuration"])
        if not collateral_config.active or not debt_config.active:
            raise Revert("NO_ACTIVE_RESERVE")

        account = self.get_user_account_data(user)
        if account.health_factor_wad >= HEALTH_FACTOR_LIQUIDATION_THRESHOLD_WAD:
            raise Revert("HEALTH_FACTOR_NOT_BELOW_THRESHOLD")

        a_token = self._token(collateral_reserve["a_token"])
        user_collateral = a_token.balance_of(user)
        user_config = self.get_user_configuration(user)
        if user_collateral == 0 or not is_using_as_collateral(
            user_config, collateral_reserve["id"]
        ):
            raise Revert("COLLATERAL_CANNOT_BE_LIQUIDATED")

        user_debt = self._debt_of(debt_reserve, user)
        if user_debt == 0:
            raise Revert("SPECIFIED_CURRENCY_NOT_BORROWED_BY_USER")

        max_liquidatable = user_debt * self._close_factor_bps // PERCENTAGE_FACTOR
        actual_debt = min(debt_to_cover, max_liquidatable)

        debt_price = self._price(debt_asset)
        collateral_price = self._price(collateral_asset)
        bonus = collateral_config.liquidation_bonus_bps
        debt_unit = 10**debt_config.decimals
        collateral_unit = 10**collateral_config.decimals

        max_collateral = (debt_price * actual_debt * collateral_unit * bonus) // (
            collateral_price * debt_unit * PERCENTAGE_FACTOR
        )
        if max_collateral >= user_collateral:
            collateral_amount = user_collateral
            debt_amount = (collateral_price * user_collateral * debt_unit * PERCENTAGE_FACTOR) // (
                debt_price * collateral_unit * bonus
            )
        else:
            collateral_amount = max_collateral
            debt_amount = actual_debt

        self._burn_debt(debt_reserve, user, debt_amount)
        self._token(debt_asset).transfer_from(
            self.address, sender, debt_reserve["a_token"], debt_amount
        )

        if receive_a_token:
            a_token.transfer(user, sender, collateral_amount)
        else:
            a_token.burn(user, collateral_amount)
            self._token(collateral_asset).transfer(
                collateral_reserve["a_token"], sender, collateral_amount
            )
        if a_token.balance_of(user) == 0:
            self._set_user_flag(user, collateral_reserve["id"], collateral=False)

        logger.info(
            "Liquidation of %s by %s: repaid %d %s, seized %d %s",
            user,
            sender,
            debt_amount,
            debt_asset,
            collateral_amount,
            collateral_asset,
        )

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _reserve(self, asset: str) -> dict:
        try:
            return self._state["reserves"][asset.lower()]
        except KeyError:
            raise Revert(f"reserve {asset} not initialized") from None

    def _token(self, address: str) -> ERC20:
        return self._ledger.contract_at(address)

    def _price(self, asset: str) -> int:
        return self._ledger.contract_at(self._oracle).get_asset_price(asset)

    def _debt_of(self, reserve: dict, user: str) -> int:
        return self._token(reserve["stable_debt_token"]).balance_of(user) + self._token(
            reserve["variable_debt_token"]
        ).balance_of(user)

    def _burn_debt(self, reserve: dict, user: str, amount: int) -> None:
        variable = self._token(reserve["variable_debt_token"])
        stable = self._token(reserve["stable_debt_token"])
        from_variable = min(variable.balance_of(user), amount)
        if from_variable:
            variable.burn(user, from_variable)
        if amount > from_variable:
            stable.burn(user, amount - from_variable)
        if self._debt_of(reserve, user) == 0:
            self._set_user_flag(user, reserve["id"], borrowing=False)

    def _set_user_flag(
        self,
        user: str,
        index: int,
        collateral: bool | None = None,
        borrowing: bool | None = None,
    ) -> None:
        configs = self._state["user_config"]
        config = configs.get(user.lower(), 0)
        if collateral is not None:
            config = set_using_as_collateral(config, index, collateral)
        if borrowing is not None:
            config = set_borrowing(config, index, borrowing)
        configs[user.lower()] = config
