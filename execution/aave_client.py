"""
Aave V2 client: thin async read + encode wrapper.

Reads on-chain state (account data, reserve data, configuration bitmaps, oracle
prices, receipt/debt token balances) and encodes liquidationCall calldata. No
transaction submission.

Usage:
    from web3 import AsyncWeb3, AsyncHTTPProvider
    from execution.aave_client import AaveClient

    w3 = AsyncWeb3(AsyncHTTPProvider(rpc_url))
    client = AaveClient(w3)
    account = await client.get_user_account_data(user_address)
"""

from __future__ import annotations

from web3 import AsyncWeb3, Web3

from bot_logging.logger_manager import setup_module_logger
from config.loader import get_config
from core.config_codec import decode_reserve_config
from shared.constants import AAVE_V2_LENDING_POOL, AAVE_V2_PRICE_ORACLE
from shared.types import Position, ReserveConfig, ReserveData, UserAccountData


class AaveClientError(Exception):
    """Raised when an Aave V2 contract call fails."""


class AaveClient:
    """
    Async read + sync encode wrapper for the Aave V2 LendingPool and price oracle.

    Accepts an AsyncWeb3 instance via dependency injection so the same
    connection can be shared across clients. All read methods are async
    (RPC calls). Encode methods are sync (local ABI encoding only).
    """

    def __init__(
        self,
        w3: AsyncWeb3,
        lending_pool: str = AAVE_V2_LENDING_POOL,
        oracle: str = AAVE_V2_PRICE_ORACLE,
    ) -> None:
        self._w3 = w3
        cfg = get_config()

        self._pool = w3.eth.contract(
            address=Web3.to_checksum_address(lending_pool),
            abi=cfg.get_abi("aave_v2_lending_pool"),
        )
        self._oracle = w3.eth.contract(
            address=Web3.to_checksum_address(oracle),
            abi=cfg.get_abi("aave_v2_price_oracle"),
        )
        self._erc20_abi = cfg.get_abi("erc20")

        self._logger = setup_module_logger(
            "aave_client", "aave_client.log", module_folder="Aave_Client_Logs"
        )

    # ------------------------------------------------------------------
    # Read operations (async, RPC calls)
    # ------------------------------------------------------------------

    async def get_user_account_data(self, user: str) -> UserAccountData:
        """
        Query the LendingPool for a user's aggregate position.

        Values stay raw: collateral/debt/borrows in the oracle unit (wei on
        mainnet), threshold and LTV in bps, health factor in WAD.
        """
        try:
            checksum = Web3.to_checksum_address(user)
            result = await self._pool.functions.getUserAccountData(checksum).call()
            return UserAccountData(
                total_collateral_base=result[0],
                total_debt_base=result[1],
                available_borrows_base=result[2],
                current_liquidation_threshold_bps=result[3],
                ltv_bps=result[4],
                health_factor_wad=result[5],
            )
        except AaveClientError:
            raise
        except Exception as e:
            self._logger.error("Failed to get user account data for %s: %s", user, e)
            raise AaveClientError(f"getUserAccountData failed: {e}") from e

    async def get_reserve_data(self, asset: str) -> ReserveData:
        """
        Query LendingPool.getReserveData (12-field struct).

        The configuration field is itself a one-field struct ``(data,)``.
        """
        try:
            checksum = Web3.to_checksum_address(asset)
            result = await self._pool.functions.getReserveData(checksum).call()
            return ReserveData(
                configuration=result[0][0],
                a_token_address=result[7],
                stable_debt_token_address=result[8],
                variable_debt_token_address=result[9],
                id=result[11],
            )
        except AaveClientError:
            raise
        except Exception as e:
            self._logger.error("Failed to get reserve data for %s: %s", asset, e)
            raise AaveClientError(f"getReserveData failed for {asset}: {e}") from e

    async def get_reserve_config(self, asset: str) -> ReserveConfig:
        """Decoded ReserveConfiguration for ``asset``."""
        try:
            checksum = Web3.to_checksum_address(asset)
            result = await self._pool.functions.getConfiguration(checksum).call()
            return decode_reserve_config(result[0])
        except AaveClientError:
            raise
        except Exception as e:
            self._logger.error("Failed to get configuration for %s: %s", asset, e)
            raise AaveClientError(f"getConfiguration failed for {asset}: {e}") from e

    async def get_user_configuration(self, user: str) -> int:
        """Packed UserConfiguration bitmap (bit 2i borrowing, 2i+1 collateral)."""
        try:
            checksum = Web3.to_checksum_address(user)
            result = await self._pool.functions.getUserConfiguration(checksum).call()
            return result[0]
        except AaveClientError:
            raise
        except Exception as e:
            self._logger.error("Failed to get user configuration for %s: %s", user, e)
            raise AaveClientError(f"getUserConfiguration failed: {e}") from e

    async def get_reserves_list(self) -> list[str]:
        """Reserve addresses ordered by reserve id."""
        try:
            return list(await self._pool.functions.getReservesList().call())
        except Exception as e:
            self._logger.error("Failed to get reserves list: %s", e)
            raise AaveClientError(f"getReservesList failed: {e}") from e

    async def get_asset_price(self, asset: str) -> int:
        """Asset price in the oracle unit (wei of ETH per whole token on mainnet V2)."""
        try:
            checksum = Web3.to_checksum_address(asset)
            price = await self._oracle.functions.getAssetPrice(checksum).call()
            self._logger.debug("Asset price for %s: %d", asset, price)
            return price
        except AaveClientError:
            raise
        except Exception as e:
            self._logger.error("Failed to get asset price for %s: %s", asset, e)
            raise AaveClientError(f"getAssetPrice failed for {asset}: {e}") from e

    async def get_user_position(self, user: str, collateral_asset: str, debt_asset: str) -> Position:
        """
        Fresh (debt, collateral) balances for one asset pair.

        Debt is the stable + variable debt token balance of ``debt_asset``;
        collateral is the aToken balance of ``collateral_asset``.
        """
        debt_reserve = await self.get_reserve_data(debt_asset)
        collateral_reserve = await self.get_reserve_data(collateral_asset)
        try:
            checksum = Web3.to_checksum_address(user)
            stable = await self._balance_of(debt_reserve.stable_debt_token_address, checksum)
            variable = await self._balance_of(debt_reserve.variable_debt_token_address, checksum)
            collateral = await self._balance_of(collateral_reserve.a_token_address, checksum)
        except Exception as e:
            self._logger.error("Failed to read token balances for %s: %s", user, e)
            raise AaveClientError(f"balanceOf failed for {user}: {e}") from e
        return Position(debt_amount=stable + variable, collateral_amount=collateral)

    async def _balance_of(self, token: str, account: str) -> int:
        contract = self._w3.eth.contract(
            address=Web3.to_checksum_address(token), abi=self._erc20_abi
        )
        return await contract.functions.balanceOf(account).call()

    # ------------------------------------------------------------------
    # Encode operations (sync, local ABI encoding, no RPC)
    # ------------------------------------------------------------------

    def encode_liquidation_call(
        self,
        collateral_asset: str,
        debt_asset: str,
        user: str,
        debt_to_cover: int,
        receive_a_token: bool = False,
    ) -> str:
        """
        Encode calldata for LendingPool.liquidationCall().

        Args:
            collateral_asset: Reserve to seize.
            debt_asset: Reserve being repaid.
            user: Borrower under water.
            debt_to_cover: Debt amount in native decimals; uint256 max lets the
                pool clamp to the close factor.
            receive_a_token: Take aTokens instead of the underlying.

        Returns:
            Hex-encoded calldata string.
        """
        try:
            return self._pool.encode_abi(
                "liquidationCall",
                args=[
                    Web3.to_checksum_address(collateral_asset),
                    Web3.to_checksum_address(debt_asset),
                    Web3.to_checksum_address(user),
                    debt_to_cover,
                    receive_a_token,
                ],
            )
        except Exception as e:
            self._logger.error("Failed to encode liquidationCall: %s", e)
            raise AaveClientError(f"encode liquidationCall failed: {e}") from e
