"""
Uniswap V2 client: async reads of factory pair lookups and pair reserves.

Usage:
    client = UniswapClient(w3)
    pair = await client.get_pair(token_a, token_b)
    reserve0, reserve1, _ = await client.get_reserves(pair)
"""

from __future__ import annotations

from web3 import AsyncWeb3, Web3

from bot_logging.logger_manager import setup_module_logger
from config.loader import get_config
from shared.constants import UNISWAP_V2_FACTORY, ZERO_ADDRESS


class UniswapClientError(Exception):
    """Raised when a Uniswap V2 contract call fails."""


class UniswapClient:
    def __init__(self, w3: AsyncWeb3, factory: str = UNISWAP_V2_FACTORY) -> None:
        self._w3 = w3
        cfg = get_config()
        self._factory = w3.eth.contract(
            address=Web3.to_checksum_address(factory),
            abi=cfg.get_abi("uniswap_v2_factory"),
        )
        self._pair_abi = cfg.get_abi("uniswap_v2_pair")
        self._logger = setup_module_logger(
            "uniswap_client", "uniswap_client.log", module_folder="Uniswap_Client_Logs"
        )

    def _pair(self, pair: str):
        return self._w3.eth.contract(address=Web3.to_checksum_address(pair), abi=self._pair_abi)

    async def get_pair(self, token_a: str, token_b: str) -> str:
        """Pair address for the two tokens; raises when the pair does not exist."""
        try:
            address = await self._factory.functions.getPair(
                Web3.to_checksum_address(token_a), Web3.to_checksum_address(token_b)
            ).call()
        except Exception as e:
            self._logger.error("Failed to get pair for %s/%s: %s", token_a, token_b, e)
            raise UniswapClientError(f"getPair failed for {token_a}/{token_b}: {e}") from e
        if int(address, 16) == int(ZERO_ADDRESS, 16):
            raise UniswapClientError(f"no pair for {token_a}/{token_b}")
        return address

    async def get_reserves(self, pair: str) -> tuple[int, int, int]:
        """(reserve0, reserve1, block_timestamp_last)."""
        try:
            reserve0, reserve1, timestamp = await self._pair(pair).functions.getReserves().call()
            self._logger.debug("Reserves of %s: %d / %d", pair, reserve0, reserve1)
            return reserve0, reserve1, timestamp
        except Exception as e:
            self._logger.error("Failed to get reserves for %s: %s", pair, e)
            raise UniswapClientError(f"getReserves failed for {pair}: {e}") from e

    async def get_token0(self, pair: str) -> str:
        try:
            return await self._pair(pair).functions.token0().call()
        except Exception as e:
            self._logger.error("Failed to get token0 for %s: %s", pair, e)
            raise UniswapClientError(f"token0 failed for {pair}: {e}") from e
