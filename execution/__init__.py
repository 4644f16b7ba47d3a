from execution.aave_client import AaveClient, AaveClientError
from execution.uniswap_client import UniswapClient, UniswapClientError

__all__ = [
    "AaveClient",
    "AaveClientError",
    "UniswapClient",
    "UniswapClientError",
]
