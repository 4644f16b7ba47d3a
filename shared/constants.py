"""
Shared constants for the flash-swap liquidator.

Numeric scales, bitmap layout, and protocol defaults used across all modules.
Every integer constant is tagged with the scale it lives in.
"""

from decimal import Decimal

# ---------------------------------------------------------------------------
# Numeric Constants
# ---------------------------------------------------------------------------

WAD = 10**18  # 1e18 (Aave health factor, wrapped native amounts)
PERCENTAGE_FACTOR = 10_000  # 1e4 (bps: LTV, liquidation threshold/bonus, close factor)
HALF_PERCENTAGE_FACTOR = PERCENTAGE_FACTOR // 2
UINT256_MAX = 2**256 - 1
ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"

WAD_DECIMAL = Decimal(WAD)

# ---------------------------------------------------------------------------
# Health Factor
# ---------------------------------------------------------------------------

HEALTH_FACTOR_LIQUIDATION_THRESHOLD_WAD = WAD  # 1.0 in WAD

# ---------------------------------------------------------------------------
# Constant-product market (Uniswap V2) fee: 0.3% as 997/1000
# ---------------------------------------------------------------------------

SWAP_FEE_NUMERATOR = 997
SWAP_FEE_DENOMINATOR = 1000
MINIMUM_LIQUIDITY = 1000

# ---------------------------------------------------------------------------
# Aave V2 ReserveConfiguration bitmap layout (start bit, width)
# ---------------------------------------------------------------------------

LTV_START_BIT = 0
LIQUIDATION_THRESHOLD_START_BIT = 16
LIQUIDATION_BONUS_START_BIT = 32
RESERVE_DECIMALS_START_BIT = 48
IS_ACTIVE_START_BIT = 56
IS_FROZEN_START_BIT = 57
BORROWING_ENABLED_START_BIT = 58
STABLE_BORROWING_ENABLED_START_BIT = 59
RESERVE_FACTOR_START_BIT = 64

PERCENT_FIELD_BITS = 16
DECIMALS_FIELD_BITS = 8

# ---------------------------------------------------------------------------
# Aave V2 UserConfiguration bitmap
# ---------------------------------------------------------------------------

MAX_RESERVES = 128
BORROWING_MASK = int("55" * 32, 16)  # every even bit of a 256-bit word

# ---------------------------------------------------------------------------
# Liquidation Defaults
# ---------------------------------------------------------------------------

DEFAULT_CLOSE_FACTOR_BPS = 5000  # Aave V2 LIQUIDATION_CLOSE_FACTOR_PERCENT
REPAY_TARGET_SAFETY_MARGIN = 1  # native debt units added for rounding
DEBT_TO_COVER_MODE_MAX = "max"
DEBT_TO_COVER_MODE_EXACT = "exact"
DEFAULT_DEBT_TO_COVER_MODE = DEBT_TO_COVER_MODE_MAX
DEFAULT_CHAIN_ID = 1

# ---------------------------------------------------------------------------
# Ethereum Mainnet Addresses (defaults for config/chains/1.json)
# ---------------------------------------------------------------------------

AAVE_V2_LENDING_POOL = "0x7d2768dE32b0b80b7a3454c06BdAc94A69DDc7A9"
AAVE_V2_PRICE_ORACLE = "0xA50ba011c48153De246E5192C8f9258A2ba79Ca9"
UNISWAP_V2_FACTORY = "0x5C69bEe701ef814a2B6a3EDD4B1652CB9cc5aA6f"

TOKEN_WETH = "0xC02aaA39b223FE8D0A0e5C4F27eAD9083C756Cc2"
TOKEN_USDT = "0xdAC17F958D2ee523a2206206994597C13D831ec7"
TOKEN_WBTC = "0x2260FAC5E5542a773Aa44fBCfeDf7C193bc2C599"
