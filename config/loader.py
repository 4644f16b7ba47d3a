"""
Configuration loader for the flash-swap liquidator.

Provides centralized configuration management with .env overrides. The
liquidation core never reads configuration itself: it receives an immutable
LiquidationTarget built here by build_liquidation_target().

Usage:
    from config.loader import get_config, build_liquidation_target

    config = get_config()
    chain_config = config.get_chain_config(1)
    target = build_liquidation_target()
"""

import json
import os
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, Optional

from dotenv import load_dotenv

from shared.constants import (
    DEFAULT_CHAIN_ID,
    DEFAULT_CLOSE_FACTOR_BPS,
    DEFAULT_DEBT_TO_COVER_MODE,
)
from shared.types import LiquidationTarget

load_dotenv()

# Resolve config directory relative to this file
_CONFIG_DIR = Path(__file__).parent
_PROJECT_ROOT = _CONFIG_DIR.parent


def _load_json(filepath: Path) -> Dict[str, Any]:
    """Load a JSON config file. Returns empty dict if file doesn't exist."""
    try:
        with open(filepath, "r") as f:
            return json.load(f)
    except FileNotFoundError:
        print(f"[CONFIG_WARN] Config file not found: {filepath}")
        return {}
    except json.JSONDecodeError as e:
        print(f"[CONFIG_ERROR] Invalid JSON in {filepath}: {e}")
        return {}


def get_env_var(var_name: str, default_value: Any, var_type: type) -> Any:
    """Get environment variable with type conversion and fallback."""
    value = os.getenv(var_name, None)
    if value is None:
        return default_value
    try:
        if var_type == bool:
            return value.lower() in ("true", "1", "yes")
        return var_type(value)
    except (ValueError, TypeError):
        return default_value


class ConfigLoader:
    """
    Central configuration manager for the flash-swap liquidator.

    Loads configuration from JSON files in the config/ directory with .env overrides.
    All accessor methods are cached via @lru_cache.
    """

    _instance: Optional["ConfigLoader"] = None

    def __init__(self):
        self._config_dir = _CONFIG_DIR
        self._project_root = _PROJECT_ROOT

    @classmethod
    def get_instance(cls) -> "ConfigLoader":
        """Singleton accessor."""
        if cls._instance is None:
            cls._instance = cls()
        return cls._instance

    # ------------------------------------------------------------------
    # Core config file loaders (cached)
    # ------------------------------------------------------------------

    @lru_cache(maxsize=8)
    def get_chain_config(self, chain_id: int = DEFAULT_CHAIN_ID) -> Dict[str, Any]:
        """Load chain-specific config (Ethereum mainnet = 1)."""
        return _load_json(self._config_dir / "chains" / f"{chain_id}.json")

    @lru_cache(maxsize=1)
    def get_app_config(self) -> Dict[str, Any]:
        """Load general application settings (logging)."""
        return _load_json(self._config_dir / "app.json")

    @lru_cache(maxsize=1)
    def get_liquidation_config(self) -> Dict[str, Any]:
        """Load the liquidation target (asset roles, close factor, debt-to-cover mode)."""
        return _load_json(self._config_dir / "liquidation.json")

    # ------------------------------------------------------------------
    # ABI loader
    # ------------------------------------------------------------------

    @lru_cache(maxsize=32)
    def get_abi(self, abi_name: str) -> list:
        """Load ABI from config/abis/<abi_name>.json."""
        data = _load_json(self._config_dir / "abis" / f"{abi_name}.json")
        # ABI files are either raw arrays or {"abi": [...]}
        if isinstance(data, list):
            return data
        return data.get("abi", [])

    # ------------------------------------------------------------------
    # Cache management
    # ------------------------------------------------------------------

    def clear_cache(self) -> None:
        """Clear all cached configurations (useful for testing)."""
        for method_name in dir(self):
            method = getattr(self, method_name)
            if hasattr(method, "cache_clear"):
                method.cache_clear()


# ---------------------------------------------------------------------------
# Module-level convenience functions
# ---------------------------------------------------------------------------


def get_config() -> ConfigLoader:
    """Get the singleton ConfigLoader instance."""
    return ConfigLoader.get_instance()


def build_liquidation_target(chain_id: int | None = None) -> LiquidationTarget:
    """
    Assemble the immutable LiquidationTarget from chain + liquidation config.

    Asset roles in liquidation.json are token symbols resolved through the chain
    config's token table. TARGET_USER overrides the configured user.
    """
    cfg = get_config()
    if chain_id is None:
        chain_id = get_env_var("CHAIN_ID", DEFAULT_CHAIN_ID, int)
    chain = cfg.get_chain_config(chain_id)
    liquidation = cfg.get_liquidation_config()
    contracts = chain.get("contracts", {})
    tokens = chain.get("tokens", {})

    def _token(symbol: str) -> str:
        try:
            return tokens[symbol]["address"]
        except KeyError as e:
            raise KeyError(f"token {symbol!r} missing from chains/{chain_id}.json") from e

    return LiquidationTarget(
        lending_pool=contracts["lending_pool"],
        factory=contracts["uniswap_v2_factory"],
        oracle=contracts["price_oracle"],
        wrapped_native=_token(liquidation.get("wrapped_native", "WETH")),
        collateral_asset=_token(liquidation["collateral_asset"]),
        debt_asset=_token(liquidation["debt_asset"]),
        user=get_env_var("TARGET_USER", liquidation.get("target_user", ""), str),
        close_factor_bps=int(liquidation.get("close_factor_bps", DEFAULT_CLOSE_FACTOR_BPS)),
        debt_to_cover_mode=liquidation.get("debt_to_cover_mode", DEFAULT_DEBT_TO_COVER_MODE),
    )
