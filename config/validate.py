"""
Configuration schema validation for the flash-swap liquidator.

Validates that all required config files exist and contain required keys.
Run at startup to fail fast on misconfiguration.
"""

from typing import Any

from config.loader import get_config, get_env_var
from shared.constants import (
    DEBT_TO_COVER_MODE_EXACT,
    DEBT_TO_COVER_MODE_MAX,
    DEFAULT_CHAIN_ID,
    PERCENTAGE_FACTOR,
)


class ConfigValidationError(ValueError):
    """Raised when a required config key is missing or invalid."""

    pass


def _check_keys(config: dict[str, Any], required_keys: list[str], config_name: str) -> list[str]:
    """Check that all required keys exist in a config dict. Returns list of missing keys."""
    missing = []
    for key in required_keys:
        parts = key.split(".")
        current = config
        for part in parts:
            if not isinstance(current, dict) or part not in current:
                missing.append(key)
                break
            current = current[part]
    return missing


def validate_chain_config(config: dict[str, Any]) -> list[str]:
    """Validate chains/<id>.json has required fields."""
    return _check_keys(
        config,
        [
            "chain_id",
            "rpc.http_url",
            "contracts.lending_pool",
            "contracts.price_oracle",
            "contracts.uniswap_v2_factory",
            "tokens",
        ],
        "chains/<id>.json",
    )


def validate_liquidation_config(config: dict[str, Any]) -> list[str]:
    """Validate liquidation.json has required fields and sane values."""
    errors = _check_keys(
        config,
        ["collateral_asset", "debt_asset", "wrapped_native", "close_factor_bps"],
        "liquidation.json",
    )
    if errors:
        return errors
    close_factor = config.get("close_factor_bps")
    if not isinstance(close_factor, int) or not 0 < close_factor <= PERCENTAGE_FACTOR:
        errors.append(f"close_factor_bps: must be an int in (0, {PERCENTAGE_FACTOR}]")
    mode = config.get("debt_to_cover_mode", DEBT_TO_COVER_MODE_MAX)
    if mode not in (DEBT_TO_COVER_MODE_MAX, DEBT_TO_COVER_MODE_EXACT):
        errors.append(f"debt_to_cover_mode: unknown mode {mode!r}")
    if config["collateral_asset"] == config["debt_asset"]:
        errors.append("collateral_asset: must differ from debt_asset")
    return errors


def validate_all_configs() -> None:
    """
    Validate all config files. Raises ConfigValidationError with details
    if any required keys are missing.
    """
    loader = get_config()
    chain_id = get_env_var("CHAIN_ID", DEFAULT_CHAIN_ID, int)
    all_errors: dict[str, list[str]] = {}

    validators = {
        f"chains/{chain_id}.json": (
            lambda: loader.get_chain_config(chain_id),
            validate_chain_config,
        ),
        "liquidation.json": (loader.get_liquidation_config, validate_liquidation_config),
    }

    for config_name, (loader_fn, validator_fn) in validators.items():
        config = loader_fn()
        if not config:
            all_errors[config_name] = ["Config file is empty or not found"]
            continue
        errors = validator_fn(config)
        if errors:
            all_errors[config_name] = errors

    if all_errors:
        lines = ["Configuration validation failed:"]
        for config_name, errors in all_errors.items():
            lines.append(f"\n  {config_name}:")
            for error in errors:
                lines.append(f"    - {error}")
        raise ConfigValidationError("\n".join(lines))
