"""
Aave V2 configuration bitmap codec.

Decodes the packed ReserveConfiguration (per asset) and UserConfiguration (per
user) words into named fields, and encodes them back. Pure mask-and-shift: no
I/O, no state.

ReserveConfiguration layout:
    bits  0-15  LTV (bps)
    bits 16-31  liquidation threshold (bps)
    bits 32-47  liquidation bonus (bps, 10500 = 105%)
    bits 48-55  decimals
    bit  56     active
    bit  57     frozen
    bit  58     borrowing enabled
    bit  59     stable rate borrowing enabled
    bits 64-79  reserve factor (bps)

UserConfiguration: for reserve id i, bit 2*i = borrowing, bit 2*i+1 = collateral.
"""

from __future__ import annotations

from shared.constants import (
    BORROWING_ENABLED_START_BIT,
    BORROWING_MASK,
    DECIMALS_FIELD_BITS,
    IS_ACTIVE_START_BIT,
    IS_FROZEN_START_BIT,
    LIQUIDATION_BONUS_START_BIT,
    LIQUIDATION_THRESHOLD_START_BIT,
    LTV_START_BIT,
    MAX_RESERVES,
    PERCENT_FIELD_BITS,
    RESERVE_DECIMALS_START_BIT,
    RESERVE_FACTOR_START_BIT,
    STABLE_BORROWING_ENABLED_START_BIT,
)
from shared.errors import InvalidIndex
from shared.types import ReserveConfig

# ---------------------------------------------------------------------------
# Field primitives
# ---------------------------------------------------------------------------


def _get_field(config: int, start_bit: int, width: int) -> int:
    return (config >> start_bit) & ((1 << width) - 1)


def _set_field(config: int, start_bit: int, width: int, value: int) -> int:
    mask = (1 << width) - 1
    if value < 0 or value > mask:
        raise ValueError(f"value {value} does not fit in {width} bits")
    return (config & ~(mask << start_bit)) | (value << start_bit)


def _get_flag(config: int, bit: int) -> bool:
    return bool((config >> bit) & 1)


def _set_flag(config: int, bit: int, enabled: bool) -> int:
    return config | (1 << bit) if enabled else config & ~(1 << bit)


# ---------------------------------------------------------------------------
# ReserveConfiguration
# ---------------------------------------------------------------------------


def get_ltv(config: int) -> int:
    return _get_field(config, LTV_START_BIT, PERCENT_FIELD_BITS)


def get_liquidation_threshold(config: int) -> int:
    return _get_field(config, LIQUIDATION_THRESHOLD_START_BIT, PERCENT_FIELD_BITS)


def get_liquidation_bonus(config: int) -> int:
    """Liquidation bonus in bps; 10000 means no bonus."""
    return _get_field(config, LIQUIDATION_BONUS_START_BIT, PERCENT_FIELD_BITS)


def get_decimals(config: int) -> int:
    return _get_field(config, RESERVE_DECIMALS_START_BIT, DECIMALS_FIELD_BITS)


def get_reserve_factor(config: int) -> int:
    return _get_field(config, RESERVE_FACTOR_START_BIT, PERCENT_FIELD_BITS)


def get_flags(config: int) -> tuple[bool, bool, bool, bool]:
    """(active, frozen, borrowing_enabled, stable_rate_enabled)."""
    return (
        _get_flag(config, IS_ACTIVE_START_BIT),
        _get_flag(config, IS_FROZEN_START_BIT),
        _get_flag(config, BORROWING_ENABLED_START_BIT),
        _get_flag(config, STABLE_BORROWING_ENABLED_START_BIT),
    )


def set_liquidation_bonus(config: int, bonus_bps: int) -> int:
    return _set_field(config, LIQUIDATION_BONUS_START_BIT, PERCENT_FIELD_BITS, bonus_bps)


def decode_reserve_config(config: int) -> ReserveConfig:
    active, frozen, borrowing_enabled, stable_rate_enabled = get_flags(config)
    return ReserveConfig(
        ltv_bps=get_ltv(config),
        liquidation_threshold_bps=get_liquidation_threshold(config),
        liquidation_bonus_bps=get_liquidation_bonus(config),
        decimals=get_decimals(config),
        active=active,
        frozen=frozen,
        borrowing_enabled=borrowing_enabled,
        stable_rate_enabled=stable_rate_enabled,
        reserve_factor_bps=get_reserve_factor(config),
    )


def encode_reserve_config(reserve: ReserveConfig) -> int:
    config = 0
    config = _set_field(config, LTV_START_BIT, PERCENT_FIELD_BITS, reserve.ltv_bps)
    config = _set_field(
        config,
        LIQUIDATION_THRESHOLD_START_BIT,
        PERCENT_FIELD_BITS,
        reserve.liquidation_threshold_bps,
    )
    config = set_liquidation_bonus(config, reserve.liquidation_bonus_bps)
    config = _set_field(
        config, RESERVE_DECIMALS_START_BIT, DECIMALS_FIELD_BITS, reserve.decimals
    )
    config = _set_flag(config, IS_ACTIVE_START_BIT, reserve.active)
    config = _set_flag(config, IS_FROZEN_START_BIT, reserve.frozen)
    config = _set_flag(config, BORROWING_ENABLED_START_BIT, reserve.borrowing_enabled)
    config = _set_flag(
        config, STABLE_BORROWING_ENABLED_START_BIT, reserve.stable_rate_enabled
    )
    config = _set_field(
        config, RESERVE_FACTOR_START_BIT, PERCENT_FIELD_BITS, reserve.reserve_factor_bps
    )
    return config


# ---------------------------------------------------------------------------
# UserConfiguration
# ---------------------------------------------------------------------------


def _check_index(index: int) -> None:
    if index < 0 or index >= MAX_RESERVES:
        raise InvalidIndex(f"reserve index {index} outside 0..{MAX_RESERVES - 1}")


def is_borrowing(config: int, index: int) -> bool:
    _check_index(index)
    return _get_flag(config, index * 2)


def is_using_as_collateral(config: int, index: int) -> bool:
    _check_index(index)
    return _get_flag(config, index * 2 + 1)


def is_using_as_collateral_or_borrowing(config: int, index: int) -> bool:
    _check_index(index)
    return _get_field(config, index * 2, 2) != 0


def is_borrowing_any(config: int) -> bool:
    return config & BORROWING_MASK != 0


def is_empty(config: int) -> bool:
    return config == 0


def set_borrowing(config: int, index: int, borrowing: bool) -> int:
    _check_index(index)
    return _set_flag(config, index * 2, borrowing)


def set_using_as_collateral(config: int, index: int, using: bool) -> int:
    _check_index(index)
    return _set_flag(config, index * 2 + 1, using)
