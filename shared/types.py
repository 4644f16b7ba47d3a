"""
Shared data types for the flash-swap liquidator.

Centralized dataclasses and enums used across all modules. All amounts are raw
integers; the field suffix (or comment) names the scale:

    *_bps    4-decimal fixed point (10000 = 100%)
    *_wad    18-decimal fixed point
    native   10**decimals of the asset the field refers to
    price    oracle reference unit
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from enum import Enum

from shared.constants import (
    DEFAULT_CLOSE_FACTOR_BPS,
    DEFAULT_DEBT_TO_COVER_MODE,
    WAD_DECIMAL,
)

# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------


class SettlementState(Enum):
    IDLE = "idle"
    SIZING = "sizing"
    BORROW_REQUESTED = "borrow_requested"
    AWAITING_CALLBACK = "awaiting_callback"
    REPAID = "repaid"
    COMPLETED = "completed"
    ABORTED = "aborted"


class BindingConstraint(Enum):
    CLOSE_FACTOR = "close_factor"  # repay capped at debt * close factor
    COLLATERAL = "collateral"  # repay capped by collateral / bonus


# ---------------------------------------------------------------------------
# Protocol Configuration Types
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ReserveConfig:
    """Decoded Aave V2 ReserveConfiguration bitmap."""

    ltv_bps: int
    liquidation_threshold_bps: int
    liquidation_bonus_bps: int
    decimals: int
    active: bool
    frozen: bool
    borrowing_enabled: bool
    stable_rate_enabled: bool
    reserve_factor_bps: int = 0


@dataclass(frozen=True)
class UserAccountData:
    total_collateral_base: int  # price unit
    total_debt_base: int  # price unit
    available_borrows_base: int  # price unit
    current_liquidation_threshold_bps: int
    ltv_bps: int
    health_factor_wad: int

    @property
    def health_factor(self) -> Decimal:
        return Decimal(self.health_factor_wad) / WAD_DECIMAL


@dataclass(frozen=True)
class ReserveData:
    configuration: int  # packed ReserveConfiguration bitmap
    a_token_address: str
    stable_debt_token_address: str
    variable_debt_token_address: str
    id: int


# ---------------------------------------------------------------------------
# Position / Pricing Types
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Position:
    debt_amount: int  # native, debt asset (stable + variable)
    collateral_amount: int  # native, collateral asset (aToken balance)


@dataclass(frozen=True)
class PriceQuote:
    asset: str
    price: int  # price unit per whole token


@dataclass(frozen=True)
class LiquidationPlan:
    max_collateral_amount: int  # native, collateral asset
    max_repay_amount: int  # native, debt asset
    binding: BindingConstraint


@dataclass(frozen=True)
class SwapQuote:
    amount_in: int  # native, input asset
    amount_out: int  # native, output asset


# ---------------------------------------------------------------------------
# Target / Settlement Types
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class LiquidationTarget:
    """Immutable target configuration supplied at construction."""

    lending_pool: str
    factory: str
    oracle: str
    wrapped_native: str
    collateral_asset: str
    debt_asset: str
    user: str
    close_factor_bps: int = DEFAULT_CLOSE_FACTOR_BPS
    debt_to_cover_mode: str = DEFAULT_DEBT_TO_COVER_MODE


@dataclass(frozen=True)
class SettlementResult:
    state: SettlementState
    plan: LiquidationPlan
    borrowed_amount: int  # native, wrapped native
    repay_target: int  # native, debt asset
    profit: int  # native units paid to the initiator


@dataclass(frozen=True)
class LiquidationPreview:
    """Dry-run view of a liquidation computed from a single read of live state."""

    user: str
    health_factor_wad: int
    liquidatable: bool
    position: Position
    plan: LiquidationPlan | None
    borrow_quote: SwapQuote | None  # collateral in -> wrapped native out
    repay_quote: SwapQuote | None  # wrapped native in -> debt out
    expected_profit: int  # native, wrapped native (may be negative)
