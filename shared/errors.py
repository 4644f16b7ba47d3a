"""
Error hierarchy for the flash-swap liquidator.

Every error is fatal to the current invocation: the atomic unit rolls back all
effects and re-raises. Nothing here is retried internally.
"""

from __future__ import annotations


class LiquidationError(Exception):
    """Base class for every failure raised by the liquidation engine."""


class NotLiquidatable(LiquidationError):
    """Target position is healthy (HF >= 1.0) or has nothing to liquidate."""


class InvalidIndex(LiquidationError):
    """Reserve index outside the user configuration bitmap (0..127)."""


class InsufficientInput(LiquidationError):
    """Swap quote requested with a zero input amount."""


class InsufficientOutput(LiquidationError):
    """Swap quote requested with a zero output amount."""


class InsufficientLiquidity(LiquidationError):
    """A reserve is empty or the requested output drains the pool."""


class ArithmeticFailure(LiquidationError):
    """Base class for checked uint256 arithmetic failures."""


class Overflow(ArithmeticFailure):
    """An intermediate value left the uint256 range."""


class DivisionByZero(ArithmeticFailure):
    """Division by a zero denominator (e.g. a zero liquidation bonus)."""


class BorrowMismatch(LiquidationError):
    """Delivered flash-swap amount does not match the liquidator's balance."""


class UnauthorizedCallback(LiquidationError):
    """Swap continuation invoked by an unexpected caller or outside a borrow."""


class InvalidStateTransition(LiquidationError):
    """Settlement state machine asked to make an illegal transition."""


class TransferFailed(LiquidationError):
    """Token transfer rejected (insufficient balance or allowance)."""


class PayoutFailed(LiquidationError):
    """Native profit transfer to the initiator was rejected."""


class Revert(LiquidationError):
    """A collaborator rejected the call; ``reason`` carries its revert string."""

    def __init__(self, reason: str) -> None:
        super().__init__(reason)
        self.reason = reason
