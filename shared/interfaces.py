"""
Collaborator interfaces for the liquidation engine.

The engine talks to the lending protocol, the constant-product market, the price
oracle, tokens, and the execution environment only through these abstract
classes. Mutating calls take an explicit ``sender`` (the caller's address).
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

from shared.types import ReserveData, UserAccountData


class ExecutionEnvironment(ABC):
    """Contract registry, native balances, and all-or-nothing state journal."""

    @abstractmethod
    def contract_at(self, address: str) -> Any:
        """Resolve the collaborator deployed at ``address``."""

    @abstractmethod
    def snapshot(self) -> int:
        """Record the current state; returns an id for revert/release."""

    @abstractmethod
    def revert(self, snapshot_id: int) -> None:
        """Restore the state recorded by ``snapshot_id`` and drop it."""

    @abstractmethod
    def release(self, snapshot_id: int) -> None:
        """Drop a snapshot without restoring it (commit)."""

    @abstractmethod
    def native_balance(self, address: str) -> int:
        """Native currency balance in wei."""

    @abstractmethod
    def transfer_native(self, sender: str, to: str, amount: int) -> None:
        """Send native currency; raises if the recipient rejects it."""


class Token(ABC):
    address: str

    @abstractmethod
    def symbol(self) -> str: ...

    @abstractmethod
    def decimals(self) -> int: ...

    @abstractmethod
    def balance_of(self, account: str) -> int: ...

    @abstractmethod
    def approve(self, sender: str, spender: str, amount: int) -> bool: ...

    @abstractmethod
    def transfer(self, sender: str, to: str, amount: int) -> bool: ...


class WrappedNative(Token):
    @abstractmethod
    def withdraw(self, sender: str, amount: int) -> None:
        """Burn ``amount`` wrapped tokens and send the native currency to ``sender``."""


class LendingPool(ABC):
    @abstractmethod
    def get_user_account_data(self, user: str) -> UserAccountData: ...

    @abstractmethod
    def get_reserve_data(self, asset: str) -> ReserveData: ...

    @abstractmethod
    def get_reserves_list(self) -> list[str]: ...

    @abstractmethod
    def get_user_configuration(self, user: str) -> int:
        """Packed UserConfiguration bitmap."""

    @abstractmethod
    def get_configuration(self, asset: str) -> int:
        """Packed ReserveConfiguration bitmap."""

    @abstractmethod
    def liquidation_call(
        self,
        sender: str,
        collateral_asset: str,
        debt_asset: str,
        user: str,
        debt_to_cover: int,
        receive_a_token: bool,
    ) -> None:
        """Repay up to ``debt_to_cover`` of ``user``'s debt and seize collateral.

        The pool clamps ``debt_to_cover`` to the close-factor bound and to the
        debt the available collateral can back.
        """


class Pair(ABC):
    address: str
    token0: str
    token1: str

    @abstractmethod
    def get_reserves(self) -> tuple[int, int, int]:
        """(reserve0, reserve1, block_timestamp_last)."""

    @abstractmethod
    def swap(
        self, sender: str, amount0_out: int, amount1_out: int, to: str, payload: bytes
    ) -> None:
        """Send the outputs to ``to``; with a non-empty payload, call
        ``to.on_swap_callback`` before enforcing the pool invariant."""


class Factory(ABC):
    @abstractmethod
    def get_pair(self, token_a: str, token_b: str) -> str:
        """Pair address for the two tokens (zero address if none)."""


class PriceOracle(ABC):
    @abstractmethod
    def get_asset_price(self, asset: str) -> int:
        """Asset price in the oracle reference unit."""


class SwapCallee(ABC):
    @abstractmethod
    def on_swap_callback(
        self, caller: str, sender: str, amount0: int, amount1: int, payload: bytes
    ) -> None:
        """Continuation invoked by ``caller`` (the pair) in the middle of a swap."""
