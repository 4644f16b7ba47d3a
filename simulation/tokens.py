"""
ERC20 and wrapped-native token models backed by the Ledger.

Transfers that exceed a balance or allowance raise TransferFailed, the way a
reverting token would.
"""

from __future__ import annotations

from shared.errors import Revert, TransferFailed
from shared.interfaces import Token, WrappedNative
from simulation.ledger import Ledger


class ERC20(Token):
    def __init__(self, ledger: Ledger, address: str, symbol: str, decimals: int) -> None:
        self.address = address
        self._ledger = ledger
        self._symbol = symbol
        self._decimals = decimals
        self._state = ledger.storage(address)
        self._state.update({"balances": {}, "allowances": {}, "total_supply": 0})
        ledger.register(address, self)

    def symbol(self) -> str:
        return self._symbol

    def decimals(self) -> int:
        return self._decimals

    def total_supply(self) -> int:
        return self._state["total_supply"]

    def balance_of(self, account: str) -> int:
        return self._state["balances"].get(account.lower(), 0)

    def allowance(self, owner: str, spender: str) -> int:
        return self._state["allowances"].get((owner.lower(), spender.lower()), 0)

    def approve(self, sender: str, spender: str, amount: int) -> bool:
        self._state["allowances"][(sender.lower(), spender.lower())] = amount
        return True

    def transfer(self, sender: str, to: str, amount: int) -> bool:
        self._move(sender, to, amount)
        return True

    def transfer_from(self, spender: str, owner: str, to: str, amount: int) -> bool:
        allowed = self.allowance(owner, spender)
        if amount > allowed:
            raise TransferFailed(f"{self._symbol}: allowance {allowed} < {amount}")
        self._move(owner, to, amount)
        self._state["allowances"][(owner.lower(), spender.lower())] = allowed - amount
        return True

    # ------------------------------------------------------------------
    # Supply management (called by minters: the lending pool, tests)
    # ------------------------------------------------------------------

    def mint(self, to: str, amount: int) -> None:
        balances = self._state["balances"]
        balances[to.lower()] = balances.get(to.lower(), 0) + amount
        self._state["total_supply"] += amount

    def burn(self, account: str, amount: int) -> None:
        balances = self._state["balances"]
        held = balances.get(account.lower(), 0)
        if amount > held:
            raise TransferFailed(f"{self._symbol}: burn {amount} exceeds balance {held}")
        balances[account.lower()] = held - amount
        self._state["total_supply"] -= amount

    def _move(self, sender: str, to: str, amount: int) -> None:
        balances = self._state["balances"]
        held = balances.get(sender.lower(), 0)
        if amount > held:
            raise TransferFailed(f"{self._symbol}: balance {held} < {amount}")
        balances[sender.lower()] = held - amount
        balances[to.lower()] = balances.get(to.lower(), 0) + amount


class WETH(ERC20, WrappedNative):
    """Wrapped native currency: 1:1 deposit/withdraw against ledger native balances."""

    def __init__(self, ledger: Ledger, address: str, symbol: str = "WETH") -> None:
        super().__init__(ledger, address, symbol, 18)

    def deposit(self, sender: str, amount: int) -> None:
        self._ledger.transfer_native(sender, self.address, amount)
        self.mint(sender, amount)

    def withdraw(self, sender: str, amount: int) -> None:
        held = self.balance_of(sender)
        if amount > held:
            raise TransferFailed(f"{self.symbol()}: withdraw {amount} exceeds balance {held}")
        self._ledger.transfer_native(self.address, sender, amount)
        self.burn(sender, amount)

    def receive_native(self, sender: str, amount: int) -> None:
        if sender.lower() == self.address.lower():
            raise Revert("WETH: self transfer")
