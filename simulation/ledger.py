"""
In-memory execution environment.

Holds the contract registry, per-contract storage, and native balances, and
journals them so a whole invocation can be reverted. Contracts keep their state
in the dict returned by ``storage(address)`` and must look nested values up
through it on every access (revert restores the dicts in place).

Usage:
    ledger = Ledger()
    with ledger.anchor():
        ...                     # every effect inside is undone on exit
"""

from __future__ import annotations

import copy
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

from shared.errors import Revert, TransferFailed
from shared.interfaces import ExecutionEnvironment

_NATIVE = "__native__"


class Ledger(ExecutionEnvironment):
    def __init__(self) -> None:
        self._contracts: dict[str, Any] = {}
        self._storage: dict[str, dict[str, Any]] = {_NATIVE: {}}
        self._snapshots: dict[int, dict[str, dict[str, Any]]] = {}
        self._next_snapshot_id = 0

    # ------------------------------------------------------------------
    # Registry / storage
    # ------------------------------------------------------------------

    def register(self, address: str, contract: Any) -> None:
        key = address.lower()
        if key in self._contracts:
            raise ValueError(f"address {address} already registered")
        self._contracts[key] = contract

    def contract_at(self, address: str) -> Any:
        try:
            return self._contracts[address.lower()]
        except KeyError:
            raise Revert(f"no contract at {address}") from None

    def storage(self, address: str) -> dict[str, Any]:
        return self._storage.setdefault(address.lower(), {})

    # ------------------------------------------------------------------
    # Journal
    # ------------------------------------------------------------------

    def snapshot(self) -> int:
        snapshot_id = self._next_snapshot_id
        self._next_snapshot_id += 1
        self._snapshots[snapshot_id] = copy.deepcopy(self._storage)
        return snapshot_id

    def revert(self, snapshot_id: int) -> None:
        saved = self._snapshots.pop(snapshot_id)
        for address, live in self._storage.items():
            if address not in saved:
                live.clear()
        for address, state in saved.items():
            live = self._storage.setdefault(address, {})
            live.clear()
            live.update(state)
        # Later snapshots describe states that no longer exist
        for later in [s for s in self._snapshots if s > snapshot_id]:
            del self._snapshots[later]

    def release(self, snapshot_id: int) -> None:
        self._snapshots.pop(snapshot_id)

    @contextmanager
    def anchor(self) -> Iterator[None]:
        """Revert everything done inside the block, success or not."""
        snapshot_id = self.snapshot()
        try:
            yield
        finally:
            self.revert(snapshot_id)

    # ------------------------------------------------------------------
    # Native currency
    # ------------------------------------------------------------------

    def native_balance(self, address: str) -> int:
        return self._storage[_NATIVE].get(address.lower(), 0)

    def mint_native(self, address: str, amount: int) -> None:
        balances = self._storage[_NATIVE]
        balances[address.lower()] = balances.get(address.lower(), 0) + amount

    def transfer_native(self, sender: str, to: str, amount: int) -> None:
        balances = self._storage[_NATIVE]
        available = balances.get(sender.lower(), 0)
        if amount > available:
            raise TransferFailed(f"native balance {available} < {amount}")

        receive = None
        recipient = self._contracts.get(to.lower())
        if recipient is not None:
            receive = getattr(recipient, "receive_native", None)
            if receive is None:
                raise Revert(f"contract {to} cannot receive native currency")

        balances[sender.lower()] = available - amount
        balances[to.lower()] = balances.get(to.lower(), 0) + amount
        if receive is not None:
            try:
                receive(sender, amount)
            except BaseException:
                balances[to.lower()] -= amount
                balances[sender.lower()] = balances.get(sender.lower(), 0) + amount
                raise
