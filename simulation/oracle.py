"""Settable price oracle (reference unit per whole token)."""

from __future__ import annotations

from shared.errors import Revert
from shared.interfaces import PriceOracle
from simulation.ledger import Ledger


class StaticPriceOracle(PriceOracle):
    def __init__(self, ledger: Ledger, address: str) -> None:
        self.address = address
        self._state = ledger.storage(address)
        self._state["prices"] = {}
        ledger.register(address, self)

    def set_asset_price(self, asset: str, price: int) -> None:
        self._state["prices"][asset.lower()] = price

    def get_asset_price(self, asset: str) -> int:
        price = self._state["prices"].get(asset.lower(), 0)
        if price == 0:
            raise Revert(f"no price for {asset}")
        return price
