"""
Unit tests for shared/serialization_utils.py.

Covers the flash-swap payload codec and JSON encoding of trace-log values.
"""

from __future__ import annotations

import json
from decimal import Decimal

import pytest
from hexbytes import HexBytes

from shared.constants import UINT256_MAX, WAD
from shared.errors import BorrowMismatch
from shared.serialization_utils import DecimalEncoder, decode_repay_target, encode_repay_target
from shared.types import BindingConstraint, LiquidationPlan


class TestRepayTargetPayload:

    def test_payload_is_one_abi_word(self):
        payload = encode_repay_target(15_000 * 10**6 + 1)
        assert len(payload) == 32
        assert int.from_bytes(payload, "big") == 15_000 * 10**6 + 1

    @pytest.mark.parametrize("value", [0, 1, UINT256_MAX])
    def test_decode_inverts_encode(self, value):
        assert decode_repay_target(encode_repay_target(value)) == value

    def test_truncated_payload_rejected(self):
        with pytest.raises(BorrowMismatch, match="undecodable"):
            decode_repay_target(b"\x01" * 16)

    def test_empty_payload_rejected(self):
        with pytest.raises(BorrowMismatch):
            decode_repay_target(b"")


class TestDecimalEncoder:

    def test_large_ints_become_strings(self):
        encoded = json.loads(json.dumps({"small": 42, "wad": WAD, "flag": True}, cls=DecimalEncoder))
        assert encoded == {"small": 42, "wad": str(WAD), "flag": True}

    def test_dataclass_and_enum(self):
        plan = LiquidationPlan(
            max_collateral_amount=52_500_000,
            max_repay_amount=15_000 * 10**6,
            binding=BindingConstraint.CLOSE_FACTOR,
        )
        encoded = json.loads(json.dumps({"plan": plan}, cls=DecimalEncoder))
        assert encoded["plan"]["max_collateral_amount"] == 52_500_000
        assert encoded["plan"]["binding"] == BindingConstraint.CLOSE_FACTOR.value

    def test_decimal_and_bytes(self):
        encoded = json.loads(
            json.dumps({"hf": Decimal("0.75"), "data": HexBytes("0xdead")}, cls=DecimalEncoder)
        )
        assert encoded["hf"] == "0.75"
        assert encoded["data"] in ("dead", "0xdead")
