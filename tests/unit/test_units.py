"""
Unit tests for core/units.py.

Covers the native/reference scale conversions, the fused conversion used by
the sizer, and display formatting.
"""

from __future__ import annotations

from decimal import Decimal

import pytest

from core.units import convert_amount, format_units, from_reference, to_reference
from shared.constants import PERCENTAGE_FACTOR, WAD
from shared.errors import DivisionByZero


class TestReferenceConversions:

    def test_to_reference(self):
        # 0.525 WBTC at 15 ETH
        assert to_reference(52_500_000, 8, 15 * WAD) == 7_875 * 10**15

    def test_from_reference_floors(self):
        # 1 wei buys nothing of a token priced at 5e14 wei per whole USDT
        assert from_reference(1, 6, 5 * 10**14) == 0
        assert from_reference(WAD, 6, 5 * 10**14) == 2_000 * 10**6

    def test_zero_price_rejected(self):
        with pytest.raises(DivisionByZero):
            from_reference(WAD, 6, 0)


class TestConvertAmount:

    def test_bonus_scaled_seize(self):
        # 15,000 USDT at 0.0005 ETH, +5%, into WBTC at 15 ETH
        assert convert_amount(
            15_000 * 10**6, 6, 5 * 10**14, 8, 15 * WAD, 10500, PERCENTAGE_FACTOR
        ) == 52_500_000

    def test_fused_never_below_two_step(self):
        # 1 satoshi at 15 ETH through the reference unit then back to USDT
        fused = convert_amount(1, 8, 15 * WAD, 6, 5 * 10**14)
        two_step = from_reference(to_reference(1, 8, 15 * WAD), 6, 5 * 10**14)
        assert fused == 300
        assert fused >= two_step


class TestFormatUnits:

    def test_format_units(self):
        assert format_units(52_500_000, 8) == Decimal("0.525")
