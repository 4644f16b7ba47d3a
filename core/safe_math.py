"""
Checked uint256 arithmetic.

Python integers never wrap, so these helpers enforce the EVM's unsigned 256-bit
range explicitly: any result outside [0, 2**256 - 1] raises Overflow instead of
silently producing a value the chain could never have computed.
"""

from __future__ import annotations

from shared.constants import UINT256_MAX
from shared.errors import DivisionByZero, Overflow


def check_uint256(value: int) -> int:
    if value < 0 or value > UINT256_MAX:
        raise Overflow(f"value {value} outside uint256 range")
    return value


def add(a: int, b: int) -> int:
    return check_uint256(a + b)


def sub(a: int, b: int) -> int:
    if b > a:
        raise Overflow(f"subtraction underflow: {a} - {b}")
    return a - b


def mul(a: int, b: int) -> int:
    return check_uint256(check_uint256(a) * check_uint256(b))


def div(a: int, b: int) -> int:
    """Floor division."""
    if b == 0:
        raise DivisionByZero(f"division of {a} by zero")
    return check_uint256(a) // b


def mul_div(a: int, b: int, denominator: int) -> int:
    """floor(a * b / denominator) with the product checked against uint256."""
    return div(mul(a, b), denominator)
