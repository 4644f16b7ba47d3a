"""
Serialization utilities for the flash-swap liquidator.

Two concerns:
- the opaque flash-swap payload (ABI-encoded ``uint256`` repay target) that the
  pair hands back verbatim to the swap continuation;
- JSON encoding for trace logs (Decimal, HexBytes, enums, dataclasses, uint256).

Usage:
    from shared.serialization_utils import DecimalEncoder, encode_repay_target
    payload = encode_repay_target(plan.max_repay_amount + 1)
    json.dumps(data, cls=DecimalEncoder)
"""

import dataclasses
from decimal import Decimal
from enum import Enum
from json import JSONEncoder
from typing import Any

from eth_abi import decode, encode
from hexbytes import HexBytes

from shared.errors import BorrowMismatch

_PAYLOAD_TYPES = ["uint256"]


def encode_repay_target(repay_target: int) -> bytes:
    """ABI-encode the repay target carried through the flash swap."""
    return encode(_PAYLOAD_TYPES, [repay_target])


def decode_repay_target(payload: bytes) -> int:
    """Decode a payload produced by :func:`encode_repay_target`."""
    try:
        (repay_target,) = decode(_PAYLOAD_TYPES, bytes(payload))
    except Exception as e:
        raise BorrowMismatch(f"undecodable swap payload: {e}") from e
    return repay_target


class DecimalEncoder(JSONEncoder):
    """
    JSON encoder handling Decimal, HexBytes, enums, dataclasses, and uint256 values.

    Integers beyond the IEEE 754 safe range (2^53 - 1) are emitted as strings so
    raw token amounts survive the trip through JSON log viewers.
    """

    _MAX_SAFE_INTEGER = 2**53 - 1

    def default(self, obj: Any) -> Any:
        if isinstance(obj, Decimal):
            return str(obj)
        if isinstance(obj, (HexBytes, bytes)):
            return obj.hex()
        if isinstance(obj, Enum):
            return obj.value
        if dataclasses.is_dataclass(obj) and not isinstance(obj, type):
            return self._convert_large_ints(dataclasses.asdict(obj))
        return super().default(obj)

    def encode(self, obj: Any) -> str:
        return super().encode(self._convert_large_ints(obj))

    def _convert_large_ints(self, obj: Any) -> Any:
        if isinstance(obj, dict):
            return {k: self._convert_large_ints(v) for k, v in obj.items()}
        elif isinstance(obj, (list, tuple)):
            return [self._convert_large_ints(item) for item in obj]
        elif isinstance(obj, bool):
            return obj
        elif isinstance(obj, int) and (obj > self._MAX_SAFE_INTEGER or obj < -self._MAX_SAFE_INTEGER):
            return str(obj)
        return obj
