"""
Clarity value codec.

Contract logs and read-only call results from the chain indexer arrive as
hex-encoded, consensus-serialized Clarity values. This module decodes them
into plain Python values and encodes the few argument types needed to call
read-only functions.

Decoded representation:
    int / uint            -> int
    buffer                -> bytes
    true / false          -> bool
    principal             -> str ("SP..." or "SP....contract-name")
    (ok v) / (err v)      -> ClarityResponse
    none / (some v)       -> None / v
    list                  -> list
    tuple                 -> dict
    string-ascii / -utf8  -> str

Wire format: one type-id byte, then a type-specific payload; lengths and
integers are big-endian.
"""

import hashlib
import struct
from dataclasses import dataclass
from typing import Any, Union

TYPE_INT = 0x00
TYPE_UINT = 0x01
TYPE_BUFFER = 0x02
TYPE_TRUE = 0x03
TYPE_FALSE = 0x04
TYPE_STANDARD_PRINCIPAL = 0x05
TYPE_CONTRACT_PRINCIPAL = 0x06
TYPE_RESPONSE_OK = 0x07
TYPE_RESPONSE_ERR = 0x08
TYPE_OPTIONAL_NONE = 0x09
TYPE_OPTIONAL_SOME = 0x0A
TYPE_LIST = 0x0B
TYPE_TUPLE = 0x0C
TYPE_STRING_ASCII = 0x0D
TYPE_STRING_UTF8 = 0x0E

C32_ALPHABET = "0123456789ABCDEFGHJKMNPQRSTVWXYZ"
UINT128_MAX = (1 << 128) - 1
MAX_DEPTH = 32


class ClarityDecodeError(ValueError):
    """Bytes are not a valid serialized Clarity value."""


@dataclass(frozen=True)
class ClarityResponse:
    """A decoded (ok ...) or (err ...) value."""

    ok: bool
    value: Any


# =============================================================================
# c32check addresses
# =============================================================================


def c32_encode(data: bytes) -> str:
    """Crockford-style base32 used by Stacks addresses."""
    hex_str = data.hex()
    digits: list[str] = []
    carry = 0
    carry_bits = 0

    for i in range(len(hex_str) - 1, -1, -1):
        if carry_bits == 4:
            digits.insert(0, C32_ALPHABET[carry])
            carry_bits = 0
            carry = 0
        current_value = (int(hex_str[i], 16) << carry_bits) + carry
        digits.insert(0, C32_ALPHABET[current_value % 32])
        carry_bits += 1
        carry = current_value >> 5

    if carry_bits != 0:
        digits.insert(0, C32_ALPHABET[carry])

    stripped = "".join(digits).lstrip("0")
    leading_zero_bytes = len(data) - len(data.lstrip(b"\x00"))
    return "0" * leading_zero_bytes + stripped


def c32_address(version: int, hash160: bytes) -> str:
    """Encode a (version, hash160) pair as an 'S...' address."""
    if not 0 <= version < 32:
        raise ClarityDecodeError(f"invalid address version {version}")
    if len(hash160) != 20:
        raise ClarityDecodeError(f"hash160 must be 20 bytes, got {len(hash160)}")

    checksum = hashlib.sha256(
        hashlib.sha256(bytes([version]) + hash160).digest()
    ).digest()[:4]
    return "S" + C32_ALPHABET[version] + c32_encode(hash160 + checksum)


# =============================================================================
# Decoding
# =============================================================================


class _Reader:
    def __init__(self, data: bytes):
        self.data = data
        self.pos = 0

    def take(self, n: int) -> bytes:
        if self.pos + n > len(self.data):
            raise ClarityDecodeError(
                f"unexpected end of data at offset {self.pos} (need {n} bytes)"
            )
        chunk = self.data[self.pos : self.pos + n]
        self.pos += n
        return chunk

    def u8(self) -> int:
        return self.take(1)[0]

    def u32(self) -> int:
        return struct.unpack(">I", self.take(4))[0]


def _read_value(reader: _Reader, depth: int) -> Any:
    if depth > MAX_DEPTH:
        raise ClarityDecodeError("value nested too deeply")

    type_id = reader.u8()

    if type_id == TYPE_INT:
        return int.from_bytes(reader.take(16), "big", signed=True)
    if type_id == TYPE_UINT:
        return int.from_bytes(reader.take(16), "big", signed=False)
    if type_id == TYPE_BUFFER:
        return reader.take(reader.u32())
    if type_id == TYPE_TRUE:
        return True
    if type_id == TYPE_FALSE:
        return False
    if type_id == TYPE_STANDARD_PRINCIPAL:
        version = reader.u8()
        return c32_address(version, reader.take(20))
    if type_id == TYPE_CONTRACT_PRINCIPAL:
        version = reader.u8()
        address = c32_address(version, reader.take(20))
        name = reader.take(reader.u8()).decode("ascii", errors="strict")
        return f"{address}.{name}"
    if type_id in (TYPE_RESPONSE_OK, TYPE_RESPONSE_ERR):
        return ClarityResponse(
            ok=type_id == TYPE_RESPONSE_OK, value=_read_value(reader, depth + 1)
        )
    if type_id == TYPE_OPTIONAL_NONE:
        return None
    if type_id == TYPE_OPTIONAL_SOME:
        return _read_value(reader, depth + 1)
    if type_id == TYPE_LIST:
        return [_read_value(reader, depth + 1) for _ in range(reader.u32())]
    if type_id == TYPE_TUPLE:
        result = {}
        for _ in range(reader.u32()):
            key = reader.take(reader.u8()).decode("ascii")
            result[key] = _read_value(reader, depth + 1)
        return result
    if type_id == TYPE_STRING_ASCII:
        return reader.take(reader.u32()).decode("ascii")
    if type_id == TYPE_STRING_UTF8:
        return reader.take(reader.u32()).decode("utf-8")

    raise ClarityDecodeError(f"unknown Clarity type id 0x{type_id:02x}")


def decode_clarity_value(data: Union[str, bytes]) -> Any:
    """Decode a serialized Clarity value.

    Args:
        data: Raw bytes, or a hex string with or without a 0x prefix

    Returns:
        Python value (see module docstring)

    Raises:
        ClarityDecodeError: Invalid hex, truncated or unknown encoding, or
            trailing bytes
    """
    if isinstance(data, str):
        text = data[2:] if data.startswith(("0x", "0X")) else data
        try:
            data = bytes.fromhex(text)
        except ValueError as e:
            raise ClarityDecodeError(f"invalid hex: {e}") from e

    reader = _Reader(data)
    try:
        value = _read_value(reader, 0)
    except UnicodeDecodeError as e:
        raise ClarityDecodeError(f"invalid string payload: {e}") from e

    if reader.pos != len(data):
        raise ClarityDecodeError(f"{len(data) - reader.pos} trailing bytes")
    return value


def unwrap(value: Any) -> Any:
    """Strip an (ok ...) wrapper; raise on (err ...)."""
    if isinstance(value, ClarityResponse):
        if not value.ok:
            raise ClarityDecodeError(f"contract returned err: {value.value!r}")
        return value.value
    return value


# =============================================================================
# Encoding
# =============================================================================


def encode_uint(value: int) -> bytes:
    if not 0 <= value <= UINT128_MAX:
        raise ValueError(f"uint out of range: {value}")
    return bytes([TYPE_UINT]) + value.to_bytes(16, "big")


def encode_buffer(value: bytes) -> bytes:
    return bytes([TYPE_BUFFER]) + struct.pack(">I", len(value)) + value


def encode_none() -> bytes:
    return bytes([TYPE_OPTIONAL_NONE])


def encode_some(inner: bytes) -> bytes:
    return bytes([TYPE_OPTIONAL_SOME]) + inner


def to_hex_arg(encoded: bytes) -> str:
    """Format an encoded value as a read-only call argument."""
    return "0x" + encoded.hex()
