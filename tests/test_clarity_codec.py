"""
Tests for the Clarity value codec.
"""

import struct

import pytest

from hold_to_earn.data.clarity_codec import (
    ClarityDecodeError,
    ClarityResponse,
    c32_address,
    decode_clarity_value,
    encode_buffer,
    encode_none,
    encode_some,
    encode_uint,
    to_hex_arg,
    unwrap,
)

BOOT_ADDRESS = "SP000000000000000000002Q6VF78"
TESTNET_BOOT_ADDRESS = "ST000000000000000000002AMW42H"


def ascii_value(text: str) -> bytes:
    return b"\x0d" + struct.pack(">I", len(text)) + text.encode("ascii")


def principal_value(version: int = 22, hash160: bytes = bytes(20)) -> bytes:
    return b"\x05" + bytes([version]) + hash160


def tuple_value(**fields: bytes) -> bytes:
    out = b"\x0c" + struct.pack(">I", len(fields))
    for name, value in fields.items():
        out += bytes([len(name)]) + name.encode("ascii") + value
    return out


class TestC32Address:
    def test_mainnet_boot_address(self):
        assert c32_address(22, bytes(20)) == BOOT_ADDRESS

    def test_testnet_boot_address(self):
        assert c32_address(26, bytes(20)) == TESTNET_BOOT_ADDRESS

    def test_rejects_bad_hash_length(self):
        with pytest.raises(ClarityDecodeError):
            c32_address(22, bytes(19))


class TestDecode:
    def test_uint(self):
        assert decode_clarity_value(encode_uint(1440)) == 1440

    def test_negative_int(self):
        raw = b"\x00" + (-5).to_bytes(16, "big", signed=True)
        assert decode_clarity_value(raw) == -5

    def test_hex_with_prefix(self):
        assert decode_clarity_value(to_hex_arg(encode_uint(7))) == 7

    def test_bools_and_optionals(self):
        assert decode_clarity_value(b"\x03") is True
        assert decode_clarity_value(b"\x04") is False
        assert decode_clarity_value(encode_none()) is None
        assert decode_clarity_value(encode_some(encode_uint(3))) == 3

    def test_buffer(self):
        assert decode_clarity_value(encode_buffer(b"\x07")) == b"\x07"

    def test_standard_principal(self):
        assert decode_clarity_value(principal_value()) == BOOT_ADDRESS

    def test_contract_principal(self):
        raw = b"\x06" + bytes([22]) + bytes(20) + bytes([3]) + b"pox"
        assert decode_clarity_value(raw) == f"{BOOT_ADDRESS}.pox"

    def test_tuple_with_strings(self):
        raw = tuple_value(
            energy=encode_uint(100),
            op=ascii_value("harvest-energy"),
            sender=principal_value(),
        )
        assert decode_clarity_value(raw) == {
            "energy": 100,
            "op": "harvest-energy",
            "sender": BOOT_ADDRESS,
        }

    def test_list(self):
        raw = b"\x0b" + struct.pack(">I", 2) + encode_uint(1) + encode_uint(2)
        assert decode_clarity_value(raw) == [1, 2]

    def test_response_ok_and_err(self):
        ok = decode_clarity_value(b"\x07" + encode_uint(1))
        err = decode_clarity_value(b"\x08" + encode_uint(2))
        assert ok == ClarityResponse(ok=True, value=1)
        assert err == ClarityResponse(ok=False, value=2)

    @pytest.mark.parametrize(
        "raw",
        [
            "zz",
            b"",
            b"\x01\x00",
            b"\xff",
            encode_uint(1) + b"\x00",
        ],
    )
    def test_invalid_input(self, raw):
        with pytest.raises(ClarityDecodeError):
            decode_clarity_value(raw)

    def test_nesting_limit(self):
        raw = b"\x0a" * 40 + encode_uint(1)
        with pytest.raises(ClarityDecodeError, match="nested"):
            decode_clarity_value(raw)


class TestUnwrap:
    def test_ok_unwrapped(self):
        assert unwrap(ClarityResponse(ok=True, value={"dk": 1})) == {"dk": 1}

    def test_err_raises(self):
        with pytest.raises(ClarityDecodeError):
            unwrap(ClarityResponse(ok=False, value=3))

    def test_plain_value_passthrough(self):
        assert unwrap(5) == 5


class TestEncode:
    def test_uint_layout(self):
        assert encode_uint(0) == b"\x01" + bytes(16)

    def test_uint_out_of_range(self):
        with pytest.raises(ValueError):
            encode_uint(-1)

    def test_quote_argument(self):
        assert to_hex_arg(encode_some(encode_buffer(b"\x07"))) == "0x0a020000000107"
