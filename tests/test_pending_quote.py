"""
Tests for the pending-units quote.
"""

import struct

import httpx
import pytest

from hold_to_earn.config.settings import EnergySettings
from hold_to_earn.data.clarity_codec import encode_uint, to_hex_arg
from hold_to_earn.data.hiro_client import HiroClient
from hold_to_earn.data.pending_quote import (
    EnergyQuoteSource,
    parse_quote_result,
    quote_arguments,
)
from hold_to_earn.errors import UpstreamFetchError
from tests.fixtures.energy_fixtures import ALICE, CONTRACT_ID


def ok_tuple(**fields: int) -> str:
    out = b"\x07\x0c" + struct.pack(">I", len(fields))
    for name, value in fields.items():
        out += bytes([len(name)]) + name.encode("ascii") + encode_uint(value)
    return to_hex_arg(out)


class TestQuoteArguments:
    def test_amount_zero_and_harvest_op(self):
        assert quote_arguments() == [
            "0x01" + "00" * 16,
            "0x0a020000000107",
        ]


class TestParseQuoteResult:
    def test_reads_dk(self):
        assert parse_quote_result({"okay": True, "result": ok_tuple(dk=12, dx=5)}) == 12

    def test_call_failure(self):
        with pytest.raises(UpstreamFetchError):
            parse_quote_result({"okay": False, "cause": "NoSuchContract"})

    def test_missing_dk(self):
        with pytest.raises(UpstreamFetchError):
            parse_quote_result({"okay": True, "result": ok_tuple(dx=5)})

    def test_err_response(self):
        with pytest.raises(UpstreamFetchError):
            parse_quote_result({"okay": True, "result": "0x08" + encode_uint(1).hex()})


class TestEnergyQuoteSource:
    @pytest.mark.asyncio
    async def test_calls_read_only_quote(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["path"] = request.url.path
            seen["body"] = request.read()
            return httpx.Response(200, json={"okay": True, "result": ok_tuple(dk=7)})

        settings = EnergySettings(hiro_api_url="https://indexer.test")
        async with HiroClient(settings, transport=httpx.MockTransport(handler)) as client:
            pending = await EnergyQuoteSource(client).get_pending_units(
                CONTRACT_ID, ALICE
            )

        address, name = CONTRACT_ID.split(".")
        assert pending == 7
        assert seen["path"] == f"/v2/contracts/call-read/{address}/{name}/quote"
        assert ALICE.encode() in seen["body"]

    @pytest.mark.asyncio
    async def test_http_failure_mapped(self):
        settings = EnergySettings(hiro_api_url="https://indexer.test")
        transport = httpx.MockTransport(lambda request: httpx.Response(400))
        async with HiroClient(settings, transport=transport) as client:
            with pytest.raises(UpstreamFetchError):
                await EnergyQuoteSource(client).get_pending_units(CONTRACT_ID, ALICE)
