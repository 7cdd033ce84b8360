"""
Pending-units quote.

Calls the energy contract's read-only `quote` function as the user and reads
`dk`, the number of blocks accrued since the user's last harvest (tap block).
This is the cheap call the live estimator polls; it never touches the log.
"""

import logging
from typing import Protocol

import httpx

from hold_to_earn.data.clarity_codec import (
    ClarityDecodeError,
    decode_clarity_value,
    encode_buffer,
    encode_some,
    encode_uint,
    to_hex_arg,
    unwrap,
)
from hold_to_earn.data.hiro_client import HiroClient
from hold_to_earn.errors import UpstreamFetchError

logger = logging.getLogger(__name__)

OP_HARVEST_ENERGY = bytes([0x07])
QUOTE_FUNCTION = "quote"


class PendingQuoteSource(Protocol):
    """Returns the pending block delta for (contract, address)."""

    async def get_pending_units(self, contract_id: str, address: str) -> int: ...


def quote_arguments() -> list[str]:
    """(quote u0 (some 0x07)); the amount is ignored for an energy harvest."""
    return [
        to_hex_arg(encode_uint(0)),
        to_hex_arg(encode_some(encode_buffer(OP_HARVEST_ENERGY))),
    ]


def parse_quote_result(response: dict) -> int:
    """Extract dk from a read-only call response.

    Raises:
        UpstreamFetchError: The call failed or the result has no integer dk
    """
    if not response.get("okay"):
        raise UpstreamFetchError(f"quote call failed: {response.get('cause')}")

    try:
        value = unwrap(decode_clarity_value(response.get("result") or ""))
    except ClarityDecodeError as e:
        raise UpstreamFetchError(f"undecodable quote result: {e}") from e

    dk = value.get("dk") if isinstance(value, dict) else None
    if not isinstance(dk, int) or isinstance(dk, bool):
        raise UpstreamFetchError(f"quote result without dk: {value!r}")
    return dk


class EnergyQuoteSource:
    """PendingQuoteSource backed by the chain indexer."""

    def __init__(self, client: HiroClient):
        self.client = client

    async def get_pending_units(self, contract_id: str, address: str) -> int:
        try:
            response = await self.client.call_read_only(
                contract_id, QUOTE_FUNCTION, quote_arguments(), sender=address
            )
        except (httpx.HTTPError, ValueError) as e:
            raise UpstreamFetchError(f"quote call failed for {contract_id}: {e}") from e
        pending = parse_quote_result(response)
        logger.debug("Pending blocks for %s on %s: %d", address, contract_id, pending)
        return pending
