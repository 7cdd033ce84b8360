"""
Hold-to-earn log source.

Fetches the harvest log of a reward contract from the chain indexer:
1. Page through the contract's smart-contract log events
2. Decode each event's Clarity tuple (energy, integral, op, message, sender)
3. Enrich with transaction details (block_time, block_time_iso, tx_status)

Undecodable events are skipped. A failed transaction-detail lookup keeps
the bare event. Failure to fetch the event pages themselves is an upstream
error and aborts the pass.

Usage:
    async with HiroClient() as client:
        source = HoldToEarnLogSource(client)
        logs = await source.fetch_logs("SP2....energize-v1")
"""

import asyncio
import logging
from typing import Optional, Protocol

import httpx

from hold_to_earn.data.clarity_codec import (
    ClarityDecodeError,
    decode_clarity_value,
    unwrap,
)
from hold_to_earn.data.hiro_client import HiroClient, split_contract_id
from hold_to_earn.errors import MalformedLogEntry, UpstreamFetchError
from hold_to_earn.models.energy_models import HarvestLogEntry

logger = logging.getLogger(__name__)


class LogSource(Protocol):
    """Provider of a contract's harvest log."""

    async def fetch_logs(self, contract_id: str) -> list[HarvestLogEntry]: ...


def _as_int(value) -> Optional[int]:
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, int):
        return value
    return None


def parse_contract_log_event(event: dict) -> HarvestLogEntry:
    """Decode one raw indexer event into a HarvestLogEntry.

    Args:
        event: Indexer event with contract_log.value.hex

    Returns:
        HarvestLogEntry without transaction details

    Raises:
        MalformedLogEntry: No hex payload, undecodable payload, or payload
            that is not a tuple
    """
    tx_id = event.get("tx_id", "")
    contract_log = event.get("contract_log") or {}
    hex_value = (contract_log.get("value") or {}).get("hex")
    if not hex_value:
        raise MalformedLogEntry(f"event without log payload (tx {tx_id})")

    try:
        value = unwrap(decode_clarity_value(hex_value))
    except ClarityDecodeError as e:
        raise MalformedLogEntry(f"undecodable log payload (tx {tx_id}): {e}") from e

    if not isinstance(value, dict):
        raise MalformedLogEntry(f"log payload is not a tuple (tx {tx_id})")

    sender = value.get("sender")
    return HarvestLogEntry(
        sender=sender if isinstance(sender, str) else "",
        energy=_as_int(value.get("energy")),
        integral=_as_int(value.get("integral")) or 0,
        tx_id=tx_id,
        block_height=_as_int(event.get("block_height")),
        op=value.get("op") if isinstance(value.get("op"), str) else "",
        message=value.get("message") if isinstance(value.get("message"), str) else "",
    )


class HoldToEarnLogSource:
    """Log Source Adapter over the chain indexer."""

    def __init__(self, client: HiroClient, concurrency: Optional[int] = None):
        """
        Args:
            client: Open HiroClient
            concurrency: Max parallel transaction-detail lookups
        """
        self.client = client
        self._semaphore = asyncio.Semaphore(
            concurrency or client.settings.tx_detail_concurrency
        )

    async def fetch_events(
        self, contract_id: str, limit: Optional[int] = None, offset: int = 0
    ) -> list[dict]:
        """Raw events, paging until `limit` events or the log is exhausted."""
        split_contract_id(contract_id)
        limit = limit or self.client.settings.event_page_limit
        page_size = min(self.client.settings.event_page_size, limit)

        events: list[dict] = []
        try:
            while len(events) < limit:
                page = await self.client.get_contract_events(
                    contract_id,
                    limit=min(page_size, limit - len(events)),
                    offset=offset + len(events),
                )
                results = page.get("results") if isinstance(page, dict) else None
                if not isinstance(results, list) or not results:
                    break
                events.extend(results)
                if len(results) < page_size:
                    break
        except (httpx.HTTPError, ValueError) as e:
            raise UpstreamFetchError(
                f"Failed to fetch events for {contract_id}: {e}"
            ) from e

        logger.info("Found %d events for contract %s", len(events), contract_id)
        return events

    async def _with_transaction_details(self, entry: HarvestLogEntry) -> HarvestLogEntry:
        if not entry.tx_id:
            return entry
        async with self._semaphore:
            try:
                tx = await self.client.get_transaction(entry.tx_id)
            except (httpx.HTTPError, ValueError) as e:
                logger.warning(
                    "Failed to get transaction details for %s: %s", entry.tx_id, e
                )
                return entry

        return HarvestLogEntry(
            sender=entry.sender,
            energy=entry.energy,
            integral=entry.integral,
            tx_id=entry.tx_id,
            block_height=entry.block_height
            if entry.block_height is not None
            else _as_int(tx.get("block_height")),
            block_time=_as_int(tx.get("block_time")),
            block_time_iso=tx.get("block_time_iso") or None,
            op=entry.op,
            message=entry.message,
            tx_status=tx.get("tx_status"),
        )

    async def fetch_logs(
        self, contract_id: str, limit: Optional[int] = None, offset: int = 0
    ) -> list[HarvestLogEntry]:
        """Fetch and decode the harvest log for a contract.

        Raises:
            InvalidContractIdError: Malformed contract id
            UpstreamFetchError: Event pages could not be fetched
        """
        logger.info(
            "Fetching energy logs for contract: %s, limit: %s, offset: %d",
            contract_id,
            limit or self.client.settings.event_page_limit,
            offset,
        )
        events = await self.fetch_events(contract_id, limit, offset)

        entries = []
        for event in events:
            try:
                entries.append(parse_contract_log_event(event))
            except MalformedLogEntry as e:
                logger.debug("Skipping event: %s", e)

        enriched = await asyncio.gather(
            *(self._with_transaction_details(entry) for entry in entries)
        )
        logger.info("Successfully processed %d energy logs", len(enriched))
        return list(enriched)
