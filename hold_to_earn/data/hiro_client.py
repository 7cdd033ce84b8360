"""Async HTTP client for a Hiro-compatible Stacks chain indexer.

Thin transport used by the log source and the pending-units quote:
- Connection pooling via one shared httpx.AsyncClient
- Exponential backoff retry on transport errors, 429 and 5xx (tenacity)
- Proper async context management

Usage:
    async with HiroClient(settings) as client:
        page = await client.get_contract_events("SP2....energize-v1", limit=50)
"""

from __future__ import annotations

import logging
from typing import Any

import httpx

from hold_to_earn.config.settings import EnergySettings, get_settings
from hold_to_earn.errors import InvalidContractIdError
from hold_to_earn.utils.retry_decorator import retry_http

logger = logging.getLogger(__name__)


def split_contract_id(contract_id: str) -> tuple[str, str]:
    """Split 'address.name' into its two parts.

    Raises:
        InvalidContractIdError: Empty id or not of the form 'address.name'
    """
    if not contract_id:
        raise InvalidContractIdError("Contract ID is required")

    address, _, name = contract_id.partition(".")
    if not address or not name or "." in name:
        raise InvalidContractIdError(
            f"Invalid contract ID format {contract_id!r}. Expected 'address.name'"
        )
    return address, name


class HiroClient:
    """Async client for the chain indexer REST API.

    Example:
        async with HiroClient() as client:
            tx = await client.get_transaction("0xabc...")
            print(tx["block_time_iso"])
    """

    def __init__(
        self,
        settings: EnergySettings | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        """Initialize client.

        Args:
            settings: Engine settings; loaded from the environment if None
            transport: Optional httpx transport (tests use httpx.MockTransport)
        """
        self.settings = settings or get_settings()
        self._transport = transport
        self._client: httpx.AsyncClient | None = None
        self._request = retry_http(max_attempts=self.settings.http_max_retries)(
            self._request_once
        )

    async def __aenter__(self) -> "HiroClient":
        headers = {"Accept": "application/json"}
        if self.settings.hiro_api_key:
            headers["x-api-key"] = self.settings.hiro_api_key
        self._client = httpx.AsyncClient(
            base_url=self.settings.hiro_api_url,
            headers=headers,
            timeout=self.settings.http_timeout_seconds,
            transport=self._transport,
        )
        logger.debug("HiroClient initialized: %s", self.settings.hiro_api_url)
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    def _ensure_client(self) -> httpx.AsyncClient:
        if self._client is None:
            raise RuntimeError("HiroClient must be used as an async context manager")
        return self._client

    async def _request_once(self, method: str, path: str, **kwargs) -> Any:
        response = await self._ensure_client().request(method, path, **kwargs)
        response.raise_for_status()
        return response.json()

    async def get_contract_events(
        self, contract_id: str, limit: int = 50, offset: int = 0
    ) -> dict:
        """One page of smart-contract log events, newest first."""
        split_contract_id(contract_id)
        return await self._request(
            "GET",
            f"/extended/v1/contract/{contract_id}/events",
            params={"limit": limit, "offset": offset},
        )

    async def get_transaction(self, tx_id: str) -> dict:
        """Transaction details (block_time, block_time_iso, tx_status, ...)."""
        return await self._request("GET", f"/extended/v1/tx/{tx_id}")

    async def call_read_only(
        self,
        contract_id: str,
        function_name: str,
        arguments: list[str],
        sender: str,
    ) -> dict:
        """Call a read-only contract function.

        Args:
            contract_id: 'address.name'
            function_name: Read-only function to call
            arguments: Hex-encoded Clarity arguments
            sender: Address the call is evaluated as (tx-sender)

        Returns:
            Raw indexer response: {"okay": bool, "result": "0x..."} or
            {"okay": false, "cause": "..."}
        """
        address, name = split_contract_id(contract_id)
        return await self._request(
            "POST",
            f"/v2/contracts/call-read/{address}/{name}/{function_name}",
            json={"sender": sender, "arguments": arguments},
        )
