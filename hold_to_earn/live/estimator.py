"""
Live energy estimator.

Projects a user's not-yet-harvested energy between full recomputations:

    estimate = pending_blocks * minutes_per_block * last_known_rate

where last_known_rate is the user's estimatedEnergyRate from the analytics
API and pending_blocks is the cheap on-chain quote. One instance observes
one (contract, address) position.

States:
    idle -> loading -> ready <-> polling
    ready -> harvesting -> optimistic -> (reconcile) loading -> ready

- bind()/start(): full fetch (stats + quote), then poll the quote every
  poll_interval_seconds while ready.
- Poll failures are swallowed; the displayed state is left untouched.
- Every request carries a sequence number. A response older than the last
  applied one is dropped, so out-of-order poll responses never roll the
  estimate back.
- harvest(): optimistically zero the estimate and move the tap block to the
  projected current block before the transaction confirms, then re-run the
  full fetch after reconcile_delay_seconds. The full fetch replaces the
  optimistic values outright.

Usage:
    estimator = LiveEnergyEstimator(contract_id, stats_source, quote_source)
    await estimator.bind("SP2...")
    print(estimator.snapshot().estimated_energy)
    await estimator.stop()
"""

import asyncio
import itertools
import logging
from dataclasses import dataclass, replace
from enum import Enum
from typing import Awaitable, Callable, Optional, Protocol

import httpx

from hold_to_earn.config.settings import EnergySettings, get_settings
from hold_to_earn.data.pending_quote import PendingQuoteSource
from hold_to_earn.errors import PollFailure, UpstreamFetchError
from hold_to_earn.metrics.timestamps import now_ms

logger = logging.getLogger(__name__)


class EstimatorState(str, Enum):
    IDLE = "idle"
    LOADING = "loading"
    READY = "ready"
    POLLING = "polling"
    HARVESTING = "harvesting"
    OPTIMISTIC = "optimistic"


class UserStatsSource(Protocol):
    """Returns the UserEnergyStats dict for (contract, address)."""

    async def get_user_stats(self, contract_id: str, address: str) -> dict: ...


@dataclass(frozen=True)
class LiveEstimate:
    """What a position display renders."""

    address: Optional[str] = None
    pending_blocks: int = 0
    last_tap_block: Optional[int] = None
    current_block: Optional[int] = None
    energy_rate: Optional[float] = None
    estimated_energy: float = 0.0
    optimistic: bool = False
    sequence: int = 0
    updated_at: int = 0


def project_energy(
    pending_blocks: int, minutes_per_block: float, energy_rate: Optional[float]
) -> float:
    """Energy accrued over pending_blocks at energy_rate units/minute."""
    if not energy_rate or pending_blocks <= 0:
        return 0.0
    return pending_blocks * minutes_per_block * energy_rate


def last_tap_block_from_stats(stats: dict) -> Optional[int]:
    """Block height of the most recent harvest in a UserEnergyStats dict."""
    heights = [
        record.get("blockHeight")
        for record in stats.get("harvestHistory") or []
        if record.get("blockHeight") is not None
    ]
    return max(heights) if heights else None


class EnergyApiStatsSource:
    """UserStatsSource reading the analytics API's user endpoint."""

    def __init__(
        self,
        base_url: str,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._transport = transport

    async def get_user_stats(self, contract_id: str, address: str) -> dict:
        url = f"{self.base_url}/api/v1/energy/{contract_id}/user"
        try:
            async with httpx.AsyncClient(
                timeout=self.timeout, transport=self._transport
            ) as client:
                response = await client.get(url, params={"address": address})
                response.raise_for_status()
                payload = response.json()
        except (httpx.HTTPError, ValueError) as e:
            raise UpstreamFetchError(f"user stats request failed: {e}") from e
        return payload.get("data") or {}


class LiveEnergyEstimator:
    """Client-side live estimation loop for one observed position."""

    def __init__(
        self,
        contract_id: str,
        stats_source: UserStatsSource,
        quote_source: PendingQuoteSource,
        settings: Optional[EnergySettings] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        clock_ms: Callable[[], int] = now_ms,
    ):
        """
        Args:
            contract_id: Energy contract being observed
            stats_source: Provider of last-known user stats
            quote_source: Provider of the pending-blocks quote
            settings: Intervals and minutes-per-block
            sleep: Awaitable sleep; injectable for tests
            clock_ms: Epoch-ms clock
        """
        self.contract_id = contract_id
        self.stats_source = stats_source
        self.quote_source = quote_source
        self.settings = settings or get_settings()
        self._sleep = sleep
        self._clock_ms = clock_ms

        self.state = EstimatorState.IDLE
        self.last_error: Optional[str] = None
        self._estimate = LiveEstimate()
        self._sequence = itertools.count(1)
        self._applied_sequence = 0
        self._poll_task: Optional[asyncio.Task] = None
        self._reconcile_task: Optional[asyncio.Task] = None

    # =========================================================================
    # Lifecycle
    # =========================================================================

    @property
    def address(self) -> Optional[str]:
        return self._estimate.address

    def snapshot(self) -> LiveEstimate:
        return self._estimate

    async def bind(self, address: Optional[str]) -> None:
        """Observe a (new) address: cancel old loops, full fetch, start polling."""
        await self._cancel_tasks()
        self._applied_sequence = next(self._sequence)
        self._estimate = LiveEstimate(address=address)
        self.state = EstimatorState.IDLE
        if not address:
            return

        await self.refresh()
        self._poll_task = asyncio.create_task(self._poll_loop())

    async def start(self, address: str) -> None:
        await self.bind(address)

    async def stop(self) -> None:
        """Cancel polling and any pending reconcile; back to idle."""
        await self._cancel_tasks()
        self.state = EstimatorState.IDLE

    async def _cancel_tasks(self) -> None:
        current = asyncio.current_task()
        for task in (self._poll_task, self._reconcile_task):
            if task is not None and task is not current and not task.done():
                task.cancel()
                try:
                    await task
                except asyncio.CancelledError:
                    pass
        self._poll_task = None
        self._reconcile_task = None

    # =========================================================================
    # Full fetch
    # =========================================================================

    async def refresh(self) -> bool:
        """Fetch last-known stats and the quote; replace the displayed estimate.

        Returns:
            True if the fetch was applied. On failure the error is recorded
            in last_error and the previous values stay displayed.
        """
        address = self.address
        if not address:
            return False

        sequence = next(self._sequence)
        had_data = self._estimate.updated_at > 0
        self.state = EstimatorState.LOADING

        try:
            stats, pending = await asyncio.gather(
                self.stats_source.get_user_stats(self.contract_id, address),
                self.quote_source.get_pending_units(self.contract_id, address),
            )
        except (UpstreamFetchError, httpx.HTTPError) as e:
            logger.error("Error fetching energy data for %s: %s", address, e)
            self.last_error = str(e)
            self.state = EstimatorState.READY if had_data else EstimatorState.IDLE
            return False

        if sequence <= self._applied_sequence or address != self.address:
            logger.debug("Dropping stale full fetch #%d", sequence)
            return False

        rate = stats.get("estimatedEnergyRate") if stats.get("hasData") else 0.0
        last_tap = last_tap_block_from_stats(stats)
        self._apply(
            sequence,
            LiveEstimate(
                address=address,
                pending_blocks=pending,
                last_tap_block=last_tap,
                current_block=last_tap + pending if last_tap is not None else None,
                energy_rate=rate,
                estimated_energy=project_energy(
                    pending, self.settings.minutes_per_block, rate
                ),
                optimistic=False,
            ),
        )
        self.last_error = None
        self.state = EstimatorState.READY
        return True

    # =========================================================================
    # Polling
    # =========================================================================

    async def poll_once(self) -> bool:
        """Re-query only the pending quote and re-project the estimate.

        Returns:
            True if a fresh value was applied. Failures are swallowed.
        """
        address = self.address
        if self.state is not EstimatorState.READY or not address:
            return False

        sequence = next(self._sequence)
        self.state = EstimatorState.POLLING
        try:
            try:
                pending = await self.quote_source.get_pending_units(
                    self.contract_id, address
                )
            except Exception as e:
                raise PollFailure(str(e)) from e
        except PollFailure as e:
            logger.warning("Polling energy update failed: %s", e)
            return False
        finally:
            if self.state is EstimatorState.POLLING:
                self.state = EstimatorState.READY

        if sequence <= self._applied_sequence or address != self.address:
            logger.debug("Dropping stale poll response #%d", sequence)
            return False

        current = self._estimate
        self._apply(
            sequence,
            replace(
                current,
                pending_blocks=pending,
                current_block=current.last_tap_block + pending
                if current.last_tap_block is not None
                else None,
                estimated_energy=project_energy(
                    pending, self.settings.minutes_per_block, current.energy_rate
                ),
            ),
        )
        return True

    async def _poll_loop(self) -> None:
        while True:
            await self._sleep(self.settings.poll_interval_seconds)
            if self.state is EstimatorState.READY:
                await self.poll_once()

    # =========================================================================
    # Harvest
    # =========================================================================

    async def harvest(self, submit: Callable[[], Awaitable[str]]) -> str:
        """Submit a harvest and update the display optimistically.

        Args:
            submit: Coroutine function that signs and broadcasts the harvest
                transaction and returns its txid

        Returns:
            The submitted txid

        Raises:
            RuntimeError: Nothing to harvest or estimator not ready
            Exception: Whatever submit raises; the displayed state is kept
        """
        if self.state is not EstimatorState.READY or self._estimate.pending_blocks <= 0:
            raise RuntimeError("nothing to harvest")

        self.state = EstimatorState.HARVESTING
        try:
            tx_id = await submit()
        except Exception:
            self.state = EstimatorState.READY
            raise

        current = self._estimate
        self._apply(
            next(self._sequence),
            replace(
                current,
                last_tap_block=current.current_block,
                pending_blocks=0,
                estimated_energy=0.0,
                energy_rate=None,
                optimistic=True,
            ),
        )
        self.state = EstimatorState.OPTIMISTIC
        logger.info("Harvest submitted for %s: %s", current.address, tx_id)

        self._reconcile_task = asyncio.create_task(self._reconcile())
        return tx_id

    async def _reconcile(self) -> None:
        await self._sleep(self.settings.reconcile_delay_seconds)
        await self.refresh()

    def _apply(self, sequence: int, estimate: LiveEstimate) -> None:
        self._applied_sequence = sequence
        self._estimate = replace(
            estimate, sequence=sequence, updated_at=self._clock_ms()
        )
