"""
Energy analytics service: aggregation behind a TTL result cache.

Request contract:
- Default path: a cache hit is returned tagged from_cache=True and no
  aggregation runs.
- Forced refresh: aggregation always runs and its result always overwrites
  the cache entry.
- Store failures never fail a request: a read failure is a miss, a write
  failure is logged and dropped.
- Upstream fetch failures propagate and nothing is written.
- Concurrent misses for the same key in this process share one in-flight
  computation.

Cache keys:
    energy:system:{contract_id}
    energy:user:{contract_id}:{address}
    energy:history:{contract_id}

Usage:
    service = EnergyAnalyticsService(log_source, InMemoryResultStore())
    result = await service.get_system_energy("SP2....energize-v1")
    print(result.from_cache, result.data["stats"]["uniqueUsers"])
"""

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Awaitable, Callable, Optional

from hold_to_earn.config.settings import EnergySettings, get_settings
from hold_to_earn.data.hiro_client import split_contract_id
from hold_to_earn.data.log_fetcher import LogSource
from hold_to_earn.errors import CacheUnavailableError, InvalidRequestError
from hold_to_earn.metrics.log_validation import filter_valid_entries
from hold_to_earn.metrics.system_energy import (
    calculate_energy_rates,
    calculate_system_energy_stats,
)
from hold_to_earn.metrics.timestamps import now_ms
from hold_to_earn.metrics.user_energy import calculate_user_energy_stats
from hold_to_earn.models.energy_models import RateSnapshot
from hold_to_earn.utils.result_cache import ResultStore

logger = logging.getLogger(__name__)

# Anything a store backend may raise when it is down
STORE_ERRORS = (CacheUnavailableError, ConnectionError, TimeoutError, OSError)


class CacheScope(str, Enum):
    USER = "user"
    SYSTEM = "system"
    HISTORY = "history"


@dataclass(frozen=True)
class CacheKey:
    """(scope, contract, address?) rendered as a namespaced string key."""

    scope: CacheScope
    contract_id: str
    address: Optional[str] = None

    def __post_init__(self):
        if self.scope is CacheScope.USER and not self.address:
            raise ValueError("user cache keys require an address")

    def __str__(self) -> str:
        key = f"energy:{self.scope.value}:{self.contract_id}"
        if self.address:
            key = f"{key}:{self.address}"
        return key


@dataclass
class CachedResult:
    """Aggregation output plus where it came from."""

    data: Any
    from_cache: bool = False


class EnergyAnalyticsService:
    """Serves system and user energy analytics through the result cache."""

    def __init__(
        self,
        log_source: LogSource,
        store: ResultStore,
        settings: Optional[EnergySettings] = None,
        clock_ms: Callable[[], int] = now_ms,
    ):
        """
        Args:
            log_source: Provider of a contract's harvest log
            store: Key-value result store
            settings: Engine settings; loaded from the environment if None
            clock_ms: Epoch-ms clock; injectable for deterministic tests
        """
        self.log_source = log_source
        self.store = store
        self.settings = settings or get_settings()
        self._clock_ms = clock_ms
        self._inflight: dict[str, asyncio.Future] = {}

    # =========================================================================
    # Store access (failures degrade, never raise)
    # =========================================================================

    async def _cache_read(self, key: CacheKey) -> Optional[Any]:
        try:
            return await self.store.get(str(key))
        except STORE_ERRORS as e:
            logger.warning("Cache read failed for %s, treating as miss: %s", key, e)
            return None

    async def _cache_write(self, key: CacheKey, value: Any, ttl_seconds: int) -> None:
        try:
            await self.store.set(str(key), value, ttl_seconds)
        except STORE_ERRORS as e:
            logger.warning("Cache write failed for %s: %s", key, e)

    # =========================================================================
    # Cache policy
    # =========================================================================

    async def _single_flight(
        self, key: CacheKey, compute: Callable[[], Awaitable[Any]]
    ) -> Any:
        """Run compute once per key; concurrent callers await the same result."""
        name = str(key)
        future = self._inflight.get(name)
        if future is None:
            future = asyncio.ensure_future(compute())
            self._inflight[name] = future

            def _release(done: asyncio.Future, name: str = name) -> None:
                if self._inflight.get(name) is done:
                    del self._inflight[name]

            future.add_done_callback(_release)
        else:
            logger.debug("Joining in-flight computation for %s", name)
        return await asyncio.shield(future)

    async def _cached(
        self,
        key: CacheKey,
        compute: Callable[[], Awaitable[Any]],
        refresh: bool,
    ) -> CachedResult:
        if refresh:
            logger.info("Force refresh requested for %s, skipping cache", key)
        else:
            cached = await self._cache_read(key)
            if cached is not None:
                logger.info("Returning cached energy analytics for %s", key)
                return CachedResult(data=cached, from_cache=True)

        async def compute_and_store() -> Any:
            data = await compute()
            await self._cache_write(key, data, self.settings.cache_ttl_seconds)
            return data

        if refresh:
            data = await compute_and_store()
        else:
            data = await self._single_flight(key, compute_and_store)
        return CachedResult(data=data, from_cache=False)

    # =========================================================================
    # System analytics
    # =========================================================================

    async def compute_system_energy(self, contract_id: str) -> dict:
        """Fetch the log and aggregate contract-wide stats and rates (no cache)."""
        current_ms = self._clock_ms()

        logs = await self.log_source.fetch_logs(contract_id)
        valid_logs, dropped = filter_valid_entries(
            logs, current_ms, self.settings.future_tolerance_seconds
        )
        logger.info(
            "Found %d total logs, %d valid logs for processing (%d excluded)",
            len(logs),
            len(valid_logs),
            dropped,
        )

        stats = calculate_system_energy_stats(valid_logs, current_ms)
        rates = calculate_energy_rates(
            valid_logs,
            leaderboard_size=self.settings.leaderboard_size,
            fallback_span_minutes=self.settings.fallback_span_minutes,
            windows=self.settings.rate_history_windows,
            current_ms=current_ms,
        )

        if rates.overall_energy_per_minute > 0:
            await self._record_rate_snapshot(
                contract_id,
                RateSnapshot(
                    timestamp=current_ms,
                    energy_rate=rates.overall_energy_per_minute,
                    integral_rate=rates.overall_integral_per_minute,
                    total_energy_harvested=stats.total_energy_harvested,
                    unique_users=stats.unique_users,
                ),
            )

        return {"stats": stats.to_dict(), "rates": rates.to_dict()}

    async def get_system_energy(
        self, contract_id: str, refresh: bool = False
    ) -> CachedResult:
        """System stats and rates for a contract.

        Raises:
            InvalidContractIdError: Malformed contract id
            UpstreamFetchError: Log source failure (nothing cached)
        """
        split_contract_id(contract_id)
        key = CacheKey(CacheScope.SYSTEM, contract_id)
        return await self._cached(
            key, lambda: self.compute_system_energy(contract_id), refresh
        )

    # =========================================================================
    # User analytics
    # =========================================================================

    async def compute_user_energy(self, contract_id: str, address: str) -> dict:
        """Fetch the log and aggregate one address's stats (no cache)."""
        logs = await self.log_source.fetch_logs(contract_id)
        stats = calculate_user_energy_stats(
            logs,
            address,
            fallback_span_minutes=self.settings.fallback_span_minutes,
            current_ms=self._clock_ms(),
        )
        return stats.to_dict()

    async def get_user_energy(
        self, contract_id: str, address: Optional[str], refresh: bool = False
    ) -> CachedResult:
        """Energy stats for one address on a contract.

        An address with no harvests yields zero-valued stats with
        hasData=False, which is cached like any other result.

        Raises:
            InvalidRequestError: Missing address
            InvalidContractIdError: Malformed contract id
            UpstreamFetchError: Log source failure (nothing cached)
        """
        if not address:
            raise InvalidRequestError("address parameter is required")
        split_contract_id(contract_id)

        key = CacheKey(CacheScope.USER, contract_id, address)
        return await self._cached(
            key, lambda: self.compute_user_energy(contract_id, address), refresh
        )

    # =========================================================================
    # Rate snapshots
    # =========================================================================

    async def _record_rate_snapshot(
        self, contract_id: str, snapshot: RateSnapshot
    ) -> None:
        """Prepend a snapshot and keep the most recent rate_snapshot_limit."""
        key = CacheKey(CacheScope.HISTORY, contract_id)
        history = await self._cache_read(key) or []
        history = [snapshot.to_dict(), *history][: self.settings.rate_snapshot_limit]
        await self._cache_write(key, history, self.settings.rate_snapshot_ttl_seconds)

    async def get_rate_history(self, contract_id: str) -> list[RateSnapshot]:
        """Stored rate snapshots, newest first."""
        split_contract_id(contract_id)
        history = await self._cache_read(CacheKey(CacheScope.HISTORY, contract_id))
        return [RateSnapshot.from_dict(item) for item in history or []]
