"""
Tests for EnergyAnalyticsService cache policy.

Test coverage:
- Cache idempotence and fromCache tagging
- Forced refresh always recomputes and overwrites
- Store failures degrade to always-compute
- Upstream failures propagate without a cache write
- Single-flight for concurrent misses
- Rate snapshot history
"""

import asyncio

import pytest

from hold_to_earn.analytics_service import CacheKey, CacheScope, EnergyAnalyticsService
from hold_to_earn.errors import (
    InvalidContractIdError,
    InvalidRequestError,
    UpstreamFetchError,
)
from hold_to_earn.utils.result_cache import InMemoryResultStore
from tests.fixtures.energy_fixtures import (
    ALICE,
    CONTRACT_ID,
    NOW_MS,
    BrokenStore,
    FakeLogSource,
)


class TestCacheKey:
    def test_system_key(self):
        assert str(CacheKey(CacheScope.SYSTEM, "SP1.c")) == "energy:system:SP1.c"

    def test_user_key(self):
        key = CacheKey(CacheScope.USER, "SP1.c", "SP2")
        assert str(key) == "energy:user:SP1.c:SP2"

    def test_user_key_requires_address(self):
        with pytest.raises(ValueError):
            CacheKey(CacheScope.USER, "SP1.c")


class TestSystemEnergy:
    @pytest.mark.asyncio
    async def test_first_read_computes(self, energy_service, fake_log_source):
        result = await energy_service.get_system_energy(CONTRACT_ID)

        assert result.from_cache is False
        assert fake_log_source.calls == 1
        assert result.data["stats"]["uniqueUsers"] == 3
        assert result.data["stats"]["lastUpdated"] == NOW_MS

    @pytest.mark.asyncio
    async def test_second_read_is_cached_and_identical(
        self, energy_service, fake_log_source
    ):
        first = await energy_service.get_system_energy(CONTRACT_ID)
        second = await energy_service.get_system_energy(CONTRACT_ID)

        assert second.from_cache is True
        assert second.data == first.data
        assert fake_log_source.calls == 1

    @pytest.mark.asyncio
    async def test_refresh_always_recomputes(self, energy_service, fake_log_source):
        await energy_service.get_system_energy(CONTRACT_ID, refresh=True)
        await energy_service.get_system_energy(CONTRACT_ID, refresh=True)

        assert fake_log_source.calls == 2

    @pytest.mark.asyncio
    async def test_refresh_overwrites_cache(self, energy_service, fake_log_source):
        await energy_service.get_system_energy(CONTRACT_ID)
        fake_log_source.logs = fake_log_source.logs[:1]

        refreshed = await energy_service.get_system_energy(CONTRACT_ID, refresh=True)
        cached = await energy_service.get_system_energy(CONTRACT_ID)

        assert refreshed.data["stats"]["uniqueUsers"] == 1
        assert cached.from_cache is True
        assert cached.data == refreshed.data

    @pytest.mark.asyncio
    async def test_upstream_failure_writes_nothing(self, settings, memory_store):
        source = FakeLogSource(error=UpstreamFetchError("down"))
        service = EnergyAnalyticsService(source, memory_store, settings)

        with pytest.raises(UpstreamFetchError):
            await service.get_system_energy(CONTRACT_ID)
        assert len(memory_store) == 0

    @pytest.mark.asyncio
    async def test_store_down_degrades_to_compute(self, settings, fake_log_source):
        store = BrokenStore()
        service = EnergyAnalyticsService(
            fake_log_source, store, settings, clock_ms=lambda: NOW_MS
        )

        first = await service.get_system_energy(CONTRACT_ID)
        second = await service.get_system_energy(CONTRACT_ID)

        assert first.from_cache is False
        assert second.from_cache is False
        assert fake_log_source.calls == 2
        assert store.writes >= 2

    @pytest.mark.asyncio
    async def test_expired_entry_recomputes(self, settings, fake_log_source):
        clock = [0.0]
        store = InMemoryResultStore(clock=lambda: clock[0])
        service = EnergyAnalyticsService(
            fake_log_source, store, settings, clock_ms=lambda: NOW_MS
        )

        await service.get_system_energy(CONTRACT_ID)
        clock[0] += settings.cache_ttl_seconds
        result = await service.get_system_energy(CONTRACT_ID)

        assert result.from_cache is False
        assert fake_log_source.calls == 2

    @pytest.mark.asyncio
    async def test_concurrent_misses_share_one_computation(
        self, energy_service, fake_log_source
    ):
        fake_log_source.gate = asyncio.Event()
        tasks = [
            asyncio.ensure_future(energy_service.get_system_energy(CONTRACT_ID))
            for _ in range(5)
        ]
        await asyncio.sleep(0)
        fake_log_source.gate.set()
        results = await asyncio.gather(*tasks)

        assert fake_log_source.calls == 1
        assert all(r.data == results[0].data for r in results)

    @pytest.mark.asyncio
    async def test_invalid_contract_id(self, energy_service):
        with pytest.raises(InvalidContractIdError):
            await energy_service.get_system_energy("no-dot-here")

    @pytest.mark.asyncio
    async def test_malformed_rows_excluded(self, energy_service):
        result = await energy_service.get_system_energy(CONTRACT_ID)
        assert result.data["stats"]["totalEnergyHarvested"] == 4130


class TestUserEnergy:
    @pytest.mark.asyncio
    async def test_user_stats(self, energy_service):
        result = await energy_service.get_user_energy(CONTRACT_ID, ALICE)

        assert result.from_cache is False
        assert result.data["address"] == ALICE
        assert result.data["harvestCount"] == 2
        assert result.data["hasData"] is True

    @pytest.mark.asyncio
    async def test_no_activity_is_cached_not_null(
        self, energy_service, fake_log_source
    ):
        first = await energy_service.get_user_energy(CONTRACT_ID, "SP_NOBODY")
        second = await energy_service.get_user_energy(CONTRACT_ID, "SP_NOBODY")

        assert first.data["hasData"] is False
        assert first.data["totalEnergyHarvested"] == 0
        assert second.from_cache is True
        assert fake_log_source.calls == 1

    @pytest.mark.asyncio
    async def test_missing_address(self, energy_service):
        with pytest.raises(InvalidRequestError):
            await energy_service.get_user_energy(CONTRACT_ID, None)
        with pytest.raises(InvalidRequestError):
            await energy_service.get_user_energy(CONTRACT_ID, "")

    @pytest.mark.asyncio
    async def test_user_and_system_keys_independent(
        self, energy_service, fake_log_source
    ):
        await energy_service.get_system_energy(CONTRACT_ID)
        result = await energy_service.get_user_energy(CONTRACT_ID, ALICE)

        assert result.from_cache is False
        assert fake_log_source.calls == 2


class TestRateHistory:
    @pytest.mark.asyncio
    async def test_snapshot_recorded_per_system_pass(self, energy_service):
        await energy_service.get_system_energy(CONTRACT_ID, refresh=True)
        await energy_service.get_system_energy(CONTRACT_ID, refresh=True)

        history = await energy_service.get_rate_history(CONTRACT_ID)
        assert len(history) == 2
        assert history[0].timestamp == NOW_MS
        assert history[0].unique_users == 3
        assert history[0].energy_rate > 0

    @pytest.mark.asyncio
    async def test_snapshot_limit(self, settings, fake_log_source, memory_store):
        settings.rate_snapshot_limit = 3
        service = EnergyAnalyticsService(fake_log_source, memory_store, settings)
        for _ in range(5):
            await service.get_system_energy(CONTRACT_ID, refresh=True)

        assert len(await service.get_rate_history(CONTRACT_ID)) == 3

    @pytest.mark.asyncio
    async def test_no_snapshot_for_zero_rate(self, settings, memory_store):
        service = EnergyAnalyticsService(FakeLogSource([]), memory_store, settings)
        await service.get_system_energy(CONTRACT_ID)

        assert await service.get_rate_history(CONTRACT_ID) == []
