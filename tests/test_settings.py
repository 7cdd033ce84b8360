"""
Tests for environment-driven settings.
"""

import pytest

from hold_to_earn.config.settings import EnergySettings, RateHistoryWindow


class TestEnergySettings:
    def test_defaults(self, monkeypatch):
        for name in ("CACHE_TTL_SECONDS", "LEADERBOARD_SIZE", "FALLBACK_SPAN_MINUTES"):
            monkeypatch.delenv(name, raising=False)
        settings = EnergySettings()

        assert settings.cache_ttl_seconds == 300
        assert settings.leaderboard_size == 10
        assert settings.fallback_span_minutes == 1440
        assert settings.minutes_per_block == 10

    def test_env_overrides(self, monkeypatch):
        monkeypatch.setenv("CACHE_TTL_SECONDS", "60")
        monkeypatch.setenv("REDIS_URL", "redis://cache:6379/1")
        monkeypatch.setenv("DAILY_BUCKET_MINUTES", "30")
        monkeypatch.setenv("DAILY_BUCKET_COUNT", "48")
        settings = EnergySettings()

        assert settings.cache_ttl_seconds == 60
        assert settings.redis_url == "redis://cache:6379/1"
        assert settings.daily_window == RateHistoryWindow(30, 48)

    def test_empty_redis_url_means_memory(self, monkeypatch):
        monkeypatch.setenv("REDIS_URL", "")
        assert EnergySettings().redis_url is None

    def test_rate_history_windows_order(self):
        assert list(EnergySettings().rate_history_windows) == [
            "daily",
            "weekly",
            "monthly",
        ]

    def test_is_production(self):
        assert EnergySettings(environment="Production").is_production
        assert not EnergySettings(environment="development").is_production

    @pytest.mark.parametrize(
        "field", ["cache_ttl_seconds", "leaderboard_size", "fallback_span_minutes"]
    )
    def test_rejects_non_positive(self, field):
        with pytest.raises(ValueError):
            EnergySettings(**{field: 0})


class TestRateHistoryWindow:
    def test_rejects_non_positive(self):
        with pytest.raises(ValueError):
            RateHistoryWindow(bucket_minutes=0, bucket_count=24)
        with pytest.raises(ValueError):
            RateHistoryWindow(bucket_minutes=60, bucket_count=0)
