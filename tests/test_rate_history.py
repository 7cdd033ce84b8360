"""
Tests for bucketed rate history.
"""

import pytest

from hold_to_earn.config.settings import RateHistoryWindow
from hold_to_earn.metrics.rate_history import (
    bucket_rate_history,
    calculate_rate_history_timeframes,
)
from tests.fixtures.energy_fixtures import NOW_MS, NOW_S, make_entry

HOURLY = RateHistoryWindow(bucket_minutes=60, bucket_count=24)


class TestBucketRateHistory:
    def test_rate_is_energy_per_bucket_minute(self):
        logs = [make_entry(energy=120, block_time=NOW_S - 1800)]
        points = bucket_rate_history(logs, HOURLY, NOW_MS)

        assert len(points) == 1
        assert points[0].rate == 2
        assert points[0].timestamp == NOW_MS

    def test_empty_buckets_omitted(self):
        logs = [
            make_entry(energy=60, block_time=NOW_S - 1800),
            make_entry(energy=60, block_time=NOW_S - 5 * 3600 - 1800),
        ]
        points = bucket_rate_history(logs, HOURLY, NOW_MS)
        assert len(points) == 2

    def test_points_ascending_by_bucket_end(self):
        logs = [
            make_entry(energy=60, block_time=NOW_S - 600),
            make_entry(energy=60, block_time=NOW_S - 10 * 3600),
        ]
        points = bucket_rate_history(logs, HOURLY, NOW_MS)
        assert points[0].timestamp < points[1].timestamp

    def test_same_bucket_energy_summed(self):
        logs = [
            make_entry(energy=30, block_time=NOW_S - 100),
            make_entry(energy=30, block_time=NOW_S - 200, sender="SP_OTHER"),
        ]
        points = bucket_rate_history(logs, HOURLY, NOW_MS)
        assert points[0].rate == 1

    def test_range_start_inclusive(self):
        logs = [make_entry(energy=60, block_time=NOW_S - 24 * 3600)]
        points = bucket_rate_history(logs, HOURLY, NOW_MS)
        assert points[0].timestamp == NOW_MS - 23 * 3600 * 1000

    def test_outside_range_excluded(self):
        logs = [make_entry(energy=60, block_time=NOW_S - 24 * 3600 - 1)]
        assert bucket_rate_history(logs, HOURLY, NOW_MS) == []

    def test_entries_pinned_to_now_excluded(self):
        logs = [make_entry(energy=60, block_time=1000)]
        assert bucket_rate_history(logs, HOURLY, NOW_MS) == []


class TestRateHistoryTimeframes:
    def test_default_timeframes(self, sample_logs):
        history = calculate_rate_history_timeframes(sample_logs[:5], current_ms=NOW_MS)

        assert list(history) == ["daily", "weekly", "monthly"]
        daily = history["daily"]
        assert [p.rate for p in daily] == pytest.approx([24.0, 10.0, 650 / 60])

    def test_weekly_covers_older_harvests(self, sample_logs):
        history = calculate_rate_history_timeframes(sample_logs[:5], current_ms=NOW_MS)
        total = sum(p.rate * 1440 for p in history["weekly"])
        assert total == pytest.approx(4130)

    def test_custom_windows(self):
        windows = {"daily": RateHistoryWindow(bucket_minutes=10, bucket_count=6)}
        logs = [make_entry(energy=50, block_time=NOW_S - 120)]
        history = calculate_rate_history_timeframes(logs, windows, NOW_MS)
        assert list(history) == ["daily"]
        assert history["daily"][0].rate == 5
