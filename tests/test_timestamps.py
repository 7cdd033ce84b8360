"""
Tests for harvest timestamp resolution.

Test coverage:
- ISO preferred over unix seconds
- Validity window [2020-01-01, now + 24h)
- Fallback to "now" for missing or garbage input
"""

from hold_to_earn.metrics.timestamps import (
    FUTURE_TOLERANCE_MS,
    MIN_VALID_TIMESTAMP_MS,
    is_within_validity_window,
    parse_iso_timestamp_ms,
    resolve_timestamp_ms,
)
from tests.fixtures.energy_fixtures import NOW_MS

# 2024-01-01T00:00:00Z
JAN_2024_S = 1_704_067_200
JAN_2024_MS = JAN_2024_S * 1000


class TestParseIsoTimestamp:
    def test_zulu_suffix(self):
        assert parse_iso_timestamp_ms("2024-01-01T00:00:00Z") == JAN_2024_MS

    def test_explicit_offset(self):
        assert parse_iso_timestamp_ms("2024-01-01T02:00:00+02:00") == JAN_2024_MS

    def test_naive_is_utc(self):
        assert parse_iso_timestamp_ms("2024-01-01T00:00:00") == JAN_2024_MS

    def test_garbage_returns_none(self):
        assert parse_iso_timestamp_ms("not-a-date") is None
        assert parse_iso_timestamp_ms("") is None
        assert parse_iso_timestamp_ms(None) is None


class TestValidityWindow:
    def test_lower_bound_inclusive(self):
        assert is_within_validity_window(MIN_VALID_TIMESTAMP_MS, NOW_MS)
        assert not is_within_validity_window(MIN_VALID_TIMESTAMP_MS - 1, NOW_MS)

    def test_upper_bound_exclusive(self):
        assert is_within_validity_window(NOW_MS + FUTURE_TOLERANCE_MS - 1, NOW_MS)
        assert not is_within_validity_window(NOW_MS + FUTURE_TOLERANCE_MS, NOW_MS)


class TestResolveTimestamp:
    def test_iso_wins_over_unix(self):
        ts = resolve_timestamp_ms("2024-01-01T00:00:00Z", JAN_2024_S + 60, NOW_MS)
        assert ts == JAN_2024_MS

    def test_unix_seconds_converted_to_ms(self):
        assert resolve_timestamp_ms(None, JAN_2024_S, NOW_MS) == JAN_2024_MS

    def test_invalid_iso_falls_back_to_unix(self):
        assert resolve_timestamp_ms("garbage", JAN_2024_S, NOW_MS) == JAN_2024_MS

    def test_out_of_window_iso_falls_back_to_unix(self):
        assert resolve_timestamp_ms("2019-06-01T00:00:00Z", JAN_2024_S, NOW_MS) == (
            JAN_2024_MS
        )

    def test_pre_2020_unix_falls_back_to_now(self):
        # 2019-01-01
        assert resolve_timestamp_ms(None, 1_546_300_800, NOW_MS) == NOW_MS

    def test_far_future_falls_back_to_now(self):
        future_s = (NOW_MS + 2 * FUTURE_TOLERANCE_MS) // 1000
        assert resolve_timestamp_ms(None, future_s, NOW_MS) == NOW_MS

    def test_missing_both_falls_back_to_now(self):
        assert resolve_timestamp_ms(None, None, NOW_MS) == NOW_MS

    def test_zero_unix_time_is_out_of_window(self):
        assert resolve_timestamp_ms(None, 0, NOW_MS) == NOW_MS

    def test_never_raises_on_odd_types(self):
        assert resolve_timestamp_ms(12345, "abc", NOW_MS) == NOW_MS
