"""
Tests for row-level log validation.
"""

import pytest

from hold_to_earn.errors import IgnorableError, MalformedLogEntry
from hold_to_earn.metrics.log_validation import (
    filter_valid_entries,
    validate_log_entry,
)
from tests.fixtures.energy_fixtures import NOW_MS, NOW_S, make_entry


class TestValidateLogEntry:
    def test_valid_entry_returned_unchanged(self):
        entry = make_entry()
        assert validate_log_entry(entry) is entry

    @pytest.mark.parametrize(
        "entry",
        [
            make_entry(sender=""),
            make_entry(energy=None),
            make_entry(energy=-1),
            make_entry(integral=-5),
        ],
    )
    def test_malformed_rows_raise(self, entry):
        with pytest.raises(MalformedLogEntry):
            validate_log_entry(entry)

    def test_malformed_is_ignorable(self):
        assert issubclass(MalformedLogEntry, IgnorableError)

    def test_future_block_time_rejected_with_tolerance(self):
        entry = make_entry(block_time=NOW_S + 2 * 86400)
        with pytest.raises(MalformedLogEntry, match="future"):
            validate_log_entry(entry, NOW_MS, future_tolerance_seconds=86400)

    def test_future_block_time_allowed_without_tolerance(self):
        entry = make_entry(block_time=NOW_S + 2 * 86400)
        assert validate_log_entry(entry, NOW_MS) is entry

    def test_zero_energy_is_valid(self):
        entry = make_entry(energy=0)
        assert validate_log_entry(entry) is entry


class TestFilterValidEntries:
    def test_counts_dropped_rows(self, sample_logs):
        valid, dropped = filter_valid_entries(sample_logs, NOW_MS, 86400)
        assert dropped == 1
        assert len(valid) == 5
        assert all(entry.sender for entry in valid)

    def test_preserves_input_order(self):
        logs = [make_entry(block_height=3), make_entry(block_height=1)]
        valid, _ = filter_valid_entries(logs)
        assert [entry.block_height for entry in valid] == [3, 1]

    def test_empty_input(self):
        assert filter_valid_entries([]) == ([], 0)
