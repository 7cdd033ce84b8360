"""
Row-level validation of harvest log entries.

A malformed row never aborts an aggregation pass. `validate_log_entry`
raises MalformedLogEntry so the reason is explicit; `filter_valid_entries`
catches exactly that category, counts it and moves on.
"""

import logging
from typing import Iterable, Optional

from hold_to_earn.errors import MalformedLogEntry
from hold_to_earn.metrics.timestamps import now_ms
from hold_to_earn.models.energy_models import HarvestLogEntry

logger = logging.getLogger(__name__)


def validate_log_entry(
    entry: HarvestLogEntry,
    current_ms: Optional[int] = None,
    future_tolerance_seconds: Optional[int] = None,
) -> HarvestLogEntry:
    """Check that an entry can take part in aggregation.

    Args:
        entry: Raw log entry
        current_ms: "Now" in epoch ms (only used with future_tolerance_seconds)
        future_tolerance_seconds: If set, reject block times further than
            this into the future

    Returns:
        The entry, unchanged.

    Raises:
        MalformedLogEntry: Missing sender, missing/negative energy, negative
            integral, or a block time too far in the future.
    """
    if not entry.sender:
        raise MalformedLogEntry(f"missing sender (tx {entry.tx_id or '?'})")
    if entry.energy is None:
        raise MalformedLogEntry(f"missing energy (tx {entry.tx_id or '?'})")
    if entry.energy < 0:
        raise MalformedLogEntry(f"negative energy {entry.energy} (tx {entry.tx_id})")
    if entry.integral < 0:
        raise MalformedLogEntry(
            f"negative integral {entry.integral} (tx {entry.tx_id})"
        )

    if future_tolerance_seconds is not None and entry.block_time is not None:
        if current_ms is None:
            current_ms = now_ms()
        if entry.block_time * 1000 > current_ms + future_tolerance_seconds * 1000:
            raise MalformedLogEntry(
                f"future block time {entry.block_time} (tx {entry.tx_id})"
            )

    return entry


def filter_valid_entries(
    logs: Iterable[HarvestLogEntry],
    current_ms: Optional[int] = None,
    future_tolerance_seconds: Optional[int] = None,
) -> tuple[list[HarvestLogEntry], int]:
    """Drop malformed rows.

    Returns:
        (valid entries in input order, number of dropped rows)
    """
    valid = []
    dropped = 0
    for entry in logs:
        try:
            valid.append(
                validate_log_entry(entry, current_ms, future_tolerance_seconds)
            )
        except MalformedLogEntry as e:
            dropped += 1
            logger.debug("Skipping malformed log entry: %s", e)

    if dropped:
        logger.info("Excluded %d malformed log entries of %d", dropped, dropped + len(valid))
    return valid, dropped
