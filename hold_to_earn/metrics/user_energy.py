"""
User Energy Aggregator.

Reduces one address's harvests on a contract into UserEnergyStats.

Steps:
1. Keep entries sent by the address that carry a non-negative energy and
   integral; malformed rows are skipped, not raised
2. No matches -> zero-valued stats with has_data=False (not an error)
3. Order by block height -> harvest history, totals, average
4. Rate over the block-time span of the height-ordered run (see
   rate_estimation for the fallback rule)
5. Latest harvest time from an independent ordering by resolved timestamp,
   since block height and wall time are not guaranteed co-monotonic

Usage:
    from hold_to_earn.metrics.user_energy import calculate_user_energy_stats

    stats = calculate_user_energy_stats(logs, "SP2...")
    print(f"{stats.estimated_energy_rate:.2f} energy/min over {stats.harvest_count} harvests")
"""

import logging
from typing import Iterable, Optional

from hold_to_earn.errors import MalformedLogEntry
from hold_to_earn.metrics.log_validation import validate_log_entry
from hold_to_earn.metrics.rate_estimation import (
    DEFAULT_FALLBACK_SPAN_MINUTES,
    estimate_rate,
    sort_by_block_height,
)
from hold_to_earn.metrics.timestamps import now_ms, resolve_timestamp_ms
from hold_to_earn.models.energy_models import (
    HarvestLogEntry,
    HarvestRecord,
    UserEnergyStats,
)

logger = logging.getLogger(__name__)


def select_user_entries(
    logs: Iterable[HarvestLogEntry], address: str
) -> list[HarvestLogEntry]:
    """Well-formed entries sent by `address` (no future-time check)."""
    selected = []
    for entry in logs:
        if entry.sender != address:
            continue
        try:
            validate_log_entry(entry)
        except MalformedLogEntry as e:
            logger.debug("Skipping malformed harvest for %s: %s", address, e)
            continue
        selected.append(entry)
    return selected


def build_harvest_history(
    ordered: Iterable[HarvestLogEntry], current_ms: int
) -> list[HarvestRecord]:
    return [
        HarvestRecord(
            timestamp=resolve_timestamp_ms(
                entry.block_time_iso, entry.block_time, current_ms
            ),
            energy=int(entry.energy),
            integral=int(entry.integral or 0),
            block_height=entry.block_height,
            tx_id=entry.tx_id,
        )
        for entry in ordered
    ]


def calculate_user_energy_stats(
    logs: Iterable[HarvestLogEntry],
    address: str,
    fallback_span_minutes: float = DEFAULT_FALLBACK_SPAN_MINUTES,
    current_ms: Optional[int] = None,
) -> UserEnergyStats:
    """Calculate energy statistics for one address.

    Args:
        logs: Full harvest log for the contract
        address: Address to report on
        fallback_span_minutes: Assumed holding period when the span cannot
            be measured
        current_ms: "Now" in epoch ms; defaults to wall-clock time

    Returns:
        UserEnergyStats. Zero-valued with has_data=False when the address
        has no harvests.
    """
    if current_ms is None:
        current_ms = now_ms()

    user_entries = select_user_entries(logs, address)
    if not user_entries:
        logger.debug("No harvests found for %s", address)
        return UserEnergyStats.empty(address)

    ordered = sort_by_block_height(user_entries)
    history = build_harvest_history(ordered, current_ms)

    total_energy = sum(record.energy for record in history)
    total_integral = sum(record.integral for record in history)
    harvest_count = len(history)

    latest_first = sorted(history, key=lambda record: record.timestamp, reverse=True)

    stats = UserEnergyStats(
        address=address,
        total_energy_harvested=total_energy,
        total_integral_calculated=total_integral,
        harvest_count=harvest_count,
        average_energy_per_harvest=total_energy / harvest_count,
        last_harvest_timestamp=latest_first[0].timestamp,
        estimated_energy_rate=estimate_rate(
            total_energy, ordered, fallback_span_minutes
        ),
        estimated_integral_rate=estimate_rate(
            total_integral, ordered, fallback_span_minutes
        ),
        harvest_history=history,
        has_data=True,
    )

    logger.debug(
        "User %s: %d harvests, total=%d, rate=%.4f/min",
        address,
        harvest_count,
        total_energy,
        stats.estimated_energy_rate,
    )
    return stats
