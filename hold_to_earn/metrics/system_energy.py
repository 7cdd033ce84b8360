"""
System Energy Aggregator.

Contract-wide statistics over the full harvest log:
- SystemEnergyStats: totals, averages and distinct harvesters
- EnergyRates: overall accrual rate, per-user leaderboard and bucketed
  rate history

Per-user leaderboard rates use exactly the same estimation as
UserEnergyStats.estimated_energy_rate.

Usage:
    from hold_to_earn.metrics.system_energy import (
        calculate_system_energy_stats,
        calculate_energy_rates,
    )

    stats = calculate_system_energy_stats(logs)
    rates = calculate_energy_rates(logs, leaderboard_size=10)
"""

import logging
from typing import Mapping, Optional, Sequence

from hold_to_earn.config.settings import RateHistoryWindow
from hold_to_earn.metrics.rate_estimation import (
    DEFAULT_FALLBACK_SPAN_MINUTES,
    estimate_rate,
    sort_by_block_height,
)
from hold_to_earn.metrics.rate_history import calculate_rate_history_timeframes
from hold_to_earn.metrics.timestamps import now_ms
from hold_to_earn.models.energy_models import (
    EnergyRates,
    HarvestLogEntry,
    SystemEnergyStats,
    UserRate,
)

logger = logging.getLogger(__name__)

DEFAULT_LEADERBOARD_SIZE = 10


def group_by_sender(
    logs: Sequence[HarvestLogEntry],
) -> dict[str, list[HarvestLogEntry]]:
    """Sender -> entries, in first-seen order."""
    grouped: dict[str, list[HarvestLogEntry]] = {}
    for entry in logs:
        grouped.setdefault(entry.sender, []).append(entry)
    return grouped


def calculate_system_energy_stats(
    logs: Sequence[HarvestLogEntry],
    current_ms: Optional[int] = None,
) -> SystemEnergyStats:
    """Totals and averages over the whole log.

    Args:
        logs: Valid harvest entries (energy defined)
        current_ms: Computation time recorded as last_updated

    Returns:
        SystemEnergyStats; all zeros for an empty log.
    """
    if current_ms is None:
        current_ms = now_ms()

    count = len(logs)
    total_energy = sum(entry.energy or 0 for entry in logs)
    total_integral = sum(entry.integral or 0 for entry in logs)

    return SystemEnergyStats(
        total_energy_harvested=total_energy,
        total_integral_calculated=total_integral,
        unique_users=len({entry.sender for entry in logs}),
        average_energy_per_harvest=total_energy / count if count else 0.0,
        average_integral_per_harvest=total_integral / count if count else 0.0,
        last_updated=current_ms,
    )


def calculate_top_user_rates(
    logs: Sequence[HarvestLogEntry],
    leaderboard_size: int = DEFAULT_LEADERBOARD_SIZE,
    fallback_span_minutes: float = DEFAULT_FALLBACK_SPAN_MINUTES,
) -> list[UserRate]:
    """Highest per-user energy rates, descending, at most leaderboard_size rows."""
    user_rates = []
    for address, entries in group_by_sender(logs).items():
        total = sum(entry.energy or 0 for entry in entries)
        rate = estimate_rate(total, sort_by_block_height(entries), fallback_span_minutes)
        user_rates.append(UserRate(address=address, energy_per_minute=rate))

    user_rates.sort(key=lambda row: (-row.energy_per_minute, row.address))
    return user_rates[:leaderboard_size]


def calculate_energy_rates(
    logs: Sequence[HarvestLogEntry],
    leaderboard_size: int = DEFAULT_LEADERBOARD_SIZE,
    fallback_span_minutes: float = DEFAULT_FALLBACK_SPAN_MINUTES,
    windows: Optional[Mapping[str, RateHistoryWindow]] = None,
    current_ms: Optional[int] = None,
) -> EnergyRates:
    """Overall rate, leaderboard and rate history for a contract.

    The overall span runs from the earliest to the latest block time; an
    entry without block time sorts first and forces the fallback span.

    Args:
        logs: Valid harvest entries
        leaderboard_size: Rows kept in top_user_rates
        fallback_span_minutes: Assumed holding period when unmeasurable
        windows: Rate-history layouts by timeframe name
        current_ms: "Now" in epoch ms

    Returns:
        EnergyRates
    """
    if current_ms is None:
        current_ms = now_ms()

    if not logs:
        return EnergyRates(
            overall_energy_per_minute=0.0,
            overall_integral_per_minute=0.0,
            top_user_rates=[],
            rate_history=calculate_rate_history_timeframes([], windows, current_ms),
            last_calculated=current_ms,
        )

    by_time = sorted(logs, key=lambda entry: entry.block_time or 0)
    total_energy = sum(entry.energy or 0 for entry in logs)
    total_integral = sum(entry.integral or 0 for entry in logs)

    rates = EnergyRates(
        overall_energy_per_minute=estimate_rate(
            total_energy, by_time, fallback_span_minutes
        ),
        overall_integral_per_minute=estimate_rate(
            total_integral, by_time, fallback_span_minutes
        ),
        top_user_rates=calculate_top_user_rates(
            logs, leaderboard_size, fallback_span_minutes
        ),
        rate_history=calculate_rate_history_timeframes(logs, windows, current_ms),
        last_calculated=current_ms,
    )

    logger.debug(
        "System rates: %.4f energy/min over %d harvests, %d leaderboard rows",
        rates.overall_energy_per_minute,
        len(logs),
        len(rates.top_user_rates),
    )
    return rates
