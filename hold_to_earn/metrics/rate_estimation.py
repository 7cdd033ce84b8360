"""
Accrual-rate estimation shared by the user and system aggregators.

rate = total / span_minutes, where

    span_minutes = max(1, (last_block_time - first_block_time) / 60)

when there are at least two harvests and both endpoints carry a block time.
Otherwise the holding period is assumed to be exactly the fallback span
(one day by default). The max(1, ...) floor and the fallback both keep
near-zero spans from producing absurd rates.
"""

from typing import Optional, Sequence

from hold_to_earn.models.energy_models import HarvestLogEntry

DEFAULT_FALLBACK_SPAN_MINUTES = 1440.0
MIN_SPAN_MINUTES = 1.0


def span_minutes(
    ordered: Sequence[HarvestLogEntry],
    fallback_span_minutes: float = DEFAULT_FALLBACK_SPAN_MINUTES,
) -> float:
    """Holding period covered by an ordered run of harvests, in minutes."""
    if len(ordered) > 1:
        first_time: Optional[int] = ordered[0].block_time
        last_time: Optional[int] = ordered[-1].block_time
        if first_time is not None and last_time is not None:
            return max(MIN_SPAN_MINUTES, (last_time - first_time) / 60)
    return fallback_span_minutes


def estimate_rate(
    total: float,
    ordered: Sequence[HarvestLogEntry],
    fallback_span_minutes: float = DEFAULT_FALLBACK_SPAN_MINUTES,
) -> float:
    """Units per minute for `total` accrued over `ordered` harvests."""
    if total == 0:
        return 0.0
    return total / span_minutes(ordered, fallback_span_minutes)


def sort_by_block_height(logs: Sequence[HarvestLogEntry]) -> list[HarvestLogEntry]:
    """Ascending by block height; a missing height sorts as 0."""
    return sorted(logs, key=lambda entry: entry.block_height or 0)
