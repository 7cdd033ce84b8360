"""
Bucketed rate history for the daily / weekly / monthly charts.

Each timeframe partitions the recent past into `bucket_count` fixed-width
windows ending at "now". A bucket's rate is the energy harvested inside it
divided by its width in minutes. Empty buckets are omitted rather than
emitted as zero, so charts reflect genuine data density.

Bucket bounds are half-open: [end - width, end). Entries whose timestamp
could not be resolved are pinned to "now" by the normalizer and therefore
fall outside every bucket.

Default widths (configurable, see EnergySettings):
- daily:   1 hour  x 24
- weekly:  1 day   x 7
- monthly: 3 days  x 10
"""

import logging
from typing import Iterable, Mapping, Optional

from hold_to_earn.config.settings import RateHistoryWindow
from hold_to_earn.metrics.timestamps import now_ms, resolve_timestamp_ms
from hold_to_earn.models.energy_models import HarvestLogEntry, RatePoint

logger = logging.getLogger(__name__)

DEFAULT_WINDOWS: dict[str, RateHistoryWindow] = {
    "daily": RateHistoryWindow(bucket_minutes=60, bucket_count=24),
    "weekly": RateHistoryWindow(bucket_minutes=1440, bucket_count=7),
    "monthly": RateHistoryWindow(bucket_minutes=3 * 1440, bucket_count=10),
}

MS_PER_MINUTE = 60_000


def bucket_rate_history(
    logs: Iterable[HarvestLogEntry],
    window: RateHistoryWindow,
    current_ms: Optional[int] = None,
) -> list[RatePoint]:
    """Bucket energy into fixed windows ending at current_ms.

    Args:
        logs: Valid harvest entries
        window: Bucket width and count
        current_ms: "Now" in epoch ms

    Returns:
        RatePoints for non-empty buckets, ascending by bucket end timestamp.
    """
    if current_ms is None:
        current_ms = now_ms()

    width_ms = window.bucket_minutes * MS_PER_MINUTE
    range_start = current_ms - window.bucket_count * width_ms
    energy_by_bucket: dict[int, int] = {}

    for entry in logs:
        if entry.energy is None:
            continue
        ts = resolve_timestamp_ms(entry.block_time_iso, entry.block_time, current_ms)
        if ts < range_start or ts >= current_ms:
            continue
        index = (ts - range_start) // width_ms
        energy_by_bucket[index] = energy_by_bucket.get(index, 0) + entry.energy

    return [
        RatePoint(
            timestamp=range_start + (index + 1) * width_ms,
            rate=energy / window.bucket_minutes,
        )
        for index, energy in sorted(energy_by_bucket.items())
    ]


def calculate_rate_history_timeframes(
    logs: Iterable[HarvestLogEntry],
    windows: Optional[Mapping[str, RateHistoryWindow]] = None,
    current_ms: Optional[int] = None,
) -> dict[str, list[RatePoint]]:
    """Rate history for every configured timeframe, computed independently."""
    if windows is None:
        windows = DEFAULT_WINDOWS
    if current_ms is None:
        current_ms = now_ms()

    entries = list(logs)
    history = {
        name: bucket_rate_history(entries, window, current_ms)
        for name, window in windows.items()
    }
    logger.debug(
        "Rate history buckets: %s",
        {name: len(points) for name, points in history.items()},
    )
    return history
