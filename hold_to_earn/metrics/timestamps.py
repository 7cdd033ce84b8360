"""
Timestamp normalizer for harvest events.

Chain indexers report block time as an ISO string, as unix seconds, as both,
or as neither, and occasionally report garbage. Every event still needs one
sortable millisecond timestamp, so resolution is deliberately lossy: anything
missing or outside the validity window is pinned to "now". Those entries sort
last and can be spotted by comparing block height against timestamp.

Validity window: [2020-01-01T00:00:00Z, now + 24h)
"""

import logging
import time
from datetime import datetime, timezone
from typing import Optional, Union

logger = logging.getLogger(__name__)

# 2020-01-01T00:00:00Z
MIN_VALID_TIMESTAMP_MS = 1_577_836_800_000
FUTURE_TOLERANCE_MS = 24 * 60 * 60 * 1000


def now_ms() -> int:
    """Current wall-clock time in epoch milliseconds."""
    return int(time.time() * 1000)


def is_within_validity_window(timestamp_ms: float, current_ms: int) -> bool:
    """True if timestamp_ms lies in [2020-01-01, current_ms + 24h)."""
    return MIN_VALID_TIMESTAMP_MS <= timestamp_ms < current_ms + FUTURE_TOLERANCE_MS


def parse_iso_timestamp_ms(value: str) -> Optional[int]:
    """
    Parse an ISO-8601 string to epoch milliseconds.

    Naive values are taken as UTC. Returns None for anything unparseable.
    """
    if not isinstance(value, str) or not value.strip():
        return None

    text = value.strip()
    if text.endswith("Z") or text.endswith("z"):
        text = text[:-1] + "+00:00"

    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        return None

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return int(parsed.timestamp() * 1000)


def resolve_timestamp_ms(
    block_time_iso: Optional[str],
    block_time: Optional[Union[int, float]],
    current_ms: Optional[int] = None,
) -> int:
    """Resolve one event's display timestamp in epoch milliseconds.

    Preference order, first success wins:
    1. ISO string that parses and falls inside the validity window
    2. Unix seconds, converted to ms, inside the validity window
    3. current_ms (defaults to now)

    Args:
        block_time_iso: ISO-8601 block time, optional
        block_time: Unix-seconds block time, optional
        current_ms: "Now" in epoch ms; injected for deterministic tests

    Returns:
        Epoch milliseconds. Never raises.
    """
    if current_ms is None:
        current_ms = now_ms()

    if block_time_iso:
        iso_ms = parse_iso_timestamp_ms(block_time_iso)
        if iso_ms is not None and is_within_validity_window(iso_ms, current_ms):
            return iso_ms
        logger.debug("Rejected ISO block time %r", block_time_iso)

    if block_time is not None and not isinstance(block_time, bool):
        try:
            seconds_ms = float(block_time) * 1000
        except (TypeError, ValueError):
            seconds_ms = None
        if seconds_ms is not None and is_within_validity_window(
            seconds_ms, current_ms
        ):
            return int(seconds_ms)
        logger.debug("Rejected unix block time %r", block_time)

    return current_ms
