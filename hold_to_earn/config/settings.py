#!/usr/bin/env python3
"""
Centralized configuration for the energy analytics engine.

All settings can be overridden via environment variables. A `.env` file at
the repository root is loaded first (override=True), matching the API server.

Usage:
    from hold_to_earn.config import get_settings

    settings = get_settings()
    print(settings.cache_ttl_seconds)
"""

import logging
import os
from dataclasses import dataclass, field
from functools import lru_cache
from pathlib import Path

from dotenv import load_dotenv

logger = logging.getLogger(__name__)

ENV_PATH = Path(__file__).resolve().parent.parent.parent / ".env"

MINUTES_PER_DAY = 24 * 60
BLOCKS_PER_DAY = 144  # ~10 minute blocks


@dataclass(frozen=True)
class RateHistoryWindow:
    """Bucket layout for one rate-history timeframe."""

    bucket_minutes: int
    bucket_count: int

    def __post_init__(self):
        if self.bucket_minutes <= 0:
            raise ValueError(f"bucket_minutes must be > 0: {self.bucket_minutes}")
        if self.bucket_count <= 0:
            raise ValueError(f"bucket_count must be > 0: {self.bucket_count}")


def _window_from_env(prefix: str, minutes: int, count: int) -> RateHistoryWindow:
    return RateHistoryWindow(
        bucket_minutes=int(os.getenv(f"{prefix}_BUCKET_MINUTES", str(minutes))),
        bucket_count=int(os.getenv(f"{prefix}_BUCKET_COUNT", str(count))),
    )


@dataclass
class EnergySettings:
    """
    Engine configuration.

    Rate estimation constants that drifted between copies of the aggregation
    code (fallback span, leaderboard size, bucket widths) live here so there
    is exactly one code path.
    """

    # ==================== Environment ====================
    environment: str = field(
        default_factory=lambda: os.getenv("ENVIRONMENT", "development")
    )
    log_level: str = field(default_factory=lambda: os.getenv("LOG_LEVEL", "INFO"))

    # ==================== Chain Indexer ====================
    hiro_api_url: str = field(
        default_factory=lambda: os.getenv("HIRO_API_URL", "https://api.hiro.so")
    )
    hiro_api_key: str | None = field(
        default_factory=lambda: os.getenv("HIRO_API_KEY") or None
    )
    event_page_limit: int = field(
        default_factory=lambda: int(os.getenv("EVENT_PAGE_LIMIT", "200"))
    )
    event_page_size: int = field(
        default_factory=lambda: int(os.getenv("EVENT_PAGE_SIZE", "50"))
    )
    http_timeout_seconds: float = field(
        default_factory=lambda: float(os.getenv("HTTP_TIMEOUT_SECONDS", "30"))
    )
    http_max_retries: int = field(
        default_factory=lambda: int(os.getenv("HTTP_MAX_RETRIES", "3"))
    )
    tx_detail_concurrency: int = field(
        default_factory=lambda: int(os.getenv("TX_DETAIL_CONCURRENCY", "10"))
    )

    # ==================== Cache ====================
    cache_ttl_seconds: int = field(
        default_factory=lambda: int(os.getenv("CACHE_TTL_SECONDS", "300"))
    )
    redis_url: str | None = field(
        default_factory=lambda: os.getenv("REDIS_URL") or None
    )
    rate_snapshot_limit: int = field(
        default_factory=lambda: int(os.getenv("RATE_SNAPSHOT_LIMIT", "100"))
    )
    rate_snapshot_ttl_seconds: int = field(
        default_factory=lambda: int(os.getenv("RATE_SNAPSHOT_TTL_SECONDS", "604800"))
    )

    # ==================== Aggregation ====================
    fallback_span_minutes: float = field(
        default_factory=lambda: float(
            os.getenv("FALLBACK_SPAN_MINUTES", str(MINUTES_PER_DAY))
        )
    )
    leaderboard_size: int = field(
        default_factory=lambda: int(os.getenv("LEADERBOARD_SIZE", "10"))
    )
    future_tolerance_seconds: int = field(
        default_factory=lambda: int(os.getenv("FUTURE_TOLERANCE_SECONDS", "86400"))
    )
    daily_window: RateHistoryWindow = field(
        default_factory=lambda: _window_from_env("DAILY", 60, 24)
    )
    weekly_window: RateHistoryWindow = field(
        default_factory=lambda: _window_from_env("WEEKLY", MINUTES_PER_DAY, 7)
    )
    monthly_window: RateHistoryWindow = field(
        default_factory=lambda: _window_from_env("MONTHLY", 3 * MINUTES_PER_DAY, 10)
    )

    # ==================== Live Estimation ====================
    poll_interval_seconds: float = field(
        default_factory=lambda: float(os.getenv("POLL_INTERVAL_SECONDS", "5"))
    )
    reconcile_delay_seconds: float = field(
        default_factory=lambda: float(os.getenv("RECONCILE_DELAY_SECONDS", "3"))
    )
    minutes_per_block: float = field(
        default_factory=lambda: float(
            os.getenv("MINUTES_PER_BLOCK", str(MINUTES_PER_DAY / BLOCKS_PER_DAY))
        )
    )

    # ==================== API Server ====================
    api_host: str = field(default_factory=lambda: os.getenv("API_HOST", "0.0.0.0"))
    api_port: int = field(default_factory=lambda: int(os.getenv("API_PORT", "8000")))

    def __post_init__(self):
        """Validate numeric settings."""
        if self.cache_ttl_seconds <= 0:
            raise ValueError(f"cache_ttl_seconds must be > 0: {self.cache_ttl_seconds}")
        if self.fallback_span_minutes <= 0:
            raise ValueError(
                f"fallback_span_minutes must be > 0: {self.fallback_span_minutes}"
            )
        if self.leaderboard_size <= 0:
            raise ValueError(f"leaderboard_size must be > 0: {self.leaderboard_size}")
        if self.event_page_limit <= 0:
            raise ValueError(f"event_page_limit must be > 0: {self.event_page_limit}")

    @property
    def is_production(self) -> bool:
        return self.environment.lower() == "production"

    @property
    def rate_history_windows(self) -> dict[str, RateHistoryWindow]:
        """Timeframe name -> bucket layout, in display order."""
        return {
            "daily": self.daily_window,
            "weekly": self.weekly_window,
            "monthly": self.monthly_window,
        }

    @classmethod
    def from_env(cls) -> "EnergySettings":
        """Load `.env` (if present) and build settings from the environment."""
        if ENV_PATH.exists():
            load_dotenv(ENV_PATH, override=True)
            logger.info("Config loaded from .env file at %s", ENV_PATH)
        return cls()


@lru_cache(maxsize=1)
def get_settings() -> EnergySettings:
    """Process-wide settings, built once on first use."""
    return EnergySettings.from_env()
