"""
Hold-to-earn centralized configuration package.

Exports:
    EnergySettings: Dataclass of all engine settings
    RateHistoryWindow: Bucket layout for one rate-history timeframe
    get_settings: Cached settings loaded from the environment
"""

from hold_to_earn.config.settings import EnergySettings, RateHistoryWindow, get_settings

__all__ = ["EnergySettings", "RateHistoryWindow", "get_settings"]
