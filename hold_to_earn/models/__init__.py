"""Result dataclasses for the energy analytics engine."""

from hold_to_earn.models.energy_models import (
    EnergyRates,
    HarvestLogEntry,
    HarvestRecord,
    RatePoint,
    RateSnapshot,
    SystemEnergyStats,
    UserEnergyStats,
    UserRate,
)

__all__ = [
    "EnergyRates",
    "HarvestLogEntry",
    "HarvestRecord",
    "RatePoint",
    "RateSnapshot",
    "SystemEnergyStats",
    "UserEnergyStats",
    "UserRate",
]
