"""Client-side live estimation of pending energy."""

from hold_to_earn.live.estimator import (
    EnergyApiStatsSource,
    EstimatorState,
    LiveEnergyEstimator,
    LiveEstimate,
)

__all__ = [
    "EnergyApiStatsSource",
    "EstimatorState",
    "LiveEnergyEstimator",
    "LiveEstimate",
]
