"""
Pydantic models for the Energy Analytics API.

Field names are snake_case in Python and camelCase on the wire
(alias_generator=to_camel); FastAPI serializes response models by alias.
"""

from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class HarvestRecordAPI(CamelModel):
    """One harvest in a user's history."""

    timestamp: int = Field(..., description="Resolved harvest time, epoch ms")
    energy: int = Field(..., ge=0, description="Energy harvested, atomic units")
    integral: int = Field(..., ge=0, description="Balance x blocks held")
    block_height: Optional[int] = Field(None, description="Block height")
    tx_id: str = Field("", description="Transaction id")


class UserEnergyStatsAPI(CamelModel):
    """Per-address energy statistics."""

    address: str
    total_energy_harvested: int = Field(..., ge=0)
    total_integral_calculated: int = Field(..., ge=0)
    harvest_count: int = Field(..., ge=0)
    average_energy_per_harvest: float = Field(..., ge=0)
    last_harvest_timestamp: int = Field(
        ..., description="Latest resolved harvest time, epoch ms (0 if none)"
    )
    estimated_energy_rate: float = Field(..., description="Energy per minute")
    estimated_integral_rate: float = Field(..., description="Integral per minute")
    harvest_history: list[HarvestRecordAPI] = Field(
        default_factory=list, description="Harvests ascending by block height"
    )
    has_data: bool = Field(
        ..., description="False when the address has never harvested"
    )


class SystemEnergyStatsAPI(CamelModel):
    """Contract-wide totals."""

    total_energy_harvested: int = Field(..., ge=0)
    total_integral_calculated: int = Field(..., ge=0)
    unique_users: int = Field(..., ge=0)
    average_energy_per_harvest: float = Field(..., ge=0)
    average_integral_per_harvest: float = Field(..., ge=0)
    last_updated: int = Field(..., description="Computation time, epoch ms")


class UserRateAPI(CamelModel):
    address: str
    energy_per_minute: float


class RatePointAPI(CamelModel):
    timestamp: int = Field(..., description="Bucket end, epoch ms")
    rate: float = Field(..., description="Energy per minute within the bucket")


class RateHistoryTimeframesAPI(CamelModel):
    daily: list[RatePointAPI] = Field(default_factory=list)
    weekly: list[RatePointAPI] = Field(default_factory=list)
    monthly: list[RatePointAPI] = Field(default_factory=list)


class EnergyRatesAPI(CamelModel):
    overall_energy_per_minute: float
    overall_integral_per_minute: float
    top_user_rates: list[UserRateAPI] = Field(default_factory=list)
    last_calculated: int = 0
    rate_history_timeframes: RateHistoryTimeframesAPI


class SystemEnergyAPI(CamelModel):
    stats: SystemEnergyStatsAPI
    rates: EnergyRatesAPI


class RateSnapshotAPI(CamelModel):
    timestamp: int
    energy_rate: float
    integral_rate: float
    total_energy_harvested: int
    unique_users: int


class SystemEnergyResponse(CamelModel):
    """GET /api/v1/energy/{contract_id}"""

    status: Literal["success"] = "success"
    data: SystemEnergyAPI
    from_cache: bool = False


class UserEnergyResponse(CamelModel):
    """GET /api/v1/energy/{contract_id}/user"""

    status: Literal["success"] = "success"
    data: Optional[UserEnergyStatsAPI] = None
    from_cache: bool = False


class RateHistoryResponse(CamelModel):
    """GET /api/v1/energy/{contract_id}/history"""

    status: Literal["success"] = "success"
    data: list[RateSnapshotAPI] = Field(default_factory=list)


class ErrorResponse(BaseModel):
    """Generic error payload; message is only populated outside production."""

    status: Literal["error"] = "error"
    error: str
    message: Optional[str] = None
