"""
Data models for hold-to-earn energy analytics.

These dataclasses are the transfer objects between the log source, the
aggregators, the result cache and the API. `to_dict()` produces the wire
shape (camelCase keys) that dashboard clients consume; `from_dict()` reverses
it for values read back from the cache.
"""

from dataclasses import dataclass, field
from typing import Optional


@dataclass(frozen=True)
class HarvestLogEntry:
    """
    One on-chain harvest event, as returned by the log source.

    Attributes:
        sender: Address that harvested
        energy: Energy harvested, atomic units (None if the log omitted it)
        integral: Balance x blocks-held at harvest time, atomic units
        tx_id: Transaction id
        block_height: Block the harvest was mined in
        block_time: Block time, unix seconds
        block_time_iso: Block time, ISO-8601
        op: Contract log operation name
        message: Contract log message
        tx_status: Transaction status reported by the indexer
    """

    sender: str
    energy: Optional[int]
    integral: int = 0
    tx_id: str = ""
    block_height: Optional[int] = None
    block_time: Optional[int] = None
    block_time_iso: Optional[str] = None
    op: str = ""
    message: str = ""
    tx_status: Optional[str] = None

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            "sender": self.sender,
            "energy": self.energy,
            "integral": self.integral,
            "tx_id": self.tx_id,
            "block_height": self.block_height,
            "block_time": self.block_time,
            "block_time_iso": self.block_time_iso,
            "op": self.op,
            "message": self.message,
            "tx_status": self.tx_status,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "HarvestLogEntry":
        """Build from a dict using either snake_case or camelCase keys."""

        def pick(*keys, default=None):
            for key in keys:
                if data.get(key) is not None:
                    return data[key]
            return default

        energy = pick("energy")
        block_height = pick("block_height", "blockHeight")
        block_time = pick("block_time", "blockTime")
        return cls(
            sender=pick("sender", default=""),
            energy=int(energy) if energy is not None else None,
            integral=int(pick("integral", default=0)),
            tx_id=pick("tx_id", "txId", default=""),
            block_height=int(block_height) if block_height is not None else None,
            block_time=int(block_time) if block_time is not None else None,
            block_time_iso=pick("block_time_iso", "blockTimeIso"),
            op=pick("op", default=""),
            message=pick("message", default=""),
            tx_status=pick("tx_status", "txStatus"),
        )


@dataclass(frozen=True)
class HarvestRecord:
    """One element of a user's harvest history."""

    timestamp: int  # ms epoch, resolved by the timestamp normalizer
    energy: int
    integral: int
    block_height: Optional[int]
    tx_id: str

    def to_dict(self) -> dict:
        return {
            "timestamp": self.timestamp,
            "energy": self.energy,
            "integral": self.integral,
            "blockHeight": self.block_height,
            "txId": self.tx_id,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "HarvestRecord":
        return cls(
            timestamp=int(data["timestamp"]),
            energy=int(data["energy"]),
            integral=int(data["integral"]),
            block_height=data.get("blockHeight"),
            tx_id=data.get("txId", ""),
        )


@dataclass
class UserEnergyStats:
    """
    Energy statistics for one address on one contract.

    `has_data` separates "this address never harvested" (a normal, cacheable
    state with all-zero fields) from "not computed yet".

    Attributes:
        address: Harvester address
        total_energy_harvested: Sum of energy over harvest_history
        total_integral_calculated: Sum of integral over harvest_history
        harvest_count: len(harvest_history)
        average_energy_per_harvest: total / count, 0 when count is 0
        last_harvest_timestamp: Latest resolved harvest time (ms), 0 if none
        estimated_energy_rate: Energy per minute
        estimated_integral_rate: Integral per minute
        harvest_history: Harvests ascending by block height
        has_data: True iff at least one harvest matched
    """

    address: str
    total_energy_harvested: int = 0
    total_integral_calculated: int = 0
    harvest_count: int = 0
    average_energy_per_harvest: float = 0.0
    last_harvest_timestamp: int = 0
    estimated_energy_rate: float = 0.0
    estimated_integral_rate: float = 0.0
    harvest_history: list[HarvestRecord] = field(default_factory=list)
    has_data: bool = False

    def __post_init__(self):
        """Validate non-negative counts."""
        if self.harvest_count < 0:
            raise ValueError(f"harvest_count must be >= 0: {self.harvest_count}")
        if self.total_energy_harvested < 0:
            raise ValueError(
                f"total_energy_harvested must be >= 0: {self.total_energy_harvested}"
            )

    @classmethod
    def empty(cls, address: str) -> "UserEnergyStats":
        """Zero-valued stats for an address with no harvests."""
        return cls(address=address)

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            "address": self.address,
            "totalEnergyHarvested": self.total_energy_harvested,
            "totalIntegralCalculated": self.total_integral_calculated,
            "harvestCount": self.harvest_count,
            "averageEnergyPerHarvest": self.average_energy_per_harvest,
            "lastHarvestTimestamp": self.last_harvest_timestamp,
            "estimatedEnergyRate": self.estimated_energy_rate,
            "estimatedIntegralRate": self.estimated_integral_rate,
            "harvestHistory": [record.to_dict() for record in self.harvest_history],
            "hasData": self.has_data,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "UserEnergyStats":
        return cls(
            address=data["address"],
            total_energy_harvested=data["totalEnergyHarvested"],
            total_integral_calculated=data["totalIntegralCalculated"],
            harvest_count=data["harvestCount"],
            average_energy_per_harvest=data["averageEnergyPerHarvest"],
            last_harvest_timestamp=data["lastHarvestTimestamp"],
            estimated_energy_rate=data["estimatedEnergyRate"],
            estimated_integral_rate=data["estimatedIntegralRate"],
            harvest_history=[
                HarvestRecord.from_dict(item) for item in data["harvestHistory"]
            ],
            has_data=data["hasData"],
        )


@dataclass
class SystemEnergyStats:
    """Contract-wide totals and averages."""

    total_energy_harvested: int
    total_integral_calculated: int
    unique_users: int
    average_energy_per_harvest: float
    average_integral_per_harvest: float
    last_updated: int  # wall-clock ms of computation

    def to_dict(self) -> dict:
        return {
            "totalEnergyHarvested": self.total_energy_harvested,
            "totalIntegralCalculated": self.total_integral_calculated,
            "uniqueUsers": self.unique_users,
            "averageEnergyPerHarvest": self.average_energy_per_harvest,
            "averageIntegralPerHarvest": self.average_integral_per_harvest,
            "lastUpdated": self.last_updated,
        }


@dataclass(frozen=True)
class UserRate:
    """Leaderboard row."""

    address: str
    energy_per_minute: float

    def to_dict(self) -> dict:
        return {"address": self.address, "energyPerMinute": self.energy_per_minute}


@dataclass(frozen=True)
class RatePoint:
    """One rate-history bucket: energy per minute over the bucket ending at timestamp."""

    timestamp: int
    rate: float

    def to_dict(self) -> dict:
        return {"timestamp": self.timestamp, "rate": self.rate}


@dataclass
class EnergyRates:
    """
    Contract-wide accrual rates.

    Attributes:
        overall_energy_per_minute: Energy/minute over the whole log
        overall_integral_per_minute: Integral/minute over the whole log
        top_user_rates: Leaderboard, descending by energy_per_minute
        rate_history: Timeframe name (daily/weekly/monthly) -> bucketed rates
        last_calculated: Wall-clock ms of computation
    """

    overall_energy_per_minute: float
    overall_integral_per_minute: float
    top_user_rates: list[UserRate] = field(default_factory=list)
    rate_history: dict[str, list[RatePoint]] = field(default_factory=dict)
    last_calculated: int = 0

    def to_dict(self) -> dict:
        return {
            "overallEnergyPerMinute": self.overall_energy_per_minute,
            "overallIntegralPerMinute": self.overall_integral_per_minute,
            "topUserRates": [rate.to_dict() for rate in self.top_user_rates],
            "lastCalculated": self.last_calculated,
            "rateHistoryTimeframes": {
                name: [point.to_dict() for point in points]
                for name, points in self.rate_history.items()
            },
        }


@dataclass(frozen=True)
class RateSnapshot:
    """Point-in-time record of the overall rate, appended after each system pass."""

    timestamp: int
    energy_rate: float
    integral_rate: float
    total_energy_harvested: int
    unique_users: int

    def to_dict(self) -> dict:
        return {
            "timestamp": self.timestamp,
            "energyRate": self.energy_rate,
            "integralRate": self.integral_rate,
            "totalEnergyHarvested": self.total_energy_harvested,
            "uniqueUsers": self.unique_users,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "RateSnapshot":
        return cls(
            timestamp=int(data["timestamp"]),
            energy_rate=float(data["energyRate"]),
            integral_rate=float(data["integralRate"]),
            total_energy_harvested=int(data["totalEnergyHarvested"]),
            unique_users=int(data["uniqueUsers"]),
        )
