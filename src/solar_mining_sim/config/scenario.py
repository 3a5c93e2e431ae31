"""Scenario — market / environmental assumptions layered over base data."""

from __future__ import annotations

from datetime import date, datetime, time
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator

from solar_mining_sim.config.units import Hashrate
from solar_mining_sim.errors import InvalidConfiguration

Granularity = Literal["hourly", "daily", "weekly", "monthly"]
TrajectoryKind = Literal["flat", "linear", "compound", "step", "custom"]


class MarketSnapshot(BaseModel):
    """Resolved market and network values at scenario-creation time.

    Range checks that indicate corrupted upstream data (zero network
    hashrate, non-positive block time) are enforced by the engine at run
    time, so they surface as ``InvalidConfiguration``.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    coin_price_usd: float = Field(default=50_000.0, ge=0)
    network_difficulty: float = Field(default=8.0e13, ge=0)
    network_hashrate: Hashrate | None = Field(
        default=None,
        description="None = derive from difficulty × 2³² / avg_block_time_seconds",
    )
    block_reward: float = Field(default=3.125, ge=0, description="Subsidy per block (coins)")
    fees_per_block: float = Field(default=0.0, ge=0, description="Average fees per block (coins)")
    avg_block_time_seconds: float = Field(default=600.0)
    halving_dates: list[date] = Field(default_factory=list, description="Future subsidy halvings")
    as_of: datetime | None = None


class TrajectoryModel(BaseModel):
    """How a market quantity evolves from its base value over the horizon.

    - ``flat``      — constant
    - ``linear``    — base × (1 + growth × years)
    - ``compound``  — base × (1 + growth) ^ years
    - ``step``      — hold the latest anchor (year index → value)
    - ``custom``    — explicit per-period series, padded with its last value
    Linear and compound never go below zero.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    kind: TrajectoryKind = "flat"
    annual_growth: float = Field(default=0.0, ge=-1.0)
    anchors: dict[int, float] = Field(default_factory=dict, description="Year index → absolute value")
    series: list[float] | None = None

    @model_validator(mode="after")
    def _kind_inputs(self) -> "TrajectoryModel":
        if self.kind == "custom" and not self.series:
            raise ValueError("custom trajectory requires a non-empty series")
        if self.kind == "step" and not self.anchors:
            raise ValueError("step trajectory requires anchors")
        if any(v < 0 for v in self.anchors.values()):
            raise ValueError("anchor values must be non-negative")
        if self.series and any(v < 0 for v in self.series):
            raise ValueError("series values must be non-negative")
        return self


class TariffOverrides(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    rate_usd_per_kwh: float | None = Field(default=None, ge=0)
    net_metering_rate_usd_per_kwh: float | None = Field(default=None, ge=0)
    escalation_annual: float | None = Field(default=None, ge=-0.5, le=1.0)
    rate_multiplier: float = Field(default=1.0, ge=0)


class EnvironmentalOverrides(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    irradiance_multiplier: float = Field(default=1.0, ge=0, description="Weather impact on irradiance")
    temperature_offset_c: float = 0.0
    cloud_cover_adjustment_pct: float = Field(
        default=0.0, ge=-100, le=100,
        description="Added to cloud cover; irradiance rescaled by the Kasten–Czeplak ratio",
    )


class EquipmentOverrides(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    degradation_multiplier: float = Field(default=1.0, ge=0)
    failure_rate_multiplier: float = Field(default=1.0, ge=0)
    hashrate_multiplier: float = Field(default=1.0, gt=0)
    efficiency_multiplier: float = Field(default=1.0, gt=0, description="Scales generation output and miner J/TH")
    maintenance_cost_multiplier: float = Field(default=1.0, ge=0)


class Horizon(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    start: datetime = Field(default_factory=lambda: datetime(2025, 1, 1))
    end: datetime = Field(default_factory=lambda: datetime(2026, 1, 1))
    granularity: Granularity = "monthly"

    @field_validator("start", "end", mode="before")
    @classmethod
    def _date_to_midnight(cls, value: Any) -> Any:
        if isinstance(value, date) and not isinstance(value, datetime):
            return datetime.combine(value, time())
        return value


class GenerationParameters(BaseModel):
    """Coefficients of the generation model."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    heating_coefficient_c_per_w_m2: float = Field(default=0.025, ge=0)
    system_loss_factor: float = Field(default=0.85, gt=0, le=1.0, description="Wiring, soiling, mismatch")
    conversion_efficiency: float = Field(default=0.95, gt=0, le=1.0, description="Inverter / DC-DC stage")
    derating_ceiling: float = Field(default=1.05, ge=1.0, description="Upper bound on temperature derating")


class DegradationBounds(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    floor: float = Field(default=0.10, gt=0, le=1.0)
    ceiling: float = Field(default=1.0, gt=0, le=1.0)

    @model_validator(mode="after")
    def _ordered(self) -> "DegradationBounds":
        if self.floor > self.ceiling:
            raise ValueError("floor must not exceed ceiling")
        return self


class FinanceConfig(BaseModel):
    """Discounting and solver settings."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    discount_rate_annual: float = Field(default=0.08, gt=-1.0, description="Annual discount rate")
    installation_cost_multiplier: float = Field(
        default=1.15, ge=1.0,
        description="Initial investment = equipment cost × multiplier",
    )
    insurance_rate_annual: float = Field(
        default=0.0, ge=0,
        description="Insurance per year as a fraction of initial investment",
    )
    property_tax_rate_annual: float = Field(
        default=0.0, ge=0,
        description="Property tax per year as a fraction of initial investment",
    )
    irr_initial_guess: float = 0.10
    irr_max_iterations: int = Field(default=100, ge=1)
    irr_tolerance: float = Field(default=1e-4, gt=0, description="Convergence bound on |NPV|")
    derivative_epsilon: float = Field(default=1e-10, gt=0)


class StochasticVariable(BaseModel):
    """A per-trial multiplier drawn from a distribution."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    target: Literal["coin_price", "network_difficulty", "tariff", "irradiance"]
    distribution: Literal["normal", "lognormal", "uniform", "triangular"]
    parameters: dict[str, float]

    @model_validator(mode="after")
    def _parameters_present(self) -> "StochasticVariable":
        required = {
            "normal": {"mean", "std"},
            "lognormal": {"mean", "sigma"},
            "uniform": {"low", "high"},
            "triangular": {"low", "mode", "high"},
        }[self.distribution]
        missing = required - set(self.parameters)
        if missing:
            raise ValueError(f"{self.distribution} requires parameters {sorted(missing)}")
        return self


class StochasticConfig(BaseModel):
    """Monte-Carlo perturbations.  Ignored by deterministic runs."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    price_volatility_annual: float = Field(
        default=0.60, ge=0,
        description="σ of the geometric Brownian motion shock on the coin-price path",
    )
    variables: list[StochasticVariable] = Field(default_factory=list)
    sample_failures: bool = Field(default=True, description="Bernoulli per-unit miner failures")


class Scenario(BaseModel):
    """Named, immutable bundle of assumptions for one projection."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    name: str = "baseline"
    is_baseline: bool = False
    market: MarketSnapshot = Field(default_factory=MarketSnapshot)
    price_model: TrajectoryModel = Field(default_factory=TrajectoryModel)
    difficulty_model: TrajectoryModel = Field(default_factory=TrajectoryModel)
    tariff: TariffOverrides = Field(default_factory=TariffOverrides)
    environment: EnvironmentalOverrides = Field(default_factory=EnvironmentalOverrides)
    equipment: EquipmentOverrides = Field(default_factory=EquipmentOverrides)
    horizon: Horizon = Field(default_factory=Horizon)
    generation: GenerationParameters = Field(default_factory=GenerationParameters)
    degradation: DegradationBounds = Field(default_factory=DegradationBounds)
    finance: FinanceConfig = Field(default_factory=FinanceConfig)
    stochastic: StochasticConfig = Field(default_factory=StochasticConfig)

    @classmethod
    def baseline(cls, snapshot: MarketSnapshot, horizon: Horizon, name: str = "baseline") -> "Scenario":
        """Synthesize a no-override scenario from a live snapshot."""
        return cls(name=name, is_baseline=True, market=snapshot, horizon=horizon)


def load_scenario(data: dict[str, Any]) -> Scenario:
    """Validate raw scenario data at the collaborator boundary."""
    try:
        return Scenario.model_validate(data)
    except ValidationError as exc:
        raise InvalidConfiguration(
            "scenario failed validation",
            {"errors": exc.errors(include_url=False)},
        ) from exc
