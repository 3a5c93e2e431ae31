"""Equipment specifications — generation, storage, and mining units.

A ``SystemConfiguration`` holds a list of ``EquipmentEntry`` values, a tagged
union discriminated on ``kind``.  Unknown kinds or unknown keys are rejected
when the configuration is loaded, never during a projection.
"""

from typing import Annotated, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, model_validator

from solar_mining_sim.config.units import Hashrate

DegradationCurve = Literal["linear", "compound"]


class GenerationUnitSpec(BaseModel):
    """One solar module model (nameplate values at STC)."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    name: str = Field(default="400W Mono PERC", description="Human label")
    rated_power_w: float = Field(default=400.0, gt=0, description="Nameplate DC power at STC (W)")
    efficiency: float = Field(default=0.22, gt=0, le=1.0, description="Module conversion efficiency at STC")
    area_m2: float | None = Field(
        default=None, gt=0,
        description="Optional module area.  When given, rated_power_w must match area × 1000 W/m² × efficiency.",
    )
    temp_coefficient_per_c: float = Field(
        default=-0.003,
        le=0,
        description="Power temperature coefficient per °C (e.g. -0.003 = -0.3 %/°C)",
    )
    annual_degradation_rate: float = Field(
        default=0.005, ge=0, lt=1.0,
        description="Capacity loss per year (0.005 = 0.5 %/yr)",
    )
    degradation_curve: DegradationCurve = Field(default="linear", description="Retention curve shape")
    unit_cost_usd: float = Field(default=0.0, ge=0, description="Purchase price per module (USD)")
    maintenance_usd_per_year: float = Field(default=0.0, ge=0, description="Upkeep per module per year (USD)")
    resale_value_fraction: float = Field(
        default=0.0, ge=0, le=1.0,
        description="Resale value of a new unit as a fraction of unit cost; scaled by retention at horizon end",
    )

    @property
    def implied_area_m2(self) -> float:
        """Module area implied by rated power and efficiency at 1000 W/m²."""
        return self.rated_power_w / (1000.0 * self.efficiency)

    @model_validator(mode="after")
    def _area_consistent(self) -> "GenerationUnitSpec":
        if self.area_m2 is None:
            return self
        implied = self.implied_area_m2
        if abs(implied - self.area_m2) > 0.05 * self.area_m2:
            raise ValueError(
                f"area_m2={self.area_m2} disagrees with rated_power_w / (1000 × efficiency) = {implied:.3f} m²"
            )
        return self


class StorageUnitSpec(BaseModel):
    """One battery storage model."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    name: str = Field(default="13.5 kWh LFP", description="Human label")
    capacity_kwh: float = Field(default=13.5, gt=0, description="Nameplate energy (kWh)")
    usable_capacity_kwh: float = Field(default=13.0, gt=0, description="Usable window (kWh)")
    max_charge_kw: float = Field(default=5.0, gt=0, description="Maximum charge power (kW)")
    max_discharge_kw: float = Field(default=5.0, gt=0, description="Maximum discharge power (kW)")
    round_trip_efficiency: float = Field(default=0.90, gt=0, le=1.0, description="AC-AC round-trip efficiency")
    cycle_life: int = Field(default=6_000, gt=0, description="Equivalent full cycles to end-of-life")
    end_of_life_retention: float = Field(
        default=0.80, gt=0, le=1.0,
        description="Capacity retention at cycle_life equivalent full cycles",
    )
    calendar_degradation_annual: float = Field(default=0.02, ge=0, lt=1.0, description="Calendar fade per year")
    degradation_curve: DegradationCurve = Field(default="compound", description="Calendar retention curve shape")
    unit_cost_usd: float = Field(default=0.0, ge=0, description="Purchase price per unit (USD)")
    maintenance_usd_per_year: float = Field(default=0.0, ge=0, description="Upkeep per unit per year (USD)")
    resale_value_fraction: float = Field(
        default=0.0, ge=0, le=1.0,
        description="Resale value of a new unit as a fraction of unit cost; scaled by retention at horizon end",
    )

    @model_validator(mode="after")
    def _usable_within_capacity(self) -> "StorageUnitSpec":
        if self.usable_capacity_kwh > self.capacity_kwh:
            raise ValueError("usable_capacity_kwh cannot exceed capacity_kwh")
        return self


class MiningUnitSpec(BaseModel):
    """One ASIC miner model."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    name: str = Field(default="Generic 100T", description="Human label")
    hashrate: Hashrate = Field(default_factory=lambda: Hashrate(value=100.0, unit="TH/s"))
    power_w: float = Field(default=3_000.0, gt=0, description="Wall power at nameplate hashrate (W)")
    efficiency_j_per_th: float | None = Field(
        default=None, gt=0,
        description="Optional J/TH.  When given it must agree with power_w / hashrate.",
    )
    hashrate_degradation_annual: float = Field(default=0.05, ge=0, lt=1.0, description="Hashrate loss per year")
    efficiency_degradation_annual: float = Field(
        default=0.03, ge=0, lt=1.0,
        description="Efficiency loss per year, turned into extra power draw",
    )
    failure_rate_annual: float = Field(default=0.10, ge=0, le=1.0, description="Probability a unit fails within a year")
    degradation_curve: DegradationCurve = Field(default="compound", description="Retention curve shape")
    unit_cost_usd: float = Field(default=0.0, ge=0, description="Purchase price per unit (USD)")
    maintenance_usd_per_year: float = Field(default=0.0, ge=0, description="Upkeep per unit per year (USD)")
    resale_value_fraction: float = Field(
        default=0.0, ge=0, le=1.0,
        description="Resale value of a new unit as a fraction of unit cost; scaled by retention at horizon end",
    )

    @model_validator(mode="after")
    def _efficiency_consistent(self) -> "MiningUnitSpec":
        if self.efficiency_j_per_th is None:
            return self
        th = self.hashrate.th_s
        if th <= 0:
            raise ValueError("hashrate must be positive when efficiency_j_per_th is given")
        implied = self.power_w / th
        if abs(implied - self.efficiency_j_per_th) > 0.02 * self.efficiency_j_per_th:
            raise ValueError(
                f"efficiency_j_per_th={self.efficiency_j_per_th} disagrees with "
                f"power_w / hashrate = {implied:.3f} J/TH"
            )
        return self


# ═══════════════════════════════════════════════════════════════════════════
# Installed entries (tagged union)
# ═══════════════════════════════════════════════════════════════════════════

class GenerationArray(BaseModel):
    """A group of identical modules sharing one mounting."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    kind: Literal["generation"] = "generation"
    spec: GenerationUnitSpec = Field(default_factory=GenerationUnitSpec)
    quantity: int = Field(default=1, ge=1)
    tilt_deg: float = Field(default=30.0, ge=0, le=90)
    azimuth_deg: float = Field(default=180.0, ge=0, lt=360)
    transposition_factor: float = Field(
        default=1.0, gt=0,
        description="Horizontal → plane-of-array irradiance scale for this mounting",
    )


class StorageBank(BaseModel):
    """A group of identical storage units dispatched together."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    kind: Literal["storage"] = "storage"
    spec: StorageUnitSpec = Field(default_factory=StorageUnitSpec)
    quantity: int = Field(default=1, ge=1)
    initial_soc: float = Field(default=0.5, ge=0, le=1.0, description="Initial state of charge (fraction of usable)")


class MinerFleet(BaseModel):
    """A group of identical miners."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    kind: Literal["miner"] = "miner"
    spec: MiningUnitSpec = Field(default_factory=MiningUnitSpec)
    quantity: int = Field(default=1, ge=1)
    power_cap_w: float | None = Field(
        default=None, gt=0,
        description="Per-unit power limit (W).  Hashrate scales down proportionally when binding.",
    )


EquipmentEntry = Annotated[
    Union[GenerationArray, StorageBank, MinerFleet],
    Field(discriminator="kind"),
]
