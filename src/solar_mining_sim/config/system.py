"""System configuration — the installed equipment at one location."""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator

from solar_mining_sim.config.equipment import (
    EquipmentEntry,
    GenerationArray,
    MinerFleet,
    StorageBank,
)
from solar_mining_sim.errors import InvalidConfiguration

OperatingMode = Literal["generation-only", "grid-assisted", "hybrid-with-storage"]


class MonthlyClimate(BaseModel):
    """Climate normals for one calendar month."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    ghi_kwh_m2_day: float = Field(ge=0, description="Average daily global horizontal irradiation")
    temperature_c: float = Field(description="Average ambient temperature (°C)")
    cloud_cover_pct: float = Field(default=30.0, ge=0, le=100)
    wind_speed_ms: float = Field(default=3.0, ge=0)
    sun_hours: float = Field(default=12.0, gt=0, le=24, description="Average daylight hours per day")


class Location(BaseModel):
    """Site reference.  ``monthly_climate`` is the fallback environmental data."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    name: str = "Site"
    latitude: float = Field(default=0.0, ge=-90, le=90)
    longitude: float = Field(default=0.0, ge=-180, le=180)
    elevation_m: float = 0.0
    timezone: str = "UTC"
    monthly_climate: list[MonthlyClimate] | None = Field(
        default=None,
        description="Twelve entries, January first.  None = an external resolver must be supplied.",
    )

    @model_validator(mode="after")
    def _twelve_months(self) -> "Location":
        if self.monthly_climate is not None and len(self.monthly_climate) != 12:
            raise ValueError("monthly_climate must have exactly 12 entries")
        return self


class TariffConfig(BaseModel):
    """Electricity pricing for grid import and export."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    rate_usd_per_kwh: float = Field(default=0.10, ge=0, description="Import tariff (USD/kWh)")
    escalation_annual: float = Field(default=0.0, ge=-0.5, le=1.0, description="Annual tariff escalation")
    monthly_multipliers: list[float] | None = Field(
        default=None,
        description="Optional 12 seasonal multipliers on the import rate (January first)",
    )
    net_metering_enabled: bool = False
    net_metering_rate_usd_per_kwh: float = Field(default=0.0, ge=0, description="Export credit (USD/kWh)")
    export_limit_kw: float | None = Field(default=None, ge=0, description="Grid export cap; excess is curtailed")
    max_import_kw: float | None = Field(
        default=None, ge=0,
        description="Grid connection limit on import (kW).  Load beyond it is throttled.",
    )

    @model_validator(mode="after")
    def _twelve_multipliers(self) -> "TariffConfig":
        if self.monthly_multipliers is not None:
            if len(self.monthly_multipliers) != 12:
                raise ValueError("monthly_multipliers must have exactly 12 entries")
            if any(m < 0 for m in self.monthly_multipliers):
                raise ValueError("monthly_multipliers must be non-negative")
        return self


class SystemConfiguration(BaseModel):
    """Immutable description of installed equipment."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    name: str = "System"
    location: Location = Field(default_factory=Location)
    tariff: TariffConfig = Field(default_factory=TariffConfig)
    operating_mode: OperatingMode = "grid-assisted"
    equipment: list[EquipmentEntry] = Field(default_factory=list)

    @model_validator(mode="after")
    def _mode_matches_equipment(self) -> "SystemConfiguration":
        if not self.miners:
            raise ValueError("at least one miner fleet is required")
        if self.operating_mode == "hybrid-with-storage" and not self.storage:
            raise ValueError("hybrid-with-storage requires at least one storage bank")
        if self.operating_mode == "generation-only" and not self.generation:
            raise ValueError("generation-only requires at least one generation array")
        return self

    @property
    def generation(self) -> list[GenerationArray]:
        return [e for e in self.equipment if isinstance(e, GenerationArray)]

    @property
    def storage(self) -> list[StorageBank]:
        return [e for e in self.equipment if isinstance(e, StorageBank)]

    @property
    def miners(self) -> list[MinerFleet]:
        return [e for e in self.equipment if isinstance(e, MinerFleet)]

    @property
    def grid_connected(self) -> bool:
        return self.operating_mode != "generation-only"

    @property
    def equipment_cost_usd(self) -> float:
        """Sum of purchase cost across every entry."""
        return sum(e.spec.unit_cost_usd * e.quantity for e in self.equipment)


def load_system_configuration(data: dict[str, Any]) -> SystemConfiguration:
    """Validate raw configuration data at the collaborator boundary."""
    try:
        return SystemConfiguration.model_validate(data)
    except ValidationError as exc:
        raise InvalidConfiguration(
            "system configuration failed validation",
            {"errors": exc.errors(include_url=False)},
        ) from exc
