"""Configuration models — system, scenario, and engine limits."""

from solar_mining_sim.config.units import Hashrate
from solar_mining_sim.config.equipment import (
    GenerationUnitSpec,
    StorageUnitSpec,
    MiningUnitSpec,
    GenerationArray,
    StorageBank,
    MinerFleet,
)
from solar_mining_sim.config.system import (
    Location,
    MonthlyClimate,
    TariffConfig,
    SystemConfiguration,
    load_system_configuration,
)
from solar_mining_sim.config.scenario import (
    MarketSnapshot,
    TrajectoryModel,
    TariffOverrides,
    EnvironmentalOverrides,
    EquipmentOverrides,
    Horizon,
    GenerationParameters,
    DegradationBounds,
    FinanceConfig,
    StochasticVariable,
    StochasticConfig,
    Scenario,
    load_scenario,
)
from solar_mining_sim.config.limits import EngineLimits

__all__ = [
    "Hashrate",
    "GenerationUnitSpec",
    "StorageUnitSpec",
    "MiningUnitSpec",
    "GenerationArray",
    "StorageBank",
    "MinerFleet",
    "Location",
    "MonthlyClimate",
    "TariffConfig",
    "SystemConfiguration",
    "load_system_configuration",
    "MarketSnapshot",
    "TrajectoryModel",
    "TariffOverrides",
    "EnvironmentalOverrides",
    "EquipmentOverrides",
    "Horizon",
    "GenerationParameters",
    "DegradationBounds",
    "FinanceConfig",
    "StochasticVariable",
    "StochasticConfig",
    "Scenario",
    "load_scenario",
    "EngineLimits",
]
