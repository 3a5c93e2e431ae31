"""Generation model — irradiance + temperature → AC energy for one period.

Per generation array:
  poa_wh_m2        = irradiance_wh_m2 × transposition_factor
  mean_irradiance  = poa_wh_m2 / period_hours                     (W/m²)
  sun_irradiance   = poa_wh_m2 / daylight_hours                   (W/m², for heating)
  module_temp      = ambient + heating_coefficient × sun_irradiance
  derating         = clamp(1 + temp_coefficient × (module_temp − 25), 0, ceiling)
  dc_power         = rated_power × (mean_irradiance / 1000) × derating × quantity × retention
  ac_power         = dc_power × system_loss_factor × conversion_efficiency
  ac_energy_kwh    = ac_power × period_hours / 1000

Irradiance ≤ 0 yields zero output, never negative.
"""

from __future__ import annotations

from dataclasses import dataclass

from solar_mining_sim.config.equipment import GenerationArray
from solar_mining_sim.config.scenario import GenerationParameters
from solar_mining_sim.engine.environment import EnvironmentalConditions

STC_IRRADIANCE_W_M2 = 1000.0
STC_CELL_TEMP_C = 25.0


@dataclass(frozen=True)
class GenerationResult:
    module_temp_c: float
    derating: float
    dc_energy_kwh: float
    ac_energy_kwh: float


def temperature_derating(
    module_temp_c: float,
    temp_coefficient_per_c: float,
    ceiling: float,
) -> float:
    """Derating factor relative to 25 °C, floored at 0 and capped at ``ceiling``."""
    factor = 1.0 + temp_coefficient_per_c * (module_temp_c - STC_CELL_TEMP_C)
    return min(max(factor, 0.0), ceiling)


def compute_generation(
    conditions: EnvironmentalConditions,
    array: GenerationArray,
    period_hours: float,
    params: GenerationParameters,
    capacity_retention: float = 1.0,
    efficiency_multiplier: float = 1.0,
) -> GenerationResult:
    """AC energy produced by one generation array over one period."""
    if conditions.irradiance_wh_m2 <= 0 or period_hours <= 0:
        return GenerationResult(
            module_temp_c=conditions.ambient_temp_c,
            derating=0.0,
            dc_energy_kwh=0.0,
            ac_energy_kwh=0.0,
        )

    poa_wh_m2 = conditions.irradiance_wh_m2 * array.transposition_factor
    mean_irradiance = poa_wh_m2 / period_hours

    daylight_fraction = min(max(conditions.sun_hours_per_day / 24.0, 0.0), 1.0)
    daylight_hours = period_hours * daylight_fraction
    sun_irradiance = poa_wh_m2 / daylight_hours if daylight_hours > 0 else mean_irradiance

    module_temp = conditions.ambient_temp_c + params.heating_coefficient_c_per_w_m2 * sun_irradiance
    derating = temperature_derating(module_temp, array.spec.temp_coefficient_per_c, params.derating_ceiling)

    dc_power_w = (
        array.spec.rated_power_w
        * (mean_irradiance / STC_IRRADIANCE_W_M2)
        * derating
        * array.quantity
        * capacity_retention
    )
    ac_power_w = dc_power_w * params.system_loss_factor * params.conversion_efficiency * efficiency_multiplier

    return GenerationResult(
        module_temp_c=module_temp,
        derating=derating,
        dc_energy_kwh=max(dc_power_w * period_hours / 1000.0, 0.0),
        ac_energy_kwh=max(ac_power_w * period_hours / 1000.0, 0.0),
    )
