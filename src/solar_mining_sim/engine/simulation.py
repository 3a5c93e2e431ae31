"""Period loop — the sequential core shared by projection, break-even, and Monte Carlo.

Everything that does not depend on sampled randomness (period calendar,
resolved environment, deterministic market path, investment) is prepared
once by ``prepare_run``.  ``simulate_periods`` then steps the equipment
state strictly in order:

  condition → generation → dispatch → record → economics → advance → PeriodResult
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from typing import Callable

import numpy as np

from solar_mining_sim.config.limits import EngineLimits
from solar_mining_sim.config.scenario import Scenario
from solar_mining_sim.config.system import SystemConfiguration
from solar_mining_sim.config.units import HOURS_PER_YEAR
from solar_mining_sim.engine.degradation import DegradationTracker
from solar_mining_sim.engine.dispatch import dispatch_energy
from solar_mining_sim.engine.economics import compute_economics
from solar_mining_sim.engine.environment import (
    ClimatologyResolver,
    EnvironmentalConditions,
    EnvironmentalResolver,
    resolve_environment,
)
from solar_mining_sim.engine.generation import compute_generation
from solar_mining_sim.engine.market import MarketPath, build_market_path
from solar_mining_sim.engine.periods import Period, build_periods
from solar_mining_sim.finance.metrics import initial_investment
from solar_mining_sim.models.results import PeriodResult

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PreparedRun:
    """Inputs resolved once per (config, scenario) before stepping."""

    periods: list[Period]
    conditions: list[EnvironmentalConditions]
    path: MarketPath
    investment_usd: float


def prepare_run(
    config: SystemConfiguration,
    scenario: Scenario,
    resolver: EnvironmentalResolver | None = None,
    limits: EngineLimits | None = None,
) -> PreparedRun:
    """Validate bounds and resolve every external input up front.

    Raises ``ResourceExhausted`` / ``InvalidConfiguration`` before any
    period is computed, and ``InputUnavailable`` if the resolver fails.
    """
    periods = build_periods(scenario.horizon, limits)
    path = build_market_path(scenario, config.tariff, periods)
    resolver = resolver or ClimatologyResolver()
    conditions = [
        resolve_environment(resolver, config.location, p.start, p.end, scenario.environment)
        for p in periods
    ]
    return PreparedRun(
        periods=periods,
        conditions=conditions,
        path=path,
        investment_usd=initial_investment(config, scenario.finance),
    )


def simulate_periods(
    config: SystemConfiguration,
    scenario: Scenario,
    prepared: PreparedRun,
    path: MarketPath | None = None,
    rng: np.random.Generator | None = None,
    on_period: Callable[[Period], None] | None = None,
) -> tuple[list[PeriodResult], DegradationTracker]:
    """Step every period in order and return the full series.

    Parameters
    ----------
    path : MarketPath | None
        Overrides ``prepared.path`` (perturbed trial path, break-even probe).
    rng : np.random.Generator | None
        Enables stochastic miner failures.
    on_period : callable | None
        Called with each period before it is computed.
    """
    path = path or prepared.path
    tracker = DegradationTracker(config, scenario.equipment, scenario.degradation, rng)
    mode = config.operating_mode
    export_limit = config.tariff.export_limit_kw
    net_metering = config.tariff.net_metering_enabled
    efficiency_mult = scenario.equipment.efficiency_multiplier
    finance = scenario.finance
    fixed_cost_per_hour = (
        prepared.investment_usd
        * (finance.insurance_rate_annual + finance.property_tax_rate_annual)
        / HOURS_PER_YEAR
    )

    results: list[PeriodResult] = []
    cumulative = -prepared.investment_usd

    for period, env in zip(prepared.periods, prepared.conditions):
        if on_period is not None:
            on_period(period)
        i = period.index

        if path.irradiance_multiplier != 1.0:
            env = replace(env, irradiance_wh_m2=env.irradiance_wh_m2 * path.irradiance_multiplier)

        cond = tracker.condition()

        generation = 0.0
        for array, retention in zip(config.generation, cond.generation_retention):
            generation += compute_generation(
                env, array, period.hours, scenario.generation, retention, efficiency_mult,
            ).ac_energy_kwh

        load_kwh = cond.miner_power_kw * period.hours
        flows = dispatch_energy(
            generation,
            load_kwh,
            period.hours,
            env.sun_hours_per_day / 24.0,
            cond.storage,
            mode,
            export_limit,
            config.tariff.max_import_kw,
        )
        tracker.record_storage(flows.charged_kwh, flows.discharged_kwh, flows.soc_kwh)

        effective_hashrate = cond.miner_hashrate_th_s * flows.availability
        econ = compute_economics(
            effective_hashrate_th_s=effective_hashrate,
            network_hashrate_th_s=float(path.network_hashrate_th_s[i]),
            block_reward=float(path.block_reward[i]),
            avg_block_time_seconds=path.avg_block_time_seconds,
            period_hours=period.hours,
            coin_price_usd=float(path.coin_price_usd[i]),
            grid_import_kwh=flows.grid_import_kwh,
            tariff_usd_per_kwh=float(path.tariff_usd_per_kwh[i]),
            exported_kwh=flows.exported_kwh,
            net_metering_rate_usd_per_kwh=path.net_metering_rate_usd_per_kwh,
            net_metering_enabled=net_metering,
            maintenance_usd=cond.maintenance_usd_per_year * period.hours / HOURS_PER_YEAR,
            fixed_cost_usd=fixed_cost_per_hour * period.hours,
        )
        net = econ.net_profit_usd
        cumulative += net
        tracker.advance(period.hours)

        results.append(PeriodResult(
            index=i,
            start=period.start,
            end=period.end,
            hours=period.hours,
            irradiance_wh_m2=env.irradiance_wh_m2,
            ambient_temp_c=env.ambient_temp_c,
            coin_price_usd=float(path.coin_price_usd[i]),
            network_difficulty=float(path.network_difficulty[i]),
            network_hashrate_th_s=float(path.network_hashrate_th_s[i]),
            block_reward=float(path.block_reward[i]),
            tariff_usd_per_kwh=float(path.tariff_usd_per_kwh[i]),
            generation_kwh=generation,
            mining_energy_kwh=flows.mining_energy_kwh,
            solar_to_mining_kwh=flows.solar_to_load_kwh,
            storage_to_mining_kwh=flows.storage_to_load_kwh,
            grid_import_kwh=flows.grid_import_kwh,
            exported_kwh=flows.exported_kwh,
            wasted_kwh=flows.wasted_kwh,
            storage_charge_kwh=flows.charged_kwh,
            storage_discharge_kwh=flows.discharged_kwh,
            stored_delta_kwh=flows.stored_delta_kwh,
            state_of_charge_kwh=flows.soc_kwh,
            availability=flows.availability,
            effective_hashrate_th_s=effective_hashrate,
            coin_mined=econ.coin_mined,
            revenue_usd=econ.revenue_usd,
            energy_cost_usd=econ.energy_cost_usd,
            export_credit_usd=econ.export_credit_usd,
            maintenance_cost_usd=econ.maintenance_usd,
            fixed_cost_usd=econ.fixed_cost_usd,
            cost_usd=econ.cost_usd,
            net_profit_usd=net,
            cumulative_profit_usd=cumulative,
            equipment=tracker.snapshots(),
        ))

        logger.debug(
            "period %d: gen %.2f kWh, grid %.2f kWh, hashrate %.3f TH/s, net $%.2f",
            i, generation, flows.grid_import_kwh, effective_hashrate, net,
        )

    return results, tracker
