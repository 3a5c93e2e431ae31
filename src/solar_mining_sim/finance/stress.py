"""Stress tests — named adverse scenarios applied on top of a base scenario."""

from __future__ import annotations

from dataclasses import dataclass

from solar_mining_sim.config.limits import EngineLimits
from solar_mining_sim.config.scenario import Scenario
from solar_mining_sim.config.system import SystemConfiguration
from solar_mining_sim.engine.environment import EnvironmentalResolver
from solar_mining_sim.engine.orchestrator import run_projection
from solar_mining_sim.finance.sensitivity import NETWORK_HASHRATE_PATH, get_scenario_value, set_scenario_value
from solar_mining_sim.models.results import IrrValue, PaybackValue


@dataclass(frozen=True)
class StressScenario:
    name: str
    coin_price_change: float = 0.0
    """Fractional change, e.g. −0.5 halves the coin price."""
    difficulty_change: float = 0.0
    """Fractional change in network difficulty / hashrate."""
    electricity_cost_change: float = 0.0
    """Fractional change in the tariff rate multiplier."""


@dataclass(frozen=True)
class StressResult:
    name: str
    npv_usd: float
    roi_pct: float
    payback_periods: PaybackValue
    irr: IrrValue
    npv_change_usd: float
    """NPV relative to the unstressed base scenario."""


DEFAULT_STRESSES: list[StressScenario] = [
    StressScenario("Bear market", coin_price_change=-0.50),
    StressScenario("Hashrate surge", difficulty_change=0.50),
    StressScenario("Energy shock", electricity_cost_change=0.50),
    StressScenario(
        "Perfect storm",
        coin_price_change=-0.50,
        difficulty_change=0.50,
        electricity_cost_change=0.50,
    ),
]


def apply_stress(scenario: Scenario, stress: StressScenario) -> Scenario:
    """Return ``scenario`` with the stress multipliers applied."""
    adjustments = (
        ("market.coin_price_usd", stress.coin_price_change),
        (NETWORK_HASHRATE_PATH, stress.difficulty_change),
        ("tariff.rate_multiplier", stress.electricity_cost_change),
    )
    stressed = scenario
    for path, change in adjustments:
        if change:
            value = get_scenario_value(stressed, path) * (1 + change)
            stressed = set_scenario_value(stressed, path, max(value, 0.0))
    return stressed.model_copy(update={"name": f"{scenario.name} / {stress.name}", "is_baseline": False})


def run_stress_tests(
    config: SystemConfiguration,
    scenario: Scenario,
    stresses: list[StressScenario] | None = None,
    resolver: EnvironmentalResolver | None = None,
    limits: EngineLimits | None = None,
) -> list[StressResult]:
    """Project every stress scenario and report NPV, ROI, payback, IRR."""
    if stresses is None:
        stresses = DEFAULT_STRESSES

    base = run_projection(config, scenario, resolver, limits, include_break_even=False).metrics
    results: list[StressResult] = []
    for stress in stresses:
        metrics = run_projection(
            config, apply_stress(scenario, stress), resolver, limits, include_break_even=False,
        ).metrics
        results.append(StressResult(
            name=stress.name,
            npv_usd=metrics.npv_usd,
            roi_pct=metrics.roi_pct,
            payback_periods=metrics.payback_periods,
            irr=metrics.irr,
            npv_change_usd=metrics.npv_usd - base.npv_usd,
        ))
    return results
