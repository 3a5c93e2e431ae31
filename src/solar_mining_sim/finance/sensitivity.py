"""Sensitivity / tornado analysis.

Automated one-at-a-time sweeps: vary a single scenario input, measure the
NPV delta.  Produces tornado chart data sorted by impact on NPV.

Default sweep set:
  - market.coin_price_usd ± 20%
  - network hashrate (difficulty) ± 20%
  - tariff.rate_multiplier ± 10%
  - environment.irradiance_multiplier ± 10%
  - finance.discount_rate_annual ± 25%
  - equipment.degradation_multiplier ± 20%
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from solar_mining_sim.config.limits import EngineLimits
from solar_mining_sim.config.scenario import Scenario
from solar_mining_sim.config.system import SystemConfiguration
from solar_mining_sim.engine.environment import EnvironmentalResolver
from solar_mining_sim.engine.orchestrator import run_projection
from solar_mining_sim.errors import InvalidConfiguration

NETWORK_HASHRATE_PATH = "network"
"""Resolves to the snapshot's hashrate when given, else its difficulty."""


@dataclass(frozen=True)
class TornadoBar:
    """One bar in the tornado chart."""

    param_name: str
    """Human-readable parameter name."""

    param_path: str
    """Dot-path into Scenario (e.g. 'market.coin_price_usd')."""

    base_value: float
    low_value: float
    high_value: float

    npv_at_low: float
    """NPV when param = low_value."""

    npv_at_high: float
    """NPV when param = high_value."""

    delta_npv: float
    """abs(npv_at_high − npv_at_low) — total swing width."""


@dataclass
class SensitivityResult:
    """Complete sensitivity analysis output."""

    base_npv: float
    bars: list[TornadoBar] = field(default_factory=list)
    """Tornado bars sorted by delta_npv (descending)."""


DEFAULT_SWEEPS: list[tuple[str, str, float, float]] = [
    ("Coin price", "market.coin_price_usd", -0.20, 0.20),
    ("Network hashrate", NETWORK_HASHRATE_PATH, -0.20, 0.20),
    ("Electricity tariff", "tariff.rate_multiplier", -0.10, 0.10),
    ("Irradiance", "environment.irradiance_multiplier", -0.10, 0.10),
    ("Discount rate", "finance.discount_rate_annual", -0.25, 0.25),
    ("Degradation rate", "equipment.degradation_multiplier", -0.20, 0.20),
]


def resolve_path(scenario: Scenario, path: str) -> str:
    """Expand the ``network`` alias to a concrete dot-path."""
    if path != NETWORK_HASHRATE_PATH:
        return path
    if scenario.market.network_hashrate is not None:
        return "market.network_hashrate.value"
    return "market.network_difficulty"


def get_scenario_value(scenario: Scenario, path: str) -> float:
    """Get a nested scenario value via dot-path string."""
    current: Any = scenario
    for part in resolve_path(scenario, path).split("."):
        current = getattr(current, part)
    return float(current)


def set_scenario_value(scenario: Scenario, path: str, value: float) -> Scenario:
    """Return a copy of ``scenario`` with the dot-path set to ``value``.

    Scenarios are frozen, so the copy goes through ``model_dump`` and
    re-validation.  Out-of-range values surface as ``InvalidConfiguration``.
    """
    parts = resolve_path(scenario, path).split(".")
    data = scenario.model_dump()
    node = data
    for part in parts[:-1]:
        node = node[part]
    if parts[-1] not in node:
        raise InvalidConfiguration(f"unknown scenario path {path!r}", {"path": path})

    # Integer fields must stay integer after a fractional sweep
    if isinstance(node[parts[-1]], int) and not isinstance(node[parts[-1]], bool):
        value = round(value)
    node[parts[-1]] = value

    try:
        return Scenario.model_validate(data)
    except ValueError as exc:
        raise InvalidConfiguration(
            f"swept value {value!r} is invalid for {path!r}",
            {"path": path, "value": value},
        ) from exc


def _run_npv(
    config: SystemConfiguration,
    scenario: Scenario,
    resolver: EnvironmentalResolver | None,
    limits: EngineLimits | None,
) -> float:
    result = run_projection(config, scenario, resolver, limits, include_break_even=False)
    return result.metrics.npv_usd


def run_sensitivity(
    config: SystemConfiguration,
    scenario: Scenario,
    sweeps: list[tuple[str, str, float, float]] | None = None,
    resolver: EnvironmentalResolver | None = None,
    limits: EngineLimits | None = None,
) -> SensitivityResult:
    """Run sensitivity analysis for one configuration.

    Parameters
    ----------
    config : SystemConfiguration
        Installed system to evaluate.
    scenario : Scenario
        Base scenario.
    sweeps : list[tuple[name, path, low_pct, high_pct]] | None
        Parameter sweeps. None = use DEFAULT_SWEEPS.

    Returns
    -------
    SensitivityResult
        Tornado bars sorted by NPV impact.
    """
    if sweeps is None:
        sweeps = DEFAULT_SWEEPS

    base_npv = _run_npv(config, scenario, resolver, limits)
    bars: list[TornadoBar] = []

    for name, path, low_pct, high_pct in sweeps:
        base_val = get_scenario_value(scenario, path)
        low_val = base_val * (1 + low_pct)
        high_val = base_val * (1 + high_pct)

        npv_low = _run_npv(config, set_scenario_value(scenario, path, low_val), resolver, limits)
        npv_high = _run_npv(config, set_scenario_value(scenario, path, high_val), resolver, limits)

        bars.append(TornadoBar(
            param_name=name,
            param_path=resolve_path(scenario, path),
            base_value=base_val,
            low_value=low_val,
            high_value=high_val,
            npv_at_low=npv_low,
            npv_at_high=npv_high,
            delta_npv=abs(npv_high - npv_low),
        ))

    # Sort by impact (largest swing first)
    bars.sort(key=lambda b: b.delta_npv, reverse=True)

    return SensitivityResult(base_npv=base_npv, bars=bars)
