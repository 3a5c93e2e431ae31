"""Break-even coin price and tariff.

Holds every other input fixed and solves for the base value of one
parameter at which horizon-end cumulative profit (investment included)
is zero.  The base value is the first period's value; later periods keep
their shape relative to it, so price trajectories and seasonal tariffs
scale rather than flatten.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from typing import Literal

import numpy as np

from solar_mining_sim.config.scenario import Scenario
from solar_mining_sim.config.system import SystemConfiguration
from solar_mining_sim.engine.market import MarketPath
from solar_mining_sim.engine.simulation import PreparedRun, simulate_periods
from solar_mining_sim.errors import NumericDivergence
from solar_mining_sim.finance.rootfind import solve_root
from solar_mining_sim.models.results import BREAK_EVEN_UNDETERMINED, BreakEvenValue

logger = logging.getLogger(__name__)

BreakEvenTarget = Literal["coin_price", "tariff"]

BRACKETS: dict[str, tuple[float, float]] = {
    "coin_price": (0.0, 1e9),
    "tariff": (0.0, 1e3),
}


def _scaled(values: np.ndarray, base: float) -> np.ndarray:
    """``values`` rescaled so that element 0 equals ``base``."""
    if values[0] > 0:
        return values * (base / values[0])
    return np.full(len(values), base, dtype=np.float64)


def _probe_path(path: MarketPath, target: BreakEvenTarget, base: float) -> MarketPath:
    if target == "coin_price":
        return replace(path, coin_price_usd=_scaled(path.coin_price_usd, base))
    return replace(path, tariff_usd_per_kwh=_scaled(path.tariff_usd_per_kwh, base))


def horizon_profit(
    config: SystemConfiguration,
    scenario: Scenario,
    prepared: PreparedRun,
    target: BreakEvenTarget,
    base: float,
) -> float:
    """Cumulative profit at horizon end with ``target`` set to ``base``."""
    results, _ = simulate_periods(config, scenario, prepared, path=_probe_path(prepared.path, target, base))
    return results[-1].cumulative_profit_usd


def solve_break_even(
    config: SystemConfiguration,
    scenario: Scenario,
    prepared: PreparedRun,
    target: BreakEvenTarget,
) -> BreakEvenValue:
    """Break-even base value for ``target``, or ``UNDETERMINED``.

    Parameters
    ----------
    target : "coin_price" | "tariff"
        Coin price in USD, or tariff in USD/kWh.
    """
    current = (
        float(prepared.path.coin_price_usd[0])
        if target == "coin_price"
        else float(prepared.path.tariff_usd_per_kwh[0])
    )
    finance = scenario.finance

    try:
        value = solve_root(
            lambda x: horizon_profit(config, scenario, prepared, target, x),
            x0=current if current > 0 else 1.0,
            bracket=BRACKETS[target],
            tol=finance.irr_tolerance,
            max_iter=finance.irr_max_iterations,
            derivative_epsilon=finance.derivative_epsilon,
        )
    except NumericDivergence:
        logger.warning("break-even %s did not converge; reporting %s", target, BREAK_EVEN_UNDETERMINED)
        return BREAK_EVEN_UNDETERMINED

    if value < 0:
        logger.warning("break-even %s is negative; reporting %s", target, BREAK_EVEN_UNDETERMINED)
        return BREAK_EVEN_UNDETERMINED
    return value
