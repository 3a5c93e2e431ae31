"""Market path — scenario trajectory models evaluated per period.

The deterministic pipeline reads coin price, difficulty, network hashrate,
block reward, and tariff from a ``MarketPath``.  Monte-Carlo trials perturb
a copy of the path (``perturb_market_path``) rather than the models.

Network hashrate follows difficulty: hashrate_t = hashrate_0 × difficulty_t / difficulty_0.
When the snapshot has no hashrate, hashrate_0 = difficulty_0 × 2³² / block_time.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace

import numpy as np

from solar_mining_sim.config.scenario import Scenario, StochasticConfig, StochasticVariable, TrajectoryModel
from solar_mining_sim.config.system import TariffConfig
from solar_mining_sim.config.units import HASHRATE_FACTORS, HOURS_PER_YEAR
from solar_mining_sim.engine.periods import Period
from solar_mining_sim.errors import InvalidConfiguration

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MarketPath:
    coin_price_usd: np.ndarray
    network_difficulty: np.ndarray
    network_hashrate_th_s: np.ndarray
    block_reward: np.ndarray
    """Subsidy after halvings + fees per block."""
    tariff_usd_per_kwh: np.ndarray
    net_metering_rate_usd_per_kwh: float
    avg_block_time_seconds: float
    irradiance_multiplier: float = 1.0
    """Trial-level weather shock.  Always 1.0 in deterministic runs."""


def trajectory_values(model: TrajectoryModel, base: float, periods: list[Period]) -> np.ndarray:
    """Evaluate a trajectory model at each period start."""
    years = np.array([p.elapsed_hours / HOURS_PER_YEAR for p in periods])

    if model.kind == "flat":
        return np.full(len(periods), base, dtype=np.float64)

    if model.kind == "linear":
        return base * np.maximum(1.0 + model.annual_growth * years, 0.0)

    if model.kind == "compound":
        return base * (1.0 + model.annual_growth) ** years

    if model.kind == "step":
        anchors = dict(model.anchors)
        anchors.setdefault(0, base)
        ordered = sorted(anchors.items())
        values = np.empty(len(periods), dtype=np.float64)
        for i, y in enumerate(years):
            current = ordered[0][1]
            for year_idx, value in ordered:
                if year_idx <= y + 1e-12:
                    current = value
                else:
                    break
            values[i] = current
        return values

    # custom
    series = list(model.series or [base])
    padded = series[: len(periods)] + [series[-1]] * max(0, len(periods) - len(series))
    return np.array(padded, dtype=np.float64)


def _halvings_before(period: Period, halving_dates: list) -> int:
    start = period.start.date()
    return sum(1 for d in halving_dates if d <= start)


def build_market_path(scenario: Scenario, tariff: TariffConfig, periods: list[Period]) -> MarketPath:
    """Resolve every market input for every period.

    Raises ``InvalidConfiguration`` for non-positive block time or network
    hashrate, which signal corrupted upstream data.
    """
    market = scenario.market
    block_time = market.avg_block_time_seconds
    if block_time <= 0:
        raise InvalidConfiguration(
            "average block time must be positive",
            {"avg_block_time_seconds": block_time},
        )

    price = trajectory_values(scenario.price_model, market.coin_price_usd, periods)
    difficulty = trajectory_values(scenario.difficulty_model, market.network_difficulty, periods)

    if market.network_hashrate is not None:
        base_hashrate = market.network_hashrate.th_s
    else:
        base_hashrate = market.network_difficulty * 2 ** 32 / block_time / HASHRATE_FACTORS["TH/s"]

    if market.network_difficulty > 0:
        hashrate = base_hashrate * difficulty / market.network_difficulty
    else:
        hashrate = np.full(len(periods), base_hashrate, dtype=np.float64)

    if np.any(hashrate <= 0):
        raise InvalidConfiguration(
            "network hashrate must be positive in every period",
            {"min_network_hashrate_th_s": float(hashrate.min())},
        )

    reward = np.array([
        market.block_reward * 0.5 ** _halvings_before(p, market.halving_dates) + market.fees_per_block
        for p in periods
    ])

    ov = scenario.tariff
    base_rate = ov.rate_usd_per_kwh if ov.rate_usd_per_kwh is not None else tariff.rate_usd_per_kwh
    escalation = ov.escalation_annual if ov.escalation_annual is not None else tariff.escalation_annual
    rates = np.empty(len(periods), dtype=np.float64)
    for i, p in enumerate(periods):
        seasonal = tariff.monthly_multipliers[p.midpoint.month - 1] if tariff.monthly_multipliers else 1.0
        rates[i] = (
            base_rate
            * (1.0 + escalation) ** (p.elapsed_hours / HOURS_PER_YEAR)
            * seasonal
            * ov.rate_multiplier
        )

    nm_rate = (
        ov.net_metering_rate_usd_per_kwh
        if ov.net_metering_rate_usd_per_kwh is not None
        else tariff.net_metering_rate_usd_per_kwh
    )

    return MarketPath(
        coin_price_usd=price,
        network_difficulty=difficulty,
        network_hashrate_th_s=hashrate,
        block_reward=reward,
        tariff_usd_per_kwh=rates,
        net_metering_rate_usd_per_kwh=nm_rate,
        avg_block_time_seconds=block_time,
    )


# ═══════════════════════════════════════════════════════════════════════════
# Stochastic perturbation
# ═══════════════════════════════════════════════════════════════════════════

def sample_multiplier(variable: StochasticVariable, rng: np.random.Generator) -> float:
    """Draw one trial-level multiplier."""
    p = variable.parameters
    if variable.distribution == "normal":
        return float(rng.normal(p["mean"], p["std"]))
    if variable.distribution == "lognormal":
        return float(rng.lognormal(p["mean"], p["sigma"]))
    if variable.distribution == "uniform":
        return float(rng.uniform(p["low"], p["high"]))
    return float(rng.triangular(p["low"], p["mode"], p["high"]))


def gbm_shock(periods: list[Period], volatility_annual: float, rng: np.random.Generator) -> np.ndarray:
    """Driftless GBM factor per period, 1.0 at the first period.

    log S_{i+1} = log S_i − σ²·dt/2 + σ·√dt·Z   (dt in years)
    The −σ²/2 term keeps E[S] = 1 so the deterministic path is the mean.
    """
    n = len(periods)
    if volatility_annual <= 0 or n == 0:
        return np.ones(n, dtype=np.float64)
    dt = np.array([p.hours / HOURS_PER_YEAR for p in periods[:-1]])
    z = rng.standard_normal(len(dt))
    steps = -0.5 * volatility_annual ** 2 * dt + volatility_annual * np.sqrt(dt) * z
    return np.exp(np.concatenate(([0.0], np.cumsum(steps))))


def perturb_market_path(
    path: MarketPath,
    periods: list[Period],
    stochastic: StochasticConfig,
    rng: np.random.Generator,
) -> MarketPath:
    """Return a trial copy of ``path`` with sampled shocks applied."""
    multipliers = {"coin_price": 1.0, "network_difficulty": 1.0, "tariff": 1.0, "irradiance": 1.0}
    for variable in stochastic.variables:
        multipliers[variable.target] *= sample_multiplier(variable, rng)

    price_shock = gbm_shock(periods, stochastic.price_volatility_annual, rng)
    # Difficulty stays strictly positive; network hashrate must never reach zero.
    difficulty_mult = max(multipliers["network_difficulty"], 1e-3)

    return replace(
        path,
        coin_price_usd=path.coin_price_usd * price_shock * max(multipliers["coin_price"], 0.0),
        network_difficulty=path.network_difficulty * difficulty_mult,
        network_hashrate_th_s=path.network_hashrate_th_s * difficulty_mult,
        tariff_usd_per_kwh=path.tariff_usd_per_kwh * max(multipliers["tariff"], 0.0),
        irradiance_multiplier=max(multipliers["irradiance"], 0.0),
    )
