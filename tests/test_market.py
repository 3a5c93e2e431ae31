"""Tests for engine/market.py — trajectories, halvings, tariff path, perturbation."""

from __future__ import annotations

from datetime import date, datetime

import numpy as np
import pytest

from solar_mining_sim.config import (
    Hashrate,
    Horizon,
    MarketSnapshot,
    Scenario,
    StochasticConfig,
    StochasticVariable,
    TariffConfig,
    TariffOverrides,
    TrajectoryModel,
)
from solar_mining_sim.engine.market import (
    build_market_path,
    gbm_shock,
    perturb_market_path,
    trajectory_values,
)
from solar_mining_sim.engine.periods import build_periods
from solar_mining_sim.errors import InvalidConfiguration

TWO_YEARS = Horizon(start=datetime(2025, 1, 1), end=datetime(2027, 1, 1), granularity="monthly")


@pytest.fixture
def periods():
    return build_periods(TWO_YEARS)


class TestTrajectories:
    def test_flat(self, periods):
        values = trajectory_values(TrajectoryModel(), 100.0, periods)
        assert np.all(values == 100.0)

    def test_compound_after_one_year(self, periods):
        values = trajectory_values(TrajectoryModel(kind="compound", annual_growth=0.5), 100.0, periods)
        assert values[0] == pytest.approx(100.0)
        assert values[12] == pytest.approx(150.0)

    def test_linear_never_negative(self, periods):
        values = trajectory_values(TrajectoryModel(kind="linear", annual_growth=-0.9), 100.0, periods)
        assert values[12] == pytest.approx(10.0)
        assert values.min() >= 0.0

    def test_step_holds_latest_anchor(self, periods):
        model = TrajectoryModel(kind="step", anchors={1: 80_000.0})
        values = trajectory_values(model, 60_000.0, periods)
        assert values[11] == 60_000.0
        assert values[12] == 80_000.0
        assert values[-1] == 80_000.0

    def test_custom_padded_with_last_value(self, periods):
        values = trajectory_values(TrajectoryModel(kind="custom", series=[1.0, 2.0, 3.0]), 0.0, periods)
        assert list(values[:4]) == [1.0, 2.0, 3.0, 3.0]
        assert len(values) == len(periods)


class TestBuildMarketPath:
    def test_hashrate_derived_from_difficulty(self, periods):
        scenario = Scenario(market=MarketSnapshot(network_difficulty=1e12), horizon=TWO_YEARS)
        path = build_market_path(scenario, TariffConfig(), periods)
        assert path.network_hashrate_th_s[0] == pytest.approx(2 ** 32 / 600.0)

    def test_hashrate_follows_difficulty(self, periods):
        scenario = Scenario(
            market=MarketSnapshot(network_hashrate=Hashrate(value=500.0, unit="EH/s")),
            difficulty_model=TrajectoryModel(kind="compound", annual_growth=1.0),
            horizon=TWO_YEARS,
        )
        path = build_market_path(scenario, TariffConfig(), periods)
        assert path.network_hashrate_th_s[0] == pytest.approx(5e8)
        assert path.network_hashrate_th_s[12] == pytest.approx(1e9)

    def test_zero_network_hashrate_is_invalid(self, periods):
        scenario = Scenario(market=MarketSnapshot(network_hashrate=Hashrate(value=0.0)), horizon=TWO_YEARS)
        with pytest.raises(InvalidConfiguration):
            build_market_path(scenario, TariffConfig(), periods)

    def test_non_positive_block_time_is_invalid(self, periods):
        scenario = Scenario(market=MarketSnapshot(avg_block_time_seconds=0.0), horizon=TWO_YEARS)
        with pytest.raises(InvalidConfiguration):
            build_market_path(scenario, TariffConfig(), periods)

    def test_halving(self, periods):
        scenario = Scenario(
            market=MarketSnapshot(block_reward=3.125, fees_per_block=0.1, halving_dates=[date(2025, 7, 1)]),
            horizon=TWO_YEARS,
        )
        path = build_market_path(scenario, TariffConfig(), periods)
        assert path.block_reward[5] == pytest.approx(3.225)
        assert path.block_reward[6] == pytest.approx(1.6625)

    def test_tariff_escalation(self, periods):
        path = build_market_path(Scenario(horizon=TWO_YEARS), TariffConfig(rate_usd_per_kwh=0.10, escalation_annual=0.10), periods)
        assert path.tariff_usd_per_kwh[0] == pytest.approx(0.10)
        assert path.tariff_usd_per_kwh[12] == pytest.approx(0.11)

    def test_seasonal_multipliers(self, periods):
        multipliers = [1.0] * 12
        multipliers[6] = 2.0  # July
        path = build_market_path(
            Scenario(horizon=TWO_YEARS),
            TariffConfig(rate_usd_per_kwh=0.10, monthly_multipliers=multipliers),
            periods,
        )
        july = [i for i, p in enumerate(periods) if p.midpoint.month == 7]
        assert july
        for i in july:
            assert path.tariff_usd_per_kwh[i] == pytest.approx(0.20)
        assert path.tariff_usd_per_kwh[0] == pytest.approx(0.10)

    def test_tariff_overrides(self, periods):
        scenario = Scenario(
            tariff=TariffOverrides(rate_usd_per_kwh=0.05, rate_multiplier=2.0, net_metering_rate_usd_per_kwh=0.03),
            horizon=TWO_YEARS,
        )
        path = build_market_path(scenario, TariffConfig(rate_usd_per_kwh=0.20), periods)
        assert path.tariff_usd_per_kwh[0] == pytest.approx(0.10)
        assert path.net_metering_rate_usd_per_kwh == 0.03


class TestPerturbation:
    def test_gbm_starts_at_one(self, periods):
        shock = gbm_shock(periods, 0.6, np.random.default_rng(0))
        assert shock[0] == 1.0
        assert np.all(shock > 0)

    def test_zero_volatility_is_flat(self, periods):
        assert np.all(gbm_shock(periods, 0.0, np.random.default_rng(0)) == 1.0)

    def test_gbm_mean_is_one(self, periods):
        rng = np.random.default_rng(123)
        finals = np.array([gbm_shock(periods, 0.6, rng)[-1] for _ in range(4_000)])
        assert finals.mean() == pytest.approx(1.0, abs=0.08)

    def test_perturb_does_not_mutate(self, periods):
        scenario = Scenario(horizon=TWO_YEARS)
        path = build_market_path(scenario, TariffConfig(), periods)
        original = path.coin_price_usd.copy()
        perturb_market_path(path, periods, StochasticConfig(), np.random.default_rng(1))
        assert np.array_equal(path.coin_price_usd, original)

    def test_difficulty_multiplier_keeps_hashrate_positive(self, periods):
        scenario = Scenario(horizon=TWO_YEARS)
        path = build_market_path(scenario, TariffConfig(), periods)
        stochastic = StochasticConfig(
            price_volatility_annual=0.0,
            variables=[StochasticVariable(
                target="network_difficulty", distribution="normal", parameters={"mean": -5.0, "std": 0.0},
            )],
        )
        trial = perturb_market_path(path, periods, stochastic, np.random.default_rng(1))
        assert np.all(trial.network_hashrate_th_s > 0)

    def test_irradiance_multiplier(self, periods):
        path = build_market_path(Scenario(horizon=TWO_YEARS), TariffConfig(), periods)
        stochastic = StochasticConfig(
            variables=[StochasticVariable(
                target="irradiance", distribution="uniform", parameters={"low": 0.8, "high": 0.9},
            )],
        )
        trial = perturb_market_path(path, periods, stochastic, np.random.default_rng(5))
        assert 0.8 <= trial.irradiance_multiplier <= 0.9
