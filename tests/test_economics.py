"""Tests for engine/economics.py — share of network, coin mined, costs."""

from __future__ import annotations

import pytest

from solar_mining_sim.engine.economics import blocks_per_period, compute_economics, miner_share
from solar_mining_sim.errors import InvalidConfiguration


class TestMinerShare:
    def test_share(self):
        assert miner_share(100.0, 1e6) == pytest.approx(1e-4)

    def test_zero_network_is_invalid(self):
        with pytest.raises(InvalidConfiguration):
            miner_share(100.0, 0.0)

    def test_share_above_one_signals_unit_mismatch(self):
        with pytest.raises(InvalidConfiguration, match="units"):
            miner_share(100.0, 50.0)


class TestBlocksPerPeriod:
    def test_one_day(self):
        assert blocks_per_period(24.0, 600.0) == pytest.approx(144.0)

    @pytest.mark.parametrize("block_time", [0.0, -600.0])
    def test_non_positive_block_time_is_invalid(self, block_time):
        with pytest.raises(InvalidConfiguration):
            blocks_per_period(24.0, block_time)


class TestComputeEconomics:
    def test_one_day(self):
        r = compute_economics(
            effective_hashrate_th_s=100.0,
            network_hashrate_th_s=1e6,
            block_reward=3.125,
            avg_block_time_seconds=600.0,
            period_hours=24.0,
            coin_price_usd=50_000.0,
            grid_import_kwh=10.0,
            tariff_usd_per_kwh=0.10,
            maintenance_usd=5.0,
        )
        assert r.coin_mined == pytest.approx(144 * 3.125 * 1e-4)
        assert r.revenue_usd == pytest.approx(2_250.0)
        assert r.energy_cost_usd == pytest.approx(1.0)
        assert r.cost_usd == pytest.approx(6.0)
        assert r.net_profit_usd == pytest.approx(2_244.0)

    def test_export_credit_only_with_net_metering(self):
        kwargs = dict(
            effective_hashrate_th_s=0.0,
            network_hashrate_th_s=1e6,
            block_reward=3.125,
            avg_block_time_seconds=600.0,
            period_hours=24.0,
            coin_price_usd=50_000.0,
            grid_import_kwh=0.0,
            tariff_usd_per_kwh=0.10,
            exported_kwh=4.0,
            net_metering_rate_usd_per_kwh=0.05,
        )
        assert compute_economics(**kwargs).export_credit_usd == 0.0
        with_nm = compute_economics(**kwargs, net_metering_enabled=True)
        assert with_nm.export_credit_usd == pytest.approx(0.2)
        assert with_nm.net_profit_usd == pytest.approx(0.2)

    def test_throttled_fleet_mines_nothing(self):
        r = compute_economics(0.0, 1e6, 3.125, 600.0, 24.0, 50_000.0, 0.0, 0.10)
        assert r.coin_mined == 0.0
        assert r.net_profit_usd == 0.0

    def test_fixed_costs_reduce_profit(self):
        r = compute_economics(
            effective_hashrate_th_s=100.0,
            network_hashrate_th_s=1e6,
            block_reward=3.125,
            avg_block_time_seconds=600.0,
            period_hours=24.0,
            coin_price_usd=50_000.0,
            grid_import_kwh=10.0,
            tariff_usd_per_kwh=0.10,
            maintenance_usd=5.0,
            fixed_cost_usd=4.0,
        )
        assert r.fixed_cost_usd == 4.0
        assert r.cost_usd == pytest.approx(10.0)
        assert r.net_profit_usd == pytest.approx(2_240.0)
