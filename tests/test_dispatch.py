"""Tests for engine/dispatch.py — tie-break order and energy conservation."""

from __future__ import annotations

import pytest

from solar_mining_sim.engine.degradation import StorageCondition
from solar_mining_sim.engine.dispatch import DispatchResult, dispatch_energy


def _balance(generation: float, r: DispatchResult) -> float:
    return generation - (
        r.solar_to_load_kwh + r.storage_to_load_kwh + r.exported_kwh + r.wasted_kwh + r.stored_delta_kwh
    )


def _storage(usable: float = 10.0, rte: float = 1.0, soc: float = 0.0, kw: float = 5.0) -> StorageCondition:
    return StorageCondition(
        usable_capacity_kwh=usable,
        max_charge_kw=kw,
        max_discharge_kw=kw,
        round_trip_efficiency=rte,
        soc_kwh=soc,
    )


class TestGridAssisted:
    def test_deficit_imported(self):
        r = dispatch_energy(10.0, 24.0, 24.0, 0.5, None, "grid-assisted")
        assert r.solar_to_load_kwh == 10.0
        assert r.grid_import_kwh == pytest.approx(14.0)
        assert r.availability == 1.0
        assert r.mining_energy_kwh == pytest.approx(24.0)

    def test_surplus_exported(self):
        r = dispatch_energy(20.0, 24.0, 24.0, 0.5, None, "grid-assisted")
        assert r.solar_to_load_kwh == 12.0
        assert r.exported_kwh == pytest.approx(8.0)
        assert r.wasted_kwh == 0.0
        assert r.grid_import_kwh == pytest.approx(12.0)

    def test_export_limit_curtails(self):
        r = dispatch_energy(20.0, 24.0, 24.0, 0.5, None, "grid-assisted", export_limit_kw=0.25)
        assert r.exported_kwh == pytest.approx(3.0)
        assert r.wasted_kwh == pytest.approx(5.0)
        assert _balance(20.0, r) == pytest.approx(0.0, abs=1e-9)

    def test_no_generation(self):
        r = dispatch_energy(0.0, 24.0, 24.0, 0.5, None, "grid-assisted")
        assert r.grid_import_kwh == pytest.approx(24.0)
        assert r.solar_to_load_kwh == 0.0


class TestImportCap:
    def test_cap_throttles_remainder(self):
        r = dispatch_energy(0.0, 24.0, 24.0, 0.5, None, "grid-assisted", import_limit_kw=0.5)
        assert r.grid_import_kwh == pytest.approx(12.0)
        assert r.availability == pytest.approx(0.5)
        assert r.mining_energy_kwh == pytest.approx(12.0)

    def test_cap_applies_after_solar_and_storage(self):
        r = dispatch_energy(12.0, 24.0, 24.0, 0.5, _storage(soc=4.0), "hybrid-with-storage", import_limit_kw=0.25)
        # 12 solar, 4 from storage, 6 from the grid; 2 kWh unserved
        assert r.discharged_kwh == pytest.approx(4.0)
        assert r.grid_import_kwh == pytest.approx(6.0)
        assert r.availability == pytest.approx(22.0 / 24.0)

    def test_slack_cap_is_not_binding(self):
        r = dispatch_energy(10.0, 24.0, 24.0, 0.5, None, "grid-assisted", import_limit_kw=5.0)
        assert r.grid_import_kwh == pytest.approx(14.0)
        assert r.availability == 1.0

    def test_cap_ignored_without_grid(self):
        r = dispatch_energy(12.0, 24.0, 24.0, 0.5, None, "generation-only", import_limit_kw=100.0)
        assert r.grid_import_kwh == 0.0
        assert r.availability == pytest.approx(0.5)


class TestGenerationOnly:
    def test_throttles_proportionally(self):
        r = dispatch_energy(12.0, 24.0, 24.0, 0.5, None, "generation-only")
        assert r.grid_import_kwh == 0.0
        assert r.availability == pytest.approx(0.5)
        assert r.mining_energy_kwh == pytest.approx(12.0)

    def test_surplus_wasted_not_exported(self):
        r = dispatch_energy(30.0, 24.0, 24.0, 0.5, None, "generation-only")
        assert r.exported_kwh == 0.0
        assert r.wasted_kwh == pytest.approx(18.0)

    def test_zero_generation_zero_availability(self):
        r = dispatch_energy(0.0, 24.0, 24.0, 0.5, None, "generation-only")
        assert r.availability == 0.0

    def test_storage_avoids_throttle(self):
        r = dispatch_energy(24.0, 24.0, 24.0, 0.5, _storage(usable=20.0), "generation-only")
        # 12 kWh surplus stored by day, discharged at night
        assert r.charged_kwh == pytest.approx(12.0)
        assert r.discharged_kwh == pytest.approx(12.0)
        assert r.availability == pytest.approx(1.0)


class TestStorage:
    def test_charge_before_export(self):
        r = dispatch_energy(20.0, 24.0, 24.0, 0.5, _storage(usable=5.0), "hybrid-with-storage")
        assert r.charged_kwh == pytest.approx(5.0)
        assert r.exported_kwh == pytest.approx(3.0)

    def test_discharge_before_import(self):
        r = dispatch_energy(20.0, 24.0, 24.0, 0.5, _storage(), "hybrid-with-storage")
        assert r.charged_kwh == pytest.approx(8.0)
        assert r.discharged_kwh == pytest.approx(8.0)
        assert r.grid_import_kwh == pytest.approx(4.0)
        assert r.soc_kwh == pytest.approx(0.0)

    def test_round_trip_losses(self):
        r = dispatch_energy(20.0, 24.0, 24.0, 0.5, _storage(rte=0.81), "hybrid-with-storage")
        assert r.charged_kwh == pytest.approx(8.0)
        assert r.discharged_kwh == pytest.approx(8.0 * 0.81)
        assert r.grid_import_kwh == pytest.approx(12.0 - 8.0 * 0.81)

    def test_charge_rate_limit(self):
        r = dispatch_energy(100.0, 24.0, 24.0, 0.5, _storage(usable=1_000.0, kw=1.0), "hybrid-with-storage")
        assert r.charged_kwh == pytest.approx(12.0)

    def test_discharge_rate_limit(self):
        r = dispatch_energy(0.0, 24.0, 24.0, 0.5, _storage(soc=10.0, kw=0.5), "grid-assisted")
        # deficit spans the whole period → 0.5 kW × 24 h
        assert r.discharged_kwh == pytest.approx(10.0)
        r = dispatch_energy(12.0, 24.0, 24.0, 0.5, _storage(soc=10.0, kw=0.5), "grid-assisted")
        # night only → 0.5 kW × 12 h
        assert r.discharged_kwh == pytest.approx(6.0)

    def test_soc_stays_within_capacity(self):
        r = dispatch_energy(500.0, 1.0, 24.0, 0.5, _storage(usable=10.0, soc=9.0, kw=50.0), "hybrid-with-storage")
        assert 0.0 <= r.soc_kwh <= 10.0 + 1e-9

    @pytest.mark.parametrize("generation", [0.0, 5.0, 12.0, 20.0, 80.0])
    @pytest.mark.parametrize("mode", ["generation-only", "grid-assisted", "hybrid-with-storage"])
    def test_conservation(self, generation, mode):
        r = dispatch_energy(generation, 24.0, 24.0, 0.4, _storage(rte=0.9, soc=3.0), mode, export_limit_kw=2.0)
        assert abs(_balance(generation, r)) < 1e-6
        # Negative stored delta when storage net-discharged
        assert r.stored_delta_kwh == pytest.approx(r.charged_kwh - r.discharged_kwh)
