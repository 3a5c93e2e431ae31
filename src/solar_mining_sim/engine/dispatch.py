"""Energy dispatch — route one period's generation between miners, storage, and grid.

The period is split into a daylight portion (sun_hours / 24) and a dark
portion.  Mining load runs over the whole period.  Tie-break order:

  daylight surplus  → storage charge → grid export (grid modes) → wasted
  any deficit       → storage discharge → grid import (grid modes, capped) → throttle

Throttling happens in ``generation-only`` mode, or in a grid mode once
import reaches ``import_limit_kw × period_hours``.  Hashrate is reduced by
the unserved fraction of the load.

Balance (bus side, holds exactly):
  generation = solar_to_load + storage_to_load + exported + wasted + (charged − discharged)
Storage losses are split symmetrically: √RTE on charge, √RTE on discharge.
"""

from __future__ import annotations

import math
from dataclasses import dataclass

from solar_mining_sim.config.system import OperatingMode
from solar_mining_sim.engine.degradation import StorageCondition


@dataclass(frozen=True)
class DispatchResult:
    solar_to_load_kwh: float
    storage_to_load_kwh: float
    grid_import_kwh: float
    exported_kwh: float
    wasted_kwh: float
    charged_kwh: float
    """Energy drawn from the bus into storage."""
    discharged_kwh: float
    """Energy delivered from storage to the bus."""
    soc_kwh: float
    """Stored energy at period end."""
    availability: float
    """Fraction of mining load served (1.0 unless throttled)."""

    @property
    def stored_delta_kwh(self) -> float:
        return self.charged_kwh - self.discharged_kwh

    @property
    def mining_energy_kwh(self) -> float:
        return self.solar_to_load_kwh + self.storage_to_load_kwh + self.grid_import_kwh


def dispatch_energy(
    generation_kwh: float,
    load_kwh: float,
    period_hours: float,
    daylight_fraction: float,
    storage: StorageCondition | None,
    mode: OperatingMode,
    export_limit_kw: float | None = None,
    import_limit_kw: float | None = None,
) -> DispatchResult:
    """Apply the deterministic dispatch policy to one period."""
    grid = mode != "generation-only"
    fraction = daylight_fraction if daylight_fraction > 0 else 1.0
    fraction = min(fraction, 1.0)
    day_hours = period_hours * fraction
    night_hours = period_hours - day_hours

    day_load = load_kwh * fraction
    night_load = load_kwh - day_load

    # ── 1. Daylight: generation serves load first ──────────────────────
    solar_to_load = min(generation_kwh, day_load)
    surplus = generation_kwh - solar_to_load
    day_deficit = day_load - solar_to_load

    soc = storage.soc_kwh if storage else 0.0
    eta = math.sqrt(storage.round_trip_efficiency) if storage else 1.0

    # ── 2. Surplus charges storage, then exports, then is wasted ──────
    charged = 0.0
    if storage and surplus > 0:
        headroom = max(storage.usable_capacity_kwh - soc, 0.0)
        charged = min(surplus, storage.max_charge_kw * day_hours, headroom / eta)
        soc += charged * eta
    remaining = surplus - charged

    exported = 0.0
    if grid and remaining > 0:
        cap = export_limit_kw * day_hours if export_limit_kw is not None else remaining
        exported = min(remaining, cap)
    wasted = remaining - exported

    # ── 3. Deficit: storage discharge, then grid, then throttle ───────
    deficit = day_deficit + night_load
    discharged = 0.0
    if storage and deficit > 0:
        window = night_hours + (day_hours if day_deficit > 0 else 0.0)
        discharged = min(deficit, storage.max_discharge_kw * window, soc * eta)
        soc = max(soc - discharged / eta, 0.0)
    unmet = deficit - discharged

    grid_import = 0.0
    if grid and unmet > 0:
        cap = import_limit_kw * period_hours if import_limit_kw is not None else unmet
        grid_import = min(unmet, cap)
    unserved = unmet - grid_import

    availability = 1.0
    if unserved > 0 and load_kwh > 0:
        availability = (load_kwh - unserved) / load_kwh

    return DispatchResult(
        solar_to_load_kwh=solar_to_load,
        storage_to_load_kwh=discharged,
        grid_import_kwh=grid_import,
        exported_kwh=exported,
        wasted_kwh=wasted,
        charged_kwh=charged,
        discharged_kwh=discharged,
        soc_kwh=soc,
        availability=availability,
    )
