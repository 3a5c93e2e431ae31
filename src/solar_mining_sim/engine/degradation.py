"""Hardware degradation — equipment age → retention factors.

Retention curves (age in years, rate per year):
  linear    retention = max(floor, 1 − rate × age)
  compound  retention = max(floor, (1 − rate) ^ age)
Every factor is clamped to [floor, ceiling] and applied multiplicatively
to nameplate specs, so output is monotonically non-increasing with age.

Miner fleets additionally lose units to failures:
  deterministic  operational = quantity × (1 − failure_rate) ^ age
  stochastic     each operational unit fails with
                 p = 1 − (1 − failure_rate) ^ period_years  (Bernoulli per period)

Storage capacity fades by calendar age and by equivalent full cycles:
  cycle_retention = 1 − (1 − end_of_life_retention) × cycles / cycle_life
"""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np

from solar_mining_sim.config.equipment import DegradationCurve, GenerationArray, MinerFleet, StorageBank
from solar_mining_sim.config.scenario import DegradationBounds, EquipmentOverrides
from solar_mining_sim.config.system import SystemConfiguration
from solar_mining_sim.config.units import HOURS_PER_YEAR
from solar_mining_sim.models.results import EquipmentSnapshot


def retention_factor(
    annual_rate: float,
    age_years: float,
    curve: DegradationCurve = "compound",
    floor: float = 0.10,
    ceiling: float = 1.0,
) -> float:
    """Fraction of nameplate performance remaining after ``age_years``."""
    age = max(age_years, 0.0)
    rate = min(max(annual_rate, 0.0), 1.0)
    if curve == "linear":
        value = 1.0 - rate * age
    else:
        value = (1.0 - rate) ** age
    return min(max(value, floor), ceiling)


def period_failure_probability(failure_rate_annual: float, period_hours: float) -> float:
    """Per-unit failure probability over one period, from an annual rate."""
    rate = min(max(failure_rate_annual, 0.0), 1.0)
    return 1.0 - (1.0 - rate) ** (period_hours / HOURS_PER_YEAR)


# ═══════════════════════════════════════════════════════════════════════════
# Per-entry mutable state
# ═══════════════════════════════════════════════════════════════════════════

@dataclass
class EquipmentState:
    """Running state for one equipment entry, threaded across periods."""

    name: str
    kind: str
    quantity: int
    age_periods: int = 0
    age_hours: float = 0.0
    cumulative_throughput_kwh: float = 0.0
    cumulative_failures: float = 0.0
    operational_units: float = 0.0

    @property
    def age_years(self) -> float:
        return self.age_hours / HOURS_PER_YEAR


# ═══════════════════════════════════════════════════════════════════════════
# Effective condition for the current period
# ═══════════════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class StorageCondition:
    """All storage banks pooled into one dispatchable store."""

    usable_capacity_kwh: float
    max_charge_kw: float
    max_discharge_kw: float
    round_trip_efficiency: float
    soc_kwh: float


@dataclass(frozen=True)
class FleetCondition:
    """Degradation-adjusted specs at the start of one period."""

    generation_retention: list[float]
    """Capacity retention per generation array, in configuration order."""
    miner_hashrate_th_s: float
    """Fleet hashrate before throttling."""
    miner_power_kw: float
    """Fleet power draw before throttling."""
    storage: StorageCondition | None
    maintenance_usd_per_year: float = 0.0


class DegradationTracker:
    """Ages every equipment entry period by period.

    Usage::

        tracker = DegradationTracker(config, scenario.equipment, scenario.degradation)
        for period in periods:
            condition = tracker.condition()
            ...  # dispatch + economics with condition
            tracker.record_storage(charged_kwh, discharged_kwh, soc_kwh)
            tracker.advance(period.hours)

    Parameters
    ----------
    config : SystemConfiguration
        Installed equipment.
    overrides : EquipmentOverrides
        Scenario multipliers on degradation, failure, hashrate, efficiency, maintenance.
    bounds : DegradationBounds
        Retention floor / ceiling.
    rng : np.random.Generator | None
        When given, miner failures are sampled per unit per period.
    """

    def __init__(
        self,
        config: SystemConfiguration,
        overrides: EquipmentOverrides | None = None,
        bounds: DegradationBounds | None = None,
        rng: np.random.Generator | None = None,
    ) -> None:
        self._config = config
        self._overrides = overrides or EquipmentOverrides()
        self._bounds = bounds or DegradationBounds()
        self._rng = rng

        self._states: list[EquipmentState] = []
        for i, entry in enumerate(config.equipment):
            self._states.append(EquipmentState(
                name=f"{entry.kind}[{i}] {entry.spec.name}",
                kind=entry.kind,
                quantity=entry.quantity,
                operational_units=float(entry.quantity),
            ))

        banks = config.storage
        self._soc_kwh = sum(b.initial_soc * b.spec.usable_capacity_kwh * b.quantity for b in banks)

    # ── Public API ──────────────────────────────────────────────────────

    @property
    def stochastic(self) -> bool:
        return self._rng is not None

    @property
    def states(self) -> list[EquipmentState]:
        return list(self._states)

    @property
    def failed_miner_units(self) -> float:
        return sum(s.cumulative_failures for s in self._states if s.kind == "miner")

    def _retention(self, rate: float, age_years: float, curve: DegradationCurve) -> float:
        return retention_factor(
            rate * self._overrides.degradation_multiplier,
            age_years,
            curve,
            self._bounds.floor,
            self._bounds.ceiling,
        )

    def _storage_retention(self, bank: StorageBank, state: EquipmentState) -> float:
        spec = bank.spec
        calendar = self._retention(spec.calendar_degradation_annual, state.age_years, spec.degradation_curve)
        pooled_usable = spec.usable_capacity_kwh * bank.quantity
        cycles = state.cumulative_throughput_kwh / pooled_usable
        cycle = 1.0 - (1.0 - spec.end_of_life_retention) * cycles / spec.cycle_life
        return min(max(calendar * cycle, self._bounds.floor), self._bounds.ceiling)

    def _miner_retentions(self, fleet: MinerFleet, state: EquipmentState) -> tuple[float, float]:
        spec = fleet.spec
        hashrate = self._retention(spec.hashrate_degradation_annual, state.age_years, spec.degradation_curve)
        efficiency = self._retention(spec.efficiency_degradation_annual, state.age_years, spec.degradation_curve)
        return hashrate, efficiency

    def _deterministic_units(self, fleet: MinerFleet, state: EquipmentState) -> float:
        rate = min(fleet.spec.failure_rate_annual * self._overrides.failure_rate_multiplier, 1.0)
        return fleet.quantity * (1.0 - rate) ** state.age_years

    def condition(self) -> FleetCondition:
        """Degradation-adjusted specs for the period about to run."""
        ov = self._overrides
        generation_retention: list[float] = []
        hashrate_th_s = 0.0
        power_kw = 0.0
        maintenance = 0.0

        capacity = 0.0
        charge_kw = 0.0
        discharge_kw = 0.0
        rte_weighted = 0.0

        for entry, state in zip(self._config.equipment, self._states):
            maintenance += entry.spec.maintenance_usd_per_year * state.operational_units

            if isinstance(entry, GenerationArray):
                generation_retention.append(
                    self._retention(entry.spec.annual_degradation_rate, state.age_years, entry.spec.degradation_curve)
                )

            elif isinstance(entry, StorageBank):
                retention = self._storage_retention(entry, state)
                bank_capacity = entry.spec.usable_capacity_kwh * entry.quantity * retention
                capacity += bank_capacity
                charge_kw += entry.spec.max_charge_kw * entry.quantity
                discharge_kw += entry.spec.max_discharge_kw * entry.quantity
                rte_weighted += entry.spec.round_trip_efficiency * bank_capacity

            elif isinstance(entry, MinerFleet):
                hr_ret, eff_ret = self._miner_retentions(entry, state)
                unit_hashrate = entry.spec.hashrate.th_s * hr_ret * ov.hashrate_multiplier
                unit_power_w = entry.spec.power_w / eff_ret / ov.efficiency_multiplier
                if entry.power_cap_w is not None and unit_power_w > entry.power_cap_w:
                    unit_hashrate *= entry.power_cap_w / unit_power_w
                    unit_power_w = entry.power_cap_w
                hashrate_th_s += unit_hashrate * state.operational_units
                power_kw += unit_power_w * state.operational_units / 1000.0

        storage: StorageCondition | None = None
        if self._config.storage:
            self._soc_kwh = min(self._soc_kwh, capacity)
            storage = StorageCondition(
                usable_capacity_kwh=capacity,
                max_charge_kw=charge_kw,
                max_discharge_kw=discharge_kw,
                round_trip_efficiency=rte_weighted / capacity if capacity > 0 else 1.0,
                soc_kwh=self._soc_kwh,
            )

        return FleetCondition(
            generation_retention=generation_retention,
            miner_hashrate_th_s=hashrate_th_s,
            miner_power_kw=power_kw,
            storage=storage,
            maintenance_usd_per_year=maintenance * ov.maintenance_cost_multiplier,
        )

    def record_storage(self, charged_kwh: float, discharged_kwh: float, soc_kwh: float) -> None:
        """Book one period of storage activity, split across banks by nameplate share."""
        banks = [(e, s) for e, s in zip(self._config.equipment, self._states) if isinstance(e, StorageBank)]
        total = sum(e.spec.usable_capacity_kwh * e.quantity for e, _ in banks)
        for entry, state in banks:
            share = entry.spec.usable_capacity_kwh * entry.quantity / total if total > 0 else 0.0
            state.cumulative_throughput_kwh += discharged_kwh * share
        self._soc_kwh = soc_kwh

    def advance(self, period_hours: float) -> None:
        """Age every entry by one period and apply miner failures."""
        for entry, state in zip(self._config.equipment, self._states):
            state.age_periods += 1
            state.age_hours += period_hours

            if not isinstance(entry, MinerFleet):
                continue

            if self._rng is not None:
                rate = entry.spec.failure_rate_annual * self._overrides.failure_rate_multiplier
                p = period_failure_probability(rate, period_hours)
                failures = int(self._rng.binomial(int(state.operational_units), p)) if p > 0 else 0
                state.operational_units -= failures
                state.cumulative_failures += failures
            else:
                units = self._deterministic_units(entry, state)
                state.cumulative_failures = entry.quantity - units
                state.operational_units = units

    def resale_value_usd(self) -> float:
        """What the installed equipment would fetch in its current condition.

        Per entry: unit cost × resale fraction × retention × operational units.
        Called after the last ``advance()`` this is the horizon-end value.
        """
        total = 0.0
        for entry, snapshot in zip(self._config.equipment, self.snapshots()):
            spec = entry.spec
            total += spec.unit_cost_usd * spec.resale_value_fraction * snapshot.retention * snapshot.operational_units
        return total

    def snapshots(self) -> list[EquipmentSnapshot]:
        """Current state of every entry."""
        result: list[EquipmentSnapshot] = []
        for entry, state in zip(self._config.equipment, self._states):
            efficiency_retention = 1.0
            soc = None
            if isinstance(entry, GenerationArray):
                retention = self._retention(
                    entry.spec.annual_degradation_rate, state.age_years, entry.spec.degradation_curve
                )
            elif isinstance(entry, StorageBank):
                retention = self._storage_retention(entry, state)
                soc = self._soc_kwh
            else:
                retention, efficiency_retention = self._miner_retentions(entry, state)
            result.append(EquipmentSnapshot(
                name=state.name,
                kind=state.kind,
                age_periods=state.age_periods,
                age_years=state.age_years,
                retention=retention,
                efficiency_retention=efficiency_retention,
                operational_units=state.operational_units,
                cumulative_failures=state.cumulative_failures,
                cumulative_throughput_kwh=state.cumulative_throughput_kwh,
                state_of_charge_kwh=soc,
            ))
        return result
