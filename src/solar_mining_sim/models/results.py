"""Result types — the contract between engine, finance, and callers.

Non-fatal numeric outcomes are explicit sentinel strings, never ``None``
or infinity:

  - ``IRR_UNDETERMINED`` — IRR solver did not converge
  - ``UNDEFINED``        — cumulative profit never crosses zero (payback)
  - ``UNDETERMINED``     — break-even solver did not converge
"""

from __future__ import annotations

from datetime import datetime
from typing import Literal

import pandas as pd
from pydantic import BaseModel

IRR_UNDETERMINED = "IRR_UNDETERMINED"
PAYBACK_UNDEFINED = "UNDEFINED"
BREAK_EVEN_UNDETERMINED = "UNDETERMINED"

IrrValue = float | Literal["IRR_UNDETERMINED"]
PaybackValue = float | Literal["UNDEFINED"]
BreakEvenValue = float | Literal["UNDETERMINED"]


# ═══════════════════════════════════════════════════════════════════════════
# Per-period output
# ═══════════════════════════════════════════════════════════════════════════

class EquipmentSnapshot(BaseModel):
    """State of one equipment entry at the end of a period.

    Taken after the entry has aged by the period, so ``age_periods`` is 1
    for the first period and ``retention`` is what the next period starts with.
    """

    name: str
    kind: Literal["generation", "storage", "miner"]
    age_periods: int
    """Periods elapsed since installation."""
    age_years: float
    retention: float
    """Capacity (generation, storage) or hashrate (miner) retention factor."""
    efficiency_retention: float = 1.0
    """Miner efficiency retention; power draw scales by its inverse."""
    operational_units: float
    """Units still working.  Fractional in deterministic mode."""
    cumulative_failures: float = 0.0
    cumulative_throughput_kwh: float = 0.0
    """Storage energy discharged to the bus since installation."""
    state_of_charge_kwh: float | None = None


class PeriodResult(BaseModel):
    """One row of the projection time series."""

    index: int
    start: datetime
    end: datetime
    hours: float

    # --- Resolved inputs ---
    irradiance_wh_m2: float
    ambient_temp_c: float
    coin_price_usd: float
    network_difficulty: float
    network_hashrate_th_s: float
    block_reward: float
    tariff_usd_per_kwh: float

    # --- Energy flows (kWh) ---
    generation_kwh: float
    mining_energy_kwh: float
    """Energy actually consumed by miners (after throttling)."""
    solar_to_mining_kwh: float
    storage_to_mining_kwh: float
    grid_import_kwh: float
    exported_kwh: float
    wasted_kwh: float
    storage_charge_kwh: float
    storage_discharge_kwh: float
    stored_delta_kwh: float
    """Bus-side charge − discharge.  Negative when storage net-discharged."""
    state_of_charge_kwh: float

    # --- Mining ---
    availability: float
    """Fraction of the period with power available to miners (1.0 unless throttled)."""
    effective_hashrate_th_s: float
    coin_mined: float

    # --- Money (USD) ---
    revenue_usd: float
    energy_cost_usd: float
    export_credit_usd: float
    maintenance_cost_usd: float
    fixed_cost_usd: float
    """Insurance and property tax."""
    cost_usd: float
    net_profit_usd: float
    cumulative_profit_usd: float

    equipment: list[EquipmentSnapshot]

    @property
    def direct_to_load_kwh(self) -> float:
        """On-site energy delivered to miners (generation + storage)."""
        return self.solar_to_mining_kwh + self.storage_to_mining_kwh

    @property
    def energy_balance_residual(self) -> float:
        """generation − (direct_to_load + exported + wasted + stored_delta).  Zero when balanced."""
        return self.generation_kwh - (
            self.direct_to_load_kwh + self.exported_kwh + self.wasted_kwh + self.stored_delta_kwh
        )


# ═══════════════════════════════════════════════════════════════════════════
# Financial summary
# ═══════════════════════════════════════════════════════════════════════════

class FinancialMetrics(BaseModel):
    """Scalar reduction of a completed period series."""

    initial_investment_usd: float
    discount_rate_annual: float
    discount_rate_per_period: float

    npv_usd: float
    irr: IrrValue
    """Annualized IRR, or ``IRR_UNDETERMINED``."""
    payback_periods: PaybackValue
    """Fractional periods until cumulative profit reaches zero, or ``UNDEFINED``."""
    payback_years: PaybackValue
    discounted_payback_periods: PaybackValue
    roi_pct: float
    """Operating ROI: cumulative profit against investment, no resale."""
    adjusted_roi_pct: float
    """ROI with horizon-end equipment resale value included."""
    profitability_index: float | None
    """(NPV + investment) / investment.  None when investment is zero."""

    break_even_coin_price_usd: BreakEvenValue | None = None
    break_even_tariff_usd_per_kwh: BreakEvenValue | None = None
    """None when break-even solving was not requested."""

    total_coin_mined: float
    total_revenue_usd: float
    total_energy_cost_usd: float
    total_maintenance_usd: float
    total_fixed_cost_usd: float
    total_net_profit_usd: float
    equipment_resale_value_usd: float = 0.0
    """Horizon-end resale value.  Enters NPV and IRR as a terminal cash flow."""


class ProjectionResult(BaseModel):
    """Complete deterministic projection — the engine's sole output artifact."""

    configuration_name: str
    scenario_name: str
    granularity: str
    periods: list[PeriodResult]
    metrics: FinancialMetrics

    @property
    def net_profit(self) -> list[float]:
        return [p.net_profit_usd for p in self.periods]

    @property
    def cumulative_profit(self) -> list[float]:
        return [p.cumulative_profit_usd for p in self.periods]

    def to_dataframe(self) -> pd.DataFrame:
        """Period series as a DataFrame indexed by period start."""
        rows = [p.model_dump(exclude={"equipment"}) for p in self.periods]
        frame = pd.DataFrame(rows)
        if not frame.empty:
            frame = frame.set_index("start")
        return frame


# ═══════════════════════════════════════════════════════════════════════════
# Monte-Carlo aggregate
# ═══════════════════════════════════════════════════════════════════════════

class PercentileBand(BaseModel):
    """p5 ≤ p25 ≤ p50 ≤ p75 ≤ p95 of one metric across trials."""

    p5: float
    p25: float
    p50: float
    p75: float
    p95: float


class MonteCarloSummary(BaseModel):
    """Aggregate statistics across N independent stochastic trials."""

    configuration_name: str
    scenario_name: str
    num_trials: int
    seed: int

    npv: PercentileBand
    roi_pct: PercentileBand
    irr: PercentileBand | None
    """None when every trial's IRR was undetermined."""
    irr_undetermined_fraction: float
    """Share of trials excluded from the IRR band."""

    cumulative_profit: list[PercentileBand]
    """One band per period, in period order."""

    probability_of_loss: float
    """Share of trials with NPV < 0."""
    expected_npv_usd: float
    value_at_risk_95_usd: float
    """5th-percentile NPV — the loss not exceeded in 95 % of trials."""
    mean_miner_failures: float
    """Average failed miner units per trial at horizon end."""
