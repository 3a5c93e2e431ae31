"""Financial metrics — NPV, IRR, payback, ROI over a completed period series.

Cash flows are the per-period net profits; the initial investment sits at
t = 0.  Discounting uses each period's end time in years, so a truncated
last period is discounted by its true length:

  NPV  = −I + Σ CF_t / (1 + r_annual)^(τ_t)        τ_t = hours to end of t / 8766
  IRR  = annual rate where NPV = 0   (Newton-Raphson, bisection fallback)
  Payback = first fractional period where cumulative profit crosses zero
  ROI% = (Σ CF − I) / I × 100

For equal-length periods this is identical to discounting at the
per-period rate (1 + r_annual)^(hours/8766) − 1.

Equipment resale value S at horizon end is a terminal cash flow: it is
added to the last period for NPV, IRR and the adjusted ROI, but not to
payback, which tracks operating profit only.
"""

from __future__ import annotations

import logging
import math
from typing import Sequence

from solar_mining_sim.config.scenario import FinanceConfig
from solar_mining_sim.config.system import SystemConfiguration
from solar_mining_sim.config.units import HOURS_PER_YEAR
from solar_mining_sim.errors import NumericDivergence
from solar_mining_sim.finance.rootfind import solve_root
from solar_mining_sim.models.results import (
    IRR_UNDETERMINED,
    PAYBACK_UNDEFINED,
    FinancialMetrics,
    IrrValue,
    PaybackValue,
    PeriodResult,
)

logger = logging.getLogger(__name__)

IRR_BRACKET = (-0.99, 100.0)


def initial_investment(config: SystemConfiguration, finance: FinanceConfig) -> float:
    """Equipment purchase cost × installation multiplier."""
    return config.equipment_cost_usd * finance.installation_cost_multiplier


def with_terminal_value(cash_flows: Sequence[float], terminal_usd: float) -> list[float]:
    """Cash flows with ``terminal_usd`` received at the end of the last period."""
    flows = list(cash_flows)
    if flows:
        flows[-1] += terminal_usd
    return flows


def period_discount_rate(annual_rate: float, period_hours: float) -> float:
    """Annual rate converted to the rate for one period of ``period_hours``."""
    return (1.0 + annual_rate) ** (period_hours / HOURS_PER_YEAR) - 1.0


def discount_times(period_hours: Sequence[float]) -> list[float]:
    """End time of each period in years from horizon start."""
    times: list[float] = []
    elapsed = 0.0
    for hours in period_hours:
        elapsed += hours
        times.append(elapsed / HOURS_PER_YEAR)
    return times


def compute_npv(
    cash_flows: Sequence[float],
    investment: float,
    annual_rate: float,
    times_years: Sequence[float],
) -> float:
    """Net present value at ``annual_rate``.

    Parameters
    ----------
    cash_flows : Sequence[float]
        Net profit per period.  Index 0 = first period.
    investment : float
        Up-front outlay at t = 0 (positive number).
    annual_rate : float
        Annual discount rate (e.g. 0.08 for 8 %).  Must be > −1.
    times_years : Sequence[float]
        End time of each period in years (see ``discount_times``).
    """
    base = 1.0 + annual_rate
    npv = -investment
    for cf, tau in zip(cash_flows, times_years):
        npv += cf / base ** tau
    return npv


def _npv_derivative(cash_flows: Sequence[float], annual_rate: float, times_years: Sequence[float]) -> float:
    base = 1.0 + annual_rate
    return sum(-tau * cf / base ** (tau + 1.0) for cf, tau in zip(cash_flows, times_years))


def compute_irr(
    cash_flows: Sequence[float],
    investment: float,
    times_years: Sequence[float],
    finance: FinanceConfig | None = None,
) -> IrrValue:
    """Annualized IRR, or ``IRR_UNDETERMINED`` when no converged root exists."""
    finance = finance or FinanceConfig()
    if not cash_flows:
        return IRR_UNDETERMINED

    try:
        return solve_root(
            lambda r: compute_npv(cash_flows, investment, r, times_years),
            x0=finance.irr_initial_guess,
            fprime=lambda r: _npv_derivative(cash_flows, r, times_years),
            bracket=IRR_BRACKET,
            tol=finance.irr_tolerance,
            max_iter=finance.irr_max_iterations,
            derivative_epsilon=finance.derivative_epsilon,
        )
    except NumericDivergence:
        logger.warning("IRR did not converge; reporting %s", IRR_UNDETERMINED)
        return IRR_UNDETERMINED


def _first_crossing(flows: Sequence[float], investment: float) -> PaybackValue:
    cumulative = -investment
    if cumulative >= 0:
        return 0.0
    for i, cf in enumerate(flows):
        previous = cumulative
        cumulative += cf
        if previous < 0 <= cumulative:
            # Linear interpolation inside period i.
            return i + (-previous / cf)
    return PAYBACK_UNDEFINED


def compute_payback(cash_flows: Sequence[float], investment: float) -> PaybackValue:
    """Fractional periods until cumulative profit first reaches zero, else ``UNDEFINED``."""
    return _first_crossing(cash_flows, investment)


def compute_discounted_payback(
    cash_flows: Sequence[float],
    investment: float,
    annual_rate: float,
    times_years: Sequence[float],
) -> PaybackValue:
    """Like ``compute_payback`` but on discounted cash flows."""
    base = 1.0 + annual_rate
    discounted = [cf / base ** tau for cf, tau in zip(cash_flows, times_years)]
    return _first_crossing(discounted, investment)


def compute_roi_pct(cash_flows: Sequence[float], investment: float) -> float:
    """Return on investment over the horizon, in percent.  0.0 for zero investment."""
    if investment <= 0:
        return 0.0
    return (sum(cash_flows) - investment) / investment * 100.0


def payback_in_years(payback: PaybackValue, period_hours: Sequence[float]) -> PaybackValue:
    """Convert a fractional period index into years using actual period lengths."""
    if payback == PAYBACK_UNDEFINED:
        return PAYBACK_UNDEFINED
    whole = int(math.floor(payback))
    hours = sum(period_hours[:whole])
    if whole < len(period_hours):
        hours += (payback - whole) * period_hours[whole]
    return hours / HOURS_PER_YEAR


def compute_financial_metrics(
    periods: Sequence[PeriodResult],
    investment: float,
    finance: FinanceConfig,
    resale_value_usd: float = 0.0,
) -> FinancialMetrics:
    """Reduce a completed period series to ``FinancialMetrics``.

    ``resale_value_usd`` is the equipment value at horizon end.

    Break-even fields are left as None; ``run_projection`` fills them in.
    """
    cash_flows = [p.net_profit_usd for p in periods]
    hours = [p.hours for p in periods]
    times = discount_times(hours)
    rate = finance.discount_rate_annual
    nominal_hours = hours[0] if hours else 0.0

    with_resale = with_terminal_value(cash_flows, resale_value_usd)
    npv = compute_npv(with_resale, investment, rate, times)
    payback = compute_payback(cash_flows, investment)

    if payback == PAYBACK_UNDEFINED:
        logger.warning("cumulative profit never reaches zero; payback %s", PAYBACK_UNDEFINED)

    return FinancialMetrics(
        initial_investment_usd=investment,
        discount_rate_annual=rate,
        discount_rate_per_period=period_discount_rate(rate, nominal_hours),
        npv_usd=npv,
        irr=compute_irr(with_resale, investment, times, finance),
        payback_periods=payback,
        payback_years=payback_in_years(payback, hours),
        discounted_payback_periods=compute_discounted_payback(cash_flows, investment, rate, times),
        roi_pct=compute_roi_pct(cash_flows, investment),
        adjusted_roi_pct=compute_roi_pct(with_resale, investment),
        profitability_index=(npv + investment) / investment if investment > 0 else None,
        total_coin_mined=sum(p.coin_mined for p in periods),
        total_revenue_usd=sum(p.revenue_usd for p in periods),
        total_energy_cost_usd=sum(p.energy_cost_usd for p in periods),
        total_maintenance_usd=sum(p.maintenance_cost_usd for p in periods),
        total_fixed_cost_usd=sum(p.fixed_cost_usd for p in periods),
        total_net_profit_usd=sum(cash_flows),
        equipment_resale_value_usd=resale_value_usd,
    )
