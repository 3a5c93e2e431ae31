"""Finance — NPV / IRR / payback, break-even, sensitivity and stress analysis.

Break-even, sensitivity and stress modules drive the engine and are
imported from their own modules to keep this package import-light.
"""

from solar_mining_sim.finance.rootfind import solve_root
from solar_mining_sim.finance.metrics import (
    compute_discounted_payback,
    compute_financial_metrics,
    compute_irr,
    compute_npv,
    compute_payback,
    compute_roi_pct,
)

__all__ = [
    "solve_root",
    "compute_discounted_payback",
    "compute_financial_metrics",
    "compute_irr",
    "compute_npv",
    "compute_payback",
    "compute_roi_pct",
]
