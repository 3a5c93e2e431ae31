"""Result models — projection output contracts."""

from solar_mining_sim.models.results import (
    BREAK_EVEN_UNDETERMINED,
    IRR_UNDETERMINED,
    PAYBACK_UNDEFINED,
    EquipmentSnapshot,
    FinancialMetrics,
    MonteCarloSummary,
    PercentileBand,
    PeriodResult,
    ProjectionResult,
)

__all__ = [
    "BREAK_EVEN_UNDETERMINED",
    "IRR_UNDETERMINED",
    "PAYBACK_UNDEFINED",
    "EquipmentSnapshot",
    "FinancialMetrics",
    "MonteCarloSummary",
    "PercentileBand",
    "PeriodResult",
    "ProjectionResult",
]
