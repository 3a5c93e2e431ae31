"""Engine — deterministic projection and stochastic Monte-Carlo computation logic."""

from solar_mining_sim.engine.periods import Period, build_periods
from solar_mining_sim.engine.environment import (
    ClimatologyResolver,
    EnvironmentalConditions,
    EnvironmentalResolver,
)
from solar_mining_sim.engine.generation import compute_generation
from solar_mining_sim.engine.degradation import DegradationTracker, retention_factor
from solar_mining_sim.engine.market import MarketPath, build_market_path
from solar_mining_sim.engine.dispatch import dispatch_energy
from solar_mining_sim.engine.economics import compute_economics
from solar_mining_sim.engine.orchestrator import ProjectionRun, ProjectionState, run_projection
from solar_mining_sim.engine.monte_carlo import run_monte_carlo

__all__ = [
    "Period",
    "build_periods",
    "ClimatologyResolver",
    "EnvironmentalConditions",
    "EnvironmentalResolver",
    "compute_generation",
    "DegradationTracker",
    "retention_factor",
    "MarketPath",
    "build_market_path",
    "dispatch_energy",
    "compute_economics",
    # Runs
    "ProjectionRun",
    "ProjectionState",
    "run_projection",
    "run_monte_carlo",
]
