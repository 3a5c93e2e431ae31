"""Projection and calculation engine for solar-powered bitcoin mining systems."""

from solar_mining_sim.cache import projection_cache_key
from solar_mining_sim.engine.orchestrator import run_projection
from solar_mining_sim.engine.monte_carlo import run_monte_carlo
from solar_mining_sim.errors import (
    EngineError,
    InputUnavailable,
    InvalidConfiguration,
    NumericDivergence,
    ResourceExhausted,
    RunCancelled,
)
from solar_mining_sim.finance.sensitivity import run_sensitivity
from solar_mining_sim.finance.stress import run_stress_tests

__all__ = [
    "projection_cache_key",
    "run_projection",
    "run_monte_carlo",
    "run_sensitivity",
    "run_stress_tests",
    "EngineError",
    "InputUnavailable",
    "InvalidConfiguration",
    "NumericDivergence",
    "ResourceExhausted",
    "RunCancelled",
]
