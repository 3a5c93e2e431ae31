"""Scenario orchestrator — deterministic projection as an explicit state machine.

  Initialized → Running(period i) → Completed
                        │
                        └──────────→ Failed(reason)

Each period follows this sequence:
  environment → generation (summed per array) → degradation-adjusted specs
  → dispatch → mining economics → age equipment → PeriodResult

A fatal error from any sub-model moves the run to ``Failed`` and
propagates.  No partial ``ProjectionResult`` is ever returned and nothing
is retried.

Entry point: ``run_projection(config, scenario)``
"""

from __future__ import annotations

import enum
import logging

from solar_mining_sim.config.limits import EngineLimits
from solar_mining_sim.config.scenario import Scenario
from solar_mining_sim.config.system import SystemConfiguration
from solar_mining_sim.engine.environment import EnvironmentalResolver
from solar_mining_sim.engine.periods import Period
from solar_mining_sim.engine.simulation import prepare_run, simulate_periods
from solar_mining_sim.errors import EngineError
from solar_mining_sim.finance.breakeven import solve_break_even
from solar_mining_sim.finance.metrics import compute_financial_metrics
from solar_mining_sim.models.results import ProjectionResult

logger = logging.getLogger(__name__)


class ProjectionState(str, enum.Enum):
    INITIALIZED = "initialized"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


class ProjectionRun:
    """One deterministic run of ``config`` under ``scenario``.

    The object is single-use: ``execute()`` may be called once.  Its
    ``state``, ``current_period`` and ``failure`` attributes describe
    where the run is or why it stopped.

    Parameters
    ----------
    config : SystemConfiguration
        Installed equipment, location, tariff, operating mode.
    scenario : Scenario
        Market / environmental assumptions and horizon.
    resolver : EnvironmentalResolver | None
        Defaults to ``ClimatologyResolver`` over the location's monthly normals.
    limits : EngineLimits | None
        Safety bounds checked before the first period.
    include_break_even : bool
        Solve break-even coin price and tariff (re-runs the period loop).
    """

    def __init__(
        self,
        config: SystemConfiguration,
        scenario: Scenario,
        resolver: EnvironmentalResolver | None = None,
        limits: EngineLimits | None = None,
        include_break_even: bool = True,
    ) -> None:
        self.config = config
        self.scenario = scenario
        self.resolver = resolver
        self.limits = limits
        self.include_break_even = include_break_even

        self.state = ProjectionState.INITIALIZED
        self.current_period: int | None = None
        self.failure: EngineError | None = None

    def _enter_period(self, period: Period) -> None:
        self.current_period = period.index

    def execute(self) -> ProjectionResult:
        if self.state is not ProjectionState.INITIALIZED:
            raise RuntimeError(f"projection already {self.state.value}")

        logger.info(
            "projection start: config=%r scenario=%r granularity=%s",
            self.config.name, self.scenario.name, self.scenario.horizon.granularity,
        )
        self.state = ProjectionState.RUNNING
        try:
            prepared = prepare_run(self.config, self.scenario, self.resolver, self.limits)
            periods, tracker = simulate_periods(
                self.config, self.scenario, prepared, on_period=self._enter_period,
            )

            metrics = compute_financial_metrics(
                periods, prepared.investment_usd, self.scenario.finance, tracker.resale_value_usd(),
            )
            if self.include_break_even:
                metrics = metrics.model_copy(update={
                    "break_even_coin_price_usd": solve_break_even(
                        self.config, self.scenario, prepared, "coin_price",
                    ),
                    "break_even_tariff_usd_per_kwh": solve_break_even(
                        self.config, self.scenario, prepared, "tariff",
                    ),
                })
        except EngineError as exc:
            self.state = ProjectionState.FAILED
            self.failure = exc
            logger.error(
                "projection failed at period %s: %s %s",
                self.current_period, exc.code, exc,
            )
            raise

        self.state = ProjectionState.COMPLETED
        logger.info(
            "projection complete: %d periods, NPV $%.2f, IRR %s",
            len(periods), metrics.npv_usd, metrics.irr,
        )
        return ProjectionResult(
            configuration_name=self.config.name,
            scenario_name=self.scenario.name,
            granularity=self.scenario.horizon.granularity,
            periods=periods,
            metrics=metrics,
        )


def run_projection(
    config: SystemConfiguration,
    scenario: Scenario,
    resolver: EnvironmentalResolver | None = None,
    limits: EngineLimits | None = None,
    include_break_even: bool = True,
) -> ProjectionResult:
    """Run one deterministic projection.

    Returns a complete ``ProjectionResult`` or raises an ``EngineError``
    (``InputUnavailable``, ``InvalidConfiguration``, ``ResourceExhausted``).
    """
    return ProjectionRun(config, scenario, resolver, limits, include_break_even).execute()
