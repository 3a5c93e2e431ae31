"""Monte-Carlo simulator — N independent stochastic trials of one projection.

Each trial gets its own ``np.random.Generator`` spawned from the top-level
seed (``SeedSequence.spawn``), so a trial's draws depend only on
``(seed, trial_index)`` and never on scheduling.  Trials run on a thread
pool; at most ``max_in_flight`` are submitted but not yet reduced, and a
finished trial is reduced to a few scalars plus its cumulative-profit
row before its period series is dropped.

Cancellation is cooperative: ``cancel_event`` is checked between trial
submissions and after each completion, never mid-trial.

Entry point: ``run_monte_carlo(config, scenario, trial_count, seed)``
"""

from __future__ import annotations

import logging
import threading
from concurrent.futures import FIRST_COMPLETED, Future, ThreadPoolExecutor, wait
from dataclasses import dataclass

import numpy as np

from solar_mining_sim.config.limits import EngineLimits
from solar_mining_sim.config.scenario import Scenario
from solar_mining_sim.config.system import SystemConfiguration
from solar_mining_sim.engine.environment import EnvironmentalResolver
from solar_mining_sim.engine.market import perturb_market_path
from solar_mining_sim.engine.periods import build_periods
from solar_mining_sim.engine.simulation import PreparedRun, prepare_run, simulate_periods
from solar_mining_sim.errors import InvalidConfiguration, ResourceExhausted, RunCancelled
from solar_mining_sim.finance.metrics import (
    compute_irr,
    compute_npv,
    compute_roi_pct,
    discount_times,
    with_terminal_value,
)
from solar_mining_sim.models.results import IRR_UNDETERMINED, MonteCarloSummary, PercentileBand

logger = logging.getLogger(__name__)

PERCENTILES = (5, 25, 50, 75, 95)


@dataclass(frozen=True)
class TrialOutcome:
    """What survives of one trial after reduction."""

    npv_usd: float
    irr: float | None
    roi_pct: float
    cumulative_profit: np.ndarray
    miner_failures: float


def percentile_band(values: np.ndarray) -> PercentileBand:
    p5, p25, p50, p75, p95 = (float(v) for v in np.percentile(values, PERCENTILES))
    return PercentileBand(p5=p5, p25=p25, p50=p50, p75=p75, p95=p95)


def _run_trial(
    config: SystemConfiguration,
    scenario: Scenario,
    prepared: PreparedRun,
    seed_seq: np.random.SeedSequence,
) -> TrialOutcome:
    rng = np.random.default_rng(seed_seq)
    stochastic = scenario.stochastic
    path = perturb_market_path(prepared.path, prepared.periods, stochastic, rng)
    periods, tracker = simulate_periods(
        config,
        scenario,
        prepared,
        path=path,
        rng=rng if stochastic.sample_failures else None,
    )

    operating = [p.net_profit_usd for p in periods]
    cash_flows = with_terminal_value(operating, tracker.resale_value_usd())
    times = discount_times([p.hours for p in periods])
    investment = prepared.investment_usd
    irr = compute_irr(cash_flows, investment, times, scenario.finance)

    return TrialOutcome(
        npv_usd=compute_npv(cash_flows, investment, scenario.finance.discount_rate_annual, times),
        irr=None if irr == IRR_UNDETERMINED else float(irr),
        roi_pct=compute_roi_pct(operating, investment),
        cumulative_profit=np.array([p.cumulative_profit_usd for p in periods], dtype=np.float64),
        miner_failures=tracker.failed_miner_units,
    )


def run_monte_carlo(
    config: SystemConfiguration,
    scenario: Scenario,
    trial_count: int = 1000,
    seed: int = 42,
    resolver: EnvironmentalResolver | None = None,
    limits: EngineLimits | None = None,
    cancel_event: threading.Event | None = None,
) -> MonteCarloSummary:
    """Run ``trial_count`` stochastic trials and aggregate percentile bands.

    Parameters
    ----------
    trial_count : int
        Number of independent trials (≥ 1, ≤ ``limits.max_trials``).
    seed : int
        Top-level seed.  Same seed + same inputs ⇒ identical summary.
    cancel_event : threading.Event | None
        When set, no further trials start and ``RunCancelled`` is raised.

    Raises
    ------
    ResourceExhausted
        ``trial_count``, the horizon, or trials × periods exceeds ``limits``,
        before any trial runs.
    InvalidConfiguration, InputUnavailable
        From setup or from any trial; remaining trials are cancelled.
    RunCancelled
        ``cancel_event`` was observed between trials.
    """
    limits = limits or EngineLimits()
    if trial_count < 1:
        raise InvalidConfiguration("trial_count must be at least 1", {"trial_count": trial_count})
    if trial_count > limits.max_trials:
        raise ResourceExhausted(
            f"{trial_count} trials requested; limit is {limits.max_trials}",
            {"trial_count": trial_count, "max_trials": limits.max_trials},
        )

    n_periods = len(build_periods(scenario.horizon, limits))
    if trial_count * n_periods > limits.max_trial_periods:
        raise ResourceExhausted(
            f"{trial_count} trials × {n_periods} periods exceeds the limit of {limits.max_trial_periods}",
            {
                "trial_count": trial_count,
                "n_periods": n_periods,
                "max_trial_periods": limits.max_trial_periods,
            },
        )

    prepared = prepare_run(config, scenario, resolver, limits)
    logger.info(
        "monte carlo start: %d trials × %d periods, seed=%d, workers=%d",
        trial_count, n_periods, seed, limits.max_concurrency,
    )

    seeds = np.random.SeedSequence(seed).spawn(trial_count)

    # ── Summary accumulators ────────────────────────────────────────────
    npv = np.empty(trial_count, dtype=np.float64)
    roi = np.empty(trial_count, dtype=np.float64)
    irr = np.full(trial_count, np.nan, dtype=np.float64)
    failures = np.empty(trial_count, dtype=np.float64)
    cumulative = np.empty((trial_count, n_periods), dtype=np.float64)

    def cancelled() -> bool:
        return cancel_event is not None and cancel_event.is_set()

    completed = 0
    next_trial = 0
    pending: dict[Future, int] = {}

    with ThreadPoolExecutor(max_workers=min(limits.max_concurrency, trial_count)) as executor:
        try:
            while next_trial < trial_count or pending:
                while next_trial < trial_count and len(pending) < limits.max_in_flight:
                    if cancelled():
                        break
                    future = executor.submit(_run_trial, config, scenario, prepared, seeds[next_trial])
                    pending[future] = next_trial
                    next_trial += 1

                if cancelled():
                    raise RunCancelled(
                        f"monte carlo cancelled after {completed} of {trial_count} trials",
                        {"completed_trials": completed, "trial_count": trial_count},
                    )

                done, _ = wait(pending, return_when=FIRST_COMPLETED)
                for future in done:
                    i = pending.pop(future)
                    outcome = future.result()
                    npv[i] = outcome.npv_usd
                    roi[i] = outcome.roi_pct
                    if outcome.irr is not None:
                        irr[i] = outcome.irr
                    failures[i] = outcome.miner_failures
                    cumulative[i] = outcome.cumulative_profit
                    completed += 1
        except BaseException:
            for future in pending:
                future.cancel()
            raise

    # ── Aggregate ───────────────────────────────────────────────────────
    determined = irr[~np.isnan(irr)]
    undetermined_fraction = 1.0 - len(determined) / trial_count
    if undetermined_fraction > 0:
        logger.warning("IRR undetermined in %.1f%% of trials", undetermined_fraction * 100)

    bands = np.percentile(cumulative, PERCENTILES, axis=0)
    cumulative_bands = [
        PercentileBand(
            p5=float(bands[0, t]),
            p25=float(bands[1, t]),
            p50=float(bands[2, t]),
            p75=float(bands[3, t]),
            p95=float(bands[4, t]),
        )
        for t in range(n_periods)
    ]

    npv_band = percentile_band(npv)
    summary = MonteCarloSummary(
        configuration_name=config.name,
        scenario_name=scenario.name,
        num_trials=trial_count,
        seed=seed,
        npv=npv_band,
        roi_pct=percentile_band(roi),
        irr=percentile_band(determined) if len(determined) else None,
        irr_undetermined_fraction=undetermined_fraction,
        cumulative_profit=cumulative_bands,
        probability_of_loss=float(np.mean(npv < 0)),
        expected_npv_usd=float(npv.mean()),
        value_at_risk_95_usd=npv_band.p5,
        mean_miner_failures=float(failures.mean()),
    )
    logger.info(
        "monte carlo complete: NPV p50 $%.2f, P(loss) %.1f%%",
        summary.npv.p50, summary.probability_of_loss * 100,
    )
    return summary
