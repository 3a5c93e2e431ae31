"""Tests for engine/periods.py — period calendar and runaway-horizon guard."""

from __future__ import annotations

from datetime import datetime

import pytest

from solar_mining_sim.config import EngineLimits, Horizon
from solar_mining_sim.engine.periods import PERIOD_HOURS, build_periods, count_periods
from solar_mining_sim.errors import InvalidConfiguration, ResourceExhausted


class TestBuildPeriods:
    def test_one_year_monthly_is_twelve(self, horizon: Horizon):
        periods = build_periods(horizon)
        assert len(periods) == 12
        assert [p.index for p in periods] == list(range(12))

    def test_last_period_truncated(self, horizon: Horizon):
        periods = build_periods(horizon)
        assert periods[0].hours == pytest.approx(730.5)
        assert periods[-1].hours == pytest.approx(8760.0 - 11 * 730.5)
        assert periods[-1].end == horizon.end

    def test_periods_are_contiguous(self, horizon: Horizon):
        periods = build_periods(horizon)
        for prev, nxt in zip(periods, periods[1:]):
            assert prev.end == nxt.start
        assert sum(p.hours for p in periods) == pytest.approx(8760.0)

    def test_exact_multiple_gets_no_extra_period(self):
        h = Horizon(start=datetime(2025, 1, 1), end=datetime(2025, 1, 8), granularity="daily")
        periods = build_periods(h)
        assert len(periods) == 7
        assert all(p.hours == 24.0 for p in periods)

    def test_elapsed_hours(self):
        h = Horizon(start=datetime(2025, 1, 1), end=datetime(2025, 2, 1), granularity="weekly")
        periods = build_periods(h)
        assert [p.elapsed_hours for p in periods[:3]] == [0.0, 168.0, 336.0]

    def test_empty_horizon_is_invalid(self):
        h = Horizon(start=datetime(2025, 1, 1), end=datetime(2025, 1, 1))
        with pytest.raises(InvalidConfiguration):
            build_periods(h)

    def test_reversed_horizon_is_invalid(self):
        h = Horizon(start=datetime(2026, 1, 1), end=datetime(2025, 1, 1))
        assert count_periods(h) == 0
        with pytest.raises(InvalidConfiguration):
            build_periods(h)

    def test_decade_hourly_exceeds_limit(self):
        h = Horizon(start=datetime(2025, 1, 1), end=datetime(2035, 1, 1), granularity="hourly")
        with pytest.raises(ResourceExhausted) as exc_info:
            build_periods(h)
        assert exc_info.value.context["max_periods"] == 50_000

    def test_custom_limit(self, horizon: Horizon):
        with pytest.raises(ResourceExhausted):
            build_periods(horizon, EngineLimits(max_periods=6))

    def test_period_lengths(self):
        assert PERIOD_HOURS["monthly"] * 12 == pytest.approx(8766.0)
        assert PERIOD_HOURS["weekly"] == 168.0
