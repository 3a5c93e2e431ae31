"""Period calendar — fixed-length buckets over the horizon.

Monthly periods are 365.25 / 12 days long rather than calendar months, so
the period count is exactly ``ceil((end − start) / period_length)``.  The
last period is truncated at the horizon end.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import datetime, timedelta

from solar_mining_sim.config.limits import EngineLimits
from solar_mining_sim.config.scenario import Horizon
from solar_mining_sim.config.units import HOURS_PER_YEAR
from solar_mining_sim.errors import InvalidConfiguration, ResourceExhausted

PERIOD_HOURS: dict[str, float] = {
    "hourly": 1.0,
    "daily": 24.0,
    "weekly": 168.0,
    "monthly": HOURS_PER_YEAR / 12,
}


@dataclass(frozen=True)
class Period:
    index: int
    start: datetime
    end: datetime
    hours: float
    elapsed_hours: float
    """Hours from horizon start to this period's start."""

    @property
    def midpoint(self) -> datetime:
        return self.start + (self.end - self.start) / 2


def count_periods(horizon: Horizon) -> int:
    total_hours = (horizon.end - horizon.start).total_seconds() / 3600.0
    if total_hours <= 0:
        return 0
    # Round away float noise before ceil so exact multiples don't gain a period.
    return math.ceil(round(total_hours / PERIOD_HOURS[horizon.granularity], 9))


def build_periods(horizon: Horizon, limits: EngineLimits | None = None) -> list[Period]:
    """Split the horizon into periods, failing fast on empty or runaway horizons."""
    limits = limits or EngineLimits()
    n = count_periods(horizon)
    if n <= 0:
        raise InvalidConfiguration(
            "horizon produces no periods",
            {"start": horizon.start.isoformat(), "end": horizon.end.isoformat()},
        )
    if n > limits.max_periods:
        raise ResourceExhausted(
            f"horizon needs {n} {horizon.granularity} periods; limit is {limits.max_periods}",
            {"periods": n, "max_periods": limits.max_periods},
        )

    step = PERIOD_HOURS[horizon.granularity]
    periods: list[Period] = []
    for i in range(n):
        start = horizon.start + timedelta(hours=step * i)
        end = min(horizon.start + timedelta(hours=step * (i + 1)), horizon.end)
        hours = (end - start).total_seconds() / 3600.0
        periods.append(Period(index=i, start=start, end=end, hours=hours, elapsed_hours=step * i))
    return periods
