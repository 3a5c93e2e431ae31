"""Environmental resolver — location + period → irradiance, temperature, wind, cloud.

This is a boundary adapter.  Live weather is fetched by collaborators; the
engine only consumes resolved values.  ``ClimatologyResolver`` serves the
location's monthly climate normals, which is the cached/historical
fallback callers hand in when live data is unavailable.

Any failure of a resolver is an ``InputUnavailable`` error.  The engine
never retries.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, replace
from datetime import datetime
from typing import Protocol

from solar_mining_sim.config.scenario import EnvironmentalOverrides
from solar_mining_sim.config.system import Location
from solar_mining_sim.errors import InputUnavailable

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EnvironmentalConditions:
    irradiance_wh_m2: float
    """Horizontal irradiation accumulated over the period."""
    ambient_temp_c: float
    cloud_cover_pct: float
    wind_speed_ms: float
    sun_hours_per_day: float = 12.0


class EnvironmentalResolver(Protocol):
    def resolve(self, location: Location, start: datetime, end: datetime) -> EnvironmentalConditions:
        ...


def _next_month(moment: datetime) -> datetime:
    if moment.month == 12:
        return datetime(moment.year + 1, 1, 1, tzinfo=moment.tzinfo)
    return datetime(moment.year, moment.month + 1, 1, tzinfo=moment.tzinfo)


class ClimatologyResolver:
    """Resolve periods from the location's twelve monthly climate normals.

    A period spanning a month boundary is hour-weighted across the
    calendar months it overlaps.
    """

    def resolve(self, location: Location, start: datetime, end: datetime) -> EnvironmentalConditions:
        climate = location.monthly_climate
        if climate is None:
            raise InputUnavailable(
                f"no climate data for location {location.name!r}",
                {"location": location.name},
            )

        irradiance = 0.0
        weighted = {"temp": 0.0, "cloud": 0.0, "wind": 0.0, "sun": 0.0}
        total_hours = 0.0

        cursor = start
        while cursor < end:
            seg_end = min(_next_month(cursor), end)
            hours = (seg_end - cursor).total_seconds() / 3600.0
            month = climate[cursor.month - 1]
            irradiance += month.ghi_kwh_m2_day * 1000.0 * hours / 24.0
            weighted["temp"] += month.temperature_c * hours
            weighted["cloud"] += month.cloud_cover_pct * hours
            weighted["wind"] += month.wind_speed_ms * hours
            weighted["sun"] += month.sun_hours * hours
            total_hours += hours
            cursor = seg_end

        if total_hours <= 0:
            raise InputUnavailable("empty period", {"start": start.isoformat(), "end": end.isoformat()})

        return EnvironmentalConditions(
            irradiance_wh_m2=irradiance,
            ambient_temp_c=weighted["temp"] / total_hours,
            cloud_cover_pct=weighted["cloud"] / total_hours,
            wind_speed_ms=weighted["wind"] / total_hours,
            sun_hours_per_day=weighted["sun"] / total_hours,
        )


def _clear_sky_fraction(cloud_cover_pct: float) -> float:
    """Kasten–Czeplak: G / G_clear = 1 − 0.75 · C^3.4."""
    c = min(max(cloud_cover_pct, 0.0), 100.0) / 100.0
    return 1.0 - 0.75 * c ** 3.4


def apply_environmental_overrides(
    conditions: EnvironmentalConditions,
    overrides: EnvironmentalOverrides,
) -> EnvironmentalConditions:
    """Layer scenario adjustments over resolved conditions."""
    irradiance = conditions.irradiance_wh_m2 * overrides.irradiance_multiplier
    cloud = conditions.cloud_cover_pct
    if overrides.cloud_cover_adjustment_pct:
        new_cloud = min(max(cloud + overrides.cloud_cover_adjustment_pct, 0.0), 100.0)
        irradiance *= _clear_sky_fraction(new_cloud) / _clear_sky_fraction(cloud)
        cloud = new_cloud
    return replace(
        conditions,
        irradiance_wh_m2=max(irradiance, 0.0),
        ambient_temp_c=conditions.ambient_temp_c + overrides.temperature_offset_c,
        cloud_cover_pct=cloud,
    )


def resolve_environment(
    resolver: EnvironmentalResolver,
    location: Location,
    start: datetime,
    end: datetime,
    overrides: EnvironmentalOverrides,
) -> EnvironmentalConditions:
    """Resolve one period and apply the scenario overlay."""
    try:
        conditions = resolver.resolve(location, start, end)
    except InputUnavailable:
        raise
    except Exception as exc:
        raise InputUnavailable(
            f"environmental resolver failed: {exc}",
            {"location": location.name, "start": start.isoformat()},
        ) from exc

    values = (
        conditions.irradiance_wh_m2,
        conditions.ambient_temp_c,
        conditions.cloud_cover_pct,
        conditions.wind_speed_ms,
        conditions.sun_hours_per_day,
    )
    if any(not math.isfinite(v) for v in values):
        raise InputUnavailable(
            "environmental resolver returned non-finite values",
            {"location": location.name, "start": start.isoformat()},
        )

    logger.debug(
        "resolved %s → %.1f Wh/m², %.1f °C",
        start.isoformat(), conditions.irradiance_wh_m2, conditions.ambient_temp_c,
    )
    return apply_environmental_overrides(conditions, overrides)
