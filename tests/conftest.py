"""Shared test fixtures — one 400 W panel + one 100 TH/s miner at a sunny site."""

from __future__ import annotations

from datetime import datetime

import pytest

from solar_mining_sim.config import (
    GenerationArray,
    GenerationUnitSpec,
    Hashrate,
    Horizon,
    Location,
    MarketSnapshot,
    MinerFleet,
    MiningUnitSpec,
    MonthlyClimate,
    Scenario,
    StorageBank,
    StorageUnitSpec,
    SystemConfiguration,
    TariffConfig,
)

# Seasonal normals, January first (northern-hemisphere desert site)
GHI = [3.5, 4.4, 5.6, 6.8, 7.6, 8.0, 7.6, 7.0, 6.2, 5.0, 3.8, 3.2]
TEMP = [12.0, 14.0, 17.0, 21.0, 26.0, 31.0, 34.0, 33.0, 29.0, 23.0, 16.0, 11.0]


@pytest.fixture
def climate() -> list[MonthlyClimate]:
    return [
        MonthlyClimate(ghi_kwh_m2_day=g, temperature_c=t, cloud_cover_pct=20.0, sun_hours=12.0)
        for g, t in zip(GHI, TEMP)
    ]


@pytest.fixture
def location(climate: list[MonthlyClimate]) -> Location:
    return Location(
        name="Desert Test Site",
        latitude=33.4,
        longitude=-112.0,
        elevation_m=340.0,
        timezone="America/Phoenix",
        monthly_climate=climate,
    )


@pytest.fixture
def panel() -> GenerationUnitSpec:
    return GenerationUnitSpec(
        name="400W Mono",
        rated_power_w=400.0,
        efficiency=0.22,
        temp_coefficient_per_c=-0.003,
        annual_degradation_rate=0.005,
        unit_cost_usd=200.0,
    )


@pytest.fixture
def miner() -> MiningUnitSpec:
    return MiningUnitSpec(
        name="Test 100T",
        hashrate=Hashrate(value=100.0, unit="TH/s"),
        power_w=3_000.0,
        efficiency_j_per_th=30.0,
        hashrate_degradation_annual=0.05,
        efficiency_degradation_annual=0.03,
        failure_rate_annual=0.10,
        unit_cost_usd=2_000.0,
        maintenance_usd_per_year=60.0,
    )


@pytest.fixture
def battery() -> StorageUnitSpec:
    return StorageUnitSpec(
        name="Test LFP",
        capacity_kwh=13.5,
        usable_capacity_kwh=13.0,
        max_charge_kw=5.0,
        max_discharge_kw=5.0,
        round_trip_efficiency=0.90,
        unit_cost_usd=8_000.0,
    )


@pytest.fixture
def config(location: Location, panel: GenerationUnitSpec, miner: MiningUnitSpec) -> SystemConfiguration:
    """Single panel + single miner, grid-assisted, $0.10/kWh."""
    return SystemConfiguration(
        name="Single panel rig",
        location=location,
        tariff=TariffConfig(rate_usd_per_kwh=0.10),
        operating_mode="grid-assisted",
        equipment=[
            GenerationArray(spec=panel, quantity=1),
            MinerFleet(spec=miner, quantity=1),
        ],
    )


@pytest.fixture
def solar_farm_config(
    location: Location,
    panel: GenerationUnitSpec,
    miner: MiningUnitSpec,
    battery: StorageUnitSpec,
) -> SystemConfiguration:
    """Enough panels to export by day, plus storage, hybrid mode."""
    return SystemConfiguration(
        name="Hybrid farm",
        location=location,
        tariff=TariffConfig(
            rate_usd_per_kwh=0.12,
            net_metering_enabled=True,
            net_metering_rate_usd_per_kwh=0.05,
        ),
        operating_mode="hybrid-with-storage",
        equipment=[
            GenerationArray(spec=panel, quantity=60),
            StorageBank(spec=battery, quantity=2, initial_soc=0.5),
            MinerFleet(spec=miner, quantity=1),
        ],
    )


@pytest.fixture
def snapshot() -> MarketSnapshot:
    return MarketSnapshot(
        coin_price_usd=50_000.0,
        network_difficulty=8.0e13,
        network_hashrate=Hashrate(value=600.0, unit="EH/s"),
        block_reward=3.125,
    )


@pytest.fixture
def horizon() -> Horizon:
    """12 monthly periods (last one truncated to 724.5 h)."""
    return Horizon(start=datetime(2025, 1, 1), end=datetime(2026, 1, 1), granularity="monthly")


@pytest.fixture
def scenario(snapshot: MarketSnapshot, horizon: Horizon) -> Scenario:
    return Scenario.baseline(snapshot, horizon, name="flat 50k")


@pytest.fixture
def profitable_scenario(scenario: Scenario) -> Scenario:
    """Coin price high enough to pay the rig back within the year."""
    return scenario.model_copy(update={
        "name": "flat 250k",
        "market": scenario.market.model_copy(update={"coin_price_usd": 250_000.0}),
    })
