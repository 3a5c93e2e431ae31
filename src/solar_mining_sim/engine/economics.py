"""Mining economics — hashrate share → coin mined → revenue, costs, net profit.

  miner_share       = effective_hashrate / network_hashrate     (both TH/s)
  blocks_per_period = period_hours × 3600 / avg_block_time_seconds
  coin_mined        = blocks_per_period × block_reward × miner_share
  revenue           = coin_mined × coin_price
  energy_cost       = grid_import_kwh × tariff
  export_credit     = exported_kwh × net_metering_rate   (net metering only)
  fixed_cost        = insurance + property tax for the period
  net_profit        = revenue − energy_cost + export_credit − maintenance − fixed_cost

Zero network hashrate or non-positive block time is corrupted upstream
data → ``InvalidConfiguration``, never a silent zero.
"""

from __future__ import annotations

from dataclasses import dataclass

from solar_mining_sim.errors import InvalidConfiguration


@dataclass(frozen=True)
class EconomicsResult:
    miner_share: float
    blocks_per_period: float
    coin_mined: float
    revenue_usd: float
    energy_cost_usd: float
    export_credit_usd: float
    maintenance_usd: float
    fixed_cost_usd: float = 0.0

    @property
    def cost_usd(self) -> float:
        return self.energy_cost_usd - self.export_credit_usd + self.maintenance_usd + self.fixed_cost_usd

    @property
    def net_profit_usd(self) -> float:
        return self.revenue_usd - self.cost_usd


def blocks_per_period(period_hours: float, avg_block_time_seconds: float) -> float:
    if avg_block_time_seconds <= 0:
        raise InvalidConfiguration(
            "average block time must be positive",
            {"avg_block_time_seconds": avg_block_time_seconds},
        )
    return period_hours * 3600.0 / avg_block_time_seconds


def miner_share(effective_hashrate_th_s: float, network_hashrate_th_s: float) -> float:
    """Fleet share of network hashrate.  Both values must already be in TH/s."""
    if network_hashrate_th_s <= 0:
        raise InvalidConfiguration(
            "network hashrate must be positive",
            {"network_hashrate_th_s": network_hashrate_th_s},
        )
    share = effective_hashrate_th_s / network_hashrate_th_s
    if share > 1.0:
        raise InvalidConfiguration(
            "fleet hashrate exceeds network hashrate; check hashrate units",
            {"effective_hashrate_th_s": effective_hashrate_th_s, "network_hashrate_th_s": network_hashrate_th_s},
        )
    return share


def compute_economics(
    effective_hashrate_th_s: float,
    network_hashrate_th_s: float,
    block_reward: float,
    avg_block_time_seconds: float,
    period_hours: float,
    coin_price_usd: float,
    grid_import_kwh: float,
    tariff_usd_per_kwh: float,
    exported_kwh: float = 0.0,
    net_metering_rate_usd_per_kwh: float = 0.0,
    net_metering_enabled: bool = False,
    maintenance_usd: float = 0.0,
    fixed_cost_usd: float = 0.0,
) -> EconomicsResult:
    """Revenue and costs for one period."""
    share = miner_share(effective_hashrate_th_s, network_hashrate_th_s)
    blocks = blocks_per_period(period_hours, avg_block_time_seconds)
    coin = blocks * block_reward * share
    credit = exported_kwh * net_metering_rate_usd_per_kwh if net_metering_enabled else 0.0

    return EconomicsResult(
        miner_share=share,
        blocks_per_period=blocks,
        coin_mined=coin,
        revenue_usd=coin * coin_price_usd,
        energy_cost_usd=grid_import_kwh * tariff_usd_per_kwh,
        export_credit_usd=credit,
        maintenance_usd=maintenance_usd,
        fixed_cost_usd=fixed_cost_usd,
    )
