"""Safety bounds checked before any computation starts."""

from pydantic import BaseModel, ConfigDict, Field


class EngineLimits(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    max_periods: int = Field(default=50_000, ge=1, description="Upper bound on periods per run")
    max_trials: int = Field(default=100_000, ge=1, description="Upper bound on Monte-Carlo trials")
    max_trial_periods: int = Field(
        default=50_000_000, ge=1,
        description="Upper bound on trials × periods.  Sizes the Monte-Carlo summary buffer (8 bytes per cell).",
    )
    max_concurrency: int = Field(default=4, ge=1, description="Worker threads for Monte-Carlo trials")
    max_in_flight: int = Field(
        default=16, ge=1,
        description="Trials submitted but not yet reduced.  Bounds peak memory.",
    )
