"""Physical quantities carried as explicit value + unit pairs.

Hashrates are never multiplied or divided by a guessed factor: every
conversion goes through ``Hashrate.to()``.
"""

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

HashrateUnit = Literal["H/s", "KH/s", "MH/s", "GH/s", "TH/s", "PH/s", "EH/s"]

HASHRATE_FACTORS: dict[str, float] = {
    "H/s": 1.0,
    "KH/s": 1e3,
    "MH/s": 1e6,
    "GH/s": 1e9,
    "TH/s": 1e12,
    "PH/s": 1e15,
    "EH/s": 1e18,
}

HOURS_PER_YEAR = 8_766.0
"""365.25 days × 24 h."""


class Hashrate(BaseModel):
    """A hashrate value tagged with its unit."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    value: float = Field(ge=0, description="Magnitude in ``unit``")
    unit: HashrateUnit = Field(default="TH/s", description="Unit of ``value``")

    def to(self, unit: HashrateUnit) -> float:
        """Return the magnitude expressed in ``unit``."""
        return self.value * HASHRATE_FACTORS[self.unit] / HASHRATE_FACTORS[unit]

    @property
    def th_s(self) -> float:
        return self.to("TH/s")

    @classmethod
    def from_hashes_per_second(cls, hashes: float, unit: HashrateUnit = "TH/s") -> "Hashrate":
        return cls(value=hashes / HASHRATE_FACTORS[unit], unit=unit)
