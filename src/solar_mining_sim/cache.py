"""Content-addressed cache keys for projection results.

The engine itself never caches.  Callers that want to reuse a
``ProjectionResult`` key it by the inputs that fully determine it.
"""

from __future__ import annotations

import hashlib

from solar_mining_sim.config.scenario import Scenario
from solar_mining_sim.config.system import SystemConfiguration


def projection_cache_key(config: SystemConfiguration, scenario: Scenario) -> str:
    """SHA-256 hex digest over the canonical JSON of ``config`` and ``scenario``."""
    digest = hashlib.sha256()
    digest.update(config.model_dump_json().encode("utf-8"))
    digest.update(b"\x00")
    digest.update(scenario.model_dump_json().encode("utf-8"))
    return digest.hexdigest()
