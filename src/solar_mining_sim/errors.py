"""Engine error taxonomy.

Fatal errors abort a run and propagate to the caller with no partial result:

  - ``InputUnavailable``      — a collaborator could not supply required data
  - ``InvalidConfiguration``  — inputs are structurally valid but unusable
  - ``ResourceExhausted``     — horizon or trial count exceeds safety bounds
  - ``RunCancelled``          — a Monte-Carlo batch was cancelled between trials

``NumericDivergence`` is raised by the root finder only.  The finance layer
catches it and reports a sentinel (``IRR_UNDETERMINED`` etc.) inside an
otherwise complete ``FinancialMetrics``.
"""

from __future__ import annotations

from typing import Any


class EngineError(RuntimeError):
    """Base class for every error raised by the projection engine."""

    code = "ENGINE_ERROR"

    def __init__(self, message: str, context: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.context: dict[str, Any] = dict(context or {})

    def to_dict(self) -> dict[str, Any]:
        return {
            "code": self.code,
            "message": str(self),
            "context": self.context,
        }


class InputUnavailable(EngineError):
    """Required environmental or market data could not be resolved."""

    code = "INPUT_UNAVAILABLE"


class InvalidConfiguration(EngineError):
    """Configuration or scenario values make the projection meaningless."""

    code = "INVALID_CONFIGURATION"


class NumericDivergence(EngineError):
    """An iterative solver failed to converge."""

    code = "NUMERIC_DIVERGENCE"


class ResourceExhausted(EngineError):
    """Requested work exceeds the configured safety bounds."""

    code = "RESOURCE_EXHAUSTED"


class RunCancelled(EngineError):
    """A Monte-Carlo batch observed its cancellation signal."""

    code = "RUN_CANCELLED"
