"""
Error and warning taxonomy for the cost-distribution engine.

Every error carries the offending project id (when one is known) and the
parameters that triggered it, so that batch failures can be diagnosed without
re-running the simulation.
"""

from __future__ import annotations

from typing import Any, Dict, Mapping, Optional


class CostEngineError(ValueError):
    """
    Base class for engine errors.

    Attributes:
        project_id: Identifier of the offending project, or None for
            batch-level errors.
        params: Parameters that triggered the error.
    """

    def __init__(
        self,
        message: str,
        *,
        project_id: Optional[str] = None,
        params: Optional[Mapping[str, Any]] = None,
    ) -> None:
        super().__init__(message)
        self.project_id: Optional[str] = project_id
        self.params: Dict[str, Any] = dict(params or {})

    def __str__(self) -> str:
        base = super().__str__()
        if self.project_id is None:
            return base
        return f"[project {self.project_id!r}] {base}"

    def __reduce__(self):
        # Keyword-only constructor arguments are restored explicitly so that
        # errors survive the round trip from worker processes.
        message = str(self.args[0]) if self.args else ""
        return (_restore_error, (type(self), message, self.project_id, self.params))


def _restore_error(
    cls: type, message: str, project_id: Optional[str], params: Dict[str, Any]
) -> "CostEngineError":
    return cls(message, project_id=project_id, params=params)


class InvalidEstimateOrder(CostEngineError):
    """Raised when an estimate does not satisfy 0 < low < central < high."""


class InvalidRange(CostEngineError):
    """Raised when a model-specific parameter violates its precondition."""


class DegenerateDistribution(CostEngineError):
    """Raised when a weight vector cannot be normalised for sampling."""


class CalibrationTimeout(CostEngineError, RuntimeError):
    """Raised when the log-normal minimiser does not converge in time."""


class SimulationError(CostEngineError, RuntimeError):
    """
    Raised when a portfolio run produces no usable project.

    Attributes:
        failures: Mapping of project id to the error raised for that project.
    """

    def __init__(
        self,
        message: str,
        *,
        failures: Optional[Mapping[str, CostEngineError]] = None,
    ) -> None:
        super().__init__(message, params={"n_failures": len(failures or {})})
        self.failures: Dict[str, CostEngineError] = dict(failures or {})

    def __reduce__(self):
        message = str(self.args[0]) if self.args else ""
        return (_restore_simulation_error, (message, self.failures))


def _restore_simulation_error(
    message: str, failures: Dict[str, CostEngineError]
) -> SimulationError:
    return SimulationError(message, failures=failures)


class CalibrationImprecise(UserWarning):
    """
    Recoverable warning issued when calibration misses its coverage target.

    The best-effort parameters are carried on the warning so that callers
    escalating warnings to errors still have access to them.
    """

    def __init__(
        self,
        message: str,
        *,
        project_id: Optional[str],
        mu: float,
        sigma: float,
        coverage: float,
        residual: float,
    ) -> None:
        super().__init__(message)
        self.project_id: Optional[str] = project_id
        self.mu = float(mu)
        self.sigma = float(sigma)
        self.coverage = float(coverage)
        self.residual = float(residual)
