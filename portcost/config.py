"""
Configuration objects for portfolio simulation runs.

In this module, a frozen configuration dataclass is provided as a stable,
typed surface for the recognised run options.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Literal, Tuple

from portcost.distributions import LogNormalModel


ErrorPolicy = Literal["raise", "omit"]
IntervalMethod = Literal["contiguous", "multimodal"]


@dataclass(frozen=True)
class SimulationConfig:
    """
    Configuration for a portfolio Monte Carlo run.
    """

    n_samples: int = 10_000
    seed: int = 123
    confidence_levels: Tuple[float, ...] = (0.95, 0.89)

    sigma_search_bounds: Tuple[float, float] = (0.0, 1.0)
    coverage_target: float = 0.95
    calibration_tolerance: float = 0.01
    calibration_maxiter: int = 500

    n_jobs: int = 1
    on_error: ErrorPolicy = "raise"
    interval_method: IntervalMethod = "contiguous"

    def validate(self) -> None:
        """
        Configuration validation is performed.
        """
        if int(self.n_samples) <= 0:
            raise ValueError("n_samples must be positive")
        if int(self.n_jobs) <= 0:
            raise ValueError("n_jobs must be positive")
        if int(self.seed) < 0:
            raise ValueError("seed must be non-negative")
        if isinstance(self.confidence_levels, (int, float, str)):
            raise ValueError("confidence_levels must be a sequence")
        if not self.confidence_levels:
            raise ValueError("confidence_levels cannot be empty")
        for level in self.confidence_levels:
            if not (0.0 < float(level) <= 1.0):
                raise ValueError("confidence_levels must lie in (0, 1]")

        lo, hi = self.sigma_search_bounds
        if float(lo) < 0.0 or float(hi) <= float(lo):
            raise ValueError("sigma_search_bounds must satisfy 0 <= lo < hi")
        if not (0.0 < float(self.coverage_target) < 1.0):
            raise ValueError("coverage_target must be between 0 and 1")
        if float(self.calibration_tolerance) <= 0.0:
            raise ValueError("calibration_tolerance must be positive")
        if int(self.calibration_maxiter) <= 0:
            raise ValueError("calibration_maxiter must be positive")

        if str(self.on_error) not in {"raise", "omit"}:
            raise ValueError("on_error must be 'raise' or 'omit'")
        if str(self.interval_method) not in {"contiguous", "multimodal"}:
            raise ValueError("interval_method is not recognised")

    def lognormal_model(self) -> LogNormalModel:
        """A log-normal model carrying this configuration's calibration settings."""
        return LogNormalModel(
            coverage_target=float(self.coverage_target),
            sigma_bounds=(
                float(self.sigma_search_bounds[0]),
                float(self.sigma_search_bounds[1]),
            ),
            tolerance=float(self.calibration_tolerance),
            maxiter=int(self.calibration_maxiter),
        )
