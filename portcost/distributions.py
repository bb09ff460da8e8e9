"""
Distribution models mapping a project estimate to grid weights.

Each model answers the same query, `weights(estimate, grid)`, returning one
non-negative, unnormalised weight per grid point. Continuous densities are
evaluated on the integer grid; this discretisation is deliberate and sets the
output resolution to one cost unit.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Literal, Optional, Protocol, Tuple

import numpy as np
from scipy.stats import lognorm, norm

from portcost.calibration import (
    CalibrationResult,
    LogNormalParams,
    calibrate_lognormal,
)
from portcost.core import ProjectEstimate, SupportGrid
from portcost.errors import InvalidRange


ModelName = Literal["uniform", "normal_no_central", "normal_with_central", "lognormal"]

MODEL_NAMES: Tuple[str, ...] = (
    "uniform",
    "normal_no_central",
    "normal_with_central",
    "lognormal",
)


class DistributionModel(Protocol):
    """
    Capability shared by all models: evaluate weights against a grid.
    """

    name: str

    def weights(self, estimate: ProjectEstimate, grid: SupportGrid) -> np.ndarray:
        ...

    def parameters(self, estimate: ProjectEstimate) -> Dict[str, float]:
        ...


def _require_range(estimate: ProjectEstimate, model: str) -> None:
    if not float(estimate.low) < float(estimate.high):
        raise InvalidRange(
            f"{model} model requires low < high",
            project_id=str(estimate.id),
            params={"model": model, **estimate.as_dict()},
        )


def _normal_scale(estimate: ProjectEstimate) -> float:
    # (low, high) is read as an approximate 95% interval, i.e. +/- 2 sd.
    return float(estimate.spread) / 4.0


@dataclass(frozen=True)
class UniformModel:
    """
    Constant weight on [low, high], zero elsewhere.
    """

    name: str = "uniform"

    def parameters(self, estimate: ProjectEstimate) -> Dict[str, float]:
        _require_range(estimate, self.name)
        return {"low": float(estimate.low), "high": float(estimate.high)}

    def weights(self, estimate: ProjectEstimate, grid: SupportGrid) -> np.ndarray:
        p = self.parameters(estimate)
        x = grid.values
        inside = (x >= p["low"]) & (x <= p["high"])
        return inside.astype(np.float64)


@dataclass(frozen=True)
class NormalNoCentralModel:
    """
    Gaussian centred on the midpoint of (low, high); the central estimate is ignored.
    """

    name: str = "normal_no_central"

    def parameters(self, estimate: ProjectEstimate) -> Dict[str, float]:
        _require_range(estimate, self.name)
        loc = 0.5 * (float(estimate.low) + float(estimate.high))
        return {"mean": float(loc), "sd": _normal_scale(estimate)}

    def weights(self, estimate: ProjectEstimate, grid: SupportGrid) -> np.ndarray:
        p = self.parameters(estimate)
        return norm.pdf(grid.values, loc=p["mean"], scale=p["sd"])


@dataclass(frozen=True)
class NormalWithCentralModel:
    """
    Gaussian peaking at the central estimate with the same spread rule as
    NormalNoCentralModel.
    """

    name: str = "normal_with_central"

    def parameters(self, estimate: ProjectEstimate) -> Dict[str, float]:
        _require_range(estimate, self.name)
        return {"mean": float(estimate.central), "sd": _normal_scale(estimate)}

    def weights(self, estimate: ProjectEstimate, grid: SupportGrid) -> np.ndarray:
        p = self.parameters(estimate)
        return norm.pdf(grid.values, loc=p["mean"], scale=p["sd"])


@dataclass(frozen=True)
class LogNormalModel:
    """
    Right-skewed model with mode at the central estimate.

    Parameters are calibrated per project (see `portcost.calibration`), so the
    model carries the calibration settings rather than fitted values.
    """

    name: str = "lognormal"
    coverage_target: float = 0.95
    sigma_bounds: Tuple[float, float] = (0.0, 1.0)
    tolerance: float = 0.01
    maxiter: int = 500

    def calibrate(self, estimate: ProjectEstimate, *, warn: bool = True) -> CalibrationResult:
        return calibrate_lognormal(
            estimate,
            coverage_target=float(self.coverage_target),
            sigma_bounds=(float(self.sigma_bounds[0]), float(self.sigma_bounds[1])),
            tolerance=float(self.tolerance),
            maxiter=int(self.maxiter),
            warn=warn,
        )

    def parameters(self, estimate: ProjectEstimate) -> Dict[str, float]:
        params = self.calibrate(estimate).params
        return {"mu": float(params.mu), "sigma": float(params.sigma)}

    def weights(
        self,
        estimate: ProjectEstimate,
        grid: SupportGrid,
        params: Optional[LogNormalParams] = None,
    ) -> np.ndarray:
        """
        Log-normal density on the grid.

        When `params` is given, calibration is skipped and those parameters
        are used directly.
        """
        if params is None:
            params = self.calibrate(estimate).params
        return lognorm.pdf(grid.values, s=float(params.sigma), scale=params.scale)


_REGISTRY = {
    "uniform": UniformModel,
    "normal_no_central": NormalNoCentralModel,
    "normal_with_central": NormalWithCentralModel,
    "lognormal": LogNormalModel,
}


def get_model(name: str, **options: Any) -> DistributionModel:
    """
    Look up a model by name.

    Keyword options are forwarded to the model constructor; only the
    log-normal model accepts calibration options.

    Raises:
        ValueError: If the name is not recognised.
    """
    key = str(name).strip().lower()
    if key not in _REGISTRY:
        raise ValueError(
            f"Unknown distribution model: {name!r}; expected one of {list(MODEL_NAMES)}"
        )
    return _REGISTRY[key](**options)
