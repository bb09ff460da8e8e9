"""
Log-normal calibration from a (low, central, high) estimate.

The log-normal parameters are chosen so that:
  - the mode exp(mu - sigma^2) equals the central estimate, and
  - approximately `coverage_target` of the probability mass lies in [low, high].

The mode constraint fixes mu = ln(central) + sigma^2, which leaves a 1-D
search over sigma for CDF(high) - CDF(low) = coverage_target. Coverage is not
monotone in sigma when `low` sits close to `central`, so the search interval is
scanned on a coarse grid first. A bracketing cell is solved with brentq;
otherwise |coverage - coverage_target| is minimised around the best grid point.
"""

from __future__ import annotations

import math
import warnings
from dataclasses import dataclass
from typing import Optional, Tuple

import numpy as np
from scipy.optimize import brentq, minimize_scalar
from scipy.stats import lognorm

from portcost.core import ProjectEstimate
from portcost.errors import CalibrationImprecise, CalibrationTimeout, InvalidRange


_SIGMA_SCAN_POINTS = 201


@dataclass(frozen=True)
class LogNormalParams:
    """
    Log-space parameters of a log-normal distribution.
    """

    mu: float
    sigma: float

    @property
    def mode(self) -> float:
        return lognormal_mode(self.mu, self.sigma)

    @property
    def scale(self) -> float:
        """The `scale` argument expected by scipy.stats.lognorm."""
        return float(math.exp(self.mu))


@dataclass(frozen=True)
class CalibrationResult:
    """
    Outcome of one calibration attempt.

    The result is a deterministic description of the fit; `precise` is False
    when the residual exceeded the tolerance, in which case a
    CalibrationImprecise warning has also been issued.
    """

    project_id: str
    params: LogNormalParams
    coverage: float
    residual: float
    coverage_target: float
    n_evaluations: int
    converged: bool
    precise: bool


def lognormal_mode(mu: float, sigma: float) -> float:
    return float(math.exp(float(mu) - float(sigma) ** 2))


def lognormal_coverage(mu: float, sigma: float, low: float, high: float) -> float:
    """
    Probability mass of LogNormal(mu, sigma) inside [low, high].

    A non-positive sigma is treated as a point mass and yields zero coverage,
    so that minimisers can probe the lower search bound safely.
    """
    sigma = float(sigma)
    if not (sigma > 0.0) or not math.isfinite(sigma):
        return 0.0
    scale = math.exp(float(mu))
    upper = float(lognorm.cdf(float(high), s=sigma, scale=scale))
    lower = float(lognorm.cdf(float(low), s=sigma, scale=scale))
    return float(upper - lower)


def _mu_for_mode(central: float, sigma: float) -> float:
    return float(math.log(float(central)) + float(sigma) ** 2)


def _scan_coverage(
    low: float, central: float, high: float, target: float, lo_s: float, hi_s: float
) -> Tuple[np.ndarray, np.ndarray]:
    """Coverage minus target on a grid over the sigma search interval (NaN where sigma <= 0)."""
    grid = np.linspace(lo_s, hi_s, _SIGMA_SCAN_POINTS)
    gaps = np.full(grid.shape, np.nan)
    ok = grid > 0.0
    s = grid[ok]
    scale = np.exp(math.log(central) + s**2)
    cover = lognorm.cdf(high, s=s, scale=scale) - lognorm.cdf(low, s=s, scale=scale)
    gaps[ok] = cover - target
    return grid, gaps


def _first_bracket(grid: np.ndarray, gaps: np.ndarray) -> Optional[int]:
    """Index i of the first cell [grid[i], grid[i + 1]] over which the gap changes sign."""
    for i in range(grid.size - 1):
        a, b = gaps[i], gaps[i + 1]
        if np.isnan(a) or np.isnan(b):
            continue
        if a == 0.0 or a * b < 0.0:
            return i
    if grid.size and gaps[-1] == 0.0:
        return grid.size - 1
    return None


def calibrate_lognormal(
    estimate: ProjectEstimate,
    *,
    coverage_target: float = 0.95,
    sigma_bounds: Tuple[float, float] = (0.0, 1.0),
    tolerance: float = 0.01,
    maxiter: int = 500,
    xatol: float = 1e-10,
    warn: bool = True,
) -> CalibrationResult:
    """
    Calibrate (mu, sigma) for one project.

    Args:
        estimate: Validated project estimate.
        coverage_target: Target probability mass inside [low, high].
        sigma_bounds: Search interval for sigma. Values outside are not searched.
        tolerance: Maximum acceptable |coverage - coverage_target|.
        maxiter: Iteration budget of the root finder or bounded minimiser.
        xatol: Absolute convergence tolerance on sigma.
        warn: Whether to issue CalibrationImprecise when the residual is too large.

    Returns:
        CalibrationResult with the best-effort parameters.

    Raises:
        InvalidRange: If the calibration settings are unusable.
        CalibrationTimeout: If the search does not converge within maxiter.

    Warns:
        CalibrationImprecise: If the achieved residual exceeds `tolerance`.
    """
    pid = str(estimate.id)
    lo_s, hi_s = float(sigma_bounds[0]), float(sigma_bounds[1])
    settings = {
        "coverage_target": float(coverage_target),
        "sigma_bounds": (lo_s, hi_s),
        **estimate.as_dict(),
    }
    if not (0.0 < float(coverage_target) < 1.0):
        raise InvalidRange(
            "coverage_target must be between 0 and 1", project_id=pid, params=settings
        )
    if lo_s < 0.0 or hi_s <= lo_s:
        raise InvalidRange(
            "sigma_bounds must satisfy 0 <= lo < hi", project_id=pid, params=settings
        )

    low = float(estimate.low)
    central = float(estimate.central)
    high = float(estimate.high)
    target = float(coverage_target)

    def excess(sigma: float) -> float:
        mu = _mu_for_mode(central, sigma)
        return lognormal_coverage(mu, sigma, low, high) - target

    grid, gaps = _scan_coverage(low, central, high, target, lo_s, hi_s)
    n_evaluations = int(grid.size)

    bracket = _first_bracket(grid, gaps)
    if bracket is not None and gaps[bracket] == 0.0:
        sigma = float(grid[bracket])
    elif bracket is not None:
        root, info = brentq(
            excess,
            float(grid[bracket]),
            float(grid[bracket + 1]),
            xtol=float(xatol),
            maxiter=int(maxiter),
            full_output=True,
            disp=False,
        )
        n_evaluations += int(info.function_calls)
        if not bool(info.converged):
            raise CalibrationTimeout(
                f"Log-normal calibration did not converge in {int(maxiter)} iterations: "
                f"{info.flag}",
                project_id=pid,
                params={**settings, "maxiter": int(maxiter), "sigma": float(root)},
            )
        sigma = float(root)
    else:
        best = int(np.nanargmin(np.abs(gaps)))
        res = minimize_scalar(
            lambda s: abs(excess(s)),
            bounds=(float(grid[max(best - 1, 0)]), float(grid[min(best + 1, grid.size - 1)])),
            method="bounded",
            options={"maxiter": int(maxiter), "xatol": float(xatol)},
        )
        n_evaluations += int(getattr(res, "nfev", 0))
        if not bool(res.success):
            raise CalibrationTimeout(
                f"Log-normal calibration did not converge in {int(maxiter)} iterations: "
                f"{getattr(res, 'message', '')}",
                project_id=pid,
                params={**settings, "maxiter": int(maxiter), "sigma": float(res.x)},
            )
        sigma = float(res.x)
        # The bounded minimiser never returns an endpoint; keep the grid point if it is better.
        if abs(excess(sigma)) > abs(float(gaps[best])):
            sigma = float(grid[best])

    mu = _mu_for_mode(central, sigma)
    coverage = lognormal_coverage(mu, sigma, low, high)
    residual = float(abs(coverage - target))

    result = CalibrationResult(
        project_id=pid,
        params=LogNormalParams(mu=float(mu), sigma=float(sigma)),
        coverage=float(coverage),
        residual=float(residual),
        coverage_target=float(target),
        n_evaluations=n_evaluations,
        converged=True,
        precise=bool(residual <= float(tolerance)),
    )
    if warn:
        warn_if_imprecise(result, stacklevel=3)
    return result


def warn_if_imprecise(result: CalibrationResult, *, stacklevel: int = 2) -> None:
    """
    Issue a CalibrationImprecise warning for an imprecise result.

    Calibrations performed in worker processes are run with `warn=False` and
    reported through this function in the parent process.
    """
    if result.precise:
        return
    warnings.warn(
        CalibrationImprecise(
            f"Log-normal calibration for project {result.project_id!r} reached "
            f"coverage {result.coverage:.4f} (target {result.coverage_target:.4f}, "
            f"residual {result.residual:.4f}); the sigma search interval may be "
            "too narrow for this spread.",
            project_id=result.project_id,
            mu=result.params.mu,
            sigma=result.params.sigma,
            coverage=result.coverage,
            residual=result.residual,
        ),
        stacklevel=int(stacklevel),
    )
