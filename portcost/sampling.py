"""
Weighted resampling of grid points for a single project.

Draws are taken with replacement from the support grid with probability
proportional to the model weights. Randomness is always supplied by the
caller as a seeded generator; process-wide random state is never read.
"""

from __future__ import annotations

import hashlib
from typing import Optional

import numpy as np

from portcost.core import ProjectEstimate, SupportGrid
from portcost.distributions import DistributionModel
from portcost.errors import DegenerateDistribution


def project_seed_sequence(seed: int, project_id: str) -> np.random.SeedSequence:
    """
    Independent, reproducible seed sequence for one project.

    The sequence depends only on the master seed and a stable digest of the
    project id, so draws do not change with batch order or worker count.
    """
    digest = hashlib.blake2b(str(project_id).encode("utf-8"), digest_size=8).digest()
    return np.random.SeedSequence([int(seed), int.from_bytes(digest, "little")])


def project_rng(seed: int, project_id: str) -> np.random.Generator:
    return np.random.Generator(np.random.PCG64(project_seed_sequence(seed, project_id)))


def normalise_weights(weights: np.ndarray, *, project_id: Optional[str] = None) -> np.ndarray:
    """
    Turn a weight vector into a probability vector.

    Raises:
        DegenerateDistribution: If any weight is negative or non-finite, or
            if no weight is strictly positive.
    """
    w = np.asarray(weights, dtype=np.float64)
    if w.ndim != 1:
        raise ValueError("weights must be 1D")
    if not np.all(np.isfinite(w)):
        raise DegenerateDistribution(
            "Weight vector contains non-finite values",
            project_id=project_id,
            params={"n_non_finite": int(np.sum(~np.isfinite(w)))},
        )
    if np.any(w < 0.0):
        raise DegenerateDistribution(
            "Weight vector contains negative values", project_id=project_id
        )
    total = float(np.sum(w))
    if total <= 0.0:
        raise DegenerateDistribution(
            "Weight vector has no strictly positive entry; cannot normalise",
            project_id=project_id,
            params={"grid_size": int(w.shape[0])},
        )
    return w / total


def draw_from_weights(
    grid: SupportGrid,
    weights: np.ndarray,
    n: int,
    *,
    rng: np.random.Generator,
    project_id: Optional[str] = None,
) -> np.ndarray:
    """
    Draw `n` grid values with replacement, proportionally to `weights`.
    """
    if int(n) <= 0:
        raise ValueError("n must be positive")
    if int(np.shape(weights)[0]) != grid.size:
        raise ValueError("weights must have one entry per grid point")
    p = normalise_weights(weights, project_id=project_id)
    return rng.choice(grid.values, size=int(n), replace=True, p=p)


def sample_project(
    model: DistributionModel,
    estimate: ProjectEstimate,
    grid: SupportGrid,
    n: int = 10_000,
    *,
    rng: np.random.Generator,
) -> np.ndarray:
    """
    Sample vector of length `n` for one project under `model`.

    Raises:
        InvalidEstimateOrder: If the estimate is not strictly ordered.
        InvalidRange: If the model's precondition fails.
        DegenerateDistribution: If the weights cannot be normalised.
    """
    estimate.validate()
    w = model.weights(estimate, grid)
    return draw_from_weights(grid, w, n, rng=rng, project_id=str(estimate.id))
