"""
Self-contained example data for portfolio cost simulation.

This module provides:
  - EXAMPLE_PORTFOLIO: a three-project reference portfolio used in the
    documentation and the end-to-end tests.
  - A seeded generator of synthetic portfolios with realistic right-skewed
    (low, central, high) estimates, for demos and benchmarks.
"""

from __future__ import annotations

from typing import List, Tuple

import numpy as np

from portcost.core import ProjectEstimate


EXAMPLE_PORTFOLIO: Tuple[ProjectEstimate, ...] = (
    ProjectEstimate(id="P1", low=50.0, central=120.0, high=250.0),
    ProjectEstimate(id="P2", low=80.0, central=150.0, high=300.0),
    ProjectEstimate(id="P3", low=40.0, central=90.0, high=200.0),
)


def example_estimates() -> List[ProjectEstimate]:
    """Return a fresh list holding the example portfolio."""
    return list(EXAMPLE_PORTFOLIO)


def synthetic_portfolio(
    n_projects: int,
    *,
    seed: int = 0,
    median_central: float = 100.0,
    central_log_sd: float = 0.6,
    low_ratio: Tuple[float, float] = (0.4, 0.8),
    high_ratio: Tuple[float, float] = (1.3, 2.5),
    id_prefix: str = "S",
) -> List[ProjectEstimate]:
    """
    Generate a reproducible synthetic portfolio.

    Central estimates are log-normally distributed around `median_central`;
    low and high estimates are drawn as multiplicative ratios of the central
    estimate. Values are rounded to whole cost units while keeping the
    ordering strict.

    Args:
        n_projects: Number of projects to generate.
        seed: Seed for the generator.
        median_central: Median of the central estimates.
        central_log_sd: Log-scale spread of the central estimates.
        low_ratio: Range of low / central.
        high_ratio: Range of high / central.
        id_prefix: Prefix for generated project ids.

    Returns:
        List of ProjectEstimate records.
    """
    n_projects = int(n_projects)
    if n_projects <= 0:
        raise ValueError("n_projects must be positive")
    if float(median_central) <= 0.0:
        raise ValueError("median_central must be positive")
    if not (0.0 < float(low_ratio[0]) <= float(low_ratio[1]) < 1.0):
        raise ValueError("low_ratio must satisfy 0 < lo <= hi < 1")
    if not (1.0 < float(high_ratio[0]) <= float(high_ratio[1])):
        raise ValueError("high_ratio must satisfy 1 < lo <= hi")

    rng = np.random.default_rng(int(seed))
    centrals = rng.lognormal(np.log(float(median_central)), float(central_log_sd), size=n_projects)
    lows = rng.uniform(float(low_ratio[0]), float(low_ratio[1]), size=n_projects)
    highs = rng.uniform(float(high_ratio[0]), float(high_ratio[1]), size=n_projects)

    width = max(3, len(str(n_projects - 1)))
    out: List[ProjectEstimate] = []
    for i in range(n_projects):
        central = max(3.0, float(np.round(centrals[i])))
        low = float(np.clip(np.round(central * lows[i]), 1.0, central - 1.0))
        high = float(max(np.round(central * highs[i]), central + 1.0))
        out.append(
            ProjectEstimate(id=f"{id_prefix}{i:0{width}d}", low=low, central=central, high=high)
        )
    return out
