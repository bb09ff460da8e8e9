"""
Core data structures for portfolio cost simulation.

This module provides ProjectEstimate for a single (low, central, high) cost
record and SupportGrid for the shared integer-valued domain over which every
distribution model is evaluated.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Dict, Iterable, Sequence, Tuple

import numpy as np

from portcost.errors import InvalidEstimateOrder


@dataclass(frozen=True)
class ProjectEstimate:
    """
    Analyst cost estimate for a single project.

    Attributes:
        id: Project identifier, unique within a batch.
        low: Optimistic cost estimate.
        central: Best-guess cost estimate.
        high: Pessimistic cost estimate.
    """

    id: str
    low: float
    central: float
    high: float

    def validate(self) -> None:
        """
        Check the strict ordering 0 < low < central < high.

        Raises:
            InvalidEstimateOrder: If any value is non-finite or non-positive,
                or if the strict ordering is violated.
        """
        params = self.as_dict()
        values = (float(self.low), float(self.central), float(self.high))
        if not all(math.isfinite(v) for v in values):
            raise InvalidEstimateOrder(
                "Estimates must be finite", project_id=str(self.id), params=params
            )
        if values[0] <= 0.0:
            raise InvalidEstimateOrder(
                "Estimates must be positive", project_id=str(self.id), params=params
            )
        if not (values[0] < values[1] < values[2]):
            raise InvalidEstimateOrder(
                f"Estimates must satisfy low < central < high, got "
                f"low={values[0]}, central={values[1]}, high={values[2]}",
                project_id=str(self.id),
                params=params,
            )

    @property
    def spread(self) -> float:
        return float(self.high) - float(self.low)

    def as_dict(self) -> Dict[str, float]:
        return {
            "low": float(self.low),
            "central": float(self.central),
            "high": float(self.high),
        }


def validate_estimates(estimates: Sequence[ProjectEstimate]) -> None:
    """
    Validate a batch of estimates.

    Raises:
        ValueError: If the batch is empty or project ids are duplicated.
        InvalidEstimateOrder: On the first record violating the ordering.
    """
    if not estimates:
        raise ValueError("estimates cannot be empty")
    ids = [str(e.id) for e in estimates]
    if len(set(ids)) != len(ids):
        raise ValueError("Project ids must be unique within a batch")
    for e in estimates:
        e.validate()


@dataclass(frozen=True)
class SupportGrid:
    """
    Shared discretisation domain: the integers 0..upper with step 1.

    The grid is read-only and is shared by every project and model of a run.
    Probability mass above `upper` is truncated, which is a known
    approximation for projects whose high estimate exceeds the bound.
    """

    upper: int
    values: np.ndarray = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        if int(self.upper) < 0:
            raise ValueError("upper must be non-negative")
        values = np.arange(int(self.upper) + 1, dtype=np.int64)
        values.setflags(write=False)
        object.__setattr__(self, "values", values)

    @property
    def size(self) -> int:
        return int(self.upper) + 1

    def covers(self, estimate: ProjectEstimate) -> bool:
        """Whether the estimate's full range lies inside the grid."""
        return float(estimate.high) <= float(self.upper)


def build_grid(estimates: Iterable[ProjectEstimate]) -> SupportGrid:
    """
    Build the support grid for a batch of estimates.

    The upper bound is the sum of every project's high estimate, rounded up
    to the next integer.

    Raises:
        ValueError: If the batch is empty.
    """
    highs = [float(e.high) for e in estimates]
    if not highs:
        raise ValueError("estimates cannot be empty")
    return SupportGrid(upper=int(math.ceil(sum(highs))))


def estimate_bounds_total(estimates: Sequence[ProjectEstimate]) -> Tuple[float, float]:
    """Sum of the low and high estimates across a batch."""
    return (
        float(sum(float(e.low) for e in estimates)),
        float(sum(float(e.high) for e in estimates)),
    )
