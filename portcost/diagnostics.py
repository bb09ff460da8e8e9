"""
Summary diagnostics for portfolio simulation runs.

The following items are provided:
  - empirical coverage of a project's samples within its [low, high] range
  - moment and quantile summaries of a total-cost sample
  - a run report combining both with the credible intervals and a KDE mode
    count, which flags aggregates for which a contiguous HDI may be inadequate
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Optional, Sequence, Tuple

import numpy as np

from portcost.core import ProjectEstimate
from portcost.intervals import CredibleInterval, count_modes
from portcost.simulation import PortfolioSimulation


DEFAULT_QUANTILES: Tuple[float, ...] = (0.05, 0.1, 0.5, 0.9, 0.95)


@dataclass(frozen=True)
class SampleSummary:
    n: int
    mean: float
    std: float
    minimum: float
    maximum: float
    quantiles: Dict[float, float]


@dataclass(frozen=True)
class ProjectCoverage:
    project_id: str
    low: float
    high: float
    coverage: float
    mean: float
    calibrated_coverage: Optional[float] = None


@dataclass(frozen=True)
class RunReport:
    model: str
    total: SampleSummary
    intervals: Dict[float, CredibleInterval]
    projects: Tuple[ProjectCoverage, ...]
    n_modes: int
    failures: Tuple[str, ...]

    @property
    def is_multimodal(self) -> bool:
        return int(self.n_modes) > 1


def empirical_coverage(samples: np.ndarray, low: float, high: float) -> float:
    """Fraction of samples falling within [low, high]."""
    x = np.asarray(samples, dtype=np.float64)
    if x.size == 0:
        raise ValueError("samples cannot be empty")
    inside = (x >= float(low)) & (x <= float(high))
    return float(np.mean(inside))


def summarise_samples(
    samples: np.ndarray, *, quantiles: Sequence[float] = DEFAULT_QUANTILES
) -> SampleSummary:
    x = np.asarray(samples, dtype=np.float64)
    if x.size == 0:
        raise ValueError("samples cannot be empty")
    qs = tuple(float(q) for q in quantiles)
    values = np.quantile(x, qs) if qs else np.asarray([])
    return SampleSummary(
        n=int(x.size),
        mean=float(np.mean(x)),
        std=float(np.std(x, ddof=1)) if x.size > 1 else 0.0,
        minimum=float(np.min(x)),
        maximum=float(np.max(x)),
        quantiles={q: float(v) for q, v in zip(qs, values)},
    )


def run_report(
    run: PortfolioSimulation,
    estimates: Sequence[ProjectEstimate],
    *,
    quantiles: Sequence[float] = DEFAULT_QUANTILES,
) -> RunReport:
    """
    A run report is built for a completed simulation.

    Projects that were omitted from the run are listed under `failures` and
    have no coverage entry.
    """
    by_id = {str(e.id): e for e in estimates}
    projects = []
    for pid in run.project_ids:
        est = by_id.get(pid)
        if est is None:
            raise ValueError(f"Estimate for project {pid!r} was not supplied")
        samples = run.project_samples(pid)
        cal = run.calibrations.get(pid)
        projects.append(
            ProjectCoverage(
                project_id=pid,
                low=float(est.low),
                high=float(est.high),
                coverage=empirical_coverage(samples, est.low, est.high),
                mean=float(np.mean(samples)),
                calibrated_coverage=None if cal is None else float(cal.coverage),
            )
        )

    return RunReport(
        model=str(run.model),
        total=summarise_samples(run.total, quantiles=quantiles),
        intervals=dict(run.intervals),
        projects=tuple(projects),
        n_modes=int(count_modes(run.total)),
        failures=tuple(sorted(run.failures.keys())),
    )
