"""
Portfolio Monte Carlo simulation.

In this module, every project is sampled independently on the shared support
grid with its own reproducible sub-seed, the per-project sample vectors are
stacked into a (projects x N) sample matrix, and the matrix is summed over
projects to give the total-cost sample. Column k of the matrix is only a
pairing key ("scenario k"); it does not encode any cross-project correlation.
"""

from __future__ import annotations

import logging
import multiprocessing as mp
from dataclasses import dataclass, field
from time import perf_counter
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple, Union

import numpy as np

from portcost.calibration import CalibrationResult, warn_if_imprecise
from portcost.config import SimulationConfig
from portcost.core import ProjectEstimate, SupportGrid, build_grid
from portcost.distributions import (
    MODEL_NAMES,
    DistributionModel,
    LogNormalModel,
    get_model,
)
from portcost.errors import CostEngineError, SimulationError
from portcost.intervals import CredibleInterval, highest_density_interval
from portcost.sampling import draw_from_weights, project_rng


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ProjectOutcome:
    """
    Result of sampling one project: either samples or the error raised.
    """

    project_id: str
    samples: Optional[np.ndarray]
    calibration: Optional[CalibrationResult] = None
    error: Optional[CostEngineError] = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass(frozen=True)
class PortfolioSimulation:
    """
    Outputs of one portfolio run under a single distribution model.
    """

    model: str
    project_ids: Tuple[str, ...]
    sample_matrix: np.ndarray  # shape (n_projects, n_samples)
    total: np.ndarray  # shape (n_samples,)
    intervals: Dict[float, CredibleInterval]
    grid: SupportGrid
    calibrations: Dict[str, CalibrationResult] = field(default_factory=dict)
    failures: Dict[str, CostEngineError] = field(default_factory=dict)
    diagnostics: Dict[str, Any] = field(default_factory=dict)

    @property
    def n_samples(self) -> int:
        return int(self.total.shape[0])

    def project_samples(self, project_id: str) -> np.ndarray:
        """
        Sample vector of one surviving project.

        Raises:
            KeyError: If the project failed or is not part of the run.
        """
        pid = str(project_id)
        if pid not in self.project_ids:
            raise KeyError(f"No samples for project {pid!r}")
        return self.sample_matrix[self.project_ids.index(pid)]

    def samples_by_project(self) -> Dict[str, np.ndarray]:
        return {pid: self.sample_matrix[i] for i, pid in enumerate(self.project_ids)}


@dataclass(frozen=True)
class ModelComparison:
    """
    Runs of the same batch under several models.
    """

    runs: Dict[str, PortfolioSimulation]

    @property
    def intervals(self) -> Dict[Tuple[str, float], CredibleInterval]:
        """Credible intervals keyed by (model, confidence level)."""
        out: Dict[Tuple[str, float], CredibleInterval] = {}
        for name, run in self.runs.items():
            for level, ci in run.intervals.items():
                out[(name, float(level))] = ci
        return out


def resolve_model(
    model: Union[str, DistributionModel], config: SimulationConfig
) -> DistributionModel:
    """
    A model object is returned for a name or passed through unchanged.

    The log-normal model picks up the calibration settings of `config`.
    """
    if not isinstance(model, str):
        return model
    if str(model).strip().lower() == "lognormal":
        return config.lognormal_model()
    return get_model(model)


def simulate_project(
    model: DistributionModel,
    estimate: ProjectEstimate,
    grid: SupportGrid,
    *,
    n_samples: int,
    seed: int,
    warn: bool = True,
) -> ProjectOutcome:
    """
    One project is validated, calibrated if needed, and sampled.

    Engine errors are captured in the outcome rather than raised so that the
    caller can apply its failure policy.
    """
    pid = str(estimate.id)
    try:
        estimate.validate()
        calibration: Optional[CalibrationResult] = None
        if isinstance(model, LogNormalModel):
            calibration = model.calibrate(estimate, warn=warn)
            weights = model.weights(estimate, grid, params=calibration.params)
        else:
            weights = model.weights(estimate, grid)
        samples = draw_from_weights(
            grid,
            weights,
            int(n_samples),
            rng=project_rng(int(seed), pid),
            project_id=pid,
        )
    except CostEngineError as e:
        if e.project_id is None:
            e.project_id = pid
        return ProjectOutcome(project_id=pid, samples=None, error=e)
    return ProjectOutcome(project_id=pid, samples=samples, calibration=calibration)


def _run_projects(
    *,
    model: DistributionModel,
    estimates: Sequence[ProjectEstimate],
    grid: SupportGrid,
    n_samples: int,
    seed: int,
    stop_on_error: bool,
    warn: bool,
) -> List[ProjectOutcome]:
    outcomes: List[ProjectOutcome] = []
    for est in estimates:
        out = simulate_project(
            model, est, grid, n_samples=n_samples, seed=seed, warn=warn
        )
        outcomes.append(out)
        if stop_on_error and not out.ok:
            break
    return outcomes


def _run_projects_worker(
    args: Tuple[DistributionModel, Tuple[ProjectEstimate, ...], SupportGrid, int, int]
) -> List[ProjectOutcome]:
    model, chunk, grid, n_samples, seed = args
    return _run_projects(
        model=model,
        estimates=chunk,
        grid=grid,
        n_samples=n_samples,
        seed=seed,
        stop_on_error=False,
        warn=False,
    )


def _chunk_estimates(
    estimates: Sequence[ProjectEstimate], *, n_chunks: int
) -> Tuple[Tuple[ProjectEstimate, ...], ...]:
    if int(n_chunks) <= 0:
        raise ValueError("n_chunks must be positive")
    chunks: List[List[ProjectEstimate]] = [[] for _ in range(int(n_chunks))]
    for i, est in enumerate(estimates):
        chunks[int(i) % int(n_chunks)].append(est)
    return tuple(tuple(c) for c in chunks if c)


def _map_projects(
    *,
    model: DistributionModel,
    estimates: Sequence[ProjectEstimate],
    grid: SupportGrid,
    config: SimulationConfig,
) -> List[ProjectOutcome]:
    n_jobs = min(int(config.n_jobs), len(estimates))
    if n_jobs <= 1:
        return _run_projects(
            model=model,
            estimates=estimates,
            grid=grid,
            n_samples=int(config.n_samples),
            seed=int(config.seed),
            stop_on_error=str(config.on_error) == "raise",
            warn=True,
        )

    chunks = _chunk_estimates(estimates, n_chunks=n_jobs)
    ctx = mp.get_context("spawn")
    with ctx.Pool(processes=n_jobs) as pool:
        parts = pool.map(
            _run_projects_worker,
            [(model, c, grid, int(config.n_samples), int(config.seed)) for c in chunks],
        )
    by_id = {o.project_id: o for part in parts for o in part}
    outcomes = [by_id[str(e.id)] for e in estimates]
    # Warnings raised inside workers do not reach the caller; they are re-issued here.
    for o in outcomes:
        if o.calibration is not None:
            warn_if_imprecise(o.calibration, stacklevel=4)
    return outcomes


def simulate_portfolio(
    estimates: Sequence[ProjectEstimate],
    model: Union[str, DistributionModel] = "lognormal",
    config: Optional[SimulationConfig] = None,
) -> PortfolioSimulation:
    """
    Portfolio Monte Carlo simulation is performed for one model.

    Args:
        estimates: Project estimates; ids must be unique.
        model: Model name (see MODEL_NAMES) or a model object.
        config: Run configuration; defaults to SimulationConfig().

    Returns:
        PortfolioSimulation with the sample matrix, total-cost sample and
        credible intervals at every configured level.

    Raises:
        ValueError: If the batch is empty, ids are duplicated or the
            configuration is invalid.
        CostEngineError: The first per-project error when `on_error="raise"`.
        SimulationError: If no project survives when `on_error="omit"`.
    """
    config = config or SimulationConfig()
    config.validate()
    if not estimates:
        raise ValueError("estimates cannot be empty")
    ids = [str(e.id) for e in estimates]
    if len(set(ids)) != len(ids):
        raise ValueError("Project ids must be unique within a batch")

    model_obj = resolve_model(model, config)
    t0 = perf_counter()

    # Ordering is checked up front so that invalid records never reach a model
    # and never distort the grid bound.
    failures: Dict[str, CostEngineError] = {}
    valid: List[ProjectEstimate] = []
    for est in estimates:
        try:
            est.validate()
        except CostEngineError as e:
            if str(config.on_error) == "raise":
                raise
            failures[str(est.id)] = e
            continue
        valid.append(est)

    outcomes: List[ProjectOutcome] = []
    grid: Optional[SupportGrid] = None
    if valid:
        grid = build_grid(valid)
        outcomes = _map_projects(model=model_obj, estimates=valid, grid=grid, config=config)

    rows: List[np.ndarray] = []
    kept_ids: List[str] = []
    calibrations: Dict[str, CalibrationResult] = {}
    for o in outcomes:
        if o.calibration is not None:
            calibrations[o.project_id] = o.calibration
        if o.error is not None:
            if str(config.on_error) == "raise":
                raise o.error
            failures[o.project_id] = o.error
            continue
        assert o.samples is not None
        rows.append(o.samples)
        kept_ids.append(o.project_id)

    for pid, err in failures.items():
        logger.warning("Project %s omitted from %s run: %s", pid, model_obj.name, err)

    if not rows or grid is None:
        raise SimulationError(
            f"No project could be sampled under model {model_obj.name!r}",
            failures=failures,
        )

    matrix = np.vstack(rows)
    total = aggregate_samples(matrix)
    intervals = highest_density_interval(
        total,
        config.confidence_levels,
        method=str(config.interval_method),  # type: ignore[arg-type]
    )

    runtime_s = float(perf_counter() - t0)
    diagnostics: Dict[str, Any] = {
        "model": str(model_obj.name),
        "n_projects": int(len(estimates)),
        "n_sampled": int(len(kept_ids)),
        "n_failed": int(len(failures)),
        "n_samples": int(config.n_samples),
        "seed": int(config.seed),
        "n_jobs": int(config.n_jobs),
        "grid_upper": int(grid.upper),
        "n_imprecise_calibrations": int(sum(1 for c in calibrations.values() if not c.precise)),
        "runtime_s": runtime_s,
    }
    logger.debug(
        "Simulated %d/%d projects under %s in %.3fs",
        len(kept_ids),
        len(estimates),
        model_obj.name,
        runtime_s,
    )

    return PortfolioSimulation(
        model=str(model_obj.name),
        project_ids=tuple(kept_ids),
        sample_matrix=matrix,
        total=total,
        intervals=intervals,
        grid=grid,
        calibrations=calibrations,
        failures=failures,
        diagnostics=diagnostics,
    )


def compare_models(
    estimates: Sequence[ProjectEstimate],
    config: Optional[SimulationConfig] = None,
    models: Sequence[str] = MODEL_NAMES,
) -> ModelComparison:
    """
    The same batch is simulated under each of `models`.
    """
    config = config or SimulationConfig()
    runs: Dict[str, PortfolioSimulation] = {}
    for name in models:
        run = simulate_portfolio(estimates, name, config)
        runs[run.model] = run
    return ModelComparison(runs=runs)


def aggregate_samples(sample_matrix: Union[np.ndarray, Mapping[str, np.ndarray]]) -> np.ndarray:
    """
    Total-cost sample from per-project sample vectors.

    Raises:
        ValueError: If the rows differ in length or the input is empty.
    """
    if isinstance(sample_matrix, Mapping):
        rows = [np.asarray(v) for v in sample_matrix.values()]
    else:
        rows = list(np.atleast_2d(np.asarray(sample_matrix)))
    if not rows:
        raise ValueError("sample_matrix cannot be empty")
    lengths = {int(r.shape[0]) for r in rows}
    if len(lengths) != 1:
        raise ValueError("All projects must have the same number of samples")
    return np.sum(np.vstack(rows), axis=0)
