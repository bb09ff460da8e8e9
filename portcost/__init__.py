"""
Portfolio cost uncertainty via Monte Carlo simulation.

This package turns per-project (low, central, high) cost estimates into
sampling distributions under four models, aggregates independent project
draws into a total-cost sample, and extracts highest-density credible
intervals from it.
"""

import logging

from portcost.calibration import (
    CalibrationResult,
    LogNormalParams,
    calibrate_lognormal,
    lognormal_coverage,
    lognormal_mode,
)
from portcost.config import SimulationConfig
from portcost.core import (
    ProjectEstimate,
    SupportGrid,
    build_grid,
    validate_estimates,
)
from portcost.diagnostics import (
    ProjectCoverage,
    RunReport,
    SampleSummary,
    empirical_coverage,
    run_report,
    summarise_samples,
)
from portcost.distributions import (
    MODEL_NAMES,
    DistributionModel,
    LogNormalModel,
    NormalNoCentralModel,
    NormalWithCentralModel,
    UniformModel,
    get_model,
)
from portcost.errors import (
    CalibrationImprecise,
    CalibrationTimeout,
    CostEngineError,
    DegenerateDistribution,
    InvalidEstimateOrder,
    InvalidRange,
    SimulationError,
)
from portcost.example_data import EXAMPLE_PORTFOLIO, example_estimates, synthetic_portfolio
from portcost.intervals import CredibleInterval, count_modes, highest_density_interval
from portcost.sampling import project_seed_sequence, sample_project
from portcost.simulation import (
    ModelComparison,
    PortfolioSimulation,
    aggregate_samples,
    compare_models,
    simulate_portfolio,
)
from portcost.utils import (
    load_estimates_from_csv,
    load_estimates_from_json,
    save_estimates_to_csv,
    save_estimates_to_json,
    save_intervals_to_json,
    save_samples_to_csv,
)

logging.getLogger(__name__).addHandler(logging.NullHandler())

__all__ = [
    "ProjectEstimate",
    "SupportGrid",
    "build_grid",
    "validate_estimates",
    "DistributionModel",
    "UniformModel",
    "NormalNoCentralModel",
    "NormalWithCentralModel",
    "LogNormalModel",
    "MODEL_NAMES",
    "get_model",
    "LogNormalParams",
    "CalibrationResult",
    "calibrate_lognormal",
    "lognormal_coverage",
    "lognormal_mode",
    "sample_project",
    "project_seed_sequence",
    "SimulationConfig",
    "PortfolioSimulation",
    "ModelComparison",
    "simulate_portfolio",
    "compare_models",
    "aggregate_samples",
    "CredibleInterval",
    "highest_density_interval",
    "count_modes",
    "SampleSummary",
    "ProjectCoverage",
    "RunReport",
    "empirical_coverage",
    "summarise_samples",
    "run_report",
    "EXAMPLE_PORTFOLIO",
    "example_estimates",
    "synthetic_portfolio",
    "load_estimates_from_csv",
    "save_estimates_to_csv",
    "load_estimates_from_json",
    "save_estimates_to_json",
    "save_samples_to_csv",
    "save_intervals_to_json",
    "CostEngineError",
    "InvalidEstimateOrder",
    "InvalidRange",
    "DegenerateDistribution",
    "CalibrationImprecise",
    "CalibrationTimeout",
    "SimulationError",
]
