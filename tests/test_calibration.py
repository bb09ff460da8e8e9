from __future__ import annotations

import inspect
import math
import warnings

import pytest

from portcost.calibration import (
    calibrate_lognormal,
    lognormal_coverage,
    lognormal_mode,
)
from portcost.core import ProjectEstimate
from portcost.errors import CalibrationImprecise, CalibrationTimeout, InvalidRange


SYNTHETIC = [
    (50.0, 120.0, 250.0),
    (80.0, 150.0, 300.0),
    (40.0, 90.0, 200.0),
    (10.0, 12.0, 20.0),
    (1000.0, 1500.0, 4000.0),
    (380.0, 400.0, 960.0),
    (95.0, 100.0, 250.0),
    (378.8, 400.2, 957.9),
]


@pytest.mark.parametrize("low,central,high", SYNTHETIC)
def test_calibration_meets_coverage_and_mode(low: float, central: float, high: float) -> None:
    est = ProjectEstimate(id="p", low=low, central=central, high=high)
    with warnings.catch_warnings():
        warnings.simplefilter("error", CalibrationImprecise)
        res = calibrate_lognormal(est)

    p = res.params
    assert 0.0 < p.sigma <= 1.0
    assert abs(lognormal_coverage(p.mu, p.sigma, low, high) - 0.95) <= 0.01
    assert math.isclose(lognormal_mode(p.mu, p.sigma), central, rel_tol=1e-9)
    assert math.isclose(p.mode, central, rel_tol=1e-9)
    assert res.precise is True
    assert res.converged is True
    assert res.residual <= 0.01


def test_calibration_is_deterministic() -> None:
    est = ProjectEstimate(id="p", low=50.0, central=120.0, high=250.0)
    r1 = calibrate_lognormal(est)
    r2 = calibrate_lognormal(est)
    assert r1 == r2


def test_custom_coverage_target() -> None:
    est = ProjectEstimate(id="p", low=50.0, central=120.0, high=250.0)
    res = calibrate_lognormal(est, coverage_target=0.8)
    assert abs(res.coverage - 0.8) <= 0.01


def test_narrow_search_interval_issues_imprecise_warning() -> None:
    est = ProjectEstimate(id="wide", low=50.0, central=120.0, high=250.0)
    with pytest.warns(CalibrationImprecise) as record:
        res = calibrate_lognormal(est, sigma_bounds=(0.0, 0.05))

    assert res.precise is False
    assert res.residual > 0.01
    w = record[0].message
    assert isinstance(w, CalibrationImprecise)
    assert w.project_id == "wide"
    assert w.sigma == pytest.approx(res.params.sigma)
    assert w.coverage == pytest.approx(res.coverage)


def test_warning_can_be_suppressed() -> None:
    est = ProjectEstimate(id="wide", low=50.0, central=120.0, high=250.0)
    with warnings.catch_warnings():
        warnings.simplefilter("error")
        res = calibrate_lognormal(est, sigma_bounds=(0.0, 0.05), warn=False)
    assert res.precise is False


def test_iteration_budget_exhaustion_raises_timeout() -> None:
    est = ProjectEstimate(id="slow", low=50.0, central=120.0, high=250.0)
    with pytest.raises(CalibrationTimeout) as exc:
        calibrate_lognormal(est, maxiter=1)
    assert exc.value.project_id == "slow"
    assert exc.value.params["maxiter"] == 1
    assert isinstance(exc.value, RuntimeError)


def test_invalid_settings_are_rejected() -> None:
    est = ProjectEstimate(id="p", low=50.0, central=120.0, high=250.0)
    with pytest.raises(InvalidRange):
        calibrate_lognormal(est, coverage_target=1.5)
    with pytest.raises(InvalidRange):
        calibrate_lognormal(est, sigma_bounds=(0.5, 0.5))


def test_coverage_of_degenerate_sigma_is_zero() -> None:
    assert lognormal_coverage(math.log(100.0), 0.0, 50.0, 150.0) == 0.0


def test_low_close_to_central_finds_the_small_sigma_root() -> None:
    # Coverage drops steeply for small sigma, then flattens well below 0.95.
    est = ProjectEstimate(id="tight", low=380.0, central=400.0, high=960.0)
    with warnings.catch_warnings():
        warnings.simplefilter("error", CalibrationImprecise)
        res = calibrate_lognormal(est)

    assert 0.0 < res.params.sigma < 0.1
    assert res.residual <= 1e-6
    assert lognormal_coverage(math.log(400.0) + 0.09, 0.3, 380.0, 960.0) < 0.85


def test_default_sigma_tolerance() -> None:
    assert inspect.signature(calibrate_lognormal).parameters["xatol"].default == 1e-10
