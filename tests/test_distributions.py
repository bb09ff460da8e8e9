from __future__ import annotations

import numpy as np
import pytest

from portcost.core import ProjectEstimate, build_grid
from portcost.distributions import (
    MODEL_NAMES,
    LogNormalModel,
    NormalNoCentralModel,
    NormalWithCentralModel,
    UniformModel,
    get_model,
)
from portcost.errors import InvalidRange
from portcost.example_data import example_estimates


def _setup():
    estimates = example_estimates()
    return estimates[0], build_grid(estimates)


def test_registry_returns_all_models() -> None:
    _est, grid = _setup()
    for name in MODEL_NAMES:
        m = get_model(name)
        assert m.name == name
    assert isinstance(get_model("LogNormal"), LogNormalModel)
    with pytest.raises(ValueError):
        get_model("triangular")
    assert grid.size > 0


@pytest.mark.parametrize("name", MODEL_NAMES)
def test_weights_have_one_non_negative_entry_per_grid_point(name: str) -> None:
    est, grid = _setup()
    w = get_model(name).weights(est, grid)
    assert w.shape == (grid.size,)
    assert np.all(np.isfinite(w))
    assert np.all(w >= 0.0)
    assert float(np.sum(w)) > 0.0


def test_uniform_weights_are_indicator_of_range() -> None:
    est, grid = _setup()
    w = UniformModel().weights(est, grid)
    inside = (grid.values >= 50) & (grid.values <= 250)
    assert np.all(w[inside] == 1.0)
    assert np.all(w[~inside] == 0.0)


def test_uniform_requires_low_below_high() -> None:
    _est, grid = _setup()
    bad = ProjectEstimate(id="u", low=10.0, central=5.0, high=10.0)
    with pytest.raises(InvalidRange) as exc:
        UniformModel().weights(bad, grid)
    assert exc.value.project_id == "u"


def test_normal_models_peak_where_expected() -> None:
    est, grid = _setup()
    w0 = NormalNoCentralModel().weights(est, grid)
    w1 = NormalWithCentralModel().weights(est, grid)
    assert int(grid.values[np.argmax(w0)]) == 150
    assert int(grid.values[np.argmax(w1)]) == 120

    p0 = NormalNoCentralModel().parameters(est)
    p1 = NormalWithCentralModel().parameters(est)
    assert p0["sd"] == pytest.approx(50.0)
    assert p1["sd"] == pytest.approx(p0["sd"])


def test_lognormal_peaks_at_central() -> None:
    est, grid = _setup()
    w = LogNormalModel().weights(est, grid)
    assert abs(int(grid.values[np.argmax(w)]) - 120) <= 1
    assert float(w[0]) == 0.0


def test_lognormal_accepts_precomputed_params() -> None:
    est, grid = _setup()
    model = LogNormalModel()
    cal = model.calibrate(est)
    np.testing.assert_allclose(model.weights(est, grid, params=cal.params), model.weights(est, grid))
    assert model.parameters(est)["sigma"] == pytest.approx(cal.params.sigma)
