from __future__ import annotations

import numpy as np
import pytest

from portcost.intervals import count_modes, highest_density_interval


def _bimodal(seed: int = 5, n: int = 5000) -> np.ndarray:
    rng = np.random.default_rng(seed)
    return np.concatenate([rng.normal(0.0, 1.0, n), rng.normal(20.0, 1.0, n)])


def test_known_window_on_evenly_spaced_samples() -> None:
    x = np.arange(1, 101, dtype=float)
    ci = highest_density_interval(x, 0.5)[0.5]
    # All windows have equal width, so the lowest one is kept.
    assert (ci.lower, ci.upper) == (1.0, 50.0)
    assert ci.is_contiguous
    assert ci.mass == pytest.approx(0.5)


def test_narrowest_window_is_selected() -> None:
    x = [100, 0, 1, 0, 5, 1, 0, 10, 1, 0]
    ci = highest_density_interval(x, 0.5)[0.5]
    assert (ci.lower, ci.upper) == (0.0, 1.0)
    assert ci.mass == pytest.approx(0.7)


def test_multiple_levels_and_monotonicity() -> None:
    rng = np.random.default_rng(1)
    x = rng.lognormal(5.0, 0.4, size=10_000)
    out = highest_density_interval(x, (0.95, 0.89, 0.5))
    assert set(out) == {0.95, 0.89, 0.5}
    assert out[0.95].width >= out[0.89].width >= out[0.5].width
    for level, ci in out.items():
        assert ci.mass >= level
        assert ci.lower <= ci.upper


def test_hdi_is_narrower_than_equal_tailed_interval_for_skewed_samples() -> None:
    rng = np.random.default_rng(2)
    x = rng.lognormal(0.0, 0.8, size=20_000)
    ci = highest_density_interval(x, 0.9)[0.9]
    q_lo, q_hi = np.quantile(x, [0.05, 0.95])
    assert ci.width < float(q_hi - q_lo)


def test_result_is_invariant_to_input_order() -> None:
    rng = np.random.default_rng(3)
    x = rng.gamma(2.0, 10.0, size=5000)
    shuffled = rng.permutation(x)
    a = highest_density_interval(x, (0.95, 0.89))
    b = highest_density_interval(shuffled, (0.95, 0.89))
    assert a == b


def test_full_level_covers_all_samples() -> None:
    x = np.array([3.0, 9.0, 1.0, 4.0])
    ci = highest_density_interval(x, 1.0)[1.0]
    assert (ci.lower, ci.upper) == (1.0, 9.0)
    assert ci.mass == 1.0


def test_invalid_inputs_are_rejected() -> None:
    with pytest.raises(ValueError):
        highest_density_interval([], 0.9)
    with pytest.raises(ValueError):
        highest_density_interval([1.0, np.inf], 0.9)
    with pytest.raises(ValueError):
        highest_density_interval([1.0, 2.0], 0.0)
    with pytest.raises(ValueError):
        highest_density_interval([1.0, 2.0], 1.5)
    with pytest.raises(ValueError):
        highest_density_interval([1.0, 2.0], 0.5, method="quantile")  # type: ignore[arg-type]


def test_multimodal_method_splits_separated_modes() -> None:
    x = _bimodal()
    contiguous = highest_density_interval(x, 0.9)[0.9]
    split = highest_density_interval(x, 0.9, method="multimodal")[0.9]

    assert len(split.segments) == 2
    assert split.mass >= 0.9
    assert split.width < contiguous.width
    assert split.contains(0.0)
    assert split.contains(20.0)
    assert not split.contains(10.0)
    assert contiguous.contains(10.0)


def test_multimodal_method_on_unimodal_samples_gives_one_segment() -> None:
    rng = np.random.default_rng(4)
    x = rng.normal(100.0, 10.0, size=5000)
    ci = highest_density_interval(x, 0.95, method="multimodal")[0.95]
    assert ci.is_contiguous
    assert ci.mass >= 0.95


def test_constant_samples_fall_back_to_point_interval() -> None:
    x = np.full(100, 5.0)
    ci = highest_density_interval(x, 0.9, method="multimodal")[0.9]
    assert ci.segments == ((5.0, 5.0),)
    assert ci.mass == 1.0
    assert count_modes(x) == 1


def test_count_modes() -> None:
    rng = np.random.default_rng(6)
    assert count_modes(rng.normal(0.0, 1.0, size=5000)) == 1
    assert count_modes(_bimodal()) == 2


def test_multimodal_full_level_splits_across_empty_gap() -> None:
    x = _bimodal()
    ci = highest_density_interval(x, 1.0, method="multimodal")[1.0]

    assert len(ci.segments) == 2
    assert ci.mass == 1.0
    assert (ci.lower, ci.upper) == (float(x.min()), float(x.max()))
    assert not ci.contains(10.0)
    assert ci.width < 20.0
