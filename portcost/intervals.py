"""
Highest-density credible intervals for Monte Carlo sample vectors.

The following items are provided:
  - contiguous HDIs via a sliding window over the sorted samples
  - multi-modal HDIs via a Gaussian KDE level set (union of disjoint segments)
  - a KDE mode count, used to check whether a contiguous HDI is adequate

All estimators are pure functions of the multiset of samples, and several
confidence levels are served from a single sort.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Dict, Iterable, Literal, Tuple, Union

import numpy as np
from scipy.stats import gaussian_kde


_KDE_GRID_POINTS = 512


@dataclass(frozen=True)
class CredibleInterval:
    """
    Credible interval at one confidence level.

    `segments` holds disjoint (lower, upper) pairs in increasing order; a
    contiguous HDI has exactly one segment. `lower` and `upper` are the
    outermost bounds and `mass` is the fraction of samples inside the segments.
    """

    level: float
    lower: float
    upper: float
    segments: Tuple[Tuple[float, float], ...]
    mass: float

    @property
    def width(self) -> float:
        return float(sum(hi - lo for lo, hi in self.segments))

    @property
    def is_contiguous(self) -> bool:
        return len(self.segments) == 1

    def contains(self, value: float) -> bool:
        v = float(value)
        return any(lo <= v <= hi for lo, hi in self.segments)


def _prepare(samples: Iterable[float]) -> np.ndarray:
    if not isinstance(samples, np.ndarray):
        samples = list(samples)
    x = np.asarray(samples, dtype=np.float64).ravel()
    if x.size == 0:
        raise ValueError("samples cannot be empty")
    if not np.all(np.isfinite(x)):
        raise ValueError("samples must be finite")
    return np.sort(x)


def _levels(levels: Union[float, Iterable[float]]) -> Tuple[float, ...]:
    if isinstance(levels, (int, float)):
        out = (float(levels),)
    else:
        out = tuple(float(v) for v in levels)
    if not out:
        raise ValueError("levels cannot be empty")
    for p in out:
        if not (0.0 < p <= 1.0):
            raise ValueError("levels must lie in (0, 1]")
    return out


def _window_size(level: float, n: int) -> int:
    # The small offset absorbs float noise such as 0.95 * 100 = 95.00000000000001.
    w = int(math.ceil(float(level) * int(n) - 1e-9))
    return int(min(max(w, 1), int(n)))


def _mass(x_sorted: np.ndarray, segments: Tuple[Tuple[float, float], ...]) -> float:
    inside = 0
    for lo, hi in segments:
        i0 = int(np.searchsorted(x_sorted, lo, side="left"))
        i1 = int(np.searchsorted(x_sorted, hi, side="right"))
        inside += i1 - i0
    return float(inside) / float(x_sorted.size)


def _contiguous_hdi(x_sorted: np.ndarray, level: float) -> CredibleInterval:
    n = int(x_sorted.size)
    w = _window_size(level, n)
    widths = x_sorted[w - 1 :] - x_sorted[: n - w + 1]
    # argmin returns the first minimum, so ties resolve to the lowest window.
    i = int(np.argmin(widths))
    lo = float(x_sorted[i])
    hi = float(x_sorted[i + w - 1])
    segments = ((lo, hi),)
    return CredibleInterval(
        level=float(level),
        lower=lo,
        upper=hi,
        segments=segments,
        mass=_mass(x_sorted, segments),
    )


def _kde_density(x_sorted: np.ndarray) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
    """KDE evaluated on an even grid over the sample range, and interpolated at the samples."""
    kde = gaussian_kde(x_sorted)
    grid = np.linspace(float(x_sorted[0]), float(x_sorted[-1]), _KDE_GRID_POINTS)
    dens = kde(grid)
    return grid, dens, np.interp(x_sorted, grid, dens)


def _low_density_gaps(
    x_sorted: np.ndarray, grid: np.ndarray, dens: np.ndarray, threshold: float
) -> np.ndarray:
    """Flag i is set when the density dips below `threshold` strictly between x[i] and x[i + 1]."""
    n = int(x_sorted.size)
    gaps = np.zeros(max(n - 1, 0), dtype=bool)
    below = grid[dens < threshold]
    k = np.searchsorted(x_sorted, below, side="right")
    inner = (k > 0) & (k < n)
    k, below = k[inner], below[inner]
    strictly = below > x_sorted[k - 1]
    gaps[k[strictly] - 1] = True
    return gaps


def _level_set_hdi(
    x_sorted: np.ndarray,
    grid: np.ndarray,
    dens: np.ndarray,
    density: np.ndarray,
    level: float,
) -> CredibleInterval:
    n = int(x_sorted.size)
    w = _window_size(level, n)
    threshold = float(np.sort(density)[::-1][w - 1])
    included = density >= threshold
    # Runs also end where the density dips below the threshold between two samples.
    breaks = _low_density_gaps(x_sorted, grid, dens, threshold)

    segments = []
    start = None
    for i in range(n):
        if included[i] and start is None:
            start = i
        elif not included[i] and start is not None:
            segments.append((float(x_sorted[start]), float(x_sorted[i - 1])))
            start = None
        if start is not None and i < n - 1 and breaks[i]:
            segments.append((float(x_sorted[start]), float(x_sorted[i])))
            start = None
    if start is not None:
        segments.append((float(x_sorted[start]), float(x_sorted[n - 1])))

    segs = tuple(segments)
    return CredibleInterval(
        level=float(level),
        lower=float(segs[0][0]),
        upper=float(segs[-1][1]),
        segments=segs,
        mass=_mass(x_sorted, segs),
    )


def highest_density_interval(
    samples: Iterable[float],
    levels: Union[float, Iterable[float]] = (0.95,),
    *,
    method: Literal["contiguous", "multimodal"] = "contiguous",
) -> Dict[float, CredibleInterval]:
    """
    Highest-density intervals at one or more confidence levels.

    Args:
        samples: Sample vector (any order).
        levels: Confidence level or levels, each in (0, 1].
        method: "contiguous" for the narrowest single interval holding at
            least ceil(level * N) samples; "multimodal" for a KDE level set
            that may split into disjoint segments.

    Returns:
        Dictionary mapping each level to its CredibleInterval.

    Raises:
        ValueError: If samples are empty or non-finite, a level is outside
            (0, 1], or the method is not recognised.
    """
    x = _prepare(samples)
    lv = _levels(levels)

    if method == "contiguous":
        return {p: _contiguous_hdi(x, p) for p in lv}

    if method == "multimodal":
        if float(x[-1]) == float(x[0]) or x.size < 2:
            return {p: _contiguous_hdi(x, p) for p in lv}
        try:
            grid, dens, density = _kde_density(x)
        except np.linalg.LinAlgError:
            # Singular covariance (e.g. almost all samples identical).
            return {p: _contiguous_hdi(x, p) for p in lv}
        return {p: _level_set_hdi(x, grid, dens, density, p) for p in lv}

    raise ValueError("method must be 'contiguous' or 'multimodal'")


def count_modes(samples: Iterable[float], *, min_relative_height: float = 0.01) -> int:
    """
    Number of local maxima of a Gaussian KDE of the samples.

    Maxima lower than `min_relative_height` times the global maximum are
    ignored. Constant input has a single mode.
    """
    x = _prepare(samples)
    if float(x[-1]) == float(x[0]) or x.size < 2:
        return 1
    try:
        kde = gaussian_kde(x)
    except np.linalg.LinAlgError:
        return 1
    grid = np.linspace(float(x[0]), float(x[-1]), _KDE_GRID_POINTS)
    d = kde(grid)
    floor = float(min_relative_height) * float(np.max(d))

    # Edges count as maxima when the density falls away from them.
    padded = np.concatenate(([-np.inf], d, [-np.inf]))
    is_peak = (padded[1:-1] > padded[:-2]) & (padded[1:-1] >= padded[2:])
    return int(np.sum(is_peak & (d >= floor)))
